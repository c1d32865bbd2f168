"""
HTTP surface for gifloom (FastAPI).

Use ``create_app`` to build an application; ``gifloom serve`` runs it
with uvicorn.
"""

from gifloom.api.main import create_app

__all__ = ["create_app"]
