"""
Progress reporting for batch operations run from the command line.
"""

from __future__ import annotations

import sys

from tqdm import tqdm


class ProgressReporter:
    """Thin wrapper over a tqdm bar on stderr.

    ``update`` accepts (and ignores) a result argument so it can be passed
    directly as an ``on_item_done`` callback.
    """

    def __init__(self, total: int, description: str, unit: str = "file") -> None:
        self.total = total
        self.completed = 0
        self._bar = tqdm(
            total=total, desc=description, unit=unit,
            file=sys.stderr, dynamic_ncols=True, leave=False,
        )

    def update(self, _result: object = None) -> None:
        self.completed += 1
        self._bar.update(1)

    def close(self) -> None:
        self._bar.close()

    def __enter__(self) -> ProgressReporter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
