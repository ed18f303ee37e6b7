from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for row upserts with tqdm (TTY only).

A single tqdm bar counts upserted rows, with ok/failed counts as postfix.
In non-TTY environments (CI, cron, piped output) no bar is created so logs
stay free of control sequences; the counters are kept either way.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Row progress bar for one workshop sync.

    Disabled when stdout is not a TTY or when ``enabled=False`` is passed.
    """

    def __init__(
        self, total_rows: int, *, description: str = "Syncing rows", enabled: bool = True
    ) -> None:
        self.total_rows = total_rows
        self.description = description
        self.succeeded = 0
        self.failed = 0

        self.enabled = enabled and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_row(self, row_index: int) -> None:
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} (row {row_index})")

    def finish_row(self, success: bool = True) -> None:
        if success:
            self.succeeded += 1
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
