from __future__ import annotations

from ..models.sync_result import SyncResult

"""SUMMARY line rendering for a workshop sync.

Format:
    SUMMARY workshop=<id> rows=<total> succeeded=<n> failed=<n>
    skipped_rows=<n> elapsed_sec=<x>
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small values
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: SyncResult) -> str:
    """Render the SUMMARY line for one sync.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> result = SyncResult(
        ...     workshop_id="W1", total_rows=2, succeeded=2, failed=0,
        ...     skipped_rows=1, start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY workshop=W1 rows=2 succeeded=2 failed=0 skipped_rows=1 elapsed_sec=2'
    """
    return (
        f"SUMMARY workshop={result.workshop_id} "
        f"rows={result.total_rows} "
        f"succeeded={result.succeeded} "
        f"failed={result.failed} "
        f"skipped_rows={result.skipped_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
