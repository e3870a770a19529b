from __future__ import annotations

from datetime import UTC, datetime

SEQUENCE_WIDTH = 5


def next_number(prior_count_for_year: int, issued_at: datetime, prefix: str) -> str:
    """Build "<PREFIX>-<YYYY>-<SEQ>" for the next certificate of the year.

    SEQ is prior_count_for_year + 1, zero-padded to five digits (wider
    numbers are printed in full rather than truncated).  Uniqueness depends
    on the caller's count; the store's unique constraint on `number` is the
    backstop.
    """
    if prior_count_for_year < 0:
        raise ValueError("prior_count_for_year must be >= 0")
    if not prefix:
        raise ValueError("prefix must be non-empty")
    year = issued_at.astimezone(UTC).year if issued_at.tzinfo else issued_at.year
    return f"{prefix}-{year:04d}-{prior_count_for_year + 1:0{SEQUENCE_WIDTH}d}"
