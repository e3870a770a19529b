from __future__ import annotations

from datetime import datetime

DEFAULT_VALIDITY_YEARS = 3


def expiry_of(
    issued_at: datetime, validity_years: int = DEFAULT_VALIDITY_YEARS
) -> datetime:
    """Add calendar years to issued_at, keeping month, day and time.

    29 February maps to 28 February when the target year is not a leap year.
    """
    if validity_years < 0:
        raise ValueError("validity_years must be >= 0")
    target_year = issued_at.year + validity_years
    try:
        return issued_at.replace(year=target_year)
    except ValueError:
        return issued_at.replace(year=target_year, day=28)


def is_valid(expires_at: datetime, now: datetime) -> bool:
    """A certificate is valid strictly before its expiry instant."""
    return now < expires_at
