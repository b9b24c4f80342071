"""Fixed reference time shared by the suite."""

from __future__ import annotations

from datetime import datetime, timedelta

# Wednesday, mid-month: the week (Mon 10th .. Sun 16th) sits inside June 2024.
FIXED_NOW = datetime(2024, 6, 12, 15, 30, 0)


def days_ago(n: int, *, hour: int = 12) -> datetime:
    """``FIXED_NOW`` shifted back ``n`` calendar days, at ``hour``:00."""
    return (FIXED_NOW - timedelta(days=n)).replace(hour=hour, minute=0, second=0)
