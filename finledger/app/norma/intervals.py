"""
Balance history buckets (open/high/low/close/volume).

Windows are contiguous fixed-length steps ending at `now`; bucket i covers
(start_i, end_i]. Month and year steps are calendar steps (relativedelta), so
"one month" back from Mar 31 is Feb 28/29.
"""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from finledger.app.errors import InvalidParameter
from finledger.app.norma.ledger import LedgerSnapshot, balance_as_of, money

DEFAULT_INTERVAL = "week"

INTERVAL_STEPS: Dict[str, relativedelta] = {
    "hour": relativedelta(hours=1),
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
}

Window = Tuple[datetime, datetime]


@dataclass(frozen=True)
class Bucket:
    start: datetime
    end: datetime
    open: Decimal
    close: Decimal
    high: Decimal
    low: Decimal
    volume: Decimal

    @property
    def timestamp(self) -> int:
        return int(self.start.replace(tzinfo=timezone.utc).timestamp())

    def as_dict(self) -> Dict[str, object]:
        return {
            "open": float(money(self.open)),
            "close": float(money(self.close)),
            "high": float(money(self.high)),
            "low": float(money(self.low)),
            "volume": float(money(self.volume)),
            "timestamp": self.timestamp,
        }


def parse_interval(value: Optional[str]) -> str:
    interval = (value or DEFAULT_INTERVAL).strip().lower()
    if interval not in INTERVAL_STEPS:
        raise InvalidParameter(
            f"interval must be one of {', '.join(INTERVAL_STEPS)}; got {value!r}"
        )
    return interval


def bucket_windows(interval: str, count: int, now: datetime) -> List[Window]:
    """count contiguous windows, oldest first, the last one ending at now."""
    if count < 1:
        raise InvalidParameter("intervals must be a positive integer")
    step = INTERVAL_STEPS[parse_interval(interval)]
    bounds = [now - step * k for k in range(count, -1, -1)]
    return list(zip(bounds[:-1], bounds[1:]))


def balance_history(
    snapshot: LedgerSnapshot,
    interval: str = DEFAULT_INTERVAL,
    count: int = 1,
    *,
    now: datetime,
) -> List[Bucket]:
    windows = bucket_windows(interval, count, now)
    rows = list(snapshot.rows)
    dates = [r.date for r in rows]

    first_start = windows[0][0]
    running = balance_as_of(rows, first_start)
    idx = bisect_right(dates, first_start)

    buckets: List[Bucket] = []
    for start, end in windows:
        open_ = running
        high = low = open_
        volume = Decimal("0")
        while idx < len(rows) and rows[idx].date <= end:
            row = rows[idx]
            running += row.signed_amount
            high = max(high, running)
            low = min(low, running)
            volume += row.amount
            idx += 1
        buckets.append(
            Bucket(
                start=start,
                end=end,
                open=open_,
                close=running,
                high=high,
                low=low,
                volume=volume,
            )
        )

    return buckets
