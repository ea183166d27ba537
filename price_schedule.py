# price_schedule.py
"""
Hourly day-ahead electricity prices.

The schedule document looks like

    {"bidding_zone": "DE-LU",
     "prices": [{"start": "2022-12-12T23:00:00Z",
                 "end":   "2022-12-13T00:00:00Z",
                 "market_price_currency": "EUR",
                 "market_price_per_kwh": 0.3057}, ...]}

Prices are looked up by hour-of-day of `start`, in whatever offset the
timestamp was written in.
"""

from __future__ import annotations
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd

from errors import DispatchError, MalformedTimestamp, MalformedValue
from sources import parse_number, parse_timestamp, read_json, warn_mixed_offsets

log = logging.getLogger(__name__)

PRICE_FIELD = "market_price_per_kwh"


@dataclass(frozen=True)
class HourlyPrice:
    start: pd.Timestamp
    end:   pd.Timestamp
    currency: str
    price_per_kwh: float

    @property
    def hour(self) -> int:
        return self.start.hour


def parse_prices(doc: dict) -> Tuple[List[HourlyPrice], List[DispatchError]]:
    records: List[HourlyPrice] = []
    errors: List[DispatchError] = []

    for i, item in enumerate(doc["prices"]):
        stamps = {}
        for field in ("start", "end"):
            try:
                stamps[field] = parse_timestamp(item.get(field))
            except ValueError:
                errors.append(MalformedTimestamp(field, item.get(field), i))
                log.warning("%s", errors[-1])
                break
        else:
            raw = item.get(PRICE_FIELD)
            try:
                value = parse_number(raw)
            except ValueError:
                errors.append(MalformedValue(PRICE_FIELD, raw, i))
                log.warning("%s", errors[-1])
                continue
            records.append(HourlyPrice(
                stamps["start"], stamps["end"],
                item.get("market_price_currency", ""), value))

    warn_mixed_offsets([p.start for p in records], "price schedule")
    log.info("loaded %d price(s) for zone %s, skipped %d",
             len(records), doc.get("bidding_zone", "?"), len(errors))
    return records, errors


def load_prices(source) -> Tuple[List[HourlyPrice], List[DispatchError]]:
    """Read and parse a price schedule from a path or URL."""
    return parse_prices(read_json(source))


def prices_by_hour(prices: Iterable[HourlyPrice]) -> Dict[int, HourlyPrice]:
    """hour-of-day → price; a later record for the same hour replaces an earlier one."""
    table: Dict[int, HourlyPrice] = {}
    for p in prices:
        if p.hour in table:
            log.debug("hour %02d priced twice, keeping %s", p.hour, p.start)
        table[p.hour] = p
    return table


def mock_prices(date: dt.date, currency: str = "EUR") -> List[HourlyPrice]:
    """
    Cheap overnight (0.28), expensive late-afternoon peak (0.52),
    ordinary daytime (0.35). Peak sits above the default 0.43 threshold.
    """
    start = pd.Timestamp(date.year, date.month, date.day, tz="UTC")
    index = pd.date_range(start, periods=24, freq="h")
    hours = index.hour
    base = np.where((hours >= 16) & (hours < 20), 0.52,
            np.where((hours >= 0)  & (hours < 6), 0.28, 0.35))
    return [HourlyPrice(ts, ts + pd.Timedelta(hours=1), currency, float(p))
            for ts, p in zip(index, base)]
