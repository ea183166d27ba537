# demand_forecast.py
"""
Load the facility's demand forecast.

Expected document (power in W):

    {"forecasts": [{"start": "2022-12-12T23:00:00Z",
                    "end":   "2022-12-12T23:15:00Z",
                    "consumption_average_power_interval": 4656000.0}, ...]}
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Tuple

import pandas as pd

from errors import DispatchError, MalformedTimestamp, MalformedValue
from sources import parse_number, parse_timestamp, read_json, warn_mixed_offsets

log = logging.getLogger(__name__)

W_PER_KW = 1000.0
POWER_FIELD = "consumption_average_power_interval"


@dataclass(frozen=True)
class IntervalDemand:
    start: pd.Timestamp
    end:   pd.Timestamp
    power_w: float          # average power over the interval, as delivered

    @property
    def power_kw(self) -> float:
        return self.power_w / W_PER_KW

    @property
    def duration(self) -> pd.Timedelta:
        return self.end - self.start

    @property
    def hour(self) -> int:
        return self.start.hour


def parse_forecast(doc: dict) -> Tuple[List[IntervalDemand], List[DispatchError]]:
    records: List[IntervalDemand] = []
    errors: List[DispatchError] = []

    for i, item in enumerate(doc["forecasts"]):
        stamps = {}
        for field in ("start", "end"):
            try:
                stamps[field] = parse_timestamp(item.get(field))
            except ValueError:
                errors.append(MalformedTimestamp(field, item.get(field), i))
                log.warning("%s", errors[-1])
                break
        else:
            raw = item.get(POWER_FIELD)
            try:
                power_w = parse_number(raw)
            except ValueError:
                errors.append(MalformedValue(POWER_FIELD, raw, i))
                log.warning("%s", errors[-1])
                continue
            records.append(IntervalDemand(stamps["start"], stamps["end"], power_w))

    warn_mixed_offsets([r.start for r in records], "demand forecast")
    log.info("loaded %d demand interval(s), skipped %d",
             len(records), len(errors))
    return records, errors


def load_forecast(source) -> Tuple[List[IntervalDemand], List[DispatchError]]:
    """Read and parse a forecast from a path or URL."""
    return parse_forecast(read_json(source))
