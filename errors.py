# errors.py
"""
Diagnostics collected during a dispatch run.

None of these stop the run: the driver and the loaders catch them at the
interval / hour / record boundary and hand them back next to the plan.
"""


class DispatchError(Exception):
    """Base class for every per-interval, per-hour or per-record diagnostic."""


class UnmetDemand(DispatchError):
    def __init__(self, start, end, overflow: float, available: float):
        self.start = start
        self.end = end
        self.overflow = overflow
        self.available = available
        super().__init__(
            f"{start.isoformat()}: overflow {overflow:.1f} kW exceeds "
            f"battery capacity {available:.1f} kWh")


class MissingPriceForHour(DispatchError):
    def __init__(self, hour: int, intervals: int = 0):
        self.hour = hour
        self.intervals = intervals      # demand intervals skipped
        super().__init__(
            f"no price for hour {hour:02d} ({intervals} interval(s) skipped)")


class MalformedTimestamp(DispatchError):
    def __init__(self, field: str, value, index: int):
        self.field = field
        self.value = value
        self.index = index              # position of the record in its source
        super().__init__(f"record {index}: cannot parse {field}={value!r}")


class MalformedValue(DispatchError):
    def __init__(self, field: str, value, index: int):
        self.field = field
        self.value = value
        self.index = index
        super().__init__(f"record {index}: {field}={value!r} is not a finite number")
