# battery.py
from __future__ import annotations
import math


class InsufficientCapacity(ValueError):
    """Raised when a discharge asks for more energy than is stored."""


class BatteryState:
    """
    Stored energy of a single battery, in kWh.

    Only `charge` and `discharge` mutate it, and both keep
    0 <= capacity <= max_capacity.
    """

    def __init__(self, capacity: float, max_capacity: float,
                 max_charge_rate: float):
        if not 0.0 <= capacity <= max_capacity:
            raise ValueError(
                f"capacity {capacity} outside [0, {max_capacity}]")
        self.capacity = float(capacity)
        self.max_capacity = float(max_capacity)
        self.max_charge_rate = float(max_charge_rate)

    @classmethod
    def from_cfg(cls, cfg) -> "BatteryState":
        return cls(cfg.initial_soc_fraction * cfg.capacity_kwh,
                   cfg.capacity_kwh, cfg.charge_rate_kw)

    def available_capacity(self) -> float:
        return self.capacity

    def headroom(self) -> float:
        return self.max_capacity - self.capacity

    def is_full(self) -> bool:
        # exact on purpose: a battery at max - eps still gets a (tiny) charge
        return self.capacity == self.max_capacity

    def charge(self, amount: float) -> float:
        """Store up to `amount`; returns the energy actually absorbed."""
        if not math.isfinite(amount) or amount < 0:
            raise ValueError(f"cannot charge {amount!r} kWh")
        absorbed = min(amount, self.max_charge_rate, self.headroom())
        self.capacity = min(self.capacity + absorbed, self.max_capacity)
        return absorbed

    def discharge(self, amount: float) -> float:
        if not math.isfinite(amount) or amount < 0:
            raise ValueError(f"cannot discharge {amount!r} kWh")
        if amount > self.capacity:
            raise InsufficientCapacity(
                f"requested {amount} kWh, only {self.capacity} kWh stored")
        self.capacity = max(self.capacity - amount, 0.0)
        return amount

    def __repr__(self) -> str:
        return (f"BatteryState(capacity={self.capacity!r}, "
                f"max_capacity={self.max_capacity!r}, "
                f"max_charge_rate={self.max_charge_rate!r})")
