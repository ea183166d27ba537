# usage_plan.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional

import pandas as pd

PLAN_COLUMNS = ["end", "energy_from_battery", "energy_to_battery"]


@dataclass(frozen=True)
class DispatchAction:
    """One charge or discharge for one interval (kWh)."""
    start: pd.Timestamp
    end: pd.Timestamp
    energy_from_battery: Optional[float] = None
    energy_to_battery:   Optional[float] = None

    def __post_init__(self):
        qty = [q for q in (self.energy_from_battery, self.energy_to_battery)
               if q is not None]
        if len(qty) != 1:
            raise ValueError("exactly one of energy_from_battery / "
                             "energy_to_battery must be set")
        if qty[0] < 0:
            raise ValueError(f"energy must be >= 0, got {qty[0]}")

    @classmethod
    def discharge(cls, demand, energy: float) -> "DispatchAction":
        return cls(demand.start, demand.start + demand.duration,
                   energy_from_battery=energy)

    @classmethod
    def charge(cls, demand, energy: float) -> "DispatchAction":
        return cls(demand.start, demand.start + demand.duration,
                   energy_to_battery=energy)

    @property
    def is_charge(self) -> bool:
        return self.energy_to_battery is not None


class UsagePlan:
    """Append-only, chronological list of dispatch actions."""

    def __init__(self):
        self._actions: List[DispatchAction] = []

    def append(self, action: DispatchAction) -> None:
        self._actions.append(action)

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[DispatchAction]:
        return iter(self._actions)

    def __getitem__(self, i) -> DispatchAction:
        return self._actions[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, UsagePlan):
            return NotImplemented
        return self._actions == other._actions

    def __repr__(self) -> str:
        return f"UsagePlan({len(self)} actions)"

    def total_from_battery(self) -> float:
        return sum(a.energy_from_battery or 0.0 for a in self._actions)

    def total_to_battery(self) -> float:
        return sum(a.energy_to_battery or 0.0 for a in self._actions)

    def to_frame(self) -> pd.DataFrame:
        """
        DataFrame indexed by interval start; the unused energy column of
        each row is NaN.
        """
        if not self._actions:
            return pd.DataFrame(columns=PLAN_COLUMNS,
                                index=pd.Index([], name="start"))
        df = pd.DataFrame(
            {"end": [a.end for a in self._actions],
             "energy_from_battery": [a.energy_from_battery for a in self._actions],
             "energy_to_battery": [a.energy_to_battery for a in self._actions]},
            index=pd.Index([a.start for a in self._actions], name="start"),
        )
        return df.astype({"energy_from_battery": float,
                          "energy_to_battery": float})
