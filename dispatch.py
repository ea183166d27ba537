# dispatch.py
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from battery import BatteryState
from demand_forecast import IntervalDemand
from errors import DispatchError, MissingPriceForHour, UnmetDemand
from price_schedule import HourlyPrice, prices_by_hour
from usage_plan import DispatchAction, UsagePlan

log = logging.getLogger(__name__)

HOURS = range(24)


@dataclass
class BatteryCfg:
    grid_limit_kw:   float = 7850.0   # contractual supply from the grid
    capacity_kwh:    float = 500.0    # usable capacity
    charge_rate_kw:  float = 400.0    # max energy into the battery per interval
    price_threshold: float = 0.43     # no charging above this price (per kWh)
    initial_soc_fraction: float = 0.5
    round_trip_eff:  float = 0.9      # informational; not applied to any amount


def dispatch_rule(demand: IntervalDemand,
                  price: HourlyPrice,
                  battery: BatteryState,
                  cfg: Optional[BatteryCfg] = None) -> Optional[DispatchAction]:
    """
    Decide one interval and apply it to `battery`.

      • demand above the grid limit → discharge the overflow
        (UnmetDemand if the battery can't cover it; battery untouched)
      • otherwise, price at or under threshold and battery not full
        → charge with the grid slack, capped by charge rate and headroom
      • otherwise idle → None
    """
    cfg = cfg or BatteryCfg()
    overflow = demand.power_kw - cfg.grid_limit_kw

    if overflow > 0:
        available = battery.available_capacity()
        if overflow > available:
            raise UnmetDemand(demand.start, demand.start + demand.duration,
                              overflow, available)
        battery.discharge(overflow)
        return DispatchAction.discharge(demand, overflow)

    if price.price_per_kwh > cfg.price_threshold:
        return None
    if battery.is_full():
        return None

    slack = cfg.grid_limit_kw - demand.power_kw
    energy = min(slack, cfg.charge_rate_kw, battery.headroom())
    absorbed = battery.charge(energy)
    return DispatchAction.charge(demand, absorbed)


def group_by_hour(demand: List[IntervalDemand]) -> Dict[int, List[IntervalDemand]]:
    by_hour: Dict[int, List[IntervalDemand]] = defaultdict(list)
    for d in demand:
        by_hour[d.hour].append(d)
    return by_hour


def greedy_dispatch(demand: List[IntervalDemand],
                    prices: List[HourlyPrice],
                    cfg: Optional[BatteryCfg] = None,
                    battery: Optional[BatteryState] = None) -> dict:
    """
    One-pass greedy scheduler over a day, hour 0 → 23 and, inside each
    hour, interval by interval in forecast order.

    `battery` defaults to a fresh state at cfg.initial_soc_fraction and is
    mutated in place when supplied.
    Returns a dict with:
      - plan   : UsagePlan
      - errors : UnmetDemand / MissingPriceForHour diagnostics, in run order
      - df     : plan as a DataFrame
      - final_capacity, energy_from_battery, energy_to_battery
    """
    cfg = cfg or BatteryCfg()
    if battery is None:
        battery = BatteryState.from_cfg(cfg)

    price_for = prices_by_hour(prices)
    by_hour = group_by_hour(demand)

    plan = UsagePlan()
    errors: List[DispatchError] = []

    for hour in HOURS:
        intervals = by_hour.get(hour)
        if not intervals:
            continue

        price = price_for.get(hour)
        if price is None:
            err = MissingPriceForHour(hour, len(intervals))
            log.warning("%s", err)
            errors.append(err)
            continue

        for d in intervals:
            try:
                action = dispatch_rule(d, price, battery, cfg)
            except UnmetDemand as err:
                log.warning("%s", err)
                errors.append(err)
                continue
            if action is not None:
                plan.append(action)

    log.info("planned %d action(s), %d diagnostic(s), battery ends at %.1f kWh",
             len(plan), len(errors), battery.capacity)

    return {
        "plan": plan,
        "errors": errors,
        "df": plan.to_frame(),
        "final_capacity": battery.capacity,
        "energy_from_battery": plan.total_from_battery(),
        "energy_to_battery": plan.total_to_battery(),
    }
