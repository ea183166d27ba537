import numpy as np, pandas as pd
import pytest

from battery import BatteryState
from demand_forecast import IntervalDemand
from dispatch import BatteryCfg, dispatch_rule, greedy_dispatch
from errors import MissingPriceForHour, UnmetDemand
from price_schedule import HourlyPrice

CFG = BatteryCfg()       # 7850 kW limit, 500 kWh, 400 kW, 0.43 threshold


def demand_kw(kw, start="2022-12-13T00:00:00Z", minutes=15):
    t0 = pd.Timestamp(start)
    return IntervalDemand(t0, t0 + pd.Timedelta(minutes=minutes), kw * 1000.0)


def price(p, hour=0):
    t0 = pd.Timestamp("2022-12-13", tz="UTC") + pd.Timedelta(hours=hour)
    return HourlyPrice(t0, t0 + pd.Timedelta(hours=1), "EUR", p)


def battery(capacity):
    return BatteryState(capacity, CFG.capacity_kwh, CFG.charge_rate_kw)


def quarter_hours(hour, kws, day="2022-12-13"):
    t0 = pd.Timestamp(day, tz="UTC") + pd.Timedelta(hours=hour)
    return [IntervalDemand(t0 + pd.Timedelta(minutes=15 * i),
                           t0 + pd.Timedelta(minutes=15 * (i + 1)), kw * 1000.0)
            for i, kw in enumerate(kws)]


# ── rule ──────────────────────────────────────────────────────────────
def test_charges_to_full_from_half():
    b = battery(250.0)
    action = dispatch_rule(demand_kw(4656), price(0.3057), b, CFG)
    assert action.energy_to_battery == 250.0
    assert action.energy_from_battery is None
    assert b.capacity == 500.0 and b.is_full()


def test_charge_bounded_by_grid_slack():
    b = battery(250.0)
    action = dispatch_rule(demand_kw(7700), price(0.30), b, CFG)
    assert action.energy_to_battery == 150.0
    assert b.capacity == 400.0


def test_charge_bounded_by_charge_rate():
    b = battery(0.0)
    action = dispatch_rule(demand_kw(4000), price(0.30), b, CFG)
    assert action.energy_to_battery == 400.0


def test_discharges_overflow():
    b = battery(250.0)
    d = demand_kw(8000)
    action = dispatch_rule(d, price(0.60), b, CFG)
    assert action.energy_from_battery == 150.0
    assert action.energy_to_battery is None
    assert (action.start, action.end) == (d.start, d.end)
    assert b.capacity == 100.0


def test_overflow_equal_to_capacity_is_covered():
    b = battery(150.0)
    action = dispatch_rule(demand_kw(8000), price(0.30), b, CFG)
    assert action.energy_from_battery == 150.0
    assert b.capacity == 0.0


def test_unmet_demand_leaves_battery_alone():
    b = battery(100.0)
    with pytest.raises(UnmetDemand) as exc:
        dispatch_rule(demand_kw(8200), price(0.30), b, CFG)
    assert exc.value.overflow == 350.0
    assert exc.value.available == 100.0
    assert b.capacity == 100.0


def test_high_price_idles():
    b = battery(250.0)
    assert dispatch_rule(demand_kw(4656), price(0.4301), b, CFG) is None
    assert b.capacity == 250.0


def test_threshold_price_still_charges():
    b = battery(250.0)
    action = dispatch_rule(demand_kw(4656), price(0.43), b, CFG)
    assert action.energy_to_battery == 250.0


def test_full_battery_idles():
    b = battery(500.0)
    assert dispatch_rule(demand_kw(4656), price(0.10), b, CFG) is None


def test_nearly_full_battery_takes_a_sliver():
    b = battery(500.0 - 1e-9)
    action = dispatch_rule(demand_kw(4656), price(0.10), b, CFG)
    assert action is not None
    assert 0.0 < action.energy_to_battery < 1e-6
    assert b.capacity <= 500.0


def test_demand_at_limit_never_discharges():
    b = battery(250.0)
    action = dispatch_rule(demand_kw(7850), price(0.10), b, CFG)
    assert action.is_charge
    assert action.energy_to_battery == 0.0
    assert b.capacity == 250.0


def test_end_follows_interval_duration():
    d = demand_kw(4656, minutes=30)
    action = dispatch_rule(d, price(0.10), battery(0.0), CFG)
    assert action.end - action.start == pd.Timedelta(minutes=30)


def test_capacity_invariant_over_a_day():
    b = battery(250.0)
    kws = 7850 + 600 * np.sin(np.linspace(0, 6 * np.pi, 96))
    for i, kw in enumerate(kws):
        start = pd.Timestamp("2022-12-13", tz="UTC") + pd.Timedelta(minutes=15 * i)
        d = IntervalDemand(start, start + pd.Timedelta(minutes=15), kw * 1000.0)
        try:
            dispatch_rule(d, price(0.30), b, CFG)
        except UnmetDemand:
            pass
        assert 0.0 <= b.capacity <= b.max_capacity


# ── driver ────────────────────────────────────────────────────────────
def test_hour_order_and_missing_price():
    demand = (quarter_hours(23, [4656, 4528, 4464, 4560], day="2022-12-12")
              + quarter_hours(0, [4500, 4400, 8000, 4300])
              + quarter_hours(1, [4400, 4400]))
    prices = [price(0.3057, hour=23), price(0.28752, hour=0)]

    res = greedy_dispatch(demand, prices)
    plan = res["plan"]

    # hour 0 runs before hour 23
    assert [a.start.hour for a in plan] == [0, 0, 0]
    assert [a.energy_to_battery for a in plan] == [250.0, None, 150.0]
    assert [a.energy_from_battery for a in plan] == [None, 150.0, None]

    (err,) = res["errors"]
    assert isinstance(err, MissingPriceForHour)
    assert err.hour == 1 and err.intervals == 2
    assert res["final_capacity"] == 500.0
    assert res["energy_from_battery"] == 150.0
    assert res["energy_to_battery"] == 400.0
    assert list(res["df"].index) == [a.start for a in plan]


def test_unmet_demand_does_not_stop_the_run():
    b = battery(100.0)
    demand = quarter_hours(5, [8200, 4656])
    res = greedy_dispatch(demand, [price(0.30, hour=5)], battery=b)

    (err,) = res["errors"]
    assert isinstance(err, UnmetDemand)
    assert err.start == demand[0].start
    assert len(res["plan"]) == 1
    assert res["plan"][0].energy_to_battery == 400.0
    assert b.capacity == 500.0


def test_hours_without_demand_are_skipped():
    res = greedy_dispatch(quarter_hours(3, [4656]), [price(0.30, hour=3)])
    assert res["errors"] == []
    assert len(res["plan"]) == 1


def test_empty_day():
    res = greedy_dispatch([], [])
    assert len(res["plan"]) == 0
    assert res["df"].empty
    assert res["final_capacity"] == 250.0


def test_rerun_gives_identical_plan():
    kws = 7850 + 500 * np.cos(np.linspace(0, 4 * np.pi, 96))
    demand = [d for h in range(24) for d in quarter_hours(h, kws[4 * h:4 * h + 4])]
    prices = [price(0.25 + 0.01 * h, hour=h) for h in range(24)]

    first = greedy_dispatch(demand, prices)
    second = greedy_dispatch(demand, prices)
    assert first["plan"] == second["plan"]
    assert [str(e) for e in first["errors"]] == [str(e) for e in second["errors"]]
    assert first["final_capacity"] == second["final_capacity"]


def test_config_is_honoured():
    cfg = BatteryCfg(grid_limit_kw=100.0, capacity_kwh=10.0, charge_rate_kw=2.0,
                     price_threshold=0.2, initial_soc_fraction=0.0)
    res = greedy_dispatch(quarter_hours(2, [50, 50, 150]), [price(0.2, hour=2)], cfg)
    assert [a.energy_to_battery for a in res["plan"]] == [2.0, 2.0]
    (err,) = res["errors"]
    assert err.overflow == 50.0 and err.available == 4.0


def test_default_cfg_when_none_given():
    b = battery(250.0)
    action = dispatch_rule(demand_kw(8000), price(0.30), b)
    assert action.energy_from_battery == 150.0
    assert greedy_dispatch([], [], cfg=None)["final_capacity"] == 250.0
