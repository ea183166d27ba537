# simulate.py
import argparse
import datetime as dt
import logging
from typing import List, Optional

import pandas as pd

from demand_forecast import load_forecast
from dispatch import BatteryCfg, greedy_dispatch
from price_schedule import load_prices, mock_prices


def build_cfg(args: argparse.Namespace) -> BatteryCfg:
    return BatteryCfg(grid_limit_kw=args.grid_limit,
                      capacity_kwh=args.capacity,
                      charge_rate_kw=args.charge_rate,
                      price_threshold=args.price_threshold,
                      initial_soc_fraction=args.initial_soc,
                      round_trip_eff=args.round_trip_eff)


def parser() -> argparse.ArgumentParser:
    d = BatteryCfg()
    p = argparse.ArgumentParser(
        description="Plan battery charge/discharge for one day of demand")
    p.add_argument("--demand", required=True,
                   help="Demand forecast JSON (path or http(s) URL)")
    p.add_argument("--prices", default="mock",
                   help="Price schedule JSON (path or URL), or 'mock'")

    g = p.add_argument_group("battery / grid")
    g.add_argument("--grid-limit", type=float, default=d.grid_limit_kw,
                   help="Contractual grid limit in kW")
    g.add_argument("--capacity", type=float, default=d.capacity_kwh,
                   help="Battery capacity in kWh")
    g.add_argument("--charge-rate", type=float, default=d.charge_rate_kw,
                   help="Max charge per interval in kW")
    g.add_argument("--price-threshold", type=float, default=d.price_threshold,
                   help="Don't charge above this price per kWh")
    g.add_argument("--initial-soc", type=float, default=d.initial_soc_fraction,
                   help="Starting charge as a fraction of capacity (0-1)")
    g.add_argument("--round-trip-eff", type=float, default=d.round_trip_eff,
                   help="Round-trip efficiency (recorded, not applied)")

    p.add_argument("-v", "--verbose", action="store_true",
                   help="Log loading and planning details")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    p = parser()
    args = p.parse_args(argv)
    if not 0.0 <= args.initial_soc <= 1.0:
        p.error("--initial-soc must be between 0 and 1")

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    demand, load_errors = load_forecast(args.demand)

    if args.prices == "mock":
        # price the day the forecast starts on
        day = demand[0].start.date() if demand else dt.date.today()
        prices = mock_prices(day)
    else:
        prices, price_errors = load_prices(args.prices)
        load_errors = load_errors + price_errors

    res = greedy_dispatch(demand, prices, build_cfg(args))

    with pd.option_context("display.max_rows", None, "display.width", 120):
        print(res["df"])
    print(f"{len(res['plan'])} actions: "
          f"{res['energy_from_battery']:.1f} kWh from battery, "
          f"{res['energy_to_battery']:.1f} kWh into battery, "
          f"battery ends at {res['final_capacity']:.1f} kWh")

    for err in load_errors + res["errors"]:
        print(f"⚠️  {type(err).__name__}: {err}")

    return 0


# ── CLI ───────────────────────────────────────────────────────────────
if __name__ == "__main__":
    raise SystemExit(main())
