"""
Shooting Pipeline Runner
Downloads NYPD shooting incidents (or reads a local CSV), prints the aggregate
tables, the fitted regression coefficients and the forecast.
"""

import argparse
import logging

import pandas as pd

from shooting_pulse.datasets.shootings import load_shootings_csv
from shooting_pulse.pipeline import PipelineStageError, run_shooting_pipeline
from shooting_pulse.shared.config import get_config


def main() -> int:
    parser = argparse.ArgumentParser(description="Aggregate and forecast NYPD shooting incidents")
    parser.add_argument("--csv", help="Local copy of the shooting CSV (skips the download)")
    parser.add_argument("--env", default=None, help="Configuration environment (dev/prod)")
    parser.add_argument(
        "--forecast-years", type=int, nargs="+", default=None, help="Years to predict"
    )
    args = parser.parse_args()

    config = get_config(args.env)
    logging.basicConfig(level=config.logging.level, format=config.logging.format)
    logger = logging.getLogger("run_shootings")

    raw_df = load_shootings_csv(args.csv) if args.csv else None

    try:
        output = run_shooting_pipeline(
            config=config, raw_df=raw_df, forecast_years=args.forecast_years
        )
    except PipelineStageError as e:
        logger.error(f"Shooting pipeline failed at {e.stage}: {e}")
        return 1

    with pd.option_context("display.max_rows", 100, "display.width", 120):
        for name, table in output.aggregates.tables().items():
            print(f"\n=== {name} ===")
            print(table.to_string(index=False))

        print("\n=== Regression coefficients ===")
        print(output.model.coefficient_table().to_string(index=False))
        print(f"R^2: {output.model.r_squared:.4f}")

        print("\n=== Predictions ===")
        print(output.predictions.to_string(index=False))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
