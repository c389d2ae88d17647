# =========================================
# 📄 File: rental_analytics/reports/run_reports.py
# Purpose: Reporting run (single entry point)
# - Extract the three normalized tables (database, or the flat CSV split in memory)
# - Run the eight reporting computations
# - Write one CSV per report for the dashboard, optionally publish them to S3
# =========================================

import sys
import time
import logging
import argparse
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from rental_analytics.cloud.s3_handler import upload_reports
from rental_analytics.config.config_loader import get_config, setup_logging
from rental_analytics.etl.load_to_db import read_csv, split_dataset
from rental_analytics.reports.queries import run_all
from rental_analytics.schema import CORE_TABLES, get_engine, table_schema

log = logging.getLogger(__name__)


# -----------------------
# Extract
# -----------------------


def extract_from_db(engine, schema=None) -> Dict[str, pd.DataFrame]:
    """
    Read locations, vehicles and rentals from the database.
    """
    log.info("Extracting from Database…")
    return {name: pd.read_sql_table(name, engine, schema=schema) for name in CORE_TABLES}


def extract_from_csv(path: str) -> Dict[str, pd.DataFrame]:
    """
    Build the three tables straight from the cleaned flat CSV (no database needed).
    """
    log.info(f"Extracting from CSV: {path}")
    locations, vehicles, rentals = split_dataset(read_csv(path))
    return {"locations": locations, "vehicles": vehicles, "rentals": rentals}


# -----------------------
# Load (report files)
# -----------------------


def write_reports(results: Dict[str, pd.DataFrame], output_dir: str) -> Dict[str, Path]:
    """
    Write each result as <output_dir>/<report>.csv and return the paths.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    paths = {}
    for name, df in results.items():
        path = out / f"{name}.csv"
        df.to_csv(path, index=False)
        paths[name] = path
    log.info(f"Wrote {len(paths)} report files to {out}")
    return paths


# -----------------------
# Orchestration
# -----------------------


def run(
    cfg: Dict[str, Any],
    source: str = "db",
    input_path: str = None,
    output_dir: str = None,
    upload: bool = False,
) -> Dict[str, pd.DataFrame]:
    """
    1) Extract (database or flat CSV)
    2) Run every report
    3) Write CSVs (+ optional S3 publish)
    4) Log timing and row counts
    """
    started = time.time()
    env = cfg.get("environment", "dev").lower()

    if source == "db":
        engine = get_engine(cfg)
        tables = extract_from_db(engine, schema=table_schema(engine, cfg))
    elif source == "csv":
        tables = extract_from_csv(input_path or cfg["data"]["clean_file"])
    else:
        raise ValueError(f"Unknown source '{source}' (expected 'db' or 'csv')")

    results = run_all(
        tables, min_location_vehicles=cfg["reports"]["min_location_vehicles"]
    )
    paths = write_reports(results, output_dir or cfg["reports"]["output_dir"])

    if upload:
        upload_reports(paths, bucket=cfg.get("s3_bucket"), region=cfg.get("aws_region"))

    elapsed = time.time() - started
    counts = " ".join(f"{name}={len(df)}" for name, df in results.items())
    log.info(f"[{env.upper()}] Reports completed in {elapsed:.2f}s | {counts}")
    return results


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Run the car-rental reporting queries")
    p.add_argument("--env", type=str, default=None, help="Config environment (dev/prod)")
    p.add_argument(
        "--source",
        choices=["db", "csv"],
        default="db",
        help="Read the normalized tables from the database or split the flat CSV",
    )
    p.add_argument("--input", type=str, default=None, help="Flat CSV for --source csv")
    p.add_argument("--output-dir", type=str, default=None, help="Report CSV directory")
    p.add_argument("--upload", action="store_true", help="Publish report CSVs to S3")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = get_config(args.env)
    setup_logging(cfg)
    try:
        run(
            cfg,
            source=args.source,
            input_path=args.input,
            output_dir=args.output_dir,
            upload=args.upload,
        )
    except Exception as e:
        log.exception(f"❌ Reporting run failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
