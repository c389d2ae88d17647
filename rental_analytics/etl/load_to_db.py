#!/usr/bin/env python3
"""
Data Loading Pipeline
---------------------
 - Reads the cleaned, enriched flat car-rental dataset (one row per listing)
 - Splits it into the three normalized tables (locations, vehicles, rentals)
 - Loads them in foreign-key order inside a single transaction
 - Uses an audit table (with timestamps) for load visibility
"""

import os
import sys
import logging
import argparse
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import pandas as pd
from sqlalchemy import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rental_analytics.config.config_loader import get_config, setup_logging
from rental_analytics.schema import (
    Base,
    CORE_TABLES,
    LoadAudit,
    get_engine,
    table_schema,
)

log = logging.getLogger(__name__)

# -----------------------
# Column groups of the flat dataset
# -----------------------
LOCATION_COLS = [
    "location_city",
    "location_country",
    "location_latitude",
    "location_longitude",
    "airport_city",
]
VEHICLE_COLS = [
    "vehicle_make",
    "vehicle_model",
    "vehicle_type",
    "vehicle_year",
    "fueltype",
    "estimated_car_price",
]
RENTAL_COLS = [
    "owner_id",
    "rate_daily",
    "rating",
    "rentertripstaken",
    "reviewcount",
]
REQUIRED_COLUMNS = LOCATION_COLS + VEHICLE_COLS + RENTAL_COLS

# Nullable integer columns keep pandas' Int64 so NULLs survive the load
_INT_COLS = ["owner_id", "rentertripstaken", "reviewcount", "vehicle_year"]


# -----------------------
# Data preparation
# -----------------------
def read_csv(path: str) -> pd.DataFrame:
    """Read the cleaned flat dataset."""
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    df = pd.read_csv(path)
    log.info(f"Loaded {len(df)} rows from {path}")
    return df


def split_dataset(
    df: pd.DataFrame,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Split the flat dataset into (locations, vehicles, rentals).

    - locations: one row per distinct (city, country), first-seen coordinates/airport,
      ids 1..n in first-seen order
    - vehicles: keyed by `vehicle_id` when the dataset carries one (first row wins),
      otherwise every row is its own vehicle
    - rentals: one row per input row, ids 1..n, with resolved foreign keys
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"flat dataset: missing required columns: {missing}")

    flat = df.reset_index(drop=True).copy()
    for c in _INT_COLS:
        flat[c] = pd.to_numeric(flat[c], errors="coerce").round().astype("Int64")

    # Locations: first occurrence of each (city, country) pair
    locations = (
        flat[LOCATION_COLS]
        .drop_duplicates(subset=["location_city", "location_country"], keep="first")
        .reset_index(drop=True)
    )
    locations.insert(0, "location_id", range(1, len(locations) + 1))

    # Vehicles
    if "vehicle_id" in flat.columns:
        flat["vehicle_id"] = flat["vehicle_id"].astype(int)
        vehicles = flat[["vehicle_id"] + VEHICLE_COLS].drop_duplicates(
            subset=["vehicle_id"], keep="first"
        )
    else:
        flat["vehicle_id"] = range(1, len(flat) + 1)
        vehicles = flat[["vehicle_id"] + VEHICLE_COLS]
    vehicles = vehicles.reset_index(drop=True)

    # Rentals: resolve location_id through the (city, country) key
    rentals = flat.merge(
        locations[["location_id", "location_city", "location_country"]],
        on=["location_city", "location_country"],
        how="left",
    )
    rentals = rentals[["vehicle_id", "location_id"] + RENTAL_COLS].copy()
    rentals.insert(0, "rental_id", range(1, len(rentals) + 1))
    rentals = rentals[
        ["rental_id", "owner_id", "vehicle_id", "location_id"] + RENTAL_COLS[1:]
    ]

    log.info(
        f"Split {len(flat)} rows into {len(locations)} locations, "
        f"{len(vehicles)} vehicles, {len(rentals)} rentals"
    )
    return locations, vehicles, rentals


# -----------------------
# Data loading
# -----------------------
def create_tables(engine: Engine) -> None:
    """Create the normalized tables and the audit table if they don't exist yet."""
    Base.metadata.create_all(engine, checkfirst=True)


def load_tables(
    engine: Engine,
    tables: Dict[str, pd.DataFrame],
    schema: Optional[str] = None,
    source_file: str = "<memory>",
) -> Dict[str, int]:
    """
    Append locations, vehicles and rentals (in that order) in one transaction.

    Constraint or foreign-key violations are rejected by the database: the whole
    load rolls back, the failure is audited and the error propagates.

    Returns:
      Number of rows loaded per table.
    """
    counts: Dict[str, int] = {}
    start = datetime.now(timezone.utc)
    current = None
    try:
        with engine.begin() as conn:
            for current in CORE_TABLES:
                df = tables[current]
                if df.empty:
                    log.warning(f"Skipping {current}: no data.")
                    counts[current] = 0
                    continue
                df.to_sql(
                    current, conn, schema=schema, index=False, if_exists="append"
                )
                counts[current] = len(df)
                log.info(f"Inserted {len(df)} rows into {current}")
    except Exception as e:
        # pandas 3 wraps driver errors from to_sql in pandas.errors.DatabaseError
        cause = e.__cause__ if isinstance(e.__cause__, SQLAlchemyError) else e
        log.exception(f"Failed to load {current}: {cause}")
        audit(
            engine,
            current,
            source_file,
            start,
            datetime.now(timezone.utc),
            0,
            success=False,
            error=str(cause),
        )
        if cause is not e:
            raise cause from None
        raise

    end = datetime.now(timezone.utc)
    for table, count in counts.items():
        audit(engine, table, source_file, start, end, count)
    return counts


# -----------------------
# Audit logging
# -----------------------
def audit(engine, table, file, start, end, rows, success=True, error=None):
    """Record audit trail for every load using SQLAlchemy Core insert()."""
    with engine.begin() as conn:
        conn.execute(
            insert(LoadAudit.__table__).values(
                table_name=table,
                source_file=file,
                started_at=start,
                finished_at=end,
                rows_loaded=rows,
                success=success,
                error=error,
            )
        )


# -----------------------
# Main ETL logic
# -----------------------
def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Load the cleaned car-rental dataset")
    p.add_argument("--input", type=str, default=None, help="Flat CSV (defaults to data.clean_file)")
    p.add_argument("--env", type=str, default=None, help="Config environment (dev/prod)")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = get_config(args.env)
    setup_logging(cfg)

    path = args.input or cfg["data"]["clean_file"]
    try:
        engine = get_engine(cfg)
        create_tables(engine)
        locations, vehicles, rentals = split_dataset(read_csv(path))
        load_tables(
            engine,
            {"locations": locations, "vehicles": vehicles, "rentals": rentals},
            schema=table_schema(engine, cfg),
            source_file=path,
        )
    except Exception as e:
        log.exception(f"❌ Data loading failed: {e}")
        return 1

    log.info("✅ Data loading pipeline completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
