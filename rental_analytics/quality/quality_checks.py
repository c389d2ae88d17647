# =========================================
# 📄 File: rental_analytics/quality/quality_checks.py
# Purpose: Data Quality Framework for the normalized rental tables
# - Define expectation suites (custom)
# - Create data quality report (markdown)
# - Set up alerting (fail on critical issues)
# - Document data lineage in the report
# =========================================

import os  # Used for paths
import sys
import logging  # Used for logging
from datetime import datetime, timezone  # Used to timestamp reports
from typing import Any, Dict, List  # Type hints for clarity
import pandas as pd  # Data manipulation for checks

from rental_analytics.config.config_loader import get_config, setup_logging
from rental_analytics.schema import get_engine, table_schema, CORE_TABLES

log = logging.getLogger(__name__)  # Module logger

REPORT_DIR = "logs"  # Place reports under logs/
REPORT_NAME = "quality_report.md"  # Output markdown report name

RATING_MIN, RATING_MAX = 0, 5  # Bounded customer rating scale


def _expect_not_null(df: pd.DataFrame, cols: List[str]) -> List[str]:
    """
    Expectation: specified columns must have no nulls.
    Returns list of error messages (empty if all good).
    """
    errs = []
    for c in cols:
        if df[c].isna().any():
            errs.append(f"Nulls found in column '{c}'")
    return errs


def _expect_positive(df: pd.DataFrame, cols: List[str]) -> List[str]:
    """
    Expectation: numeric columns must be > 0 (nulls are ignored).
    """
    errs = []
    for c in cols:
        if (df[c].dropna() <= 0).any():
            errs.append(f"Non-positive values in column '{c}'")
    return errs


def _expect_in_range(df: pd.DataFrame, col: str, low: float, high: float) -> List[str]:
    """
    Expectation: non-null values fall within [low, high].
    """
    values = df[col].dropna()
    if ((values < low) | (values > high)).any():
        return [f"Values outside [{low}, {high}] in column '{col}'"]
    return []


def _expect_length(df: pd.DataFrame, col: str, length: int) -> List[str]:
    """Expectation: string values have exactly `length` characters."""
    bad = df[col].dropna().astype(str).str.len() != length
    if bad.any():
        return [f"Values in '{col}' not exactly {length} characters"]
    return []


def _expect_unique(df: pd.DataFrame, cols: List[str]) -> List[str]:
    """Expectation: the column combination identifies each row."""
    if df.duplicated(subset=cols).any():
        return [f"Duplicate keys in {cols}"]
    return []


def _expect_foreign_key(
    df: pd.DataFrame, col: str, parent: pd.DataFrame, parent_col: str
) -> List[str]:
    """
    Expectation: every value in `col` exists in parent[parent_col].
    """
    dangling = ~df[col].dropna().isin(parent[parent_col])
    if dangling.any():
        return [f"{int(dangling.sum())} dangling references in '{col}' → '{parent_col}'"]
    return []


def check_tables(tables: Dict[str, pd.DataFrame]) -> Dict[str, List[str]]:
    """
    Runs the expectation suites:
      - locations: keys/city/country not null, unique id and (city, country), 2-letter country
      - vehicles: keys and categorical fields not null, unique id, positive price
      - rentals: keys not null, unique id, FKs resolve, positive rate, rating within 0–5,
        non-negative trip and review counts
    """
    locations = tables["locations"]
    vehicles = tables["vehicles"]
    rentals = tables["rentals"]

    errors: Dict[str, List[str]] = {}

    loc_errs = []
    loc_errs += _expect_not_null(locations, ["location_id", "location_city", "location_country"])
    loc_errs += _expect_unique(locations, ["location_id"])
    loc_errs += _expect_unique(locations, ["location_city", "location_country"])
    loc_errs += _expect_length(locations, "location_country", 2)
    errors["locations"] = loc_errs

    veh_errs = []
    veh_errs += _expect_not_null(
        vehicles, ["vehicle_id", "vehicle_make", "vehicle_model", "vehicle_type"]
    )
    veh_errs += _expect_unique(vehicles, ["vehicle_id"])
    veh_errs += _expect_positive(vehicles, ["estimated_car_price"])
    errors["vehicles"] = veh_errs

    rent_errs = []
    rent_errs += _expect_not_null(rentals, ["rental_id", "vehicle_id", "location_id"])
    rent_errs += _expect_unique(rentals, ["rental_id"])
    rent_errs += _expect_foreign_key(rentals, "vehicle_id", vehicles, "vehicle_id")
    rent_errs += _expect_foreign_key(rentals, "location_id", locations, "location_id")
    rent_errs += _expect_positive(rentals, ["rate_daily"])
    rent_errs += _expect_in_range(rentals, "rating", RATING_MIN, RATING_MAX)
    for c in ("rentertripstaken", "reviewcount"):
        if (rentals[c].dropna() < 0).any():
            rent_errs.append(f"Negative values in column '{c}'")
    errors["rentals"] = rent_errs

    return errors


def write_report(errors: Dict[str, List[str]], path: str, cfg: Dict[str, Any]) -> int:
    """
    Write the markdown quality report (with lineage notes). Returns total issue count.
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%SZ")
    total_issues = sum(len(v) for v in errors.values())

    with open(path, "w", encoding="utf-8") as f:
        f.write("# Data Quality Report\n\n")
        f.write(f"- Generated at: {ts}\n")
        f.write(f"- Environment: **{cfg['environment']}**\n\n")
        f.write("## Lineage (simplified)\n")
        f.write(f"- Source: cleaned flat dataset `{cfg['data']['clean_file']}`\n")
        f.write(
            f"- Schema: `{cfg['db_schema']}` → Validated tables: {', '.join(errors)}\n"
        )
        f.write("- Downstream targets: reporting queries and dashboard extracts\n\n")
        f.write("## Expectations Summary\n\n")
        for table, errs in errors.items():
            f.write(f"### {table}\n")
            if not errs:
                f.write("- ✅ No issues found\n\n")
            else:
                for e in errs:
                    f.write(f"- ❌ {e}\n")
                f.write("\n")
        f.write(f"**Total issues:** {total_issues}\n")

    return total_issues


def run_quality_checks(engine, cfg: Dict[str, Any], report_dir: str = REPORT_DIR) -> None:
    """
    Reads the three tables, runs the expectation suites and writes a markdown report.
    Raises SystemExit(1) if any issue is found (alerting).
    """
    schema = table_schema(engine, cfg)
    tables = {
        name: pd.read_sql_table(name, engine, schema=schema) for name in CORE_TABLES
    }
    errors = check_tables(tables)

    report_path = os.path.join(report_dir, REPORT_NAME)
    total_issues = write_report(errors, report_path, cfg)

    if total_issues > 0:
        log.error(f"Data quality failed with {total_issues} issues. See {report_path}")
        raise SystemExit(1)
    log.info(f"Data quality passed. Report at {report_path}")


if __name__ == "__main__":
    cfg = get_config()
    setup_logging(cfg)
    run_quality_checks(get_engine(cfg), cfg)
    sys.exit(0)
