#!/usr/bin/env python3
# =========================================
# 📄 File: scripts/db_setup.py
# Purpose: Create the car-rental schema, tables and reporting views, using the YAML config loader
# =========================================

import os
import sys
import logging
import argparse
from contextlib import contextmanager

from sqlalchemy import text

from rental_analytics.config.config_loader import get_config, setup_logging
from rental_analytics.reports.queries import REPORT_NAMES
from rental_analytics.schema import Base, get_engine

log = logging.getLogger(__name__)

TABLE_NAMES = ", ".join(Base.metadata.tables)


# -----------------------
# Engine / helpers
# -----------------------


@contextmanager
def begin_conn(engine):
    """
    Context manager for starting and closing DB connections safely.
    """
    with engine.begin() as conn:
        yield conn


def ensure_schema(engine, schema):
    """
    Ensure the schema defined in the config exists (PostgreSQL only).
    """
    if engine.dialect.name != "postgresql":
        log.info(f"{engine.dialect.name} has no schemas; skipping.")
    elif schema.lower() != "public":
        log.info(f"Ensuring schema '{schema}' exists…")
        with begin_conn(engine) as conn:
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
    else:
        log.info("Using default schema 'public'.")


def drop_tables(engine, schema):
    """
    Drop all tables if the --recreate flag is used.
    """
    if engine.dialect.name == "postgresql":
        # reporting views depend on the tables
        with begin_conn(engine) as conn:
            for name in REPORT_NAMES:
                conn.execute(text(f"DROP VIEW IF EXISTS {schema}.v_{name}"))
    log.warning(f"Dropping tables ({TABLE_NAMES})…")
    Base.metadata.drop_all(engine, checkfirst=True)


def create_tables(engine):
    """
    Create all tables if they don't exist yet.
    """
    log.info(f"Creating tables ({TABLE_NAMES})…")
    Base.metadata.create_all(engine, checkfirst=True)


# -----------------------
# View creation using SQL file
# -----------------------
def read_sql_statements(sql_file_path):
    """
    Read a SQL file, drop comment lines and split it into statements on semicolons.
    """
    with open(sql_file_path, "r", encoding="utf-8") as f:
        raw_sql = f.read()

    clean_sql = [
        line for line in raw_sql.splitlines() if not line.strip().startswith("--")
    ]
    sql_content = "\n".join(clean_sql)
    return [q.strip() for q in sql_content.split(";") if q.strip()]


def create_views_from_file(engine, schema, sql_file_path="sql/rental_analytics.sql"):
    """
    Execute each CREATE VIEW block of the reporting SQL file inside the configured schema.
    The views use PERCENTILE_CONT, so they are PostgreSQL only.
    """
    if engine.dialect.name != "postgresql":
        log.warning("Reporting views need PostgreSQL; skipping view creation.")
        return
    if not os.path.exists(sql_file_path):
        log.error(f"SQL file not found: {sql_file_path}")
        return

    log.info(f"Loading reporting SQL from {sql_file_path}")
    queries = read_sql_statements(sql_file_path)

    # One transaction: a broken view leaves no partial set behind
    with begin_conn(engine) as conn:
        conn.execute(text(f"SET LOCAL search_path TO {schema}"))
        for i, query in enumerate(queries, 1):
            conn.execute(text(query))
            log.info(f"Executed SQL block {i}")

    log.info(f"✅ {len(queries)} reporting views created.")


# -----------------------
# CLI interface
# -----------------------
def parse_args(argv=None):
    """
    Command-line interface options:
    --echo      : print SQL statements being executed
    --recreate  : drop and recreate all tables
    --sql-file  : specify the reporting SQL file
    """
    p = argparse.ArgumentParser(description="Car rental DB setup (tables + reporting views)")
    p.add_argument("--echo", action="store_true", help="Print SQL statements")
    p.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate all tables before running",
    )
    p.add_argument(
        "--sql-file",
        type=str,
        default="sql/rental_analytics.sql",
        help="Path to reporting SQL file",
    )
    p.add_argument("--env", type=str, default=None, help="Config environment (dev/prod)")
    return p.parse_args(argv)


def main(argv=None):
    """
    Main execution flow:
    - Reads config
    - Creates engine
    - Ensures schema
    - Creates/drops tables
    - Creates views
    """
    args = parse_args(argv)
    cfg = get_config(args.env)
    setup_logging(cfg)
    try:
        engine = get_engine(cfg, echo=args.echo)
        ensure_schema(engine, cfg["db_schema"])

        if args.recreate:
            drop_tables(engine, cfg["db_schema"])

        create_tables(engine)
        create_views_from_file(engine, cfg["db_schema"], args.sql_file)

        log.info("✅ Database setup complete.")
        return 0
    except Exception as e:
        log.exception(f"❌ DB setup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
