# tests/integration/test_smoke.py
# ------------------------------------------------------------
# Purpose: Light "smoke" integration test against the real
#          configured database (PostgreSQL in prod). SKIPPED by
#          default to avoid accidental DB usage during CI; opt in
#          by setting RUN_INTEGRATION=1 (and ENV/DB_* variables).
# ------------------------------------------------------------

import os
import pytest


# Mark the whole module as "integration" for clarity.
pytestmark = pytest.mark.integration


@pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION", "0") != "1",
    reason="Set RUN_INTEGRATION=1 to enable integration smoke tests.",
)
def test_config_engine_and_reports_against_live_db():
    # Import inside the test (lazy) so normal unit runs don't even load modules.
    from sqlalchemy import inspect

    from rental_analytics.config.config_loader import get_config
    from rental_analytics.reports.queries import REPORT_NAMES, run_all
    from rental_analytics.reports.run_reports import extract_from_db
    from rental_analytics.schema import get_engine, table_schema

    cfg = get_config()
    engine = get_engine(cfg)
    schema = table_schema(engine, cfg)

    # db_setup.py must have created the normalized tables
    existing = set(inspect(engine).get_table_names(schema=schema))
    assert {"locations", "vehicles", "rentals"} <= existing

    results = run_all(extract_from_db(engine, schema=schema))
    assert tuple(results) == REPORT_NAMES
