# =========================================
# 📄 File: rental_analytics/config/config_loader.py
# Purpose: Load YAML config (dev/prod), substitute ${ENV_VARS}, validate, and expose helpers
# =========================================

import os                      # Used to read ENV to pick dev/prod and to resolve ${VAR} placeholders
import re                      # Used to find and replace ${VAR} patterns inside YAML text
import sys                     # Used to exit early with a clear error message on invalid config
import logging                 # Used to configure root logging from the config
from typing import Dict, Any, Optional
import yaml                    # Safe YAML parsing (install: PyYAML)

DEFAULT_MIN_LOCATION_VEHICLES = 30   # Reliability threshold for the location ranking
DEFAULT_OUTPUT_DIR = "reports"       # Where report CSVs are written
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _substitute_env_placeholders(yaml_text: str) -> str:
    """
    Replace ${VAR} placeholders in YAML text with their environment variable values.
    If an env var is missing, mark it as <MISSING:VAR> to fail validation cleanly.
    """
    pattern = re.compile(r"\$\{([^}^{]+)\}")
    def repl(match):
        var_name = match.group(1)                              # Extract VAR name from ${VAR}
        return os.getenv(var_name, f"<MISSING:{var_name}>")    # Return env value or a sentinel
    return pattern.sub(repl, yaml_text)


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML file from disk, perform ${VAR} substitution, and parse it to a dict.
    """
    if not os.path.exists(path):
        print(f"❌ Configuration file not found: {path}")
        sys.exit(1)

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    substituted = _substitute_env_placeholders(raw)

    try:
        cfg = yaml.safe_load(substituted)
    except yaml.YAMLError as e:
        print(f"❌ YAML parsing error in {path}: {e}")
        sys.exit(1)

    if not isinstance(cfg, dict):                              # Empty file or a bare scalar
        print(f"❌ Configuration in {path} must be a mapping")
        sys.exit(1)
    return cfg


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Validate presence of required keys and ensure no <MISSING:...> placeholders remain.
    """
    required_top = ["environment", "log_level", "db_schema", "database", "data", "reports"]
    missing_top = [k for k in required_top if k not in cfg or cfg[k] in (None, "")]
    if missing_top:
        print(f"❌ Missing top-level config keys: {', '.join(missing_top)}")
        sys.exit(1)

    # A full URL (e.g. sqlite for local runs) replaces the individual fields
    db = cfg.get("database", {})
    if db.get("url"):
        if "MISSING:" in str(db["url"]):
            print("❌ database.url contains an unresolved placeholder.")
            sys.exit(1)
    else:
        required_db = ["host", "port", "name", "user", "password"]
        missing_db = [f"database.{k}" for k in required_db
                      if k not in db or db[k] in (None, "") or "MISSING:" in str(db[k])]
        if missing_db:
            print(f"❌ Missing/invalid DB config keys: {', '.join(missing_db)}")
            sys.exit(1)

    # S3 publishing is optional, but a configured bucket must be resolved
    bucket = cfg.get("s3_bucket")
    if bucket and "MISSING:" in str(bucket):
        print("❌ S3 bucket placeholder unresolved (set the env var or drop s3_bucket).")
        sys.exit(1)

    threshold = cfg["reports"].get("min_location_vehicles", DEFAULT_MIN_LOCATION_VEHICLES)
    if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 1:
        print(f"❌ reports.min_location_vehicles must be a positive integer, got {threshold!r}")
        sys.exit(1)


def _apply_defaults(cfg: Dict[str, Any]) -> Dict[str, Any]:
    reports = cfg["reports"]
    reports.setdefault("min_location_vehicles", DEFAULT_MIN_LOCATION_VEHICLES)
    reports.setdefault("output_dir", DEFAULT_OUTPUT_DIR)
    cfg.setdefault("s3_bucket", None)
    cfg.setdefault("aws_region", None)
    return cfg


def get_config(env: Optional[str] = None, config_dir: str = "config") -> Dict[str, Any]:
    """
    Public API: pick env (argument, else ENV, default 'dev'), load YAML, validate, return dict.
    """
    env = (env or os.getenv("ENV", "dev")).lower()
    path = os.path.join(config_dir, f"{env}.yaml")            # e.g. config/dev.yaml
    cfg = _load_yaml_file(path)
    _validate_config(cfg)
    return _apply_defaults(cfg)


def build_db_url(cfg: Dict[str, Any]) -> str:
    """
    Helper to build a SQLAlchemy-friendly database URL string from cfg dict.
    """
    db = cfg["database"]
    if db.get("url"):
        return db["url"]
    user = db["user"]
    pwd  = db["password"]
    host = db["host"]
    port = db["port"]
    name = db["name"]
    return f"postgresql+psycopg2://{user}:{pwd}@{host}:{port}/{name}"


def setup_logging(cfg: Dict[str, Any]) -> None:
    """Configure root logging from the config's log_level."""
    logging.basicConfig(level=cfg["log_level"], format=LOG_FORMAT)
