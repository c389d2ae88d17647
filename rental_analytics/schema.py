# =========================================
# 📄 File: rental_analytics/schema.py
# Purpose: Normalized car-rental schema (locations, vehicles, rentals) + load audit table,
#          and the engine helpers every stage shares
# =========================================

import logging
from typing import Any, Dict, Optional

from sqlalchemy import (
    CHAR,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from rental_analytics.config.config_loader import build_db_url

log = logging.getLogger(__name__)

# Tables are declared without a schema; the configured schema is applied per engine
# through schema_translate_map (see get_engine).
Base = declarative_base()


class Location(Base):
    """One row per distinct (city, country) rental location"""

    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint("length(location_country) = 2", name="ck_locations_country_len"),
    )

    location_id = Column(Integer, primary_key=True, autoincrement=False)
    location_city = Column(String(100), nullable=False)
    location_country = Column(CHAR(2), nullable=False)  # ISO 3166 alpha-2, e.g. US
    location_latitude = Column(Numeric(9, 6))
    location_longitude = Column(Numeric(9, 6))
    airport_city = Column(String(100))

    rentals = relationship("Rental", back_populates="location")


class Vehicle(Base):
    """One row per physical vehicle"""

    __tablename__ = "vehicles"

    vehicle_id = Column(Integer, primary_key=True, autoincrement=False)
    vehicle_make = Column(String(60), nullable=False)
    vehicle_model = Column(String(60), nullable=False)
    vehicle_type = Column(String(30), nullable=False)
    vehicle_year = Column(SmallInteger)
    fueltype = Column(String(20))
    estimated_car_price = Column(Numeric(10, 2))  # USD, from the external price model

    rentals = relationship("Rental", back_populates="vehicle")


class Rental(Base):
    """Rental-performance record for a vehicle at a location (may aggregate many trips)"""

    __tablename__ = "rentals"
    __table_args__ = (
        Index("ix_rentals_vehicle_id", "vehicle_id"),
        Index("ix_rentals_location_id", "location_id"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 5)", name="ck_rentals_rating_range"
        ),
    )

    rental_id = Column(Integer, primary_key=True, autoincrement=False)
    owner_id = Column(Integer)
    vehicle_id = Column(Integer, ForeignKey("vehicles.vehicle_id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.location_id"), nullable=False)
    rate_daily = Column(Numeric(15, 2))
    rating = Column(Numeric(5, 2))
    rentertripstaken = Column(Integer)
    reviewcount = Column(Integer)

    vehicle = relationship("Vehicle", back_populates="rentals")
    location = relationship("Location", back_populates="rentals")


class LoadAudit(Base):
    """Audit trail: one row per table load attempt"""

    __tablename__ = "audit_loads"

    id = Column(Integer, primary_key=True)
    table_name = Column(String(60), nullable=False)
    source_file = Column(Text, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=False)
    rows_loaded = Column(Integer, nullable=False)
    success = Column(Boolean, nullable=False)
    error = Column(Text)


# Load order respects foreign keys: parents before rentals
CORE_TABLES = ("locations", "vehicles", "rentals")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, schema: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.
    - PostgreSQL: unqualified tables are mapped onto `schema`
    - SQLite: foreign keys are enforced on every connection
    """
    engine = create_engine(url, echo=echo, pool_pre_ping=True, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    elif schema:
        engine = engine.execution_options(schema_translate_map={None: schema})
    return engine


def get_engine(cfg: Dict[str, Any], echo: bool = False) -> Engine:
    """
    Create SQLAlchemy engine using the connection string built from YAML config.
    """
    db_url = build_db_url(cfg)

    # Mask password for safe logging
    masked_url = db_url
    pwd = cfg["database"].get("password")
    if pwd:
        masked_url = db_url.replace(str(pwd), "***")
    log.info(f"Connecting to database at: {masked_url}")

    return make_engine(db_url, schema=cfg["db_schema"], echo=echo)


def table_schema(engine: Engine, cfg: Dict[str, Any]) -> Optional[str]:
    """Schema to pass to pandas I/O (SQLite has no schemas)."""
    if engine.dialect.name == "sqlite":
        return None
    return cfg["db_schema"]
