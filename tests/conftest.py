# tests/conftest.py
# ------------------------------------------------------------
# Purpose: Shared fixtures: a dummy config dict, tiny normalized
#          tables with hand-computable results, and an in-memory
#          SQLite engine carrying the real schema.
# ------------------------------------------------------------

import pandas as pd
import pytest

from rental_analytics.schema import Base, make_engine


@pytest.fixture
def cfg(tmp_path):
    """A config dict with every key the pipeline expects (no real secrets)."""
    return {
        "environment": "test",
        "log_level": "WARNING",
        "db_schema": "public",
        "database": {"url": f"sqlite:///{tmp_path / 'rental.db'}"},
        "data": {"clean_file": str(tmp_path / "car_rental_clean.csv")},
        "reports": {"output_dir": str(tmp_path / "reports"), "min_location_vehicles": 30},
        "s3_bucket": None,
        "aws_region": None,
    }


@pytest.fixture
def locations():
    return pd.DataFrame(
        {
            "location_id": [1, 2],
            "location_city": ["Los Angeles", "Miami"],
            "location_country": ["US", "US"],
            "location_latitude": [34.052235, 25.761681],
            "location_longitude": [-118.243683, -80.191788],
            "airport_city": ["Los Angeles", "Miami"],
        }
    )


@pytest.fixture
def vehicles():
    # vehicle 5 carries an extreme price outlier; vehicle 7 is never rated
    return pd.DataFrame(
        {
            "vehicle_id": [1, 2, 3, 4, 5, 6, 7],
            "vehicle_make": ["Toyota", "Toyota", "Tesla", "Jeep", "Jeep", "Ford", "Kia"],
            "vehicle_model": ["Corolla", "Corolla", "Model 3", "Wrangler", "Wrangler", "Mustang", "Soul"],
            "vehicle_type": ["car", "car", "car", "suv", "suv", "convertible", "car"],
            "vehicle_year": [2018, 2020, 2021, 2019, 2015, 2017, 2016],
            "fueltype": ["gasoline", "hybrid", "electric", "gasoline", "gasoline", "gasoline", "gasoline"],
            "estimated_car_price": [20000.0, 24000.0, 40000.0, 30000.0, 1000000.0, 35000.0, 15000.0],
        }
    )


@pytest.fixture
def rentals():
    return pd.DataFrame(
        {
            "rental_id": [1, 2, 3, 4, 5, 6, 7],
            "owner_id": [10, 10, 11, 12, 12, 13, 14],
            "vehicle_id": [1, 2, 3, 4, 5, 6, 7],
            "location_id": [1, 1, 2, 2, 1, 2, 1],
            "rate_daily": [40.0, 50.0, 100.0, 70.0, 90.0, 80.0, 35.0],
            "rating": [4.8, 4.6, 5.0, None, 4.0, 4.9, None],
            "rentertripstaken": [10, 20, 30, 7, None, 3, 4],
            "reviewcount": [8, 15, 20, None, 3, 2, 0],
        }
    )


@pytest.fixture
def tables(locations, vehicles, rentals):
    return {"locations": locations, "vehicles": vehicles, "rentals": rentals}


@pytest.fixture
def single_rental_tables():
    """One vehicle, one location, one rental row."""
    return {
        "locations": pd.DataFrame(
            {
                "location_id": [1],
                "location_city": ["Denver"],
                "location_country": ["US"],
                "location_latitude": [39.739235],
                "location_longitude": [-104.99025],
                "airport_city": ["Denver"],
            }
        ),
        "vehicles": pd.DataFrame(
            {
                "vehicle_id": [1],
                "vehicle_make": ["Honda"],
                "vehicle_model": ["Civic"],
                "vehicle_type": ["car"],
                "vehicle_year": [2019],
                "fueltype": ["gasoline"],
                "estimated_car_price": [5000.0],
            }
        ),
        "rentals": pd.DataFrame(
            {
                "rental_id": [1],
                "owner_id": [1],
                "vehicle_id": [1],
                "location_id": [1],
                "rate_daily": [50.0],
                "rating": [4.5],
                "rentertripstaken": [5],
                "reviewcount": [2],
            }
        ),
    }


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite with the real schema and foreign keys enforced."""
    engine = make_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()
