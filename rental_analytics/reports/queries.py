# =========================================
# 📄 File: rental_analytics/reports/queries.py
# Purpose: The eight read-only reporting computations over the normalized tables
# - Engagement, pricing, rating, popularity, profitability, potential,
#   location quality and most-rented vehicles
# - Every function is pure: DataFrames in, ordered DataFrame out
# - Column names are the dashboard contract (same as sql/rental_analytics.sql)
# =========================================

import logging
from typing import Dict, List, Union

import pandas as pd

log = logging.getLogger(__name__)

MODEL_KEYS = ["vehicle_make", "vehicle_model"]

# Weighted-rating score. Rating is bounded 0–5 while trip totals are unbounded,
# so this score ranks almost purely by trip volume. Kept as-is on purpose.
RATING_WEIGHT = 0.5
TRIPS_WEIGHT = 0.5

# Rental potential: lower combined rank is better
RATE_RANK_WEIGHT = 0.4
TRIPS_RANK_WEIGHT = 0.6

MIN_LOCATION_VEHICLES = 30  # cities below this many distinct vehicles are not ranked

REPORT_NAMES = (
    "model_engagement_summary",
    "median_pricing_by_type",
    "weighted_rating_ranking",
    "review_popularity",
    "make_profitability",
    "rental_potential_by_type",
    "location_quality_ranking",
    "most_rented_vehicles",
)

_RENTAL_NUMERIC = ["rate_daily", "rating", "rentertripstaken", "reviewcount"]
_VEHICLE_NUMERIC = ["estimated_car_price"]


# -----------------------
# Helpers
# -----------------------


def _coerce_numeric(df: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    """
    Database reads can hand back Decimal objects or nullable ints; aggregate on floats.
    """
    out = df.copy()
    for c in cols:
        if c in out.columns:
            out[c] = pd.to_numeric(out[c], errors="coerce").astype("float64")
    return out


def _rentals_with_vehicles(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    return _coerce_numeric(rentals, _RENTAL_NUMERIC).merge(
        _coerce_numeric(vehicles, _VEHICLE_NUMERIC), on="vehicle_id", how="inner"
    )


def _sum_or_null(s: pd.Series) -> float:
    """SQL SUM semantics: NULL when every input is NULL."""
    return s.sum(min_count=1)


def _to_int(s: pd.Series) -> pd.Series:
    return s.round().astype("Int64")


def _order(
    df: pd.DataFrame, by: Union[str, List[str]], ascending: bool = False
) -> pd.DataFrame:
    """Sort with NULL keys last; ties keep group-key order."""
    # PostgreSQL puts NULLs first on DESC; these reports and their views use NULLS LAST
    return df.sort_values(
        by, ascending=ascending, na_position="last", kind="mergesort"
    ).reset_index(drop=True)


def _warn_zero_denominator(values: pd.Series, label: str) -> None:
    zeros = int((values == 0).sum())
    if zeros:
        log.warning(f"{label}: {zeros} group(s) with a zero median, ratio is undefined")


def competition_rank(values: pd.Series, ascending: bool = False) -> pd.Series:
    """
    Standard competition ranking ("1224"): ties share the lowest rank and the next
    distinct value skips by the size of the tie group. [10, 10, 8] -> [1, 1, 3].
    Missing values rank last.
    """
    return values.rank(method="min", ascending=ascending, na_option="bottom").astype(int)


def _median_pricing(
    df: pd.DataFrame, key: str, rate_col: str, ratio_col: str
) -> pd.DataFrame:
    """
    Continuous (interpolated) medians of daily rate and car price per group, their
    ratio and inverse. Medians, not means: car prices carry extreme outliers.
    """
    grouped = df.groupby(key, dropna=False)
    median_rate = grouped["rate_daily"].median()
    median_price = grouped["estimated_car_price"].median()

    _warn_zero_denominator(median_price, f"{ratio_col} by {key}")
    _warn_zero_denominator(median_rate, f"days_to_recoup by {key}")

    out = pd.DataFrame(
        {
            rate_col: median_rate.round(2),
            "median_car_price": median_price.round(2),
            ratio_col: (median_rate / median_price).round(5),
            "days_to_recoup": (median_price / median_rate).round(2),
        }
    )
    return out.reset_index()


# -----------------------
# Reporting computations
# -----------------------


def model_engagement_summary(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Per (make, model): mean rating, trips per rental row and mean review count.

    avg_trips is total trips divided by the group's row count; rows with unknown
    trips add nothing to the total but still count, and the quotient is truncated.
    """
    joined = _rentals_with_vehicles(vehicles, rentals)
    out = (
        joined.groupby(MODEL_KEYS, dropna=False)
        .agg(
            avg_rating=("rating", "mean"),
            trips_sum=("rentertripstaken", "sum"),
            trips_known=("rentertripstaken", "count"),
            n_rows=("vehicle_id", "size"),
            avg_reviewcount=("reviewcount", "mean"),
        )
        .reset_index()
    )
    out["avg_rating"] = out["avg_rating"].round(2)
    out["avg_trips"] = _to_int(
        (out["trips_sum"] // out["n_rows"]).where(out["trips_known"] > 0)
    )
    out["avg_reviewcount"] = out["avg_reviewcount"].round(2)

    out = out[MODEL_KEYS + ["avg_rating", "avg_trips", "avg_reviewcount"]]
    return _order(out, ["avg_trips", "avg_rating", "avg_reviewcount"])


def median_pricing_by_type(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Per vehicle type, over rows with known trips, daily rate and car price:
    median daily rate, median car price, price_ratio and days_to_recoup.
    """
    joined = _rentals_with_vehicles(vehicles, rentals).dropna(
        subset=["rentertripstaken", "rate_daily", "estimated_car_price"]
    )
    out = _median_pricing(joined, "vehicle_type", "median_daily_rate", "price_ratio")
    return _order(out, "median_daily_rate")


def weighted_rating_ranking(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Per (make, model) over rated rows: mean rating, total trips and
    weighted_score = 0.5 * mean rating + 0.5 * total trips.
    """
    joined = _rentals_with_vehicles(vehicles, rentals)
    rated = joined[joined["rating"].notna()]
    out = (
        rated.groupby(MODEL_KEYS, dropna=False)
        .agg(
            avg_rating=("rating", "mean"),
            rentertripstaken=("rentertripstaken", _sum_or_null),
        )
        .reset_index()
    )
    out["weighted_score"] = (
        out["avg_rating"] * RATING_WEIGHT + out["rentertripstaken"] * TRIPS_WEIGHT
    ).round(2)
    out["avg_rating"] = out["avg_rating"].round(3)
    out["rentertripstaken"] = _to_int(out["rentertripstaken"])

    return _order(out, "weighted_score")


def review_popularity(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """Per (make, model): total review count and mean rating."""
    joined = _rentals_with_vehicles(vehicles, rentals)
    out = (
        joined.groupby(MODEL_KEYS, dropna=False)
        .agg(
            sum_reviewcount=("reviewcount", _sum_or_null),
            avg_rating=("rating", "mean"),
        )
        .reset_index()
    )
    out["sum_reviewcount"] = _to_int(out["sum_reviewcount"])
    out["avg_rating"] = out["avg_rating"].round(2)
    return _order(out, "sum_reviewcount")


def make_profitability(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Per make: median daily rate, median car price, rate_price_ratio and days_to_recoup.
    """
    joined = _rentals_with_vehicles(vehicles, rentals)
    out = _median_pricing(joined, "vehicle_make", "median_rate_daily", "rate_price_ratio")
    return _order(out, "rate_price_ratio")


def rental_potential_by_type(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Per vehicle type: mean daily rate and mean trips (2 dp), each competition-ranked
    descending, combined as 0.4 * rate_rank + 0.6 * trips_rank. Lower is better.
    """
    joined = _rentals_with_vehicles(vehicles, rentals)
    out = (
        joined.groupby("vehicle_type", dropna=False)
        .agg(
            avg_rate_daily=("rate_daily", "mean"),
            avg_rentertripstaken=("rentertripstaken", "mean"),
        )
        .reset_index()
    )
    # ranks are taken over the rounded averages
    out["avg_rate_daily"] = out["avg_rate_daily"].round(2)
    out["avg_rentertripstaken"] = out["avg_rentertripstaken"].round(2)
    out["rate_rank"] = competition_rank(out["avg_rate_daily"])
    out["trips_rank"] = competition_rank(out["avg_rentertripstaken"])
    out["weighted_score"] = (
        out["rate_rank"] * RATE_RANK_WEIGHT + out["trips_rank"] * TRIPS_RANK_WEIGHT
    ).round(2)

    out = out[
        [
            "vehicle_type",
            "avg_rate_daily",
            "rate_rank",
            "avg_rentertripstaken",
            "trips_rank",
            "weighted_score",
        ]
    ]
    return _order(out, "weighted_score", ascending=True)


def location_quality_ranking(
    locations: pd.DataFrame,
    rentals: pd.DataFrame,
    min_vehicles: int = MIN_LOCATION_VEHICLES,
) -> pd.DataFrame:
    """
    Per city, over rows with both rating and review count: distinct vehicles and
    the review-weighted rating sum(rating * reviews) / sum(reviews).

    A zero review total yields a null rating. Cities with fewer than `min_vehicles`
    distinct vehicles are left out of the ranking.
    """
    joined = _coerce_numeric(rentals, _RENTAL_NUMERIC).merge(
        locations, on="location_id", how="inner"
    )
    rated = joined.dropna(subset=["rating", "reviewcount"])
    rated = rated.assign(weighted_rating=rated["rating"] * rated["reviewcount"])

    stats = (
        rated.groupby("location_city", dropna=False)
        .agg(
            veh_count=("vehicle_id", "nunique"),
            weighted_rating_sum=("weighted_rating", "sum"),
            total_reviewcount=("reviewcount", "sum"),
        )
        .reset_index()
    )
    denominator = stats["total_reviewcount"].where(stats["total_reviewcount"] != 0)
    stats["avg_rating"] = (stats["weighted_rating_sum"] / denominator).round(2)

    kept = stats[stats["veh_count"] >= min_vehicles]
    dropped = len(stats) - len(kept)
    if dropped:
        log.debug(f"location_quality_ranking: {dropped} cities below {min_vehicles} vehicles")

    out = kept[["location_city", "avg_rating", "veh_count"]]
    return _order(out, "avg_rating")


def most_rented_vehicles(vehicles: pd.DataFrame, rentals: pd.DataFrame) -> pd.DataFrame:
    """
    Total renter trips per individual vehicle, joined back to its attributes.
    """
    counts = (
        _coerce_numeric(rentals, _RENTAL_NUMERIC)
        .groupby("vehicle_id")
        .agg(rentals_count=("rentertripstaken", _sum_or_null))
        .reset_index()
    )
    counts["rentals_count"] = _to_int(counts["rentals_count"])

    out = counts.merge(vehicles, on="vehicle_id", how="inner")
    out = out[
        [
            "vehicle_id",
            "vehicle_make",
            "vehicle_model",
            "vehicle_type",
            "vehicle_year",
            "fueltype",
            "rentals_count",
        ]
    ]
    return _order(out, "rentals_count")


# -----------------------
# Run everything
# -----------------------


def run_all(
    tables: Dict[str, pd.DataFrame],
    min_location_vehicles: int = MIN_LOCATION_VEHICLES,
) -> Dict[str, pd.DataFrame]:
    """
    Evaluate every report over the same tables. Reports are independent of each
    other; the returned dict follows REPORT_NAMES order.
    """
    locations = tables["locations"]
    vehicles = tables["vehicles"]
    rentals = tables["rentals"]

    results = {
        "model_engagement_summary": model_engagement_summary(vehicles, rentals),
        "median_pricing_by_type": median_pricing_by_type(vehicles, rentals),
        "weighted_rating_ranking": weighted_rating_ranking(vehicles, rentals),
        "review_popularity": review_popularity(vehicles, rentals),
        "make_profitability": make_profitability(vehicles, rentals),
        "rental_potential_by_type": rental_potential_by_type(vehicles, rentals),
        "location_quality_ranking": location_quality_ranking(
            locations, rentals, min_vehicles=min_location_vehicles
        ),
        "most_rented_vehicles": most_rented_vehicles(vehicles, rentals),
    }
    for name, df in results.items():
        log.debug(f"{name}: {len(df)} rows")
    return results
