import csv
import os
import random
import sys

# === Reference data ===

# make -> [(model, type, base price in USD)]
CATALOG = {
    "Toyota": [("Corolla", "car", 21000), ("RAV4", "suv", 29000), ("Prius", "car", 26000)],
    "Honda": [("Civic", "car", 23000), ("CR-V", "suv", 30000), ("Odyssey", "minivan", 36000)],
    "Tesla": [("Model 3", "car", 42000), ("Model Y", "suv", 48000), ("Model S", "car", 80000)],
    "BMW": [("3 Series", "car", 44000), ("X5", "suv", 62000), ("Z4", "convertible", 55000)],
    "Ford": [("Mustang", "convertible", 38000), ("Explorer", "suv", 37000), ("F-150", "truck", 40000)],
    "Jeep": [("Wrangler", "suv", 34000), ("Grand Cherokee", "suv", 41000)],
    "Mercedes-Benz": [("C-Class", "car", 46000), ("G-Class", "suv", 140000)],
    "Chevrolet": [("Camaro", "convertible", 33000), ("Tahoe", "suv", 55000), ("Bolt EV", "car", 28000)],
    "Porsche": [("911", "car", 115000), ("Cayenne", "suv", 80000)],
    "Kia": [("Soul", "car", 20000), ("Carnival", "minivan", 35000)],
}

FUEL_BY_MAKE = {"Tesla": "electric"}
FUEL_TYPES = ["gasoline", "gasoline", "gasoline", "hybrid", "diesel"]

# (city, country, latitude, longitude, airport city)
CITIES = [
    ("Los Angeles", "US", 34.052235, -118.243683, "Los Angeles"),
    ("San Diego", "US", 32.715736, -117.161087, "San Diego"),
    ("Miami", "US", 25.761681, -80.191788, "Miami"),
    ("Orlando", "US", 28.538336, -81.379234, "Orlando"),
    ("Las Vegas", "US", 36.169941, -115.139832, "Las Vegas"),
    ("Phoenix", "US", 33.448376, -112.074036, "Phoenix"),
    ("Denver", "US", 39.739235, -104.990250, "Denver"),
    ("Seattle", "US", 47.606209, -122.332069, "Seattle"),
    ("Austin", "US", 30.267153, -97.743057, "Austin"),
    ("Toronto", "CA", 43.653225, -79.383186, "Toronto"),
    ("Vancouver", "CA", 49.282730, -123.120735, "Vancouver"),
    ("Burbank", "US", 34.180839, -118.308968, "Los Angeles"),
]

COLUMNS = [
    "vehicle_make",
    "vehicle_model",
    "vehicle_type",
    "vehicle_year",
    "fueltype",
    "estimated_car_price",
    "location_city",
    "location_country",
    "location_latitude",
    "location_longitude",
    "airport_city",
    "owner_id",
    "rate_daily",
    "rating",
    "rentertripstaken",
    "reviewcount",
]

OUTPUT_FILE = "data/processed/car_rental_clean.csv"


# === Helpers ===


def save_csv(filename, data, headers):
    """Write a list of dicts to a CSV file, exiting on I/O errors."""
    try:
        os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)
        with open(filename, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=headers)
            writer.writeheader()
            writer.writerows(data)
        print(f"[OK] File saved: {filename}")
    except PermissionError:
        print(f"[ERROR] No permission to write {filename}")
        sys.exit(1)
    except OSError as e:
        print(f"[ERROR] Failed to save {filename}: {e}")
        sys.exit(1)


def _maybe(rng, value, null_rate):
    """Return None with probability null_rate (listings with no activity yet)."""
    return None if rng.random() < null_rate else value


def generate_dataset(n_rows=2000, seed=42, n_owners=400):
    """
    Generate a cleaned flat car-rental dataset: one row per listing (one vehicle each).
    Prices are right-skewed with a few extreme outliers; rating, trips and reviews
    are occasionally missing.
    """
    rng = random.Random(seed)  # nosec B311 - synthetic data only
    rows = []
    makes = list(CATALOG)

    for _ in range(n_rows):
        make = rng.choice(makes)
        model, vtype, base_price = rng.choice(CATALOG[make])
        city, country, lat, lon, airport = rng.choice(CITIES)
        year = rng.randint(2008, 2024)

        # older cars are cheaper; 1% of prices are data-entry style outliers
        age_factor = 0.93 ** (2024 - year)
        price = base_price * age_factor * rng.lognormvariate(0, 0.15)
        if rng.random() < 0.01:
            price *= rng.choice([10, 25])

        rate = max(20.0, price * rng.uniform(0.0012, 0.0030))
        trips = int(rng.paretovariate(1.3) * 5)
        reviews = int(trips * rng.uniform(0.4, 0.9))
        rating = round(min(5.0, max(1.0, rng.gauss(4.8, 0.25))), 2)

        rows.append(
            {
                "vehicle_make": make,
                "vehicle_model": model,
                "vehicle_type": vtype,
                "vehicle_year": year,
                "fueltype": FUEL_BY_MAKE.get(make) or rng.choice(FUEL_TYPES),
                "estimated_car_price": round(price, 2),
                "location_city": city,
                "location_country": country,
                "location_latitude": lat,
                "location_longitude": lon,
                "airport_city": airport,
                "owner_id": rng.randint(1, n_owners),
                "rate_daily": round(rate, 2),
                "rating": _maybe(rng, rating, 0.08),
                "rentertripstaken": _maybe(rng, trips, 0.03),
                "reviewcount": _maybe(rng, reviews, 0.03),
            }
        )

    return rows


def main():
    rows = generate_dataset()
    save_csv(OUTPUT_FILE, rows, COLUMNS)
    print(f"✅ Generated {len(rows)} listings.")


if __name__ == "__main__":
    main()
