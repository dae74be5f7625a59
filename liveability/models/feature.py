"""Point feature types."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PointFeature:
    category: str  # parks / schools / crime / ...
    lat: float
    lon: float
    attributes: dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: str = "") -> str:
        value = self.attributes.get(key)
        if value is None:
            return default
        return value.strip()

    @property
    def name(self) -> str:
        for key in ("NAME", "name", "Name", "STATION_NAME", "stop_name"):
            if self.get(key):
                return self.get(key)
        return ""

    def as_record(self) -> dict[str, str | float]:
        """Flat record kept in the output for map rendering."""
        return {**self.attributes, "lat": self.lat, "lng": self.lon}


# Point dataset categories
PARKS = "parks"
SCHOOLS = "schools"
LIBRARIES = "libraries"
CRIME = "crime"
HOSPITALS = "hospitals"
TRANSIT_STATIONS = "transit_stations"
BUS_STOPS = "bus_stops"
GROCERY_STORES = "grocery_stores"
FOOD_ESTABLISHMENTS = "food_establishments"
GYMS = "gyms"
COLLISIONS = "collisions"
CYCLING = "cycling"
SERVICE_REQUESTS = "service_requests"

ALL_CATEGORIES = (
    PARKS, SCHOOLS, LIBRARIES, CRIME, HOSPITALS, TRANSIT_STATIONS, BUS_STOPS,
    GROCERY_STORES, FOOD_ESTABLISHMENTS, GYMS, COLLISIONS, CYCLING, SERVICE_REQUESTS,
)

# Assigned by containment; hospitals and stations are resolved by proximity.
CONTAINMENT_CATEGORIES = tuple(c for c in ALL_CATEGORIES if c not in (HOSPITALS, TRANSIT_STATIONS))
