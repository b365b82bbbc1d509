"""
map_service.py - Address lookup and road distance (v1.2)

- Nominatim (OpenStreetMap) geocoding, restricted to Brazil
- OSRM public router for driving distance from the shop

Both services are free and rate limited; failures return empty results
instead of raising so the quote can continue without a logistics fee.
"""

from dataclasses import dataclass
from typing import List, Optional

import requests

from config.settings import get_settings
from ..core.logging import setup_logger

logger = setup_logger(__name__)


@dataclass
class AddressResult:
    """Geocoding hit"""
    display_name: str
    lat: float
    lon: float


class MapService:
    """OpenStreetMap geocoding + OSRM routing"""

    NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
    OSRM_URL = "https://router.project-osrm.org/route/v1/driving"
    USER_AGENT = "print-shop-quoter/1.2"

    def __init__(
        self,
        origin_lat: Optional[float] = None,
        origin_lon: Optional[float] = None,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.origin_lat = settings.shop_latitude if origin_lat is None else origin_lat
        self.origin_lon = settings.shop_longitude if origin_lon is None else origin_lon
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.USER_AGENT})

    def search_address(self, query: str, limit: int = 5) -> List[AddressResult]:
        """Geocode a free-text address (empty list on failure or short query)"""
        if not query or len(query.strip()) < 3:
            return []

        try:
            response = self.session.get(
                self.NOMINATIM_URL,
                params={
                    "format": "json",
                    "q": query,
                    "countrycodes": "br",
                    "limit": limit,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Address search failed for {query!r}: {e}")
            return []

        return [
            AddressResult(
                display_name=item.get("display_name", ""),
                lat=float(item["lat"]),
                lon=float(item["lon"]),
            )
            for item in data
            if "lat" in item and "lon" in item
        ]

    def route_distance_km(self, lat: float, lon: float) -> Optional[float]:
        """Driving distance from the shop in km, None when no route"""
        url = f"{self.OSRM_URL}/{self.origin_lon},{self.origin_lat};{lon},{lat}"
        try:
            response = self.session.get(url, params={"overview": "false"}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Route lookup failed: {e}")
            return None

        if data.get("code") != "Ok" or not data.get("routes"):
            logger.warning(f"No route to ({lat}, {lon}): {data.get('code')}")
            return None
        return data["routes"][0]["distance"] / 1000

    def distance_to_address(self, query: str) -> Optional[float]:
        """Geocode then route; first geocoding hit wins"""
        results = self.search_address(query, limit=1)
        if not results:
            return None
        return self.route_distance_km(results[0].lat, results[0].lon)
