"""Google Geocoding API client"""

import httpx
from typing import Dict, Any, Optional
from dataclasses import dataclass
import structlog

from propviz.config.settings import settings
from propviz.utils.cache import cached_geocode
from propviz.utils.exceptions import GeocodingError, ConfigurationError
from propviz.utils.monitoring import track_vendor

logger = structlog.get_logger(__name__)

@dataclass
class Location:
    """Resolved address"""
    lat: float
    lng: float
    formatted_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "formatted_address": self.formatted_address,
        }

class GeocodingClient:
    """Client for the Google Geocoding API"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or settings.GOOGLE_MAPS_API_KEY
        self.session = httpx.Client(
            timeout=30.0,
            headers={"Accept": "application/json"}
        )

    def close(self):
        """Close HTTP session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @cached_geocode(ttl_seconds=settings.GEOCODE_CACHE_TTL)
    @track_vendor("google_geocoding")
    def geocode(self, address: str) -> Dict[str, Any]:
        """
        Geocode an address

        Args:
            address: Free-form address

        Returns:
            The vendor response, unchanged
        """
        if not self.api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is not configured")

        try:
            logger.info("Geocoding address", address=address)
            response = self.session.get(
                settings.GEOCODE_URL,
                params={"address": address, "key": self.api_key}
            )
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error("HTTP error from geocoding API", status=e.response.status_code)
            raise GeocodingError(f"Geocoding API error: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Geocoding request failed", error=str(e))
            raise GeocodingError("Failed to geocode address")

        logger.info("Geocoding complete", status=data.get("status"), results=len(data.get("results", [])))
        return data

    def locate(self, address: str) -> Optional[Location]:
        """Return the best match for an address, or None when nothing matched"""
        data = self.geocode(address)
        results = data.get("results") or []

        if not results:
            return None

        best = results[0]
        location = best["geometry"]["location"]
        return Location(
            lat=location["lat"],
            lng=location["lng"],
            formatted_address=best.get("formatted_address", address)
        )
