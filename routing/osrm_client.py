#Purpose: The OSRM "adapter/client" (primary road-network provider).
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route)
#timeouts and error handling
#parsing response JSON into RouteSegment
#It should not contain fallback or caching rules (see route_service.py).


from dotenv import load_dotenv
import os
from typing import List, Tuple, Dict, Any, Optional
import requests

from .errors import RoutingProviderError
from .models import Confidence, RouteSegment, RouteSource

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=https://router.project-osrm.org
load_dotenv()
DEFAULT_BASE_URL = "https://router.project-osrm.org"
BASE_URL = os.getenv("OSRM_BASE_URL", DEFAULT_BASE_URL)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) -> OSRM (lon,lat)
    - Return normalized RouteSegment objects

    """
    name = RouteSource.OSRM.value

    def __init__(self,
                 base_url: Optional[str] = None,
                 profile: str = "driving",
                 timeout: float = 5,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or BASE_URL or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout #the time to wait for a response from OSRM before giving up
        self.profile = profile #the mode of transportation (driving, walking, cycling)
        self.session = session or requests.Session()

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RoutingProviderError(self.name, f"request failed: {exc}") from exc

        if not response.ok:
            raise RoutingProviderError(self.name, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise RoutingProviderError(self.name, "response is not JSON") from exc

        if not isinstance(data, dict):
            raise RoutingProviderError(self.name, "unexpected payload shape")
        return data

    #----------------
    # Public methods
    #----------------
    def compute_route(self, coordinates: List[LatLon]) -> RouteSegment:
        """
        calls the OSRM /route endpoint with the given coordinates and
        returns the road-following path with distance and duration.

        Raises:
            RoutingProviderError on network errors, non-2xx, OSRM error codes
            or payloads without a usable route.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        data = self._get_json(
            url,
            params={
                "overview": "full", # we need the geometry for display
                "geometries": "geojson",
            },
        )

        #validating OSRM response
        if data.get("code") != "Ok":
            raise RoutingProviderError(self.name, f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")

        routes = data.get("routes") or []
        if not routes:
            raise RoutingProviderError(self.name, "no route returned")

        route = routes[0] #take the first route (OSRM may return alternatives)
        try:
            #geojson is [lon, lat]; flip back to internal (lat, lon)
            path = [(float(point[1]), float(point[0])) for point in route["geometry"]["coordinates"]]
            distance = float(route.get("distance") or 0.0)
            duration = float(route.get("duration") or 0.0)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise RoutingProviderError(self.name, f"malformed route payload: {exc}") from exc

        if len(path) < 2:
            raise RoutingProviderError(self.name, "route geometry has fewer than two points")

        return RouteSegment(
            coordinates=path,
            distance_m=distance,
            duration_s=duration,
            source=RouteSource.OSRM,
            confidence=Confidence.HIGH,
        )
