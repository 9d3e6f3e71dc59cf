#Purpose: OpenRouteService adapter (secondary road-network provider).
#Same contract as osrm_client.OSRMClient: (lat, lon) in, RouteSegment out.
#ORS needs an API key. We take ORS_API_KEY if set, otherwise the public
#demo key from ORS_DEMO_API_KEY. With neither, the client is "unconfigured"
#and fails fast so the resolver moves on without a network call.


from dotenv import load_dotenv
import logging
import os
from typing import List, Tuple, Dict, Any, Optional
import requests

from .errors import RoutingProviderError
from .models import Confidence, RouteSegment, RouteSource

logger = logging.getLogger(__name__)

load_dotenv()
DEFAULT_BASE_URL = "https://api.openrouteservice.org"
BASE_URL = os.getenv("ORS_BASE_URL", DEFAULT_BASE_URL)

LatLon = Tuple[float, float]


def resolve_api_key(explicit: Optional[str] = None) -> Optional[str]:
    """Configured key first, then the shared demo key."""
    if explicit:
        return explicit
    configured = os.getenv("ORS_API_KEY")
    if configured:
        return configured
    demo = os.getenv("ORS_DEMO_API_KEY")
    if demo:
        logger.info("ORS_API_KEY not set; using the OpenRouteService demo key")
    return demo or None


class ORSClient:
    """
    OpenRouteService directions client.

    POSTs to /v2/directions/{profile}/geojson and normalizes the first
    feature into a RouteSegment.
    """
    name = RouteSource.OPENROUTESERVICE.value

    def __init__(self,
                 api_key: Optional[str] = None,
                 base_url: Optional[str] = None,
                 profile: str = "driving-car",
                 timeout: float = 5,
                 session: Optional[requests.Session] = None):
        self.api_key = resolve_api_key(api_key)
        self.base_url = (base_url or BASE_URL or DEFAULT_BASE_URL).rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def compute_route(self, coordinates: List[LatLon]) -> RouteSegment:
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")
        if not self.is_configured:
            raise RoutingProviderError(self.name, "no API key configured")

        url = f"{self.base_url}/v2/directions/{self.profile}/geojson"
        body = {"coordinates": [[lon, lat] for lat, lon in coordinates]}
        headers = {
            "Accept": "application/json, application/geo+json; charset=utf-8",
            "Content-Type": "application/json",
            "Authorization": self.api_key,
        }

        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RoutingProviderError(self.name, f"request failed: {exc}") from exc

        if not response.ok:
            raise RoutingProviderError(self.name, f"HTTP {response.status_code}")

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise RoutingProviderError(self.name, "response is not JSON") from exc

        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            raise RoutingProviderError(self.name, "no route returned")

        feature = features[0]
        try:
            path = [(float(point[1]), float(point[0])) for point in feature["geometry"]["coordinates"]]
            properties = feature.get("properties") or {}
            summary = properties.get("summary")
            if summary:
                distance = float(summary.get("distance") or 0.0)
                duration = float(summary.get("duration") or 0.0)
            else:
                segments = properties["segments"]
                distance = sum(float(segment.get("distance") or 0.0) for segment in segments)
                duration = sum(float(segment.get("duration") or 0.0) for segment in segments)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise RoutingProviderError(self.name, f"malformed route payload: {exc}") from exc

        if len(path) < 2:
            raise RoutingProviderError(self.name, "route geometry has fewer than two points")

        return RouteSegment(
            coordinates=path,
            distance_m=distance,
            duration_s=duration,
            source=RouteSource.OPENROUTESERVICE,
            confidence=Confidence.HIGH,
        )
