#Marks routing as a package.
#Re-exports clean public APIs (RoutingResolver, providers, distance helpers)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .distance import accumulate, haversine_m, haversine_meters, running_total
from .errors import RoutingProviderError
from .models import Confidence, RouteResult, RouteSegment, RouteSource
from .ors_client import ORSClient
from .osrm_client import OSRMClient
from .policy import RoutingPolicy, default_routing_policy
from .route_cache import RouteCache
from .route_service import RoutingResolver, build_gps_route, straight_line_segment

__all__ = [
           "accumulate",
           "haversine_m",
           "haversine_meters",
           "running_total",
           "Confidence",
           "RouteResult",
           "RouteSegment",
           "RouteSource",
           "RoutingProviderError",
           "OSRMClient",
           "ORSClient",
           "RoutingPolicy",
           "default_routing_policy",
           "RouteCache",
           "RoutingResolver",
           "build_gps_route",
           "straight_line_segment",
           ]
