import logging
from typing import Dict, List, Optional, Tuple
import networkx as nx
from signalgrid.domain.models import Road, RouteSegment
from signalgrid.domain.graph import RoadNetwork
from signalgrid.domain.state import NetworkState
from signalgrid.domain import config

logger = logging.getLogger(__name__)

def road_weight(road: Road, penalty: float = config.ROUTE_CONGESTION_PENALTY) -> float:
    # Free-flow term plus congestion term, read from the live road
    return road.length / max(road.speed_limit, 1e-6) + (road.current_flow / max(road.capacity, 1)) * penalty

def route_distance(route: List[RouteSegment], roads: Dict[str, Road]) -> float:
    return sum(roads[s.road_id].length for s in route if s.road_id in roads)

class RoutePlanner:
    """Congestion-aware shortest paths over the road graph.

    Weights are recomputed from the state passed to each call, so two vehicles
    spawned on different ticks may get different paths. Among equal-cost
    paths the one found first by networkx's traversal wins.
    """

    def __init__(self, network: RoadNetwork, penalty: float = config.ROUTE_CONGESTION_PENALTY):
        self.network = network
        self.penalty = penalty

    def _cheapest_road(self, u: str, v: str, roads: Dict[str, Road]) -> Optional[Road]:
        candidates = [roads[r] for r in self.network.roads_between(u, v) if r in roads]
        if not candidates:
            return None
        return min(candidates, key=lambda r: road_weight(r, self.penalty))

    def plan_with_cost(self, start_id: str, end_id: str, state: NetworkState) -> Tuple[List[RouteSegment], float]:
        roads = state.roads

        def weight(u, v, edges):
            road = self._cheapest_road(u, v, roads)
            # None hides edges whose road no longer exists
            return None if road is None else road_weight(road, self.penalty)

        try:
            cost, path = nx.single_source_dijkstra(self.network.graph, start_id, target=end_id, weight=weight)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            logger.debug("No route from %s to %s", start_id, end_id)
            return [], float("inf")

        route: List[RouteSegment] = []
        for u, v in zip(path, path[1:]):
            road = self._cheapest_road(u, v, roads)
            route.append(RouteSegment(
                road_id=road.id,
                from_intersection_id=u,
                to_intersection_id=v,
                distance_remaining=road.length,
            ))
        return route, cost

    def plan(self, start_id: str, end_id: str, state: NetworkState) -> List[RouteSegment]:
        route, _ = self.plan_with_cost(start_id, end_id, state)
        return route
