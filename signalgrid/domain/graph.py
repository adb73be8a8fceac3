import math
import networkx as nx
from typing import Dict, Iterable, List, Tuple
from signalgrid.domain.models import Intersection, Road

class RoadNetwork:
    """Directed multigraph of intersections and roads.

    Edges are keyed by road id and only carry the topology; live attributes
    (flow, capacity, speed limit) are read from the Road objects of the
    current state whenever a weight is needed.
    """

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    @classmethod
    def from_state(cls, intersections: Iterable[Intersection], roads: Iterable[Road]) -> "RoadNetwork":
        network = cls()
        for intersection in intersections:
            network.add_intersection(intersection.id, (intersection.position.x, intersection.position.y))
        for road in roads:
            network.add_road(road.from_intersection_id, road.to_intersection_id, road.id, road.length, road.lanes)
        return network

    def add_intersection(self, intersection_id: str, pos: Tuple[float, float]):
        self.graph.add_node(intersection_id, pos=pos, type="intersection")

    def add_road(self, u: str, v: str, road_id: str, length: float, lanes: int = 1):
        self.graph.add_edge(u, v, key=road_id, length=length, lanes=lanes)

    def get_node_pos(self, u: str) -> Tuple[float, float]:
        return self.graph.nodes[u].get('pos', (0.0, 0.0))

    def roads_between(self, u: str, v: str) -> List[str]:
        edges: Dict[str, dict] = self.graph.get_edge_data(u, v) or {}
        return list(edges.keys())

    def downstream(self, u: str) -> List[str]:
        """Intersections reachable from u over a single road."""
        if not self.graph.has_node(u):
            return []
        connected = set(self.graph.successors(u))
        return sorted(connected)

    def distance(self, u: str, v: str) -> float:
        ux, uy = self.get_node_pos(u)
        vx, vy = self.get_node_pos(v)
        return math.hypot(vx - ux, vy - uy)
