from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from signalgrid.domain.models import (
    Intersection, Road, Vehicle, NetworkMetrics, SystemEvent
)
from signalgrid.domain.exceptions import UnknownIntersectionError, InvalidCommandError

class NetworkState(BaseModel):
    layout: str = "custom"
    tick: int = 0
    timestamp: float = 0.0 # Simulated seconds
    intersections: Dict[str, Intersection] = {}
    roads: Dict[str, Road] = {}
    vehicles: Dict[str, Vehicle] = {}
    network_metrics: NetworkMetrics = Field(default_factory=NetworkMetrics)
    events: List[SystemEvent] = [] # Newest first
    is_running: bool = False
    simulation_speed: float = 1.0

    # Topology edits

    def next_index(self) -> int:
        if not self.intersections:
            return 0
        return max(i.index for i in self.intersections.values()) + 1

    def add_intersection(self, intersection: Intersection) -> Intersection:
        if intersection.id in self.intersections:
            raise InvalidCommandError(f"Intersection {intersection.id} already exists")
        if intersection.index < 0:
            intersection.index = self.next_index()
        elif any(i.index == intersection.index for i in self.intersections.values()):
            raise InvalidCommandError(f"Index {intersection.index} is already used by another intersection")
        if not intersection.name:
            intersection.name = f"Intersection {intersection.id}"
        self.intersections[intersection.id] = intersection
        return intersection

    def add_road(self, road: Road) -> Road:
        if road.id in self.roads:
            raise InvalidCommandError(f"Road {road.id} already exists")
        for endpoint in (road.from_intersection_id, road.to_intersection_id):
            if endpoint not in self.intersections:
                raise UnknownIntersectionError(endpoint)
        if road.from_intersection_id == road.to_intersection_id:
            raise InvalidCommandError(f"Road {road.id} is a self-loop")
        road.refresh_travel_time()
        self.roads[road.id] = road
        return road

    def remove_road(self, road_id: str) -> Optional[Road]:
        road = self.roads.pop(road_id, None)
        if road is None:
            return None

        for vehicle in list(self.vehicles.values()):
            if vehicle.current_road_id == road_id:
                del self.vehicles[vehicle.id]
                continue
            for idx, segment in enumerate(vehicle.route):
                if segment.road_id == road_id:
                    # Keep the intact prefix; the vehicle stalls at its end until re-planned
                    vehicle.route = vehicle.route[:idx]
                    break
        return road

    def remove_intersection(self, intersection_id: str) -> Intersection:
        """Deletes an intersection together with its incident roads and the
        vehicles currently standing at it."""
        intersection = self.intersections.get(intersection_id)
        if intersection is None:
            raise UnknownIntersectionError(intersection_id)

        incident = [
            r.id for r in self.roads.values()
            if intersection_id in (r.from_intersection_id, r.to_intersection_id)
        ]
        for road_id in incident:
            self.remove_road(road_id)

        for vehicle in list(self.vehicles.values()):
            if vehicle.current_intersection_id == intersection_id:
                del self.vehicles[vehicle.id]
            elif vehicle.destination_intersection_id == intersection_id:
                del self.vehicles[vehicle.id]

        del self.intersections[intersection_id]
        return intersection

    def incoming_roads(self, intersection_id: str) -> List[Road]:
        return [r for r in self.roads.values() if r.to_intersection_id == intersection_id]

    def outgoing_roads(self, intersection_id: str) -> List[Road]:
        return [r for r in self.roads.values() if r.from_intersection_id == intersection_id]
