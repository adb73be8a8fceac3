import logging
from collections import Counter
from typing import Dict, List, Optional
from signalgrid.domain.models import (
    Vehicle, Intersection, RouteSegment, Position, Priority, LightColor
)
from signalgrid.domain.state import NetworkState
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.systems.route_planner import RoutePlanner, route_distance
from signalgrid.domain import config

logger = logging.getLogger(__name__)

def is_admissible(vehicle: Vehicle, intersection: Intersection, state: NetworkState,
                  upcoming: Optional[RouteSegment]) -> bool:
    """Whether the vehicle may cross the intersection onto its upcoming road.

    No upcoming road means the intersection is the destination. Yellow on
    either approach blocks every direction.
    """
    if upcoming is None:
        return True
    if vehicle.priority == Priority.EMERGENCY:
        return True

    next_road = state.roads.get(upcoming.road_id)
    if next_road is None:
        return False

    signal = intersection.signal_state
    if signal.in_yellow:
        return False
    return signal.color(next_road.direction.axis) == LightColor.GREEN

class MovementResult:
    def __init__(self):
        self.crossings: Dict[str, int] = Counter()
        self.arrived: List[str] = []
        self.dropped: List[str] = []
        self.failed: List[str] = []

class VehicleSystem:
    def __init__(self, queue_manager: QueueManager, planner: RoutePlanner, strict: bool = False,
                 reroute_interval: int = config.REROUTE_INTERVAL_TICKS,
                 max_reroute_attempts: int = config.MAX_REROUTE_ATTEMPTS):
        self.queue_manager = queue_manager
        self.planner = planner
        self.strict = strict
        self.reroute_interval = max(1, reroute_interval)
        self.max_reroute_attempts = max_reroute_attempts

    def update(self, state: NetworkState, dt: float) -> MovementResult:
        result = MovementResult()
        for vehicle in list(state.vehicles.values()):
            if vehicle.id not in state.vehicles:
                continue
            try:
                self._update_single_vehicle(vehicle, state, dt, result)
            except Exception:
                # One corrupted vehicle must not stop the tick
                logger.exception("Movement failed for vehicle %s", vehicle.id)
                result.failed.append(vehicle.id)
                if self.strict:
                    raise

        self.update_road_occupancy(state)
        return result

    def _update_single_vehicle(self, v: Vehicle, state: NetworkState, dt: float, result: MovementResult):
        if not v.route:
            self._handle_empty_route(v, state, result)
        elif v.current_intersection_id is not None:
            self._update_queued_vehicle(v, state, dt, result)
        else:
            self._move_on_road(v, state, dt, result)

    # A. Waiting at an intersection

    def _update_queued_vehicle(self, v: Vehicle, state: NetworkState, dt: float, result: MovementResult):
        intersection = state.intersections.get(v.current_intersection_id)
        if intersection is None:
            return

        if is_admissible(v, intersection, state, v.route[0]):
            self.queue_manager.dequeue(v, intersection)
            self._depart(v, intersection, result)
        else:
            v.wait_time += dt
            self.queue_manager.enqueue(v, intersection, state)

    # B. Travelling along a road

    def _move_on_road(self, v: Vehicle, state: NetworkState, dt: float, result: MovementResult):
        segment = v.route[0]
        road = state.roads.get(segment.road_id)
        if road is None:
            return
        v.current_road_id = road.id

        move_amount = (v.speed / 3.6) * dt
        to_intersection = state.intersections.get(segment.to_intersection_id)

        # Deceleration zone: hold before the stop line on red/yellow
        if to_intersection is not None and segment.distance_remaining <= move_amount * 2:
            upcoming = v.route[1] if len(v.route) > 1 else None
            if not is_admissible(v, to_intersection, state, upcoming):
                move_amount = 0.0
                v.wait_time += dt

        segment.distance_remaining -= move_amount
        v.route_progress = min(1.0, max(0.0, 1 - segment.distance_remaining / max(road.length, 1e-6)))

        from_intersection = state.intersections.get(segment.from_intersection_id)
        if from_intersection is not None and to_intersection is not None:
            start, end = from_intersection.position, to_intersection.position
            v.position = Position(
                x=start.x + (end.x - start.x) * v.route_progress,
                y=start.y + (end.y - start.y) * v.route_progress,
            )

        if segment.distance_remaining <= 0:
            self._reach_intersection(v, segment, state, dt, result)

    def _reach_intersection(self, v: Vehicle, segment: RouteSegment, state: NetworkState,
                            dt: float, result: MovementResult):
        intersection = state.intersections.get(segment.to_intersection_id)
        if intersection is None:
            return

        v.route.pop(0)
        v.current_road_id = None
        v.route_progress = 0.0
        v.position = intersection.position.model_copy()

        if not v.route:
            if intersection.id == v.destination_intersection_id:
                self._remove(v, state)
                result.arrived.append(v.id)
            else:
                # Route ran out short of the destination
                v.current_intersection_id = intersection.id
            return

        if is_admissible(v, intersection, state, v.route[0]):
            self._depart(v, intersection, result)
        else:
            v.current_intersection_id = intersection.id
            self.queue_manager.enqueue(v, intersection, state)
            v.wait_time += dt

    def _depart(self, v: Vehicle, intersection: Intersection, result: MovementResult):
        v.current_intersection_id = None
        v.current_road_id = v.route[0].road_id
        v.route_progress = 0.0
        result.crossings[intersection.id] += 1

    # C. Arrived or stalled

    def _handle_empty_route(self, v: Vehicle, state: NetworkState, result: MovementResult):
        origin = v.current_intersection_id
        if origin is None or origin == v.destination_intersection_id:
            self._remove(v, state)
            result.arrived.append(v.id)
            return

        self.queue_manager.purge(v.id)
        if state.tick % self.reroute_interval != 0:
            return

        route = self.planner.plan(origin, v.destination_intersection_id, state)
        if route:
            v.route = route
            v.route_distance = route_distance(route, state.roads)
            v.reroute_attempts = 0
            logger.debug("Vehicle %s re-routed from %s", v.id, origin)
            return

        v.reroute_attempts += 1
        if v.reroute_attempts >= self.max_reroute_attempts:
            logger.warning("Dropping vehicle %s: no route from %s to %s after %d attempts",
                           v.id, origin, v.destination_intersection_id, v.reroute_attempts)
            self._remove(v, state)
            result.dropped.append(v.id)

    def _remove(self, v: Vehicle, state: NetworkState):
        state.vehicles.pop(v.id, None)
        self.queue_manager.purge(v.id)

    def update_road_occupancy(self, state: NetworkState):
        occupancy = Counter(v.current_road_id for v in state.vehicles.values() if v.current_road_id)
        for road in state.roads.values():
            road.current_flow = min(occupancy.get(road.id, 0), road.capacity)
            road.refresh_travel_time()
