from typing import Dict, Iterable, List, Optional
from signalgrid.domain.models import Direction, Intersection, Vehicle
from signalgrid.domain.state import NetworkState
from signalgrid.domain.exceptions import InvariantViolation

class IntersectionQueues:
    """FIFO lists of vehicle ids, one per approach direction."""

    def __init__(self):
        self.lanes: Dict[Direction, List[str]] = {d: [] for d in Direction}

    def __len__(self) -> int:
        return sum(len(q) for q in self.lanes.values())

    def holding(self, vehicle_id: str) -> Optional[Direction]:
        for direction, queue in self.lanes.items():
            if vehicle_id in queue:
                return direction
        return None

    def all_ids(self) -> List[str]:
        return [vid for d in Direction for vid in self.lanes[d]]

class QueueManager:
    def __init__(self):
        self._arena: List[Optional[IntersectionQueues]] = []

    def ensure_slot(self, index: int):
        while len(self._arena) <= index:
            self._arena.append(None)
        if self._arena[index] is None:
            self._arena[index] = IntersectionQueues()

    def drop_slot(self, index: int):
        if 0 <= index < len(self._arena):
            self._arena[index] = None

    def clear(self):
        self._arena = []

    def queues_for(self, intersection: Intersection) -> Optional[IntersectionQueues]:
        if 0 <= intersection.index < len(self._arena):
            return self._arena[intersection.index]
        return None

    def enqueue(self, vehicle: Vehicle, intersection: Intersection, state: NetworkState) -> bool:
        if vehicle.current_intersection_id != intersection.id:
            raise InvariantViolation(
                f"Vehicle {vehicle.id} enqueued at {intersection.id} while at {vehicle.current_intersection_id}"
            )
        if not vehicle.route:
            return False

        next_road = state.roads.get(vehicle.route[0].road_id)
        queues = self.queues_for(intersection)
        if next_road is None or queues is None:
            return False

        holding = queues.holding(vehicle.id)
        if holding == next_road.direction:
            return False
        if holding is not None:
            queues.lanes[holding].remove(vehicle.id)
        queues.lanes[next_road.direction].append(vehicle.id)
        return True

    def dequeue(self, vehicle: Vehicle, intersection: Intersection):
        queues = self.queues_for(intersection)
        if queues is None:
            return
        for queue in queues.lanes.values():
            if vehicle.id in queue:
                queue.remove(vehicle.id)

    def release(self, intersection: Intersection, allowed_directions: Iterable[Direction],
                state: NetworkState) -> List[str]:
        """Removes every vehicle still waiting at the intersection in the
        given directions, front of queue first. The movement engine lets
        them cross on the next tick."""
        queues = self.queues_for(intersection)
        if queues is None:
            return []

        released = []
        for direction in allowed_directions:
            for vehicle_id in list(queues.lanes[direction]):
                queues.lanes[direction].remove(vehicle_id)
                vehicle = state.vehicles.get(vehicle_id)
                if vehicle is not None and vehicle.current_intersection_id == intersection.id:
                    released.append(vehicle_id)
        return released

    def purge(self, vehicle_id: str):
        """Forgets a vehicle everywhere (used when it leaves the network)."""
        for queues in self._arena:
            if queues is None:
                continue
            for queue in queues.lanes.values():
                if vehicle_id in queue:
                    queue.remove(vehicle_id)

    def queue_lengths(self, intersection: Intersection) -> Dict[Direction, int]:
        queues = self.queues_for(intersection)
        if queues is None:
            return {d: 0 for d in Direction}
        return {d: len(q) for d, q in queues.lanes.items()}

    def queued_vehicle_ids(self, intersection: Intersection) -> List[str]:
        queues = self.queues_for(intersection)
        return queues.all_ids() if queues else []

