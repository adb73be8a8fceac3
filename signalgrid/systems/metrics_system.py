from collections import deque
from typing import Deque, Dict, List, Optional
from signalgrid.domain.models import (
    CongestionLevel, Direction, Intersection, IntersectionMetrics, NetworkMetrics
)
from signalgrid.domain.state import NetworkState
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.domain import config

def classify_congestion(average_wait_time: float) -> CongestionLevel:
    if average_wait_time > 60: return CongestionLevel.CRITICAL
    if average_wait_time > 30: return CongestionLevel.HIGH
    if average_wait_time > 15: return CongestionLevel.MEDIUM
    return CongestionLevel.LOW

class MetricsSystem:
    def __init__(self, queue_manager: QueueManager,
                 throughput_decay: float = config.THROUGHPUT_DECAY,
                 max_expected_queue: int = config.MAX_EXPECTED_QUEUE,
                 max_expected_wait: float = config.MAX_EXPECTED_WAIT):
        self.queue_manager = queue_manager
        self.throughput_decay = throughput_decay
        self.max_expected_queue = max_expected_queue
        self.max_expected_wait = max_expected_wait

    def update(self, state: NetworkState, crossings: Optional[Dict[str, int]] = None) -> NetworkMetrics:
        crossings = crossings or {}
        for intersection in state.intersections.values():
            self.update_intersection(intersection, state, crossings.get(intersection.id, 0))
        state.network_metrics = self.network_metrics(state)
        return state.network_metrics

    def update_intersection(self, intersection: Intersection, state: NetworkState, crossed: int = 0):
        lengths = self.queue_manager.queue_lengths(intersection)
        metrics: IntersectionMetrics = intersection.metrics

        metrics.north_queue = lengths[Direction.NORTH]
        metrics.east_queue = lengths[Direction.EAST]
        metrics.south_queue = lengths[Direction.SOUTH]
        metrics.west_queue = lengths[Direction.WEST]
        metrics.total_queue_length = sum(lengths.values())

        waits = []
        for vehicle_id in self.queue_manager.queued_vehicle_ids(intersection):
            vehicle = state.vehicles.get(vehicle_id)
            if vehicle is not None and vehicle.current_intersection_id == intersection.id:
                waits.append(vehicle.wait_time)
        metrics.average_wait_time = sum(waits) / len(waits) if waits else 0.0

        # No counting window: old crossings fade out geometrically
        metrics.throughput = max(0.0, metrics.throughput * self.throughput_decay) + crossed

        queue_score = max(0.0, 100 - (metrics.total_queue_length / self.max_expected_queue) * 25)
        wait_score = max(0.0, 100 - (metrics.average_wait_time / self.max_expected_wait) * 50)
        metrics.efficiency = float(round((queue_score + wait_score) / 2))
        metrics.timestamp = state.timestamp

    def network_metrics(self, state: NetworkState) -> NetworkMetrics:
        vehicles = list(state.vehicles.values())
        intersections = list(state.intersections.values())

        total_vehicles = len(vehicles)
        average_wait = sum(v.wait_time for v in vehicles) / total_vehicles if total_vehicles else 0.0
        average_speed = sum(v.speed for v in vehicles) / total_vehicles if total_vehicles else 0.0
        total_queue = sum(i.metrics.total_queue_length for i in intersections)
        throughput = sum(i.metrics.throughput for i in intersections)

        efficiency = max(0.0, min(100.0, 100 - average_wait * 2 - total_queue * 0.5))

        return NetworkMetrics(
            total_vehicles=total_vehicles,
            average_wait_time=round(average_wait, 1),
            network_throughput=float(round(throughput)),
            total_queue_length=total_queue,
            average_speed=round(average_speed, 1),
            congestion_level=classify_congestion(average_wait),
            efficiency=round(efficiency, 1),
        )

class MetricsHistory:
    """Bounded in-memory window of network metric samples."""

    def __init__(self, maxlen: int = config.METRICS_HISTORY_SIZE):
        self.samples: Deque[dict] = deque(maxlen=maxlen)

    def record(self, tick: int, timestamp: float, metrics: NetworkMetrics):
        self.samples.append({"tick": tick, "timestamp": timestamp, **metrics.model_dump(mode="json")})

    def latest(self, limit: Optional[int] = None) -> List[dict]:
        items = list(self.samples)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self):
        self.samples.clear()

    def __len__(self) -> int:
        return len(self.samples)
