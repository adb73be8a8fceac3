from typing import List
from signalgrid.domain.models import EventLevel, SystemEvent
from signalgrid.domain.state import NetworkState
from signalgrid.domain import config

class EventSystem:
    """Bounded, newest-first log of notable simulation events."""

    def __init__(self, max_events: int = config.MAX_EVENTS):
        self.max_events = max_events
        self._seq = 0
        self._pending: List[SystemEvent] = []

    def emit(self, state: NetworkState, level: EventLevel, message: str) -> SystemEvent:
        self._seq += 1
        event = SystemEvent(id=f"evt-{self._seq}", timestamp=state.timestamp, level=level, message=message)
        self._pending.append(event)
        return event

    def update(self, state: NetworkState):
        for vehicle in state.vehicles.values():
            if vehicle.wait_time > config.LONG_WAIT_THRESHOLD:
                where = vehicle.current_intersection_id or vehicle.current_road_id
                self.emit(state, EventLevel.WARN,
                          f"Vehicle {vehicle.id} waiting {round(vehicle.wait_time)}s at {where}")

        for intersection in state.intersections.values():
            decision = intersection.ai_decision
            pressure = decision.pressure_analysis
            if pressure.north_south > config.HIGH_PRESSURE_THRESHOLD or pressure.east_west > config.HIGH_PRESSURE_THRESHOLD:
                self.emit(state, EventLevel.WARN,
                          f"High pressure at {intersection.name}: "
                          f"NS={pressure.north_south:.1f}, EW={pressure.east_west:.1f}")
            if not decision.guardian_checks.passed:
                self.emit(state, EventLevel.DEBUG, f"Guardian safety check FAILED at {intersection.id}")

        if state.network_metrics.efficiency < config.LOW_EFFICIENCY_THRESHOLD:
            self.emit(state, EventLevel.ERROR, f"Network efficiency critical: {state.network_metrics.efficiency}%")

        self.flush(state)

    def flush(self, state: NetworkState):
        if not self._pending:
            return
        state.events = (list(reversed(self._pending)) + state.events)[:self.max_events]
        self._pending = []
