import logging
from typing import Callable, List, Optional
from signalgrid.domain.models import (
    AIDecision, Action, AXIS_DIRECTIONS, Intersection, LightColor, Phase, SignalState
)
from signalgrid.domain.state import NetworkState
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.domain import config

logger = logging.getLogger(__name__)

PhaseListener = Callable[[Intersection, Phase, Phase], None]

class SignalSystem:
    """Applies approved decisions to each intersection's two-phase cycle:
    GREEN -> YELLOW (clearance) -> other phase GREEN."""

    def __init__(self, queue_manager: QueueManager, yellow_time: float = config.YELLOW_TIME,
                 on_phase_change: Optional[PhaseListener] = None):
        self.queue_manager = queue_manager
        self.yellow_time = yellow_time
        self.on_phase_change = on_phase_change

    def update(self, state: NetworkState, dt: float) -> List[str]:
        switched = []
        for intersection in state.intersections.values():
            if not intersection.active:
                continue
            if self._update_intersection(intersection, state, dt):
                switched.append(intersection.id)
        return switched

    def _update_intersection(self, intersection: Intersection, state: NetworkState, dt: float) -> bool:
        signal = intersection.signal_state
        signal.phase_time_remaining = max(0.0, signal.phase_time_remaining - dt)

        if signal.pending_phase is not None:
            signal.yellow_time_remaining = max(0.0, signal.yellow_time_remaining - dt)
            if signal.yellow_time_remaining <= 0:
                self._complete_switch(intersection, state)
                return True
            return False

        decision = intersection.ai_decision
        if not self.should_switch(signal, decision):
            return False

        target = Phase(decision.recommended_action.value)
        signal.pending_phase = target
        signal.pending_duration = decision.timing_plan.duration
        signal.pending_end_time = decision.timing_plan.end_time

        if self.yellow_time <= 0:
            self._complete_switch(intersection, state)
            return True

        if signal.current_phase == Phase.NS:
            signal.north_south = LightColor.YELLOW
        else:
            signal.east_west = LightColor.YELLOW
        signal.yellow_time_remaining = self.yellow_time
        return False

    def should_switch(self, signal: SignalState, decision: AIDecision) -> bool:
        if decision.recommended_action == Action.HOLD:
            return False
        if decision.recommended_action.value == signal.current_phase.value:
            return False
        return decision.guardian_checks.passed

    def _complete_switch(self, intersection: Intersection, state: NetworkState):
        signal = intersection.signal_state
        previous = signal.current_phase
        target = signal.pending_phase

        if target == Phase.NS:
            signal.north_south = LightColor.GREEN
            signal.east_west = LightColor.RED
        else:
            signal.north_south = LightColor.RED
            signal.east_west = LightColor.GREEN

        signal.current_phase = target
        signal.phase_time_remaining = signal.pending_duration
        signal.next_phase_time = signal.pending_end_time
        signal.pending_phase = None
        signal.pending_duration = 0.0
        signal.pending_end_time = 0.0
        signal.yellow_time_remaining = 0.0

        released = self.queue_manager.release(intersection, AXIS_DIRECTIONS[target], state)
        logger.debug("%s switched %s -> %s, released %d vehicles",
                     intersection.id, previous.value, target.value, len(released))

        if self.on_phase_change is not None:
            self.on_phase_change(intersection, previous, target)
