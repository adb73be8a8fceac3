from typing import Tuple
from signalgrid.domain.models import GuardianChecks, Phase, SignalState
from signalgrid.domain import config

class Guardian:
    """Safety gate for phase changes, timed on the logical tick clock.

    `validate` only inspects. The green time is measured from the tick passed
    to `record_phase_change`, which the caller reports when a new green
    actually starts.
    """

    def __init__(self, min_green_time: float = config.MIN_GREEN_TIME,
                 max_green_time: float = config.MAX_GREEN_TIME,
                 tick_seconds: float = config.TICK_SECONDS,
                 start_tick: int = 0):
        self.min_green_time = min_green_time
        self.max_green_time = max_green_time
        self.tick_seconds = tick_seconds
        self.last_phase_change_tick = start_tick

    def time_in_phase(self, tick: int) -> float:
        return (tick - self.last_phase_change_tick) * self.tick_seconds

    def validate(self, recommendation: Phase, current_signal: SignalState, tick: int,
                 system_health: bool = True) -> Tuple[GuardianChecks, bool]:
        elapsed = self.time_in_phase(tick)
        checks = GuardianChecks(
            min_green_time=elapsed >= self.min_green_time,
            safe_transition=self.can_safely_transition(current_signal, recommendation),
            system_health=system_health,
        )

        # Starvation guard
        if elapsed >= self.max_green_time:
            checks.min_green_time = True

        return checks, checks.passed

    def record_phase_change(self, tick: int):
        self.last_phase_change_tick = tick

    def can_safely_transition(self, current: SignalState, target: Phase) -> bool:
        if current.current_phase == target:
            return True
        return not current.in_yellow
