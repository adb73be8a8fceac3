import logging
from typing import List
from signalgrid.controllers.signal_controller import approaching_vehicles
from signalgrid.domain.graph import RoadNetwork
from signalgrid.domain.models import Action, AxisValues, Intersection, Phase
from signalgrid.domain.state import NetworkState
from signalgrid.domain import config

logger = logging.getLogger(__name__)

def corridor_pressure(intersection: Intersection, state: NetworkState) -> AxisValues:
    """Per-axis congestion score: 0.5 per waiting/approaching vehicle plus
    0.1 per second those vehicles have already waited."""
    totals = {Phase.NS: 0.0, Phase.EW: 0.0}
    for vehicle, direction, _ in approaching_vehicles(intersection, state):
        totals[direction.axis] += 0.5 + vehicle.wait_time * 0.1
    return AxisValues(north_south=round(totals[Phase.NS], 2), east_west=round(totals[Phase.EW], 2))

class NetworkCoordinator:
    def __init__(self, network: RoadNetwork,
                 coordination_speed: float = config.COORDINATION_SPEED,
                 tolerance: float = config.GREEN_WAVE_TOLERANCE,
                 extension: float = config.GREEN_WAVE_EXTENSION,
                 pressure_threshold: float = config.CORRIDOR_PRESSURE_THRESHOLD,
                 corridor_min_duration: float = config.CORRIDOR_MIN_DURATION):
        self.network = network
        self.coordination_speed = coordination_speed
        self.tolerance = tolerance
        self.extension = extension
        self.pressure_threshold = pressure_threshold
        self.corridor_min_duration = corridor_min_duration

    def run_tick(self, state: NetworkState) -> List[str]:
        """Adjusts the decisions already attached to each intersection and
        returns the ids whose recommendation was overridden."""
        self.apply_green_wave(state)
        return self.apply_corridor_pressure(state)

    def apply_green_wave(self, state: NetworkState):
        speed_ms = self.coordination_speed / 3.6
        for intersection in state.intersections.values():
            if not intersection.active:
                continue
            decision = intersection.ai_decision
            if decision.recommended_action == Action.HOLD:
                continue

            for connected_id in self.network.downstream(intersection.id):
                connected = state.intersections.get(connected_id)
                if connected is None or not connected.active:
                    continue
                if connected.ai_decision.recommended_action != decision.recommended_action:
                    continue

                travel_time = self.network.distance(intersection.id, connected_id) / speed_ms
                time_diff = abs(intersection.signal_state.phase_time_remaining
                                - connected.signal_state.phase_time_remaining)
                if travel_time * (1 - self.tolerance) < time_diff < travel_time * (1 + self.tolerance):
                    decision.timing_plan.duration += self.extension
                    decision.timing_plan.end_time = decision.timing_plan.start_time + decision.timing_plan.duration

    def apply_corridor_pressure(self, state: NetworkState) -> List[str]:
        overridden = []
        for intersection in state.intersections.values():
            if not intersection.active:
                continue
            decision = intersection.ai_decision
            pressure = corridor_pressure(intersection, state)

            forced = None
            if pressure.north_south > self.pressure_threshold and decision.recommended_action != Action.NS:
                forced = Action.NS
            elif pressure.east_west > self.pressure_threshold and decision.recommended_action != Action.EW:
                forced = Action.EW

            if forced is not None:
                logger.debug("Corridor pressure at %s forces %s (NS=%.2f, EW=%.2f)",
                             intersection.id, forced.value, pressure.north_south, pressure.east_west)
                decision.recommended_action = forced
                plan = decision.timing_plan
                plan.duration = max(self.corridor_min_duration, plan.duration)
                plan.end_time = plan.start_time + plan.duration
                overridden.append(intersection.id)

            decision.pressure_analysis = pressure
        return overridden
