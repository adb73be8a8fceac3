import random
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple
from signalgrid.controllers.base import Controller
from signalgrid.controllers.guardian import Guardian
from signalgrid.controllers.predictor import Predictor, axis_pressure
from signalgrid.domain.models import (
    AIDecision, Action, AxisValues, Direction, Intersection, Phase, Platoon, TimingPlan, Vehicle
)
from signalgrid.domain.state import NetworkState
from signalgrid.domain import config

def approaching_vehicles(intersection: Intersection, state: NetworkState) -> List[Tuple[Vehicle, Direction, float]]:
    """Vehicles that still need this intersection's signal, with the
    direction they will leave in and their ETA in seconds.

    Queued vehicles have ETA 0. Vehicles ending their trip here are
    excluded since they never cross.
    """
    found = []
    for v in state.vehicles.values():
        if not v.route:
            continue
        if v.current_intersection_id == intersection.id:
            next_road = state.roads.get(v.route[0].road_id)
            if next_road is not None:
                found.append((v, next_road.direction, 0.0))
        elif v.current_road_id is not None and v.route[0].to_intersection_id == intersection.id:
            if len(v.route) < 2:
                continue
            next_road = state.roads.get(v.route[1].road_id)
            if next_road is None:
                continue
            eta = v.route[0].distance_remaining / max(v.speed / 3.6, 1e-6)
            found.append((v, next_road.direction, max(0.0, eta)))
    return found

def build_platoons(intersection: Intersection, state: NetworkState) -> List[Platoon]:
    groups: Dict[Direction, List[Tuple[Vehicle, float]]] = defaultdict(list)
    for vehicle, direction, eta in approaching_vehicles(intersection, state):
        groups[direction].append((vehicle, eta))

    platoons = []
    for direction in Direction:
        members = groups.get(direction)
        if not members:
            continue
        count = len(members)
        platoons.append(Platoon(
            direction=direction,
            vehicle_count=count,
            eta=max(1.0, sum(eta for _, eta in members) / count),
            speed=sum(v.speed for v, _ in members) / count,
        ))
    return platoons

def build_timing_plan(platoons: Iterable[Platoon], phase: Phase) -> TimingPlan:
    relevant = [p for p in platoons if p.direction.axis == phase]
    load = sum(p.vehicle_count for p in relevant)

    base_duration = max(config.MIN_PLAN_DURATION, min(config.MAX_PLAN_DURATION, load / config.SATURATION_FLOW_RATE))
    duration = float(round(base_duration + config.PLAN_BUFFER_TIME))

    start_time = 0.0
    if relevant:
        # Turn green just before the first platoon arrives
        earliest_eta = min(p.eta for p in relevant)
        start_time = max(0.0, earliest_eta - config.PLAN_LEAD_TIME)

    return TimingPlan(start_time=start_time, duration=duration, end_time=start_time + duration)

class AdaptiveSignalController(Controller):
    """Predictor proposes, Guardian disposes, then a timing plan is sized
    for the proposed phase."""

    def __init__(self, rng: Optional[random.Random] = None, guardian: Optional[Guardian] = None,
                 predictor: Optional[Predictor] = None, start_tick: int = 0):
        self.predictor = predictor or Predictor(rng=rng)
        self.guardian = guardian or Guardian(start_tick=start_tick)

    def decide(self, intersection: Intersection, state: NetworkState, tick: int,
               system_health: bool = True) -> AIDecision:
        platoons = build_platoons(intersection, state)
        intersection.incoming_platoons = platoons

        signal = intersection.signal_state
        prediction = self.predictor.predict(platoons, signal)
        checks, approved = self.guardian.validate(prediction.recommended, signal, tick, system_health)

        return AIDecision(
            intersection_id=intersection.id,
            predictor_q_values=AxisValues(north_south=prediction.ns, east_west=prediction.ew),
            recommended_action=Action(prediction.recommended.value) if approved else Action.HOLD,
            guardian_checks=checks,
            timing_plan=build_timing_plan(platoons, prediction.recommended),
            pressure_analysis=AxisValues(
                north_south=round(axis_pressure(platoons, Phase.NS), 2),
                east_west=round(axis_pressure(platoons, Phase.EW), 2),
            ),
        )

    def review(self, intersection: Intersection, tick: int, system_health: bool = True) -> AIDecision:
        # The coordinator may have replaced the action; every change of phase
        # must still clear the Guardian.
        decision = intersection.ai_decision
        signal = intersection.signal_state
        action = decision.recommended_action
        if action == Action.HOLD or action.value == signal.current_phase.value:
            return decision

        checks, approved = self.guardian.validate(Phase(action.value), signal, tick, system_health)
        decision.guardian_checks = checks
        if not approved:
            decision.recommended_action = Action.HOLD
        return decision

    def phase_changed(self, tick: int):
        self.guardian.record_phase_change(tick)
