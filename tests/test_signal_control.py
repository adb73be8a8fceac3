import random
import unittest
from signalgrid.controllers.guardian import Guardian
from signalgrid.controllers.predictor import Predictor, state_key
from signalgrid.controllers.signal_controller import (
    AdaptiveSignalController, build_platoons, build_timing_plan
)
from signalgrid.domain.graph import RoadNetwork
from signalgrid.domain.layouts import build_layout, initial_signal
from signalgrid.domain.models import (
    AIDecision, Action, Direction, LightColor, Phase, Platoon, TimingPlan, Vehicle
)
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.systems.route_planner import RoutePlanner
from signalgrid.systems.signal_system import SignalSystem

def queue_vehicles(state, queues, origin, destination, count):
    planner = RoutePlanner(RoadNetwork.from_state(state.intersections.values(), state.roads.values()))
    intersection = state.intersections[origin]
    for n in range(count):
        vehicle = Vehicle(
            id=f"{origin}-{destination}-{n}",
            current_intersection_id=origin,
            destination_intersection_id=destination,
            route=planner.plan(origin, destination, state),
            speed=50.0,
            position=intersection.position.model_copy(),
        )
        state.vehicles[vehicle.id] = vehicle
        if queues is not None:
            queues.enqueue(vehicle, intersection, state)

class TestPredictor(unittest.TestCase):
    def test_state_buckets(self):
        self.assertEqual(state_key(0.0, 0.0), "low_traffic")
        self.assertEqual(state_key(2.0, 2.0), "balanced_pressure")
        self.assertEqual(state_key(5.0, 0.0), "very_high_ns_pressure")
        self.assertEqual(state_key(0.0, 5.0), "very_high_ew_pressure")
        self.assertEqual(state_key(2.0, 5.0), "high_ew_pressure")

    def test_pressure_drives_recommendation(self):
        predictor = Predictor(rng=random.Random(0), exploration_rate=0.0)
        platoons = [Platoon(direction=Direction.NORTH, vehicle_count=10, eta=1.0, speed=50.0)]
        prediction = predictor.predict(platoons, initial_signal(Phase.EW))
        self.assertEqual(prediction.recommended, Phase.NS)
        self.assertAlmostEqual(prediction.ns, 580.6)
        self.assertAlmostEqual(prediction.ew, 85.4)
        # Table blends 10% toward the observed score
        self.assertAlmostEqual(predictor.q_table["very_high_ns_pressure"][Phase.NS], 400.6)

    def test_noise_is_bounded(self):
        predictor = Predictor(rng=random.Random(3))
        prediction = predictor.predict([], initial_signal(Phase.NS))
        self.assertTrue(118.0 <= prediction.ns <= 122.0)
        self.assertTrue(123.0 <= prediction.ew <= 127.0)

class TestGuardian(unittest.TestCase):
    def setUp(self):
        self.guardian = Guardian(min_green_time=5, max_green_time=45, tick_seconds=0.1)
        self.signal = initial_signal(Phase.NS)

    def test_min_green_blocks_early_switch(self):
        checks, approved = self.guardian.validate(Phase.EW, self.signal, tick=10)
        self.assertFalse(approved)
        self.assertFalse(checks.min_green_time)
        self.assertTrue(checks.safe_transition)

    def test_switch_allowed_after_min_green(self):
        checks, approved = self.guardian.validate(Phase.EW, self.signal, tick=60)
        self.assertTrue(approved)
        self.assertTrue(checks.min_green_time)

    def test_validate_does_not_restart_green(self):
        self.guardian.validate(Phase.EW, self.signal, tick=60)
        self.assertEqual(self.guardian.last_phase_change_tick, 0)
        self.assertTrue(self.guardian.validate(Phase.EW, self.signal, tick=61)[1])

    def test_recorded_change_restarts_min_green(self):
        self.guardian.record_phase_change(60)
        self.assertEqual(self.guardian.last_phase_change_tick, 60)
        self.assertFalse(self.guardian.validate(Phase.NS, initial_signal(Phase.EW), tick=100)[1])
        self.assertTrue(self.guardian.validate(Phase.NS, initial_signal(Phase.EW), tick=110)[1])

    def test_unhealthy_system_blocks(self):
        checks, approved = self.guardian.validate(Phase.EW, self.signal, tick=60, system_health=False)
        self.assertFalse(approved)
        self.assertFalse(checks.system_health)

    def test_yellow_is_not_a_safe_transition(self):
        self.signal.north_south = LightColor.YELLOW
        checks, approved = self.guardian.validate(Phase.EW, self.signal, tick=60)
        self.assertFalse(checks.safe_transition)
        self.assertFalse(approved)

    def test_max_green_overrides_min_green(self):
        guardian = Guardian(min_green_time=100, max_green_time=45, tick_seconds=0.1)
        self.assertFalse(guardian.validate(Phase.EW, self.signal, tick=440)[1])
        self.assertTrue(guardian.validate(Phase.EW, self.signal, tick=451)[1])

class TestAdaptiveController(unittest.TestCase):
    def test_starved_direction_gets_forced_switch(self):
        state = build_layout("grid-2x2")
        queue_vehicles(state, None, "I-1", "I-2", 5)
        intersection = state.intersections["I-1"]
        controller = AdaptiveSignalController(
            rng=random.Random(1),
            guardian=Guardian(min_green_time=100, max_green_time=45),
        )

        first_switch = None
        for tick in range(1, 461):
            decision = controller.decide(intersection, state, tick)
            if decision.recommended_action == Action.EW:
                first_switch = tick
                break
            self.assertEqual(decision.recommended_action, Action.HOLD)
            self.assertFalse(decision.guardian_checks.min_green_time)
        self.assertIn(first_switch, (450, 451))

    def test_review_holds_overridden_action_inside_min_green(self):
        state = build_layout("grid-2x2")
        intersection = state.intersections["I-1"]
        controller = AdaptiveSignalController(rng=random.Random(1))
        controller.phase_changed(100)

        # An approved "stay in NS" decision that something else turned into EW
        intersection.ai_decision = AIDecision(intersection_id="I-1", recommended_action=Action.NS)
        intersection.ai_decision.recommended_action = Action.EW
        decision = controller.review(intersection, tick=120)
        self.assertEqual(decision.recommended_action, Action.HOLD)
        self.assertFalse(decision.guardian_checks.min_green_time)
        self.assertFalse(SignalSystem(QueueManager()).should_switch(intersection.signal_state, decision))

        intersection.ai_decision.recommended_action = Action.EW
        decision = controller.review(intersection, tick=150)
        self.assertEqual(decision.recommended_action, Action.EW)
        self.assertTrue(decision.guardian_checks.passed)

    def test_review_leaves_hold_and_current_phase_alone(self):
        state = build_layout("grid-2x2")
        intersection = state.intersections["I-1"]
        controller = AdaptiveSignalController(rng=random.Random(1))
        for action in (Action.HOLD, Action.NS):
            intersection.ai_decision = AIDecision(intersection_id="I-1", recommended_action=action)
            self.assertEqual(controller.review(intersection, tick=1).recommended_action, action)

    def test_decision_contents(self):
        state = build_layout("grid-2x2")
        queue_vehicles(state, None, "I-1", "I-2", 5)
        intersection = state.intersections["I-1"]
        decision = AdaptiveSignalController(rng=random.Random(1)).decide(intersection, state, tick=100)

        self.assertEqual(decision.intersection_id, "I-1")
        self.assertEqual(decision.recommended_action, Action.EW)
        self.assertGreater(decision.predictor_q_values.east_west, decision.predictor_q_values.north_south)
        self.assertAlmostEqual(decision.pressure_analysis.east_west, 5.0)
        self.assertEqual(len(intersection.incoming_platoons), 1)
        self.assertEqual(intersection.incoming_platoons[0].direction, Direction.EAST)

    def test_platoons_exclude_vehicles_ending_here(self):
        state = build_layout("grid-2x2")
        queue_vehicles(state, None, "I-1", "I-2", 2)
        self.assertEqual(build_platoons(state.intersections["I-2"], state), [])

class TestTimingPlan(unittest.TestCase):
    def test_short_queue_uses_minimum(self):
        platoons = [Platoon(direction=Direction.NORTH, vehicle_count=10, eta=6.0, speed=50.0)]
        plan = build_timing_plan(platoons, Phase.NS)
        self.assertEqual(plan.duration, 10.0)
        self.assertEqual(plan.start_time, 3.0)
        self.assertEqual(plan.end_time, 13.0)

    def test_long_queue_is_capped(self):
        platoons = [Platoon(direction=Direction.EAST, vehicle_count=100, eta=1.0, speed=50.0)]
        plan = build_timing_plan(platoons, Phase.EW)
        self.assertEqual(plan.duration, 37.0)
        self.assertEqual(plan.start_time, 0.0)

    def test_other_axis_is_ignored(self):
        platoons = [Platoon(direction=Direction.EAST, vehicle_count=100, eta=9.0, speed=50.0)]
        plan = build_timing_plan(platoons, Phase.NS)
        self.assertEqual(plan.duration, 10.0)
        self.assertEqual(plan.start_time, 0.0)

class TestSignalSystem(unittest.TestCase):
    def setUp(self):
        self.state = build_layout("grid-2x2")
        self.queues = QueueManager()
        for intersection in self.state.intersections.values():
            self.queues.ensure_slot(intersection.index)
        self.changes = []
        self.system = SignalSystem(self.queues, yellow_time=3.0,
                                   on_phase_change=lambda i, a, b: self.changes.append((i.id, a, b)))
        self.i1 = self.state.intersections["I-1"]
        self.i1.ai_decision = AIDecision(
            intersection_id="I-1",
            recommended_action=Action.EW,
            timing_plan=TimingPlan(start_time=0.0, duration=20.0, end_time=20.0),
        )

    def test_switch_goes_through_yellow(self):
        queue_vehicles(self.state, self.queues, "I-1", "I-2", 2)

        self.assertEqual(self.system.update(self.state, 0.1), [])
        signal = self.i1.signal_state
        self.assertEqual(signal.north_south, LightColor.YELLOW)
        self.assertEqual(signal.east_west, LightColor.RED)
        self.assertEqual(signal.pending_phase, Phase.EW)

        calls = 1
        while calls < 40 and "I-1" not in self.system.update(self.state, 0.1):
            calls += 1
        calls += 1
        self.assertIn(calls, (31, 32))

        self.assertEqual(signal.current_phase, Phase.EW)
        self.assertEqual(signal.north_south, LightColor.RED)
        self.assertEqual(signal.east_west, LightColor.GREEN)
        self.assertEqual(signal.phase_time_remaining, 20.0)
        self.assertIsNone(signal.pending_phase)
        self.assertEqual(self.queues.queued_vehicle_ids(self.i1), [])
        self.assertEqual(self.changes, [("I-1", Phase.NS, Phase.EW)])

    def test_immediate_switch_without_yellow(self):
        system = SignalSystem(self.queues, yellow_time=0)
        self.assertEqual(system.update(self.state, 0.1), ["I-1"])
        self.assertEqual(self.i1.signal_state.east_west, LightColor.GREEN)

    def test_hold_keeps_phase(self):
        self.i1.ai_decision.recommended_action = Action.HOLD
        self.system.update(self.state, 0.1)
        self.assertEqual(self.i1.signal_state.north_south, LightColor.GREEN)
        self.assertAlmostEqual(self.i1.signal_state.phase_time_remaining, 29.9)

    def test_failed_checks_keep_phase(self):
        self.i1.ai_decision.guardian_checks.min_green_time = False
        self.system.update(self.state, 0.1)
        self.assertIsNone(self.i1.signal_state.pending_phase)

if __name__ == '__main__':
    unittest.main()
