import unittest
from signalgrid.domain.graph import RoadNetwork
from signalgrid.domain.layouts import build_layout
from signalgrid.domain.models import CongestionLevel, EventLevel, NetworkMetrics, Vehicle
from signalgrid.systems.event_system import EventSystem
from signalgrid.systems.metrics_system import MetricsHistory, MetricsSystem, classify_congestion
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.systems.route_planner import RoutePlanner

LEVEL_ORDER = [CongestionLevel.LOW, CongestionLevel.MEDIUM, CongestionLevel.HIGH, CongestionLevel.CRITICAL]

class TestMetrics(unittest.TestCase):
    def setUp(self):
        self.state = build_layout("grid-2x2")
        self.queues = QueueManager()
        for intersection in self.state.intersections.values():
            self.queues.ensure_slot(intersection.index)
        self.planner = RoutePlanner(RoadNetwork.from_state(self.state.intersections.values(), self.state.roads.values()))
        self.metrics = MetricsSystem(self.queues)
        self.i1 = self.state.intersections["I-1"]

    def queue(self, vehicle_id, destination, wait_time=0.0):
        vehicle = Vehicle(
            id=vehicle_id,
            current_intersection_id="I-1",
            destination_intersection_id=destination,
            route=self.planner.plan("I-1", destination, self.state),
            speed=50.0,
            position=self.i1.position.model_copy(),
            wait_time=wait_time,
        )
        self.state.vehicles[vehicle_id] = vehicle
        self.queues.enqueue(vehicle, self.i1, self.state)

    def test_total_queue_is_sum_of_directions(self):
        self.queue("v1", "I-2")
        self.queue("v2", "I-2")
        self.queue("v3", "I-3")
        self.metrics.update(self.state)

        m = self.i1.metrics
        self.assertEqual(m.east_queue, 2)
        self.assertEqual(m.south_queue, 1)
        self.assertEqual(m.total_queue_length, m.north_queue + m.east_queue + m.south_queue + m.west_queue)
        self.assertEqual(m.total_queue_length, 3)
        self.assertEqual(m.efficiency, 96.0)
        self.assertEqual(self.state.network_metrics.total_queue_length, 3)

    def test_average_wait_and_efficiency(self):
        self.queue("v1", "I-2", wait_time=30.0)
        self.metrics.update(self.state)
        # queue score 97.5, wait score 75
        self.assertEqual(self.i1.metrics.average_wait_time, 30.0)
        self.assertEqual(self.i1.metrics.efficiency, 86.0)
        self.assertEqual(self.state.network_metrics.efficiency, 39.5)

    def test_throughput_decays(self):
        self.metrics.update(self.state, {"I-1": 4})
        self.assertAlmostEqual(self.i1.metrics.throughput, 4.0)
        self.metrics.update(self.state)
        self.assertAlmostEqual(self.i1.metrics.throughput, 3.8)
        self.assertEqual(self.state.network_metrics.network_throughput, 4.0)

    def test_congestion_levels_are_monotone(self):
        waits = [0, 10, 15, 15.1, 29, 30, 30.1, 45, 60, 60.1, 300]
        ranks = [LEVEL_ORDER.index(classify_congestion(w)) for w in waits]
        self.assertEqual(ranks, sorted(ranks))
        self.assertEqual(classify_congestion(0), CongestionLevel.LOW)
        self.assertEqual(classify_congestion(61), CongestionLevel.CRITICAL)

    def test_empty_network(self):
        result = self.metrics.update(self.state)
        self.assertEqual(result.total_vehicles, 0)
        self.assertEqual(result.efficiency, 100.0)
        self.assertEqual(result.congestion_level, CongestionLevel.LOW)

class TestMetricsHistory(unittest.TestCase):
    def test_window_is_bounded(self):
        history = MetricsHistory(maxlen=3)
        for tick in range(1, 6):
            history.record(tick, tick * 0.1, NetworkMetrics(total_vehicles=tick))
        self.assertEqual(len(history), 3)
        self.assertEqual([s["tick"] for s in history.latest()], [3, 4, 5])
        self.assertEqual([s["total_vehicles"] for s in history.latest(2)], [4, 5])
        self.assertEqual(history.latest(0), [])

class TestEventSystem(unittest.TestCase):
    def setUp(self):
        self.state = build_layout("grid-2x2")

    def test_log_is_capped_newest_first(self):
        events = EventSystem(max_events=5)
        for n in range(8):
            events.emit(self.state, EventLevel.INFO, f"event {n}")
        events.flush(self.state)
        self.assertEqual(len(self.state.events), 5)
        self.assertEqual(self.state.events[0].id, "evt-8")
        self.assertEqual(self.state.events[-1].id, "evt-4")

    def test_long_wait_is_reported(self):
        self.state.vehicles["v1"] = Vehicle(
            id="v1", current_intersection_id="I-1", destination_intersection_id="I-2",
            speed=50.0, position=self.state.intersections["I-1"].position, wait_time=31.0,
        )
        EventSystem().update(self.state)
        self.assertEqual(len(self.state.events), 1)
        self.assertEqual(self.state.events[0].level, EventLevel.WARN)
        self.assertIn("v1", self.state.events[0].message)

    def test_low_efficiency_is_an_error(self):
        self.state.network_metrics.efficiency = 40.0
        EventSystem().update(self.state)
        self.assertEqual([e.level for e in self.state.events], [EventLevel.ERROR])

if __name__ == '__main__':
    unittest.main()
