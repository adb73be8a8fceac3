import unittest
from fastapi.testclient import TestClient
from signalgrid.kernel.orchestrator import SimulationOrchestrator
from signalgrid.kernel.timer import ManualTimer
from signalgrid.main import create_app

class TestControlSurface(unittest.TestCase):
    def setUp(self):
        self.orchestrator = SimulationOrchestrator(seed=1, timer_factory=ManualTimer, spawn_interval=None)
        self.client = TestClient(create_app(self.orchestrator))

    def start(self, **body):
        payload = {"layout": "grid-2x2", "speed": 1.0}
        payload.update(body)
        return self.client.post("/api/simulation/start", json=payload)

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["simulation"]["running"])

    def test_start_and_stop(self):
        response = self.start(seed=9)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["running"])

        state = self.client.get("/api/network/state").json()
        self.assertEqual(len(state["intersections"]), 4)
        self.assertEqual(len(state["roads"]), 8)

        response = self.client.post("/api/simulation/stop")
        self.assertFalse(response.json()["running"])

    def test_unknown_layout_is_rejected(self):
        response = self.start(layout="hexagon")
        self.assertEqual(response.status_code, 400)

    def test_invalid_speed_is_rejected(self):
        self.start()
        response = self.client.post("/api/simulation/speed", json={"speed": 0})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/simulation/speed", json={"speed": 2.5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["speed"], 2.5)

    def test_intersection_lookup(self):
        self.start()
        response = self.client.get("/api/intersections/I-1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["signal_state"]["current_phase"], "NS")
        self.assertEqual(self.client.get("/api/intersections/I-99").status_code, 404)
        self.assertEqual(len(self.client.get("/api/intersections").json()), 4)

    def test_spawn_is_queued_while_running(self):
        self.start()
        response = self.client.post("/api/vehicles", json={
            "from_intersection_id": "I-1", "to_intersection_id": "I-4",
        })
        self.assertEqual(response.json(), {"status": "queued"})
        self.orchestrator.tick()
        self.assertEqual(self.client.get("/api/simulation/status").json()["vehicles"], 1)

    def test_spawn_validation(self):
        self.start()
        response = self.client.post("/api/vehicles", json={"from_intersection_id": "I-9"})
        self.assertEqual(response.status_code, 404)

        self.client.post("/api/simulation/stop")
        response = self.client.post("/api/vehicles", json={
            "from_intersection_id": "I-2", "to_intersection_id": "I-2",
        })
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/vehicles", json={
            "from_intersection_id": "I-2", "to_intersection_id": "I-3", "priority": "emergency",
        })
        body = response.json()
        self.assertEqual(body["status"], "spawned")
        self.assertEqual(body["vehicle"]["priority"], "emergency")

    def test_metrics_history_and_events(self):
        self.start()
        for _ in range(3):
            self.orchestrator.tick()
        history = self.client.get("/api/metrics/history").json()
        self.assertEqual([s["tick"] for s in history], [1, 2, 3])
        self.assertEqual(len(self.client.get("/api/metrics/history", params={"limit": 1}).json()), 1)

        metrics = self.client.get("/api/network/metrics").json()
        self.assertEqual(metrics["total_vehicles"], 0)

        events = self.client.get("/api/events").json()
        self.assertEqual(events[-1]["message"], "Simulation started (grid-2x2)")

        summary = self.client.get("/api/network/summary").json()
        self.assertEqual(summary["tick"], 3)

if __name__ == '__main__':
    unittest.main()
