import logging
import math
import random
from typing import Callable, List, Optional
from signalgrid.application.commands import Command
from signalgrid.arbitration.network_coordinator import NetworkCoordinator
from signalgrid.controllers.base import Controller
from signalgrid.controllers.signal_controller import AdaptiveSignalController
from signalgrid.domain.exceptions import InvalidCommandError, UnknownIntersectionError
from signalgrid.domain.graph import RoadNetwork
from signalgrid.domain.models import (
    AIDecision, EventLevel, Intersection, Phase, Priority, Road, Vehicle, VehicleType
)
from signalgrid.domain.state import NetworkState
from signalgrid.kernel.command_queue import CommandQueue
from signalgrid.kernel.snapshot_builder import SnapshotBuilder
from signalgrid.kernel.timer import IntervalTimer
from signalgrid.systems.event_system import EventSystem
from signalgrid.systems.metrics_system import MetricsHistory, MetricsSystem
from signalgrid.systems.queue_manager import QueueManager
from signalgrid.systems.route_planner import RoutePlanner, route_distance
from signalgrid.systems.signal_system import SignalSystem
from signalgrid.systems.vehicle_system import VehicleSystem
from signalgrid.domain import config

logger = logging.getLogger(__name__)

StateListener = Callable[[NetworkState], None]

PRIORITY_WEIGHTS = (
    (Priority.NORMAL, 0.8),
    (Priority.PUBLIC_TRANSPORT, 0.15),
    (Priority.EMERGENCY, 0.05),
)

class SimulationOrchestrator:
    """Owns the network state and drives one tick of every system in order:
    commands, spawning, movement, decisions, coordination, phase transitions,
    metrics, events, publish."""

    def __init__(self, on_state_update: Optional[StateListener] = None, seed: Optional[int] = None,
                 timer_factory: Callable = IntervalTimer, strict: bool = False,
                 yellow_time: float = config.YELLOW_TIME,
                 spawn_interval: Optional[float] = config.SPAWN_INTERVAL_SECONDS):
        self.on_state_update = on_state_update
        self.rng = random.Random(seed)
        self.timer_factory = timer_factory
        self.strict = strict
        self.spawn_interval = spawn_interval

        self.state = NetworkState()
        self.system_health = True
        self.controllers: List[Optional[Controller]] = []
        self.command_queue = CommandQueue()
        self.snapshot_builder = SnapshotBuilder()

        self.network = RoadNetwork()
        self.queue_manager = QueueManager()
        self.planner = RoutePlanner(self.network)
        self.vehicle_system = VehicleSystem(self.queue_manager, self.planner, strict=strict)
        self.signal_system = SignalSystem(self.queue_manager, yellow_time, on_phase_change=self._on_phase_change)
        self.coordinator = NetworkCoordinator(self.network)
        self.metrics_system = MetricsSystem(self.queue_manager)
        self.event_system = EventSystem()
        self.history = MetricsHistory()

        self.timer = None
        self._vehicle_seq = 0
        self._last_spawn_time = 0.0

    @property
    def running(self) -> bool:
        return self.state.is_running

    # Lifecycle

    def start(self, initial_state: NetworkState, seed: Optional[int] = None):
        self.stop()
        if seed is not None:
            self.rng.seed(seed)
        self._validate_speed(initial_state.simulation_speed)

        self.state = initial_state
        self.history.clear()
        self.command_queue.clear()
        self._vehicle_seq = 0
        self._last_spawn_time = initial_state.timestamp
        self._rebuild_topology()

        # Fresh controllers: predictor learning does not survive a restart
        self.controllers = []
        self.queue_manager.clear()
        for intersection in self.state.intersections.values():
            self._install_slot(intersection)
        for vehicle in self.state.vehicles.values():
            if vehicle.current_intersection_id in self.state.intersections:
                self.queue_manager.enqueue(vehicle, self.state.intersections[vehicle.current_intersection_id], self.state)

        self.state.is_running = True
        self._schedule()
        logger.info("Simulation started: layout=%s, %d intersections, %d roads, speed=%.2fx",
                    self.state.layout, len(self.state.intersections), len(self.state.roads),
                    self.state.simulation_speed)
        self._emit(EventLevel.INFO, f"Simulation started ({self.state.layout})")

    def stop(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        self.controllers = []
        self.queue_manager.clear()
        if self.state.is_running:
            self.state.is_running = False
            logger.info("Simulation stopped at tick %d", self.state.tick)
            self._emit(EventLevel.INFO, "Simulation stopped")

    def set_speed(self, multiplier: float):
        self._validate_speed(multiplier)
        self.state.simulation_speed = multiplier
        logger.info("Simulation speed set to %.2fx", multiplier)
        if self.state.is_running:
            if self.timer is not None:
                self.timer.cancel()
            self._schedule()

    def _validate_speed(self, multiplier: float):
        if not isinstance(multiplier, (int, float)) or not math.isfinite(multiplier) or multiplier <= 0:
            raise InvalidCommandError(f"Speed multiplier must be a positive number, got {multiplier!r}")

    def _schedule(self):
        interval = config.BASE_TICK_INTERVAL / self.state.simulation_speed
        self.timer = self.timer_factory(interval, self.tick, on_error=self._on_tick_error)
        self.timer.start()

    def _on_tick_error(self, error: Exception):
        logger.error("Simulation halted at tick %d: %s", self.state.tick, error)
        self._emit(EventLevel.ERROR, f"Simulation halted: {type(error).__name__}: {error}")
        self.stop()

    # Commands

    def submit(self, command: Command):
        if command.immediate or not self.state.is_running:
            return command.execute(self)
        # Strictly queue the command for the next tick
        self.command_queue.add(command)
        return None

    # Tick

    def tick(self) -> NetworkState:
        for command in self.command_queue.drain():
            try:
                command.execute(self)
            except (InvalidCommandError, UnknownIntersectionError) as e:
                logger.warning("Rejected %s: %s", type(command).__name__, e)
                self._emit(EventLevel.WARN, f"Command {type(command).__name__} rejected: {e}")

        state = self.state
        dt = config.TICK_SECONDS
        state.tick += 1
        state.timestamp = round(state.tick * dt, 6)

        self._spawn_periodic()
        movement = self.vehicle_system.update(state, dt)
        for vehicle_id in movement.dropped:
            self._emit(EventLevel.WARN, f"Vehicle {vehicle_id} removed: no route to destination")
        for vehicle_id in movement.failed:
            self._emit(EventLevel.ERROR, f"Vehicle {vehicle_id} skipped: movement failed")

        self._run_controllers()
        self.coordinator.run_tick(state)
        self._review_decisions()
        self.signal_system.update(state, dt)

        metrics = self.metrics_system.update(state, movement.crossings)
        self.history.record(state.tick, state.timestamp, metrics)
        self.event_system.update(state)

        snapshot = self.snapshot()
        if self.on_state_update is not None:
            self.on_state_update(snapshot)
        return snapshot

    def _run_controllers(self):
        state = self.state
        for intersection in state.intersections.values():
            controller = self._controller_for(intersection)
            if not intersection.active or controller is None:
                intersection.ai_decision = AIDecision(intersection_id=intersection.id)
                continue
            intersection.ai_decision = controller.decide(intersection, state, state.tick, self.system_health)

    def _review_decisions(self):
        for intersection in self.state.intersections.values():
            controller = self._controller_for(intersection)
            if intersection.active and controller is not None:
                controller.review(intersection, self.state.tick, self.system_health)

    def _controller_for(self, intersection: Intersection) -> Optional[Controller]:
        if 0 <= intersection.index < len(self.controllers):
            return self.controllers[intersection.index]
        return None

    def _on_phase_change(self, intersection: Intersection, previous: Phase, target: Phase):
        controller = self._controller_for(intersection)
        if controller is not None:
            controller.phase_changed(self.state.tick)
        self._emit(EventLevel.INFO, f"{intersection.name} switched {previous.value} -> {target.value}")

    def _emit(self, level: EventLevel, message: str):
        self.event_system.emit(self.state, level, message)
        self.event_system.flush(self.state)

    # Spawning

    def _spawn_periodic(self):
        if not self.spawn_interval:
            return
        if self.state.timestamp - self._last_spawn_time < self.spawn_interval - 1e-9:
            return
        self._last_spawn_time = self.state.timestamp
        if len(self.state.intersections) < 2:
            return

        for _ in range(self.rng.randint(1, config.MAX_SPAWN_PER_INTERVAL)):
            if len(self.state.vehicles) >= config.MAX_VEHICLES:
                break
            self.spawn_vehicle()

    def spawn_vehicle(self, from_id: Optional[str] = None, to_id: Optional[str] = None,
                      priority: Optional[Priority] = None) -> Vehicle:
        state = self.state
        for intersection_id in (from_id, to_id):
            if intersection_id is not None and intersection_id not in state.intersections:
                raise UnknownIntersectionError(intersection_id)
        if len(state.intersections) < 2:
            raise InvalidCommandError("At least two intersections are needed to spawn a vehicle")
        if len(state.vehicles) >= config.MAX_VEHICLES:
            raise InvalidCommandError(f"Vehicle limit of {config.MAX_VEHICLES} reached")

        ids = sorted(state.intersections)
        if from_id is None:
            from_id = self.rng.choice([i for i in ids if i != to_id])
        if to_id is None:
            to_id = self.rng.choice([i for i in ids if i != from_id])
        if from_id == to_id:
            raise InvalidCommandError(f"Origin and destination are both {from_id}")

        if priority is None:
            priority = self.rng.choices([p for p, _ in PRIORITY_WEIGHTS], weights=[w for _, w in PRIORITY_WEIGHTS])[0]

        self._vehicle_seq += 1
        route = self.planner.plan(from_id, to_id, state)
        vehicle = Vehicle(
            id=f"v-{state.tick}-{self._vehicle_seq}",
            current_intersection_id=from_id,
            destination_intersection_id=to_id,
            route=route,
            route_distance=route_distance(route, state.roads),
            speed=round(self.rng.uniform(config.MIN_SPEED, config.MAX_SPEED), 1),
            position=state.intersections[from_id].position.model_copy(),
            priority=priority,
            vehicle_type=self.rng.choice(list(VehicleType)),
        )
        state.vehicles[vehicle.id] = vehicle
        if route:
            self.queue_manager.enqueue(vehicle, state.intersections[from_id], state)
        logger.debug("Spawned %s %s -> %s (%s, %d segments)",
                     vehicle.id, from_id, to_id, priority.value, len(route))
        return vehicle

    # Topology

    def add_intersection(self, intersection: Intersection) -> Intersection:
        intersection = self.state.add_intersection(intersection)
        self._rebuild_topology()
        if self.state.is_running:
            self._install_slot(intersection)
        logger.info("Added intersection %s (slot %d)", intersection.id, intersection.index)
        return intersection

    def remove_intersection(self, intersection_id: str) -> Intersection:
        before = set(self.state.vehicles)
        intersection = self.state.remove_intersection(intersection_id)
        self._forget_vehicles(before)
        if 0 <= intersection.index < len(self.controllers):
            self.controllers[intersection.index] = None
        self.queue_manager.drop_slot(intersection.index)
        self._rebuild_topology()
        logger.info("Removed intersection %s", intersection_id)
        return intersection

    def add_road(self, road: Road) -> Road:
        road = self.state.add_road(road)
        self._rebuild_topology()
        logger.info("Added road %s (%s -> %s)", road.id, road.from_intersection_id, road.to_intersection_id)
        return road

    def remove_road(self, road_id: str) -> Road:
        before = set(self.state.vehicles)
        road = self.state.remove_road(road_id)
        if road is None:
            raise InvalidCommandError(f"Unknown road {road_id}")
        self._forget_vehicles(before)
        self._rebuild_topology()
        logger.info("Removed road %s", road_id)
        return road

    def _forget_vehicles(self, before):
        for vehicle_id in before - set(self.state.vehicles):
            self.queue_manager.purge(vehicle_id)

    def _install_slot(self, intersection: Intersection):
        while len(self.controllers) <= intersection.index:
            self.controllers.append(None)
        self.controllers[intersection.index] = AdaptiveSignalController(rng=self.rng, start_tick=self.state.tick)
        self.queue_manager.ensure_slot(intersection.index)

    def _rebuild_topology(self):
        self.network = RoadNetwork.from_state(self.state.intersections.values(), self.state.roads.values())
        self.planner.network = self.network
        self.coordinator.network = self.network

    # Queries

    def snapshot(self) -> NetworkState:
        return self.snapshot_builder.build(self.state)

    def summary(self) -> dict:
        return self.snapshot_builder.build_summary(self.state)

    def get_intersection(self, intersection_id: str) -> Intersection:
        intersection = self.state.intersections.get(intersection_id)
        if intersection is None:
            raise UnknownIntersectionError(intersection_id)
        return intersection.model_copy(deep=True)
