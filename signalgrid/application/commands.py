from abc import ABC, abstractmethod
from typing import Any, Optional
from signalgrid.domain.layouts import build_layout
from signalgrid.domain.models import Intersection, Priority, Road
from signalgrid.domain.state import NetworkState

class Command(ABC):
    # Lifecycle commands run as soon as they are submitted
    immediate = False

    @abstractmethod
    def execute(self, orchestrator: Any):
        pass

class StartSimulationCommand(Command):
    immediate = True

    def __init__(self, layout: str = "grid-2x2", speed: Optional[float] = None,
                 seed: Optional[int] = None, initial_state: Optional[NetworkState] = None):
        self.layout = layout
        self.speed = speed
        self.seed = seed
        self.initial_state = initial_state

    def execute(self, orchestrator: Any):
        state = self.initial_state if self.initial_state is not None else build_layout(self.layout)
        if self.speed is not None:
            state.simulation_speed = self.speed
        orchestrator.start(state, seed=self.seed)
        return orchestrator.snapshot()

class StopSimulationCommand(Command):
    immediate = True

    def execute(self, orchestrator: Any):
        orchestrator.stop()

class SetSpeedCommand(Command):
    immediate = True

    def __init__(self, speed: float):
        self.speed = speed

    def execute(self, orchestrator: Any):
        orchestrator.set_speed(self.speed)

class SpawnVehicleCommand(Command):
    def __init__(self, from_intersection_id: Optional[str] = None,
                 to_intersection_id: Optional[str] = None,
                 priority: Optional[Priority] = None):
        self.from_intersection_id = from_intersection_id
        self.to_intersection_id = to_intersection_id
        self.priority = priority

    def execute(self, orchestrator: Any):
        return orchestrator.spawn_vehicle(self.from_intersection_id, self.to_intersection_id, self.priority)

class SetSystemHealthCommand(Command):
    def __init__(self, healthy: bool):
        self.healthy = healthy

    def execute(self, orchestrator: Any):
        orchestrator.system_health = self.healthy

class AddIntersectionCommand(Command):
    def __init__(self, intersection: Intersection):
        self.intersection = intersection

    def execute(self, orchestrator: Any):
        return orchestrator.add_intersection(self.intersection)

class RemoveIntersectionCommand(Command):
    def __init__(self, intersection_id: str):
        self.intersection_id = intersection_id

    def execute(self, orchestrator: Any):
        return orchestrator.remove_intersection(self.intersection_id)

class AddRoadCommand(Command):
    def __init__(self, road: Road):
        self.road = road

    def execute(self, orchestrator: Any):
        return orchestrator.add_road(self.road)

class RemoveRoadCommand(Command):
    def __init__(self, road_id: str):
        self.road_id = road_id

    def execute(self, orchestrator: Any):
        return orchestrator.remove_road(self.road_id)
