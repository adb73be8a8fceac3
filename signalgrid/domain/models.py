from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class LightColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

class Phase(str, Enum):
    NS = "NS"
    EW = "EW"

class Action(str, Enum):
    NS = "NS"
    EW = "EW"
    HOLD = "HOLD"

class Direction(str, Enum):
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"

    @property
    def axis(self) -> Phase:
        if self in (Direction.NORTH, Direction.SOUTH):
            return Phase.NS
        return Phase.EW

class Priority(str, Enum):
    NORMAL = "normal"
    EMERGENCY = "emergency"
    PUBLIC_TRANSPORT = "public_transport"

class VehicleType(str, Enum):
    CAR = "car"
    TRUCK = "truck"
    BUS = "bus"
    MOTORCYCLE = "motorcycle"

class CongestionLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class EventLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"

AXIS_DIRECTIONS = {
    Phase.NS: (Direction.NORTH, Direction.SOUTH),
    Phase.EW: (Direction.EAST, Direction.WEST),
}

class Position(BaseModel):
    x: float
    y: float

class Road(BaseModel):
    id: str
    from_intersection_id: str
    to_intersection_id: str
    lanes: int = 1
    length: float # meters
    speed_limit: float # km/h
    direction: Direction
    capacity: int = 20
    current_flow: int = 0
    travel_time: float = 0.0 # seconds

    def base_travel_time(self) -> float:
        return self.length / max(self.speed_limit / 3.6, 1e-6)

    def refresh_travel_time(self):
        congestion = self.current_flow / max(self.capacity, 1)
        self.travel_time = max(0.0, self.base_travel_time() * (1 + 2 * congestion))

class RouteSegment(BaseModel):
    road_id: str
    from_intersection_id: str
    to_intersection_id: str
    distance_remaining: float

class AxisValues(BaseModel):
    north_south: float = 0.0
    east_west: float = 0.0

class SignalState(BaseModel):
    north_south: LightColor = LightColor.GREEN
    east_west: LightColor = LightColor.RED
    current_phase: Phase = Phase.NS
    phase_time_remaining: float = 0.0
    next_phase_time: float = 0.0
    # Set only while a yellow clearance interval is running
    pending_phase: Optional[Phase] = None
    pending_duration: float = 0.0
    pending_end_time: float = 0.0
    yellow_time_remaining: float = 0.0

    @property
    def in_yellow(self) -> bool:
        return LightColor.YELLOW in (self.north_south, self.east_west)

    def color(self, phase: Phase) -> LightColor:
        return self.north_south if phase == Phase.NS else self.east_west

class Platoon(BaseModel):
    direction: Direction
    vehicle_count: int
    eta: float # seconds
    speed: float # km/h

class GuardianChecks(BaseModel):
    min_green_time: bool = True
    safe_transition: bool = True
    system_health: bool = True

    @property
    def passed(self) -> bool:
        return self.min_green_time and self.safe_transition and self.system_health

class TimingPlan(BaseModel):
    start_time: float = 0.0
    duration: float = 0.0
    end_time: float = 0.0

class AIDecision(BaseModel):
    intersection_id: Optional[str] = None
    predictor_q_values: AxisValues = Field(default_factory=AxisValues)
    recommended_action: Action = Action.HOLD
    guardian_checks: GuardianChecks = Field(default_factory=GuardianChecks)
    timing_plan: TimingPlan = Field(default_factory=TimingPlan)
    pressure_analysis: AxisValues = Field(default_factory=AxisValues)

class IntersectionMetrics(BaseModel):
    north_queue: int = 0
    east_queue: int = 0
    south_queue: int = 0
    west_queue: int = 0
    total_queue_length: int = 0
    average_wait_time: float = 0.0
    throughput: float = 0.0
    efficiency: float = 100.0
    timestamp: float = 0.0

class Intersection(BaseModel):
    id: str  # e.g., "I-1"
    index: int = -1  # Arena slot, assigned when added to a NetworkState
    name: str = ""
    position: Position
    signal_state: SignalState = Field(default_factory=SignalState)
    metrics: IntersectionMetrics = Field(default_factory=IntersectionMetrics)
    incoming_platoons: List[Platoon] = []
    ai_decision: AIDecision = Field(default_factory=AIDecision)
    active: bool = True

class Vehicle(BaseModel):
    id: str
    current_road_id: Optional[str] = None
    current_intersection_id: Optional[str] = None
    destination_intersection_id: str
    route: List[RouteSegment] = []
    route_progress: float = 0.0
    route_distance: float = 0.0 # meters
    speed: float # km/h
    position: Position
    wait_time: float = 0.0
    priority: Priority = Priority.NORMAL
    vehicle_type: VehicleType = VehicleType.CAR
    reroute_attempts: int = 0

class NetworkMetrics(BaseModel):
    total_vehicles: int = 0
    average_wait_time: float = 0.0
    network_throughput: float = 0.0
    total_queue_length: int = 0
    average_speed: float = 0.0
    congestion_level: CongestionLevel = CongestionLevel.LOW
    efficiency: float = 100.0

class SystemEvent(BaseModel):
    id: str
    timestamp: float
    level: EventLevel
    message: str

# API/Request Models

class StartRequest(BaseModel):
    layout: str = "grid-2x2"
    speed: float = 1.0
    seed: Optional[int] = None

class SpeedUpdate(BaseModel):
    speed: float

class SpawnRequest(BaseModel):
    from_intersection_id: Optional[str] = None
    to_intersection_id: Optional[str] = None
    priority: Optional[Priority] = None

class SimulationStatus(BaseModel):
    running: bool
    speed: float
    tick: int
    vehicles: int
