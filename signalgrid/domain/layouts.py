from typing import Iterable, Optional
from signalgrid.domain.models import (
    Intersection, Road, Position, SignalState, LightColor, Phase, Direction
)
from signalgrid.domain.state import NetworkState
from signalgrid.domain.exceptions import UnknownIntersectionError, UnknownLayoutError
from signalgrid.domain import config

LAYOUTS = ("grid-2x2", "custom")

def direction_between(start: Position, end: Position) -> Direction:
    """Compass direction of travel from start to end (y grows southward)."""
    dx = end.x - start.x
    dy = end.y - start.y
    if abs(dx) >= abs(dy):
        return Direction.EAST if dx >= 0 else Direction.WEST
    return Direction.SOUTH if dy > 0 else Direction.NORTH

def initial_signal(phase: Phase, remaining: float = config.GRID_INITIAL_PHASE_TIME) -> SignalState:
    if phase == Phase.NS:
        ns, ew = LightColor.GREEN, LightColor.RED
    else:
        ns, ew = LightColor.RED, LightColor.GREEN
    return SignalState(
        north_south=ns,
        east_west=ew,
        current_phase=phase,
        phase_time_remaining=remaining,
        next_phase_time=remaining,
    )

def connect(state: NetworkState, from_id: str, to_id: str, **attrs) -> Road:
    for endpoint in (from_id, to_id):
        if endpoint not in state.intersections:
            raise UnknownIntersectionError(endpoint)
    start = state.intersections[from_id].position
    end = state.intersections[to_id].position
    length = attrs.pop("length", None)
    if length is None:
        length = ((end.x - start.x) ** 2 + (end.y - start.y) ** 2) ** 0.5
    road = Road(
        id=attrs.pop("id", f"{from_id}->{to_id}"),
        from_intersection_id=from_id,
        to_intersection_id=to_id,
        length=length,
        direction=attrs.pop("direction", direction_between(start, end)),
        **attrs,
    )
    return state.add_road(road)

def build_grid_2x2() -> NetworkState:
    state = NetworkState(layout="grid-2x2")
    spacing = config.GRID_SPACING
    corners = [
        ("I-1", 0.0, 0.0, Phase.NS),
        ("I-2", spacing, 0.0, Phase.EW),
        ("I-3", 0.0, spacing, Phase.EW),
        ("I-4", spacing, spacing, Phase.NS),
    ]
    for intersection_id, x, y, phase in corners:
        state.add_intersection(Intersection(
            id=intersection_id,
            position=Position(x=x, y=y),
            signal_state=initial_signal(phase),
        ))

    links = [("I-1", "I-2"), ("I-3", "I-4"), ("I-1", "I-3"), ("I-2", "I-4")]
    for a, b in links:
        for u, v in ((a, b), (b, a)):
            connect(
                state, u, v,
                lanes=config.GRID_ROAD_LANES,
                speed_limit=config.GRID_SPEED_LIMIT,
                capacity=config.GRID_ROAD_CAPACITY,
            )
    return state

def build_custom(intersections: Optional[Iterable[Intersection]] = None,
                 roads: Optional[Iterable[Road]] = None) -> NetworkState:
    state = NetworkState(layout="custom")
    for intersection in intersections or []:
        state.add_intersection(intersection)
    for road in roads or []:
        state.add_road(road)
    return state

def build_layout(name: str, **kwargs) -> NetworkState:
    if name == "grid-2x2":
        return build_grid_2x2()
    if name == "custom":
        return build_custom(**kwargs)
    raise UnknownLayoutError(f"Unknown layout '{name}', expected one of {', '.join(LAYOUTS)}")
