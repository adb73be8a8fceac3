from typing import Any, Dict
from signalgrid.domain.state import NetworkState

class SnapshotBuilder:
    def build(self, state: NetworkState) -> NetworkState:
        # Deep copy: receivers can never reach the live state
        return state.model_copy(deep=True)

    def build_summary(self, state: NetworkState) -> Dict[str, Any]:
        return {
            "tick": state.tick,
            "time": state.timestamp,
            "running": state.is_running,
            "speed": state.simulation_speed,
            "vehicles": [
                {
                    "id": v.id,
                    "pos": (v.position.x, v.position.y),
                    "road": v.current_road_id,
                    "intersection": v.current_intersection_id,
                }
                for v in state.vehicles.values()
            ],
            "intersections": [
                {
                    "id": i.id,
                    "phase": i.signal_state.current_phase.value,
                    "ns": i.signal_state.north_south.value,
                    "ew": i.signal_state.east_west.value,
                    "remaining": i.signal_state.phase_time_remaining,
                }
                for i in state.intersections.values()
            ],
            "metrics": state.network_metrics.model_dump(mode="json"),
        }
