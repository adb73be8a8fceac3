from abc import ABC, abstractmethod
from signalgrid.domain.models import AIDecision, Intersection
from signalgrid.domain.state import NetworkState

class Controller(ABC):
    @abstractmethod
    def decide(self, intersection: Intersection, state: NetworkState, tick: int,
               system_health: bool = True) -> AIDecision:
        pass

    @abstractmethod
    def review(self, intersection: Intersection, tick: int, system_health: bool = True) -> AIDecision:
        """Re-checks the intersection's decision after network-level adjustments."""
        pass

    @abstractmethod
    def phase_changed(self, tick: int):
        pass
