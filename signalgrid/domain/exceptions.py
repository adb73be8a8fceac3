class SimulationError(Exception):
    """Base class for errors raised by the simulation engine."""


class UnknownIntersectionError(SimulationError, KeyError):
    def __init__(self, intersection_id: str):
        super().__init__(intersection_id)
        self.intersection_id = intersection_id

    def __str__(self) -> str:
        return f"Unknown intersection: {self.intersection_id}"


class UnknownLayoutError(SimulationError, ValueError):
    pass


class InvalidCommandError(SimulationError, ValueError):
    pass


class InvariantViolation(SimulationError):
    """An internal consistency rule was broken (programmer error)."""
