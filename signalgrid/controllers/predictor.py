import random
from typing import Dict, Iterable, NamedTuple, Optional
from signalgrid.domain.models import Platoon, Phase, SignalState
from signalgrid.domain import config

# Baseline (NS, EW) scores per traffic situation
BASELINE_Q_VALUES: Dict[str, Dict[Phase, float]] = {
    "low_traffic": {Phase.NS: 120.0, Phase.EW: 125.0},
    "balanced_pressure": {Phase.NS: 150.2, Phase.EW: 148.7},
    "high_ns_pressure": {Phase.NS: 280.5, Phase.EW: 120.3},
    "very_high_ns_pressure": {Phase.NS: 380.6, Phase.EW: 85.4},
    "high_ew_pressure": {Phase.NS: 85.1, Phase.EW: 340.9},
    "very_high_ew_pressure": {Phase.NS: 45.2, Phase.EW: 450.8},
}
DEFAULT_Q_VALUES = {Phase.NS: 100.0, Phase.EW: 100.0}

class Prediction(NamedTuple):
    ns: float
    ew: float
    recommended: Phase

def axis_pressure(platoons: Iterable[Platoon], phase: Phase) -> float:
    return sum(p.vehicle_count / max(p.eta, 1.0) for p in platoons if p.direction.axis == phase)

def state_key(ns_pressure: float, ew_pressure: float) -> str:
    total = ns_pressure + ew_pressure
    ratio = ew_pressure / (ns_pressure + 0.1)

    if total < 1.0: return "low_traffic"
    if ratio > 3.0: return "very_high_ew_pressure"
    if ratio > 2.0: return "high_ew_pressure"
    if ratio < 0.33: return "very_high_ns_pressure"
    if ratio < 0.5: return "high_ns_pressure"
    return "balanced_pressure"

class Predictor:
    """Scores the two phases from a bucketed pressure table.

    Each bucket's scores drift toward what was last observed in it
    (exponential blend), so the table is per-intersection state.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 learning_rate: float = config.LEARNING_RATE,
                 exploration_rate: float = config.EXPLORATION_RATE,
                 pressure_bonus: float = config.PRESSURE_BONUS):
        self.rng = rng or random.Random()
        self.learning_rate = learning_rate
        self.exploration_rate = exploration_rate
        self.pressure_bonus = pressure_bonus
        self.q_table: Dict[str, Dict[Phase, float]] = {
            key: dict(values) for key, values in BASELINE_Q_VALUES.items()
        }

    def _noise(self) -> float:
        return (self.rng.random() - 0.5) * self.exploration_rate * 20

    def predict(self, platoons: Iterable[Platoon], current_signal: SignalState) -> Prediction:
        platoons = list(platoons)
        ns_pressure = axis_pressure(platoons, Phase.NS)
        ew_pressure = axis_pressure(platoons, Phase.EW)

        key = state_key(ns_pressure, ew_pressure)
        q_values = self.q_table.get(key, DEFAULT_Q_VALUES)

        ns_score = q_values[Phase.NS] + ns_pressure * self.pressure_bonus + self._noise()
        ew_score = q_values[Phase.EW] + ew_pressure * self.pressure_bonus + self._noise()

        self._update_q_values(key, ns_score, ew_score)

        recommended = Phase.EW if ew_score > ns_score else Phase.NS
        return Prediction(round(ns_score, 1), round(ew_score, 1), recommended)

    def _update_q_values(self, key: str, ns_value: float, ew_value: float):
        current = dict(self.q_table.get(key, DEFAULT_Q_VALUES))
        current[Phase.NS] += self.learning_rate * (ns_value - current[Phase.NS])
        current[Phase.EW] += self.learning_rate * (ew_value - current[Phase.EW])
        self.q_table[key] = current
