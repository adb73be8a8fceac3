import json
import logging
import time
from typing import Optional
from signalgrid.domain.layouts import build_layout
from signalgrid.kernel.orchestrator import SimulationOrchestrator
from signalgrid.kernel.timer import ManualTimer
from signalgrid.logging_setup import setup_logging

logger = logging.getLogger(__name__)

def run_headless_experiment(duration_ticks: int, output_path: str, seed: Optional[int] = 42,
                            layout: str = "grid-2x2"):
    orchestrator = SimulationOrchestrator(seed=seed, timer_factory=ManualTimer)
    orchestrator.start(build_layout(layout))

    results = []
    start_time = time.time()
    for _ in range(duration_ticks):
        state = orchestrator.tick()
        results.append({
            "tick": state.tick,
            "time": state.timestamp,
            **state.network_metrics.model_dump(mode="json"),
        })
    orchestrator.stop()

    elapsed = time.time() - start_time
    logger.info("Experiment finished: %d ticks in %.4fs", duration_ticks, elapsed)

    with open(output_path, 'w') as f:
        json.dump(results, f, indent=2)
    return results

if __name__ == "__main__":
    import sys
    setup_logging(log_file=None)
    if len(sys.argv) > 2:
        seed = int(sys.argv[3]) if len(sys.argv) > 3 else 42
        run_headless_experiment(int(sys.argv[1]), sys.argv[2], seed)
    else:
        print("Usage: python -m signalgrid.experiments.run_experiment <ticks> <output> [seed]")
