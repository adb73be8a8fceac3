# Simulation Configuration

# Clock
BASE_TICK_INTERVAL = 0.1   # Wall-clock seconds between ticks at speed 1.0
TICK_SECONDS = 0.1         # Simulated seconds advanced per tick

# Grid Layout (grid-2x2)
GRID_SPACING = 400.0
GRID_ROAD_LANES = 2
GRID_SPEED_LIMIT = 50.0    # km/h
GRID_ROAD_CAPACITY = 20
GRID_INITIAL_PHASE_TIME = 30.0

# Routing
ROUTE_CONGESTION_PENALTY = 10.0
REROUTE_INTERVAL_TICKS = 10
MAX_REROUTE_ATTEMPTS = 5

# Signal Timings
MIN_GREEN_TIME = 5.0
MAX_GREEN_TIME = 45.0
YELLOW_TIME = 3.0

# Predictor
LEARNING_RATE = 0.1
EXPLORATION_RATE = 0.2
PRESSURE_BONUS = 20.0

# Timing Plan
SATURATION_FLOW_RATE = 2.5  # vehicles per second
MIN_PLAN_DURATION = 8.0
MAX_PLAN_DURATION = 35.0
PLAN_BUFFER_TIME = 2.0
PLAN_LEAD_TIME = 3.0

# Network Coordination
COORDINATION_SPEED = 50.0  # km/h
GREEN_WAVE_TOLERANCE = 0.2
GREEN_WAVE_EXTENSION = 5.0
CORRIDOR_PRESSURE_THRESHOLD = 2.0
CORRIDOR_MIN_DURATION = 30.0

# Vehicle Spawning
SPAWN_INTERVAL_SECONDS = 5.0
MAX_SPAWN_PER_INTERVAL = 3
MAX_VEHICLES = 200
MIN_SPEED = 40.0           # km/h
MAX_SPEED = 60.0           # km/h

# Metrics
THROUGHPUT_DECAY = 0.95
MAX_EXPECTED_QUEUE = 10
MAX_EXPECTED_WAIT = 60.0
METRICS_HISTORY_SIZE = 600

# Events
MAX_EVENTS = 50
LONG_WAIT_THRESHOLD = 30.0
HIGH_PRESSURE_THRESHOLD = 3.0
LOW_EFFICIENCY_THRESHOLD = 60.0
