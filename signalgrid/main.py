import os
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from signalgrid.application.commands import (
    SetSpeedCommand, SpawnVehicleCommand, StartSimulationCommand, StopSimulationCommand
)
from signalgrid.domain.exceptions import (
    InvalidCommandError, SimulationError, UnknownIntersectionError, UnknownLayoutError
)
from signalgrid.domain.models import (
    Intersection, NetworkMetrics, SimulationStatus, SpawnRequest, SpeedUpdate, StartRequest, SystemEvent
)
from signalgrid.domain.state import NetworkState
from signalgrid.kernel.orchestrator import SimulationOrchestrator
from signalgrid.logging_setup import setup_logging

def _seed_from_env() -> Optional[int]:
    raw = os.environ.get("SIGNALGRID_SEED")
    return int(raw) if raw else None

def _http_error(error: SimulationError) -> HTTPException:
    if isinstance(error, UnknownIntersectionError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (InvalidCommandError, UnknownLayoutError)):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))

def _status(orchestrator: SimulationOrchestrator) -> SimulationStatus:
    state = orchestrator.state
    return SimulationStatus(
        running=state.is_running,
        speed=state.simulation_speed,
        tick=state.tick,
        vehicles=len(state.vehicles),
    )

def create_app(orchestrator: Optional[SimulationOrchestrator] = None) -> FastAPI:
    if orchestrator is None:
        setup_logging()
        orchestrator = SimulationOrchestrator(seed=_seed_from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Shutdown
        app.state.orchestrator.stop()

    app = FastAPI(title="SignalGrid", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_orchestrator(request: Request) -> SimulationOrchestrator:
        return request.app.state.orchestrator

    @app.get("/")
    def read_root(request: Request):
        orch = get_orchestrator(request)
        return {"status": "SignalGrid running", "simulation": _status(orch).model_dump()}

    @app.get("/api/simulation/status", response_model=SimulationStatus)
    async def get_status(request: Request):
        return _status(get_orchestrator(request))

    @app.post("/api/simulation/start", response_model=SimulationStatus)
    async def start_simulation(request: Request, body: StartRequest):
        """Builds the requested layout and starts ticking"""
        orch = get_orchestrator(request)
        try:
            orch.submit(StartSimulationCommand(layout=body.layout, speed=body.speed, seed=body.seed))
        except SimulationError as e:
            raise _http_error(e)
        return _status(orch)

    @app.post("/api/simulation/stop", response_model=SimulationStatus)
    async def stop_simulation(request: Request):
        orch = get_orchestrator(request)
        orch.submit(StopSimulationCommand())
        return _status(orch)

    @app.post("/api/simulation/speed", response_model=SimulationStatus)
    async def set_speed(request: Request, body: SpeedUpdate):
        orch = get_orchestrator(request)
        try:
            orch.submit(SetSpeedCommand(body.speed))
        except SimulationError as e:
            raise _http_error(e)
        return _status(orch)

    @app.get("/api/network/state", response_model=NetworkState)
    async def get_network_state(request: Request):
        """Returns a snapshot of the whole network"""
        return get_orchestrator(request).snapshot()

    @app.get("/api/network/summary")
    async def get_network_summary(request: Request):
        """Lightweight view for polling clients"""
        return get_orchestrator(request).summary()

    @app.get("/api/network/metrics", response_model=NetworkMetrics)
    async def get_network_metrics(request: Request):
        return get_orchestrator(request).state.network_metrics

    @app.get("/api/metrics/history")
    async def get_metrics_history(request: Request, limit: Optional[int] = None):
        return get_orchestrator(request).history.latest(limit)

    @app.get("/api/events", response_model=List[SystemEvent])
    async def get_events(request: Request):
        return get_orchestrator(request).state.events

    @app.get("/api/intersections")
    async def get_intersections(request: Request):
        state = get_orchestrator(request).state
        return [
            {"id": i.id, "name": i.name, "phase": i.signal_state.current_phase.value, "active": i.active}
            for i in sorted(state.intersections.values(), key=lambda i: i.index)
        ]

    @app.get("/api/intersections/{intersection_id}", response_model=Intersection)
    async def get_intersection(request: Request, intersection_id: str):
        try:
            return get_orchestrator(request).get_intersection(intersection_id)
        except UnknownIntersectionError as e:
            raise _http_error(e)

    @app.post("/api/vehicles")
    async def spawn_vehicle(request: Request, body: SpawnRequest):
        """Spawns a vehicle now, or on the next tick while running"""
        orch = get_orchestrator(request)
        for intersection_id in (body.from_intersection_id, body.to_intersection_id):
            if intersection_id is not None and intersection_id not in orch.state.intersections:
                raise HTTPException(status_code=404, detail=f"Intersection {intersection_id} not found")

        command = SpawnVehicleCommand(body.from_intersection_id, body.to_intersection_id, body.priority)
        try:
            vehicle = orch.submit(command)
        except SimulationError as e:
            raise _http_error(e)
        if vehicle is None:
            return {"status": "queued"}
        return {"status": "spawned", "vehicle": vehicle.model_dump(mode="json")}

    return app

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.environ.get("SIGNALGRID_PORT", "8000")))
