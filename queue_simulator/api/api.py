from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Optional

from queue_simulator.config import SimulationConfig, SimulationDefaults
from queue_simulator.simulation import SimulationController, SimulationDriver

app = FastAPI(
    title="G/G/c Queue Simulator API",
    description="API de pilotage pas à pas du simulateur de file d'attente G/G/c",
    version="1.0.0"
)

# ------------------------------------------------------------
# CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # à restreindre à l'URL du frontend
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Une seule simulation à la fois
simulation = SimulationController()


# ------------------------------------------------------------
# Schemas
# ------------------------------------------------------------

class StartRequest(BaseModel):
    duration_seconds: Optional[float] = 0.0
    stop_at_limit: bool = False


class SpeedRequest(BaseModel):
    multiplier: float


class RunRequest(BaseModel):
    duration_seconds: float = Field(..., gt=0)
    max_ticks: Optional[int] = Field(None, ge=1)


class ConfigRequest(BaseModel):
    arrival_mean: float = SimulationDefaults.ARRIVAL_MEAN
    arrival_std: float = SimulationDefaults.ARRIVAL_STD
    service_mean: float = SimulationDefaults.SERVICE_MEAN
    service_std: float = SimulationDefaults.SERVICE_STD
    initial_servers: int = SimulationDefaults.INITIAL_SERVERS
    speed: float = SimulationDefaults.SPEED
    history_limit: Optional[int] = SimulationDefaults.HISTORY_LIMIT
    seed: Optional[int] = None


# ------------------------------------------------------------
# Utilities
# ------------------------------------------------------------

def _ack(ok: bool):
    return {"ok": ok, "snapshot": simulation.snapshot().to_dict()}


# ------------------------------------------------------------
# ROOT
# ------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "OK", "name": "G/G/c Queue Simulator API", "state": simulation.state.value}


# ------------------------------------------------------------
# CONFIGURATION
# ------------------------------------------------------------

@app.post("/configure")
def configure(req: ConfigRequest):
    global simulation
    config = SimulationConfig(**req.model_dump())
    errors = config.validate()
    if errors:
        raise HTTPException(400, "; ".join(errors))
    simulation = SimulationController(config)
    return {"config": config.to_dict(), "snapshot": simulation.snapshot().to_dict()}


# ------------------------------------------------------------
# CONTROLE
# ------------------------------------------------------------

@app.get("/snapshot")
def get_snapshot():
    return simulation.snapshot().to_dict()


@app.get("/state")
def get_state():
    return simulation.to_dict()


@app.post("/start")
def start(req: StartRequest):
    return _ack(simulation.start(req.duration_seconds, req.stop_at_limit))


@app.post("/pause")
def pause():
    return _ack(simulation.pause())


@app.post("/resume")
def resume():
    return _ack(simulation.resume())


@app.post("/reset")
def reset():
    simulation.reset()
    return _ack(True)


@app.post("/tick")
def tick():
    return simulation.tick().to_dict()


@app.put("/speed")
def set_speed(req: SpeedRequest):
    return _ack(simulation.set_speed(req.multiplier))


@app.post("/run")
def run(req: RunRequest):
    driver = SimulationDriver(simulation, sleep=lambda _: None)
    try:
        result = driver.run_to_completion(req.duration_seconds, max_ticks=req.max_ticks)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {
        "ticks": driver.ticks,
        "snapshot": result.snapshot.to_dict() if result else simulation.snapshot().to_dict(),
        "final_report": simulation.final_report.to_dict() if simulation.final_report else None,
    }


# ------------------------------------------------------------
# SERVEURS
# ------------------------------------------------------------

@app.post("/servers")
def add_server():
    server_id = simulation.add_server()
    return {"server_id": server_id, "snapshot": simulation.snapshot().to_dict()}


@app.delete("/servers")
def remove_server():
    return _ack(simulation.remove_server())


# ------------------------------------------------------------
# RAPPORT
# ------------------------------------------------------------

@app.get("/report")
def report():
    if simulation.final_report is None:
        raise HTTPException(404, "Aucune exécution terminée")
    return {
        "report": simulation.final_report.to_dict(),
        "summary": simulation.final_report.summary(),
        "history": simulation.stats.history_records(),
    }


@app.get("/estimate")
def estimate(target_clients: Optional[int] = None):
    return {"estimated_seconds": simulation.estimate_real_duration(target_clients)}
