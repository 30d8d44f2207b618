"""
Cortex — Control Server

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

FastAPI surface over a Sandbox. Create a population, advance ticks,
bootstrap generations, inspect agents, and move the flat parameter
vector in and out. The engine itself never imports this module.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from .config import EngineConfig
from .sandbox import Sandbox

logger = logging.getLogger(__name__)


# ─── State ──────────────────────────────────────────────

sandbox: Optional[Sandbox] = None
_sim_lock = asyncio.Lock()


# ─── App ────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global sandbox
    sandbox = None

app = FastAPI(title="Cortex", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "engine": "cortex"}


# ─── Models ─────────────────────────────────────────────

class CreateRequest(BaseModel):
    population: int = Field(default=30, ge=1, le=2000)
    config: dict = Field(default_factory=dict)

class RunRequest(BaseModel):
    ticks: int = Field(default=1, ge=1, le=10000)
    generation_interval: int = Field(default=0, ge=0, le=100000)

class WeightsRequest(BaseModel):
    weights: list[float]


def _require_sim() -> Sandbox:
    if sandbox is None:
        raise HTTPException(status_code=404, detail="No simulation. POST /sim/create first.")
    return sandbox


# ─── Simulation Control ────────────────────────────────

@app.post("/sim/create")
async def create_sim(req: CreateRequest):
    global sandbox
    try:
        config = EngineConfig.model_validate(req.config)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    async with _sim_lock:
        sandbox = Sandbox(config, population_size=req.population)
        sandbox.spawn_population()
    logger.info("simulation created: population=%d weights=%d",
                req.population, sandbox.shared.weight_count)
    return {
        "status": "created",
        "agents": len(sandbox.get_alive()),
        "weight_count": sandbox.shared.weight_count,
        "config": config.model_dump(),
    }


@app.post("/sim/tick")
async def run_tick():
    sim = _require_sim()
    async with _sim_lock:
        stats = sim.step()
        events = sim.pop_events()
    return {"stats": stats, "events": events[:20]}


@app.post("/sim/run")
async def run_multi(req: RunRequest):
    """Run several ticks, bootstrapping a generation every `generation_interval` ticks."""
    sim = _require_sim()
    generations = 0
    for _ in range(req.ticks):
        async with _sim_lock:
            sim.step()
            if req.generation_interval > 0 and sim.tick % req.generation_interval == 0:
                sim.run_generation()
                generations += 1
        await asyncio.sleep(0)
    async with _sim_lock:
        events = sim.pop_events()
    return {
        "ticks_completed": req.ticks,
        "total_ticks": sim.tick,
        "generations": generations,
        "events": [e for e in events if e["type"] != "training"][-20:],
    }


@app.post("/sim/generation")
async def run_generation():
    sim = _require_sim()
    async with _sim_lock:
        event = sim.run_generation()
    return event


# ─── Query ──────────────────────────────────────────────

@app.get("/sim/state")
async def get_state():
    return _require_sim().get_state()


@app.get("/sim/leaderboard")
async def get_leaderboard(limit: int = 10):
    return {"leaderboard": _require_sim().get_leaderboard(limit)}


@app.get("/sim/agent/{agent_id}")
async def get_agent(agent_id: str):
    agent = _require_sim().get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent.to_dict()


# ─── Weight Exchange ────────────────────────────────────

@app.get("/sim/weights")
async def get_weights():
    sim = _require_sim()
    weights = sim.shared.snapshot()
    return {"sizes": sim.shared.sizes._asdict(), "count": int(weights.size), "weights": weights.tolist()}


@app.put("/sim/weights")
async def put_weights(req: WeightsRequest):
    sim = _require_sim()
    async with _sim_lock:
        try:
            sim.shared.load(req.weights)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return {"status": "loaded", "count": len(req.weights)}


# ─── Run ────────────────────────────────────────────────

def start(host: str = "0.0.0.0", port: int = 8000):
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    start()
