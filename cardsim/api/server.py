"""
FastAPI server for headless replay endpoints.

Provides REST API for running scripted sessions on-demand.
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional
import logging

from ..batch_sim.replay import ReplayRunner, ReplayStep
from ..config import PRESETS, Difficulty, SimulationConfig
from ..core.commands import parse_command

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Gift Card Simulation API")

# One simulated day at default clock settings
DAY_SECONDS = 432
MAX_STEP_ELAPSED = DAY_SECONDS * 30
MAX_REPLAY_ELAPSED = DAY_SECONDS * 360

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models
class StepModel(BaseModel):
    elapsed: float = Field(default=0.0, ge=0, le=MAX_STEP_ELAPSED)
    commands: List[Dict[str, Any]] = []


class ReplayRequest(BaseModel):
    difficulty: Difficulty = Difficulty.NORMAL
    seed: int = 42
    steps: List[StepModel] = Field(default_factory=list, max_length=10_000)
    record_every: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def check_total_elapsed(self):
        total = sum(step.elapsed for step in self.steps)
        if total > MAX_REPLAY_ELAPSED:
            raise ValueError(f"Replay spans {total:.0f}s, limit is {MAX_REPLAY_ELAPSED}s")
        return self


class ReplayResponse(BaseModel):
    snapshots: List[Dict]
    command_results: List[Dict]
    final_snapshot: Dict
    accepted: int
    rejected: int
    final_state: Optional[Dict] = None


def build_steps(steps: List[StepModel]) -> List[ReplayStep]:
    """Convert request steps to replay steps, rejecting malformed commands"""
    built = []
    for index, step in enumerate(steps):
        try:
            commands = tuple(parse_command(raw) for raw in step.commands)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Step {index}: {e}")
        built.append(ReplayStep(elapsed=step.elapsed, commands=commands))
    return built


@app.get("/")
def root():
    """API root"""
    return {
        "message": "Gift Card Simulation API",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
def health():
    """Health check"""
    return {"status": "ok"}


@app.get("/api/presets")
def presets():
    """Difficulty presets"""
    return {difficulty.value: preset.model_dump() for difficulty, preset in PRESETS.items()}


@app.post("/api/simulation/replay", response_model=ReplayResponse)
def run_replay(request: ReplayRequest, include_state: bool = False):
    """Replay a scripted session and return every recorded snapshot"""
    steps = build_steps(request.steps)

    try:
        logger.info(
            f"Running replay: difficulty={request.difficulty.value}, "
            f"seed={request.seed}, steps={len(steps)}"
        )
        config = SimulationConfig(difficulty=request.difficulty, seed=request.seed)
        result = ReplayRunner(config, record_every=request.record_every).run(steps)
    except Exception as e:
        logger.error(f"Replay error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return ReplayResponse(
        snapshots=[s.to_dict() for s in result.snapshots],
        command_results=[r.to_dict() for r in result.command_results],
        final_snapshot=result.final_snapshot.to_dict(),
        accepted=result.accepted,
        rejected=result.rejected,
        final_state=result.final_state if include_state else None
    )
