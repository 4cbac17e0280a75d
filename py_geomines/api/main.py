"""FastAPI main application."""

import logging
from typing import List, Optional, Tuple

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..config import settings
from ..core.board import ActionResult, CellDelta, CellSnapshot, Outcome
from ..core.session import GameSession, SessionSummary
from ..exceptions import InvalidCellId, InvalidConfiguration, InvalidStateTransition

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="GeoMines API",
    description="Minesweeper on a geodesic sphere",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One interactive session per process
app.state.session = GameSession()


# Request/Response models
class NewBoardRequest(BaseModel):
    """Request to generate a board."""

    level: int = Field(1, ge=1, le=100, description="Level number")
    seed: Optional[str] = Field(None, description="Mine placement seed")


class SeedRequest(BaseModel):
    seed: Optional[str] = Field(None, description="Mine placement seed for the new attempt")


class SummaryResponse(BaseModel):
    level: int
    max_level: int
    seed: str
    revealed_count: int
    total_cells: int
    mine_count: int
    flags_placed: int
    mines_remaining: int
    outcome: str
    elapsed_seconds: float
    radius: float


class CellResponse(BaseModel):
    id: int
    center: Tuple[float, float, float]
    neighbors: List[int]
    state: str
    adjacent_mine_count: Optional[int] = None
    polygon: List[Tuple[float, float, float]] = []


class PointRequest(BaseModel):
    """A view direction or point on the displayed sphere."""

    x: float
    y: float
    z: float


class HitResponse(BaseModel):
    cell_id: int


class DeltaResponse(BaseModel):
    cell_id: int
    kind: str
    state: str
    adjacent_mine_count: Optional[int] = None


class ActionResponse(BaseModel):
    status: str
    won: Optional[bool] = None
    reason: str = ""
    deltas: List[DeltaResponse]


def _summary(summary: SessionSummary) -> SummaryResponse:
    return SummaryResponse(
        level=summary.level,
        max_level=summary.max_level,
        seed=summary.seed,
        revealed_count=summary.revealed_count,
        total_cells=summary.total_cells,
        mine_count=summary.mine_count,
        flags_placed=summary.flags_placed,
        mines_remaining=summary.mines_remaining,
        outcome=summary.outcome.value,
        elapsed_seconds=round(summary.elapsed_seconds, 3),
        radius=summary.radius,
    )


def _cell(snapshot: CellSnapshot) -> CellResponse:
    return CellResponse(
        id=snapshot.id,
        center=snapshot.center,
        neighbors=list(snapshot.neighbors),
        state=snapshot.state.value,
        adjacent_mine_count=snapshot.adjacent_mine_count,
        polygon=list(snapshot.polygon),
    )


def _delta(delta: CellDelta) -> DeltaResponse:
    return DeltaResponse(
        cell_id=delta.cell_id,
        kind=delta.kind.value,
        state=delta.state.value,
        adjacent_mine_count=delta.adjacent_mine_count,
    )


def _action(result: ActionResult) -> ActionResponse:
    return ActionResponse(
        status=result.status.value,
        won=result.won,
        reason=result.reason,
        deltas=[_delta(d) for d in result.deltas],
    )


def get_session() -> GameSession:
    return app.state.session


def _require_board(session: GameSession) -> None:
    if session.board is None:
        raise HTTPException(status_code=409, detail="No board generated yet")


async def _install_new_board(level: int, seed: Optional[str]) -> SummaryResponse:
    session = get_session()
    try:
        # Generation runs off the event loop; the old board stays live until the swap
        attempt = await run_in_threadpool(session.prepare, level, seed)
    except InvalidConfiguration as e:
        logger.warning("Board generation rejected", level=level, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    session.install(attempt)
    return _summary(session.get_session_summary())


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "GeoMines API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    session = get_session()
    return {"status": "healthy", "board_loaded": session.board is not None}


@app.post("/session", response_model=SummaryResponse)
async def generate_board(request: NewBoardRequest):
    """Generate a board for the requested level, replacing the current one."""
    logger.info("Board generation requested", level=request.level)
    return await _install_new_board(request.level, request.seed)


@app.get("/session", response_model=SummaryResponse)
async def get_summary():
    session = get_session()
    _require_board(session)
    return _summary(session.get_session_summary())


@app.post("/session/advance", response_model=SummaryResponse)
async def advance_level(request: Optional[SeedRequest] = None):
    """Generate the next level after a win."""
    session = get_session()
    _require_board(session)
    if session.board.outcome != Outcome.WON:
        raise HTTPException(status_code=409, detail="Can only advance after clearing the board")
    return await _install_new_board(session.level + 1, request.seed if request else None)


@app.post("/session/restart", response_model=SummaryResponse)
async def restart_level(request: Optional[SeedRequest] = None):
    """Start a fresh attempt of the current level."""
    session = get_session()
    _require_board(session)
    return await _install_new_board(session.level, request.seed if request else None)


@app.get("/cells", response_model=List[CellResponse])
async def list_cells():
    """Snapshot of every cell on the board."""
    session = get_session()
    _require_board(session)
    return [_cell(session.get_cell(i)) for i in range(session.board.total_cells)]


@app.post("/cells/find", response_model=HitResponse)
async def find_cell(point: PointRequest):
    """Hit test: the cell under a 3D direction."""
    session = get_session()
    _require_board(session)
    try:
        return HitResponse(cell_id=session.find_cell([point.x, point.y, point.z]))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/cells/{cell_id}", response_model=CellResponse)
async def get_cell(cell_id: int):
    session = get_session()
    _require_board(session)
    try:
        return _cell(session.get_cell(cell_id))
    except InvalidCellId as e:
        raise HTTPException(status_code=404, detail=str(e))


def _run_action(name: str, cell_id: int) -> ActionResponse:
    session = get_session()
    _require_board(session)
    action = {
        "reveal": session.request_reveal,
        "flag": session.request_flag,
        "chord": session.request_chord,
    }[name]
    try:
        result = action(cell_id)
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.debug("Action handled", action=name, cell_id=cell_id, status=result.status.value)
    return _action(result)


@app.post("/cells/{cell_id}/reveal", response_model=ActionResponse)
async def reveal_cell(cell_id: int):
    return _run_action("reveal", cell_id)


@app.post("/cells/{cell_id}/flag", response_model=ActionResponse)
async def flag_cell(cell_id: int):
    return _run_action("flag", cell_id)


@app.post("/cells/{cell_id}/chord", response_model=ActionResponse)
async def chord_cell(cell_id: int):
    return _run_action("chord", cell_id)


@app.get("/events", response_model=List[DeltaResponse])
async def drain_events():
    """Deltas produced since the last poll."""
    session = get_session()
    _require_board(session)
    return [_delta(d) for d in session.drain_events()]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
