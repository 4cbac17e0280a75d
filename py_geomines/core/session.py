"""
Game session: owns the active board and drives level transitions.

A new board is built completely (``prepare``) before it replaces the old
one (``install``), so the board can be generated on a worker thread while
the current one stays playable.
"""

import time
import uuid
from dataclasses import dataclass
from typing import List, Optional

import structlog

from ..config import settings
from ..exceptions import InvalidStateTransition
from .board import ActionResult, Board, CellDelta, CellSnapshot, CellState, Outcome
from .cell_graph import build_cell_graph
from .geodesic import generate_geodesic_mesh
from .levels import DifficultyOptions, LevelConfig, level_config

logger = structlog.get_logger()


def new_seed() -> str:
    return str(uuid.uuid4())[:8]


@dataclass
class BoardAttempt:
    """A fully built board waiting to be installed."""
    config: LevelConfig
    seed: str
    board: Board


@dataclass
class SessionSummary:
    level: int
    max_level: int
    seed: str
    revealed_count: int
    total_cells: int
    mine_count: int
    flags_placed: int
    mines_remaining: int
    outcome: Outcome
    elapsed_seconds: float
    radius: float


def build_board(level: int, seed: Optional[str] = None,
                options: Optional[DifficultyOptions] = None,
                place_mines: bool = True,
                max_subdivisions: Optional[int] = None) -> BoardAttempt:
    """
    Generate the board for a level from scratch.

    Args:
        level: Level number, 1 or higher
        seed: Mine placement seed; a random one is drawn when omitted
        options: Difficulty curve, defaults to DifficultyOptions()
        place_mines: Place mines now rather than on the first reveal
        max_subdivisions: Upper bound on the mesh tier

    Returns:
        BoardAttempt ready for GameSession.install()
    """
    config = level_config(level, options)
    seed = seed or new_seed()
    logger.info("Building board", level=config.level, subdivisions=config.subdivisions,
                mines=config.mine_count, seed=seed)

    mesh = generate_geodesic_mesh(config.subdivisions, max_subdivisions)
    graph = build_cell_graph(mesh, radius=config.radius)
    board = Board(graph)
    if place_mines:
        board.place_mines(config.mine_count, seed)
    return BoardAttempt(config=config, seed=seed, board=board)


class GameSession:
    """Owns the current board and the level progression of one player."""

    def __init__(self, options: Optional[DifficultyOptions] = None,
                 safe_first_click: Optional[bool] = None,
                 max_subdivisions: Optional[int] = None):
        self.options = options or DifficultyOptions.from_settings()
        self.safe_first_click = settings.safe_first_click if safe_first_click is None else safe_first_click
        self.max_subdivisions = settings.max_subdivisions if max_subdivisions is None else max_subdivisions

        self.board: Optional[Board] = None
        self.config: Optional[LevelConfig] = None
        self.seed: Optional[str] = None
        self.max_level = 0
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self._events: List[CellDelta] = []

    @property
    def level(self) -> int:
        return self.config.level if self.config else 0

    @property
    def outcome(self) -> Outcome:
        return self.board.outcome if self.board else Outcome.IN_PROGRESS

    # ------------------------------------------------------------------
    # Board lifecycle
    # ------------------------------------------------------------------

    def prepare(self, level: int, seed: Optional[str] = None) -> BoardAttempt:
        """Build a board without touching session state (safe off-thread)."""
        return build_board(level, seed, self.options,
                           place_mines=not self.safe_first_click,
                           max_subdivisions=self.max_subdivisions)

    def install(self, attempt: BoardAttempt) -> Board:
        """Replace the current board with a fully built one."""
        self.board, self.config, self.seed = attempt.board, attempt.config, attempt.seed
        self.max_level = max(self.max_level, attempt.config.level)
        self.started_at = None
        self.finished_at = None
        self._events = []
        logger.info("Board installed", level=attempt.config.level,
                    cells=attempt.board.total_cells, seed=attempt.seed)
        return attempt.board

    def generate_board(self, level: int, seed: Optional[str] = None) -> Board:
        """Build and install the board for ``level``."""
        return self.install(self.prepare(level, seed))

    def advance_level(self, seed: Optional[str] = None) -> Board:
        """Move to the next level after a win."""
        board = self._require_board()
        if board.outcome != Outcome.WON:
            raise InvalidStateTransition("Can only advance after clearing the board")
        return self.generate_board(self.level + 1, seed)

    def restart(self, seed: Optional[str] = None) -> Board:
        """Start a fresh attempt of the current level."""
        self._require_board()
        return self.generate_board(self.level, seed)

    # ------------------------------------------------------------------
    # Player requests
    # ------------------------------------------------------------------

    def request_reveal(self, cell_id: int) -> ActionResult:
        board = self._require_board()
        if (not board.mines_placed and board.is_valid_cell_id(cell_id)
                and not board.is_over
                and board.cells[cell_id].state == CellState.HIDDEN):
            safe_zone = {cell_id, *board.cells[cell_id].neighbors}
            board.place_mines(self.config.mine_count, self.seed, exclude=safe_zone)
        return self._record(board.reveal(cell_id))

    def request_flag(self, cell_id: int) -> ActionResult:
        return self._record(self._require_board().toggle_flag(cell_id))

    def request_chord(self, cell_id: int) -> ActionResult:
        return self._record(self._require_board().chord(cell_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cell(self, cell_id: int) -> CellSnapshot:
        return self._require_board().snapshot(cell_id)

    def find_cell(self, point) -> int:
        """Id of the cell under a view direction or point on the displayed sphere."""
        return self._require_board().graph.find_cell(point)

    def get_session_summary(self) -> SessionSummary:
        board = self._require_board()
        mine_count = board.mine_count if board.mines_placed else self.config.mine_count
        return SessionSummary(
            level=self.level,
            max_level=self.max_level,
            seed=self.seed,
            revealed_count=board.revealed_count,
            total_cells=board.total_cells,
            mine_count=mine_count,
            flags_placed=board.flags_placed,
            mines_remaining=mine_count - board.flags_placed,
            outcome=board.outcome,
            elapsed_seconds=self.elapsed_seconds(),
            radius=self.config.radius,
        )

    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def drain_events(self) -> List[CellDelta]:
        """Return and clear the deltas produced since the last drain."""
        events, self._events = self._events, []
        return events

    def _require_board(self) -> Board:
        if self.board is None:
            raise InvalidStateTransition("No board generated yet")
        return self.board

    def _record(self, result: ActionResult) -> ActionResult:
        if result.deltas:
            if self.started_at is None:
                self.started_at = time.monotonic()
            self._events.extend(result.deltas)
        if result.game_over and self.finished_at is None:
            self.finished_at = time.monotonic()
            logger.info("Attempt finished", level=self.level, won=result.won,
                        elapsed=round(self.elapsed_seconds(), 2))
        return result
