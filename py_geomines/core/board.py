"""
Minesweeper state machine over a cell graph.

The Board is the sole owner of its cells; neighbor links are plain ids into
the same list. Player actions never raise on a valid board: rejected actions
come back as an ActionResult with a non-OK status and leave the board
untouched.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import numpy as np
import structlog

from ..exceptions import InvalidCellId, InvalidConfiguration
from .alea_prng import AleaPRNG
from .cell_graph import CellGraph

logger = structlog.get_logger()

# Cells kept free when the first click is protected: a hexagon plus its center
MINE_SAFETY_MARGIN = 7


class CellState(str, Enum):
    HIDDEN = "hidden"
    FLAGGED = "flagged"
    REVEALED = "revealed"
    EXPLODED = "exploded"


class DeltaKind(str, Enum):
    REVEALED = "revealed"
    FLAGGED = "flagged"
    UNFLAGGED = "unflagged"
    EXPLODED = "exploded"
    MINE_SHOWN = "mine_shown"  # display-only disclosure after a loss


class ActionStatus(str, Enum):
    OK = "ok"
    INVALID_STATE = "invalid_state"
    INVALID_CELL = "invalid_cell"
    GAME_OVER = "game_over"


class Outcome(str, Enum):
    IN_PROGRESS = "in_progress"
    WON = "won"
    LOST = "lost"


@dataclass
class Cell:
    """One node of the board graph."""
    id: int
    center: np.ndarray
    neighbors: Tuple[int, ...]
    is_mine: bool = False
    adjacent_mine_count: int = 0
    state: CellState = CellState.HIDDEN


@dataclass(frozen=True)
class CellDelta:
    """A visible change to one cell, consumed by the rendering layer."""
    cell_id: int
    kind: DeltaKind
    state: CellState
    adjacent_mine_count: Optional[int] = None


@dataclass
class ActionResult:
    """Outcome of a reveal, flag or chord request."""
    status: ActionStatus
    deltas: List[CellDelta] = field(default_factory=list)
    won: Optional[bool] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ActionStatus.OK

    @property
    def game_over(self) -> bool:
        return self.status == ActionStatus.GAME_OVER


@dataclass(frozen=True)
class CellSnapshot:
    """Read-only view of a cell. The mine count is hidden until revealed."""
    id: int
    center: Tuple[float, float, float]    # unit sphere
    neighbors: Tuple[int, ...]
    state: CellState
    adjacent_mine_count: Optional[int]
    polygon: Tuple[Tuple[float, float, float], ...] = ()


class Board:
    """Cells of one level attempt plus the counters derived from them."""

    def __init__(self, graph: CellGraph):
        self.graph = graph
        self.cells: List[Cell] = [
            Cell(id=i, center=graph.centers[i], neighbors=tuple(neighbors))
            for i, neighbors in enumerate(graph.cell_neighbors)
        ]
        self.mine_count = 0
        self.mines_placed = False
        self.revealed_count = 0
        self.flags_placed = 0
        self.exploded_cell: Optional[int] = None
        self.outcome = Outcome.IN_PROGRESS

    @property
    def total_cells(self) -> int:
        return len(self.cells)

    @property
    def safe_cells_remaining(self) -> int:
        """Non-mine cells still to be revealed."""
        return self.total_cells - self.mine_count - self.revealed_count

    @property
    def is_over(self) -> bool:
        return self.outcome != Outcome.IN_PROGRESS

    def is_valid_cell_id(self, cell_id) -> bool:
        if isinstance(cell_id, bool) or not isinstance(cell_id, (int, np.integer)):
            return False
        return 0 <= cell_id < self.total_cells

    def cell(self, cell_id) -> Cell:
        """Look up a cell, raising InvalidCellId for unknown ids."""
        if not self.is_valid_cell_id(cell_id):
            raise InvalidCellId(cell_id, self.total_cells)
        return self.cells[cell_id]

    def snapshot(self, cell_id) -> CellSnapshot:
        cell = self.cell(cell_id)
        count = cell.adjacent_mine_count if cell.state == CellState.REVEALED else None
        return CellSnapshot(
            id=cell.id,
            center=tuple(float(x) for x in cell.center),
            neighbors=cell.neighbors,
            state=cell.state,
            adjacent_mine_count=count,
            polygon=tuple(tuple(float(x) for x in corner)
                          for corner in self.graph.cell_polygons[cell_id]),
        )

    # ------------------------------------------------------------------
    # Mine placement
    # ------------------------------------------------------------------

    def place_mines(self, mine_count: int, seed, exclude: Iterable[int] = ()) -> List[int]:
        """
        Place mines uniformly at random and compute adjacency counts.

        Must run once per attempt, before any reveal.

        Args:
            mine_count: Number of mines, in [1, total_cells - MINE_SAFETY_MARGIN]
            seed: Seed for the Alea PRNG; same seed and board give the same layout
            exclude: Cell ids that must stay mine-free (safe first click)

        Returns:
            Sorted ids of the mine cells
        """
        if self.mines_placed or self.revealed_count:
            raise InvalidConfiguration("Mines can only be placed once, before any reveal")

        excluded = set(exclude)
        for cell_id in excluded:
            if not self.is_valid_cell_id(cell_id):
                raise InvalidCellId(cell_id, self.total_cells)

        if isinstance(mine_count, bool) or not isinstance(mine_count, (int, np.integer)):
            raise InvalidConfiguration(f"Mine count must be an integer, got {mine_count!r}")
        max_mines = self.total_cells - MINE_SAFETY_MARGIN
        if mine_count <= 0 or mine_count > max_mines:
            raise InvalidConfiguration(
                f"Mine count {mine_count} outside [1, {max_mines}] for {self.total_cells} cells"
            )

        candidates = [cell.id for cell in self.cells if cell.id not in excluded]
        if mine_count > len(candidates):
            raise InvalidConfiguration(
                f"Mine count {mine_count} exceeds the {len(candidates)} cells outside the safe zone"
            )

        prng = AleaPRNG(seed)
        mine_ids = sorted(prng.sample(candidates, int(mine_count)))
        for cell_id in mine_ids:
            self.cells[cell_id].is_mine = True

        for cell in self.cells:
            cell.adjacent_mine_count = sum(
                1 for neighbor_id in cell.neighbors if self.cells[neighbor_id].is_mine
            )

        self.mine_count = int(mine_count)
        self.mines_placed = True
        logger.info("Mines placed", mines=self.mine_count, cells=self.total_cells,
                    excluded=len(excluded), seed=str(seed))
        return mine_ids

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def _reject(self, status: ActionStatus, reason: str, cell_id=None) -> ActionResult:
        logger.debug("Action rejected", cell_id=cell_id, status=status.value, reason=reason)
        won = None if self.outcome == Outcome.IN_PROGRESS else self.outcome == Outcome.WON
        return ActionResult(status=status, won=won, reason=reason)

    def _check_playable(self, cell_id) -> Optional[ActionResult]:
        if not self.is_valid_cell_id(cell_id):
            return self._reject(ActionStatus.INVALID_CELL, f"unknown cell id {cell_id!r}", cell_id)
        if self.is_over:
            return self._reject(ActionStatus.INVALID_STATE, f"game already {self.outcome.value}", cell_id)
        return None

    def reveal(self, cell_id: int) -> ActionResult:
        """Reveal a hidden cell, flood filling from zero-count cells."""
        rejected = self._check_playable(cell_id)
        if rejected:
            return rejected
        if not self.mines_placed:
            return self._reject(ActionStatus.INVALID_STATE, "mines not placed", cell_id)

        state = self.cells[cell_id].state
        if state != CellState.HIDDEN:
            return self._reject(ActionStatus.INVALID_STATE, f"cell is {state.value}", cell_id)

        deltas: List[CellDelta] = []
        if self._reveal_hidden(cell_id, deltas):
            return self._finish_loss(deltas)
        return self._finish_turn(deltas)

    def toggle_flag(self, cell_id: int) -> ActionResult:
        """Toggle Hidden <-> Flagged."""
        rejected = self._check_playable(cell_id)
        if rejected:
            return rejected

        cell = self.cells[cell_id]
        if cell.state == CellState.HIDDEN:
            cell.state = CellState.FLAGGED
            self.flags_placed += 1
            kind = DeltaKind.FLAGGED
        elif cell.state == CellState.FLAGGED:
            cell.state = CellState.HIDDEN
            self.flags_placed -= 1
            kind = DeltaKind.UNFLAGGED
        else:
            return self._reject(ActionStatus.INVALID_STATE, f"cell is {cell.state.value}", cell_id)

        logger.debug("Flag toggled", cell_id=cell_id, state=cell.state.value,
                     flags=self.flags_placed)
        return ActionResult(status=ActionStatus.OK,
                            deltas=[CellDelta(cell_id, kind, cell.state)])

    def chord(self, cell_id: int) -> ActionResult:
        """
        Reveal the unflagged neighbors of a numbered cell.

        Only acts when the flagged neighbor count equals the cell's mine
        count; a mismatch is a no-op with OK status. Neighbors are revealed
        in neighbor order and the chord stops at the first mine.
        """
        rejected = self._check_playable(cell_id)
        if rejected:
            return rejected

        cell = self.cells[cell_id]
        if cell.state != CellState.REVEALED or cell.adjacent_mine_count == 0:
            return self._reject(ActionStatus.INVALID_STATE,
                                "chord needs a revealed cell with adjacent mines", cell_id)

        flagged = sum(1 for n in cell.neighbors if self.cells[n].state == CellState.FLAGGED)
        if flagged != cell.adjacent_mine_count:
            logger.debug("Chord skipped", cell_id=cell_id, flagged=flagged,
                         adjacent=cell.adjacent_mine_count)
            return ActionResult(status=ActionStatus.OK)

        deltas: List[CellDelta] = []
        for neighbor_id in cell.neighbors:
            if self.cells[neighbor_id].state != CellState.HIDDEN:
                continue
            if self._reveal_hidden(neighbor_id, deltas):
                return self._finish_loss(deltas)
        return self._finish_turn(deltas)

    def evaluate_win(self) -> bool:
        """True iff every non-mine cell is revealed and nothing exploded."""
        return (
            self.mines_placed
            and self.exploded_cell is None
            and self.revealed_count == self.total_cells - self.mine_count
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reveal_hidden(self, cell_id: int, deltas: List[CellDelta]) -> bool:
        """Reveal one hidden cell (flood filling if needed). Returns True on a mine hit."""
        cell = self.cells[cell_id]
        if cell.is_mine:
            cell.state = CellState.EXPLODED
            self.exploded_cell = cell_id
            deltas.append(CellDelta(cell_id, DeltaKind.EXPLODED, cell.state))
            return True

        self._mark_revealed(cell, deltas)
        if cell.adjacent_mine_count == 0:
            self._flood_fill(cell_id, deltas)
        return False

    def _mark_revealed(self, cell: Cell, deltas: List[CellDelta]) -> None:
        cell.state = CellState.REVEALED
        self.revealed_count += 1
        deltas.append(CellDelta(cell.id, DeltaKind.REVEALED, cell.state,
                                cell.adjacent_mine_count))

    def _flood_fill(self, start_id: int, deltas: List[CellDelta]) -> None:
        """Breadth-first reveal outward from a zero-count cell.

        Every cell enters the queue at most once, so the walk takes at most
        total_cells steps even though the graph is full of cycles.
        """
        visited = {start_id}
        queue = deque([start_id])
        steps = 0
        while queue:
            steps += 1
            if steps > self.total_cells:
                raise RuntimeError("Flood fill exceeded board size")

            current = self.cells[queue.popleft()]
            for neighbor_id in current.neighbors:
                if neighbor_id in visited:
                    continue
                visited.add(neighbor_id)

                neighbor = self.cells[neighbor_id]
                if neighbor.state != CellState.HIDDEN or neighbor.is_mine:
                    continue
                self._mark_revealed(neighbor, deltas)
                if neighbor.adjacent_mine_count == 0:
                    queue.append(neighbor_id)

        logger.debug("Flood fill finished", start=start_id, steps=steps,
                     revealed=self.revealed_count)

    def _finish_loss(self, deltas: List[CellDelta]) -> ActionResult:
        self.outcome = Outcome.LOST
        for cell in self.cells:
            if cell.is_mine and cell.id != self.exploded_cell:
                deltas.append(CellDelta(cell.id, DeltaKind.MINE_SHOWN, cell.state))
        logger.info("Mine triggered", cell_id=self.exploded_cell,
                    revealed=self.revealed_count, cells=self.total_cells)
        return ActionResult(status=ActionStatus.GAME_OVER, deltas=deltas, won=False,
                            reason="mine triggered")

    def _finish_turn(self, deltas: List[CellDelta]) -> ActionResult:
        if self.evaluate_win():
            self.outcome = Outcome.WON
            logger.info("Board cleared", cells=self.total_cells, mines=self.mine_count)
            return ActionResult(status=ActionStatus.GAME_OVER, deltas=deltas, won=True,
                                reason="board cleared")
        return ActionResult(status=ActionStatus.OK, deltas=deltas)
