"""Tests for the game session and level transitions."""

import numpy as np
import pytest
from py_geomines.core import GameSession, build_board
from py_geomines.core.board import ActionStatus, CellState, Outcome
from py_geomines.exceptions import InvalidCellId, InvalidStateTransition


def clear_board(session):
    """Reveal every safe cell of the current board."""
    result = None
    for cell in session.board.cells:
        if not cell.is_mine and cell.state == CellState.HIDDEN:
            result = session.request_reveal(cell.id)
    return result


@pytest.fixture
def session():
    return GameSession(safe_first_click=False)


class TestGenerateBoard:
    """Test board generation through the session."""

    def test_summary_after_generation(self, session):
        """Test the session summary of a fresh level 1 board."""
        session.generate_board(1, seed="summary")
        summary = session.get_session_summary()

        assert summary.level == 1
        assert summary.max_level == 1
        assert summary.seed == "summary"
        assert summary.total_cells == 162
        assert summary.mine_count == 24
        assert summary.revealed_count == 0
        assert summary.flags_placed == 0
        assert summary.mines_remaining == 24
        assert summary.outcome == Outcome.IN_PROGRESS
        assert summary.elapsed_seconds == 0.0

    def test_regeneration_is_structurally_identical(self):
        """Test that the same level and seed give the same graph and mines."""
        attempt1 = build_board(2, seed="same")
        attempt2 = build_board(2, seed="same")

        assert attempt1.board.total_cells == attempt2.board.total_cells
        assert attempt1.board.graph.cell_neighbors == attempt2.board.graph.cell_neighbors
        assert ([c.is_mine for c in attempt1.board.cells]
                == [c.is_mine for c in attempt2.board.cells])

    def test_random_seed_drawn(self, session):
        """Test that a seed is drawn when none is given."""
        session.generate_board(1)

        assert session.seed
        assert session.board.mine_count == 24

    def test_prepare_does_not_touch_current_board(self, session):
        """Test that a prepared board is only visible after install."""
        current = session.generate_board(1, seed="current")
        attempt = session.prepare(3, seed="next")

        assert session.board is current
        assert session.level == 1

        session.install(attempt)
        assert session.board is attempt.board
        assert session.level == 3
        assert session.board.total_cells == 642

    def test_requests_without_board(self, session):
        """Test that actions before the first board are refused."""
        with pytest.raises(InvalidStateTransition):
            session.request_reveal(0)
        with pytest.raises(InvalidStateTransition):
            session.get_session_summary()


class TestSafeFirstClick:
    """Test deferred mine placement."""

    def test_first_reveal_is_safe(self):
        """Test that the first reveal opens an area instead of a mine."""
        session = GameSession(safe_first_click=True)
        session.generate_board(1, seed="first")
        assert not session.board.mines_placed
        assert session.get_session_summary().mine_count == 24

        result = session.request_reveal(60)

        assert result.status in (ActionStatus.OK, ActionStatus.GAME_OVER)
        assert result.won is not False
        assert session.board.cells[60].adjacent_mine_count == 0
        assert session.board.revealed_count > 1
        assert session.board.mine_count == 24

    def test_flagged_first_click_does_not_place(self):
        """Test that a rejected first reveal leaves mines unplaced."""
        session = GameSession(safe_first_click=True)
        session.generate_board(1, seed="flagged")
        session.request_flag(10)

        result = session.request_reveal(10)

        assert result.status == ActionStatus.INVALID_STATE
        assert not session.board.mines_placed


class TestActions:
    """Test requests routed through the session."""

    def test_loss_blocks_until_restart(self, session):
        """Test that after a mine hit only a new board allows play."""
        session.generate_board(1, seed="loss")
        mine = next(c.id for c in session.board.cells if c.is_mine)
        safe = next(c.id for c in session.board.cells if not c.is_mine)

        result = session.request_reveal(mine)
        assert result.status == ActionStatus.GAME_OVER
        assert result.won is False
        assert session.outcome == Outcome.LOST

        assert session.request_reveal(safe).status == ActionStatus.INVALID_STATE

        session.restart(seed="again")
        assert session.outcome == Outcome.IN_PROGRESS
        assert session.level == 1
        assert session.board.revealed_count == 0

    def test_flag_counter(self, session):
        """Test the remaining mines estimate."""
        session.generate_board(1, seed="flags")
        session.request_flag(1)
        session.request_flag(2)

        summary = session.get_session_summary()
        assert summary.flags_placed == 2
        assert summary.mines_remaining == 22

    def test_event_queue(self, session):
        """Test that deltas are queued until drained."""
        session.generate_board(1, seed="events")
        session.request_flag(4)
        session.request_flag(4)

        events = session.drain_events()
        assert [e.cell_id for e in events] == [4, 4]
        assert session.drain_events() == []

    def test_rejected_action_queues_nothing(self, session):
        """Test that rejections produce no deltas."""
        session.generate_board(1, seed="events")

        assert session.request_chord(4).status == ActionStatus.INVALID_STATE
        assert session.drain_events() == []

    def test_get_cell(self, session):
        """Test snapshots through the session."""
        session.generate_board(1, seed="cells")

        assert session.get_cell(0).state == CellState.HIDDEN
        with pytest.raises(InvalidCellId):
            session.get_cell(-1)

    @pytest.mark.parametrize("level,radius", [(1, 2.0), (6, 4.5)])
    def test_cell_geometry(self, session, level, radius):
        """Test unit centers, display radius and polygons scaled to it."""
        session.generate_board(level, seed="geometry")
        cell = session.get_cell(20)

        assert np.linalg.norm(cell.center) == pytest.approx(1.0, abs=1e-9)
        assert session.get_session_summary().radius == pytest.approx(radius)
        assert len(cell.polygon) == len(cell.neighbors)
        np.testing.assert_allclose(np.linalg.norm(cell.polygon, axis=1), radius)

    def test_find_cell(self, session):
        """Test hit testing through the session."""
        session.generate_board(1, seed="hits")
        center = np.array(session.get_cell(42).center)

        assert session.find_cell(center * session.get_session_summary().radius) == 42

    def test_elapsed_starts_on_first_action(self, session):
        """Test the attempt timer."""
        session.generate_board(1, seed="timer")
        assert session.elapsed_seconds() == 0.0

        session.request_flag(3)
        assert session.started_at is not None
        assert session.elapsed_seconds() >= 0.0


class TestProgression:
    """Test advancing through levels."""

    def test_advance_requires_win(self, session):
        """Test that advancing an unfinished board is refused."""
        session.generate_board(1, seed="early")

        with pytest.raises(InvalidStateTransition):
            session.advance_level()

    def test_win_then_advance(self, session):
        """Test clearing levels 1 and 2 and reaching a larger board."""
        session.generate_board(1, seed="winner")

        result = clear_board(session)
        assert result.status == ActionStatus.GAME_OVER
        assert result.won is True
        assert session.get_session_summary().outcome == Outcome.WON

        session.advance_level(seed="level2")
        assert session.level == 2
        assert session.max_level == 2
        assert session.board.total_cells == 162

        clear_board(session)
        session.advance_level(seed="level3")
        assert session.level == 3
        assert session.board.total_cells == 642
        assert session.board.mine_count > 24

    def test_restart_keeps_max_level(self, session):
        """Test that restarting a lower level keeps the best level reached."""
        session.generate_board(3, seed="high")
        session.generate_board(1, seed="low")

        session.restart()
        assert session.level == 1
        assert session.max_level == 3
