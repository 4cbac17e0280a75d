"""Tests for the HTTP interface."""

import pytest
from fastapi.testclient import TestClient

from py_geomines.api.main import app
from py_geomines.core import GameSession


class TestAPI:
    """Test the session and cell endpoints."""

    def setup_method(self):
        """Set up test client with a fresh session."""
        app.state.session = GameSession(safe_first_click=False)
        self.client = TestClient(app)

    def _new_board(self, level=1, seed="api_seed"):
        response = self.client.post("/session", json={"level": level, "seed": seed})
        assert response.status_code == 200
        return response.json()

    def _cells(self):
        return app.state.session.board.cells

    def test_root_and_health(self):
        """Test service endpoints."""
        assert self.client.get("/").json()["status"] == "running"

        health = self.client.get("/health").json()
        assert health == {"status": "healthy", "board_loaded": False}

    def test_no_board_conflict(self):
        """Test that board endpoints answer 409 before generation."""
        assert self.client.get("/session").status_code == 409
        assert self.client.post("/cells/0/reveal").status_code == 409
        assert self.client.get("/events").status_code == 409

    def test_generate_board(self):
        """Test board generation and the summary."""
        data = self._new_board()

        assert data["level"] == 1
        assert data["seed"] == "api_seed"
        assert data["total_cells"] == 162
        assert data["mine_count"] == 24
        assert data["outcome"] == "in_progress"
        assert data["radius"] == pytest.approx(2.0)
        assert self.client.get("/session").json() == data

    def test_invalid_level(self):
        """Test request validation on the level number."""
        response = self.client.post("/session", json={"level": 0})

        assert response.status_code == 422

    def test_get_cell(self):
        """Test single and bulk cell snapshots."""
        self._new_board()

        cell = self.client.get("/cells/5").json()
        assert cell["id"] == 5
        assert len(cell["neighbors"]) == 5
        assert len(cell["center"]) == 3
        assert cell["state"] == "hidden"
        assert cell["adjacent_mine_count"] is None
        assert len(cell["polygon"]) == 5
        assert sum(x * x for x in cell["center"]) == pytest.approx(1.0)

        assert len(self.client.get("/cells").json()) == 162
        assert self.client.get("/cells/999").status_code == 404

    def test_find_cell(self):
        """Test the hit-test route."""
        self._new_board()
        x, y, z = self.client.get("/cells/9").json()["center"]

        hit = self.client.post("/cells/find", json={"x": x * 2, "y": y * 2, "z": z * 2})
        assert hit.status_code == 200
        assert hit.json() == {"cell_id": 9}

        zero = self.client.post("/cells/find", json={"x": 0, "y": 0, "z": 0})
        assert zero.status_code == 400

    def test_reveal_and_events(self):
        """Test a safe reveal and the event queue."""
        self._new_board()
        safe = next(c.id for c in self._cells() if not c.is_mine)

        data = self.client.post(f"/cells/{safe}/reveal").json()
        assert data["status"] in ("ok", "game_over")
        assert data["deltas"][0]["cell_id"] == safe
        assert data["deltas"][0]["kind"] == "revealed"

        events = self.client.get("/events").json()
        assert events == data["deltas"]
        assert self.client.get("/events").json() == []

    def test_reveal_mine_ends_attempt(self):
        """Test a loss and the rejection of later actions."""
        self._new_board()
        mine = next(c.id for c in self._cells() if c.is_mine)
        safe = next(c.id for c in self._cells() if not c.is_mine)

        data = self.client.post(f"/cells/{mine}/reveal").json()
        assert data["status"] == "game_over"
        assert data["won"] is False
        assert data["deltas"][0]["kind"] == "exploded"

        again = self.client.post(f"/cells/{safe}/reveal").json()
        assert again["status"] == "invalid_state"
        assert self.client.get("/session").json()["outcome"] == "lost"

    def test_flag_toggle(self):
        """Test flag toggling through the API."""
        self._new_board()

        first = self.client.post("/cells/7/flag").json()
        assert first["deltas"][0]["kind"] == "flagged"
        assert self.client.get("/session").json()["mines_remaining"] == 23

        second = self.client.post("/cells/7/flag").json()
        assert second["deltas"][0]["kind"] == "unflagged"
        assert self.client.get("/cells/7").json()["state"] == "hidden"

    def test_chord_on_hidden_cell(self):
        """Test that an invalid chord is reported in the body."""
        self._new_board()

        data = self.client.post("/cells/7/chord").json()
        assert data["status"] == "invalid_state"
        assert data["deltas"] == []

    def test_invalid_cell_action(self):
        """Test that unknown ids are reported in the body."""
        self._new_board()

        data = self.client.post("/cells/500/reveal").json()
        assert data["status"] == "invalid_cell"

    def test_advance_and_restart(self):
        """Test level transitions."""
        self._new_board()
        assert self.client.post("/session/advance").status_code == 409

        response = self.client.post("/session/restart", json={"seed": "fresh"})
        assert response.status_code == 200
        assert response.json()["seed"] == "fresh"

        for cell in self._cells():
            if not cell.is_mine:
                self.client.post(f"/cells/{cell.id}/reveal")
        assert self.client.get("/session").json()["outcome"] == "won"

        advanced = self.client.post("/session/advance").json()
        assert advanced["level"] == 2
        assert advanced["max_level"] == 2
        assert advanced["outcome"] == "in_progress"


@pytest.mark.parametrize("level,cells", [(1, 162), (3, 642)])
def test_board_sizes_via_api(level, cells):
    """Test that generated board sizes follow the level."""
    app.state.session = GameSession(safe_first_click=False)
    client = TestClient(app)

    response = client.post("/session", json={"level": level})

    assert response.status_code == 200
    assert response.json()["total_cells"] == cells
