"""
Core board generation and game logic.
"""

from .geodesic import GeodesicMesh, generate_geodesic_mesh, expected_vertex_count
from .cell_graph import CellGraph, build_cell_graph
from .board import (ActionResult, ActionStatus, Board, Cell, CellDelta, CellSnapshot,
                    CellState, DeltaKind, Outcome)
from .levels import DifficultyOptions, LevelConfig, level_config
from .session import BoardAttempt, GameSession, SessionSummary, build_board

__all__ = ['GeodesicMesh', 'generate_geodesic_mesh', 'expected_vertex_count',
           'CellGraph', 'build_cell_graph',
           'ActionResult', 'ActionStatus', 'Board', 'Cell', 'CellDelta', 'CellSnapshot',
           'CellState', 'DeltaKind', 'Outcome',
           'DifficultyOptions', 'LevelConfig', 'level_config',
           'BoardAttempt', 'GameSession', 'SessionSummary', 'build_board']
