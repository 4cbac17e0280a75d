"""Level progression: board size, display radius and mine density per level."""

from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..config import settings
from ..exceptions import InvalidConfiguration
from .board import MINE_SAFETY_MARGIN
from .geodesic import expected_vertex_count


class LevelConfig(NamedTuple):
    """Everything needed to build the board of one level."""
    level: int
    subdivisions: int
    total_cells: int
    mine_percentage: float
    mine_count: int
    radius: float


@dataclass
class DifficultyOptions:
    """Tunable difficulty curve."""
    base_mine_percentage: float = 0.15
    difficulty_step: float = 0.2
    max_mine_percentage: float = 0.5
    sphere_radius: float = 2.0
    radius_step: float = 0.5

    def __post_init__(self):
        # Negative steps would let the mine count shrink between levels
        for name in ("base_mine_percentage", "difficulty_step", "radius_step"):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0 < self.max_mine_percentage <= 1:
            raise InvalidConfiguration(
                f"max_mine_percentage must be in (0, 1], got {self.max_mine_percentage}")
        if self.sphere_radius <= 0:
            raise InvalidConfiguration(f"sphere_radius must be positive, got {self.sphere_radius}")

    @classmethod
    def from_settings(cls, config=None) -> "DifficultyOptions":
        config = config or settings
        return cls(
            base_mine_percentage=config.base_mine_percentage,
            difficulty_step=config.difficulty_step,
            max_mine_percentage=config.max_mine_percentage,
            sphere_radius=config.sphere_radius,
            radius_step=config.radius_step,
        )


def validate_level(level) -> int:
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise InvalidConfiguration(f"Level must be a positive integer, got {level!r}")
    return level


def subdivision_tier(level: int) -> int:
    """Levels 1-2 use tier 2, 3-5 tier 3, and 6 onwards tier 4."""
    level = validate_level(level)
    if level < 3:
        return 2
    if level < 6:
        return 3
    return 4


def mine_percentage(level: int, options: Optional[DifficultyOptions] = None) -> float:
    """Share of cells holding mines, growing linearly per level up to the cap."""
    options = options or DifficultyOptions()
    level = validate_level(level)
    multiplier = 1.0 + (level - 1) * options.difficulty_step
    return min(options.base_mine_percentage * multiplier, options.max_mine_percentage)


def sphere_radius(level: int, options: Optional[DifficultyOptions] = None) -> float:
    options = options or DifficultyOptions()
    return options.sphere_radius + (validate_level(level) - 1) * options.radius_step


def level_config(level: int, options: Optional[DifficultyOptions] = None) -> LevelConfig:
    """
    Map a level number to its board parameters.

    The mine count never decreases with level and always leaves room for a
    protected first click.
    """
    options = options or DifficultyOptions()
    subdivisions = subdivision_tier(level)
    total_cells = expected_vertex_count(subdivisions)
    percentage = mine_percentage(level, options)

    mine_count = int(total_cells * percentage)
    mine_count = max(1, min(mine_count, total_cells - MINE_SAFETY_MARGIN))

    return LevelConfig(
        level=level,
        subdivisions=subdivisions,
        total_cells=total_cells,
        mine_percentage=percentage,
        mine_count=mine_count,
        radius=sphere_radius(level, options),
    )
