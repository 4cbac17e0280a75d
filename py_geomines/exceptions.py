"""Error taxonomy for board generation and play."""


class GeoMinesError(Exception):
    """Base class for all py_geomines errors."""


class InvalidConfiguration(GeoMinesError, ValueError):
    """Raised when generation or mine placement parameters are out of bounds."""


class InvalidCellId(GeoMinesError, IndexError):
    """Raised when a cell id does not exist on the current board."""

    def __init__(self, cell_id, total_cells: int):
        super().__init__(f"Cell id {cell_id} out of range (board has {total_cells} cells)")
        self.cell_id = cell_id
        self.total_cells = total_cells


class InvalidStateTransition(GeoMinesError):
    """Raised when a session-level action is not allowed in the current state."""


class MeshTopologyError(GeoMinesError):
    """Raised when a generated cell graph breaks a structural invariant."""
