"""
Cell graph construction from a geodesic mesh.

Every mesh vertex becomes one cell of the Goldberg polyhedron. Two cells are
neighbors iff their vertices share a mesh edge, so adjacency is symmetric by
construction. Centers stay on the unit sphere; each cell also gets its boundary
polygon (the projected centroids of the incident triangles) scaled to the
display radius for rendering.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree

from ..exceptions import MeshTopologyError
from .geodesic import GeodesicMesh, MIN_PROJECTABLE_NORM, normalize

logger = structlog.get_logger()

PENTAGON_COUNT = 12
MIN_NEIGHBORS = 3


@dataclass
class CellGraph:
    """Cells of a geodesic board: arena of positions plus id-based adjacency."""
    subdivisions: int
    radius: float

    centers: np.ndarray                # (N, 3) unit-sphere cell centers
    cell_neighbors: List[List[int]]    # neighbor ids, ordered around each cell
    cell_polygons: List[np.ndarray]    # (k, 3) boundary ring on the sphere of `radius`

    _tree: Optional[cKDTree] = field(default=None, init=False, repr=False, compare=False)

    @property
    def n_cells(self) -> int:
        return len(self.centers)

    def neighbor_counts(self) -> np.ndarray:
        return np.array([len(n) for n in self.cell_neighbors], dtype=np.int64)

    def pentagon_cells(self) -> List[int]:
        """Cells with exactly five neighbors (the icosahedron corners)."""
        return [i for i, neighbors in enumerate(self.cell_neighbors) if len(neighbors) == 5]

    def find_cell(self, point) -> int:
        """
        Find the cell under a 3D point or view direction.

        The point is projected onto the sphere first, so any ray direction
        from the sphere's center works.

        Args:
            point: [x, y, z] direction or position

        Returns:
            Id of the cell whose center is closest
        """
        direction = normalize(np.asarray(point, dtype=np.float64))
        if self._tree is None:
            self._tree = cKDTree(self.centers)
        _, index = self._tree.query(direction)
        return int(index)

    def is_connected(self) -> bool:
        """Check that every cell is reachable from cell 0."""
        if self.n_cells == 0:
            return True
        seen = {0}
        queue = deque([0])
        while queue:
            cell_id = queue.popleft()
            for neighbor_id in self.cell_neighbors[cell_id]:
                if neighbor_id not in seen:
                    seen.add(neighbor_id)
                    queue.append(neighbor_id)
        return len(seen) == self.n_cells

    def validate(self) -> List[str]:
        """Collect structural problems; an empty list means the graph is sound."""
        problems = []
        n_cells = self.n_cells

        for i, neighbors in enumerate(self.cell_neighbors):
            if i in neighbors:
                problems.append(f"cell {i} lists itself as a neighbor")
            if len(set(neighbors)) != len(neighbors):
                problems.append(f"cell {i} has duplicate neighbors")
            if len(neighbors) < MIN_NEIGHBORS:
                problems.append(f"cell {i} has only {len(neighbors)} neighbors")
            for neighbor in neighbors:
                if not 0 <= neighbor < n_cells:
                    problems.append(f"cell {i} references missing cell {neighbor}")
                elif i not in self.cell_neighbors[neighbor]:
                    problems.append(f"cell {i} lists {neighbor} as neighbor, but not vice versa")

        counts = self.neighbor_counts()
        if np.any((counts != 5) & (counts != 6)):
            problems.append("neighbor counts other than 5 or 6 present")
        pentagons = int(np.sum(counts == 5))
        if pentagons != PENTAGON_COUNT:
            problems.append(f"expected {PENTAGON_COUNT} pentagonal cells, found {pentagons}")

        if not problems and not self.is_connected():
            problems.append("cell graph is disconnected")

        return problems


def _normalize_rows(rows: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(rows, axis=1, keepdims=True)
    if np.any(norms < MIN_PROJECTABLE_NORM):
        raise ValueError("Cannot project near-zero vectors onto the unit sphere")
    return rows / norms


def _tangent_basis(up: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Two unit vectors spanning the plane tangent to the sphere at ``up``."""
    reference = np.array([1.0, 0.0, 0.0]) if abs(up[1]) > 0.9 else np.array([0.0, 1.0, 0.0])
    tangent = normalize(np.cross(reference, up))
    bitangent = np.cross(up, tangent)
    return tangent, bitangent


def _angular_order(center: np.ndarray, up: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Indices sorting ``points`` by angle around ``center``."""
    tangent, bitangent = _tangent_basis(up)
    offsets = points - center
    angles = np.arctan2(offsets @ tangent, offsets @ bitangent)
    return np.argsort(angles, kind="stable")


def build_cell_graph(mesh: GeodesicMesh, radius: float = 1.0,
                     validate: bool = True) -> CellGraph:
    """
    Convert a triangulated sphere into its dual cell graph.

    Args:
        mesh: Geodesic mesh from generate_geodesic_mesh()
        radius: Display radius applied to the boundary polygons
        validate: Raise if the result breaks a structural invariant

    Returns:
        CellGraph with one cell per mesh vertex, ids equal to vertex ids
    """
    logger.info("Building cell graph", vertices=mesh.n_vertices, faces=mesh.n_faces)

    n_cells = mesh.n_vertices
    incident_faces: List[List[int]] = [[] for _ in range(n_cells)]
    neighbor_sets = [set() for _ in range(n_cells)]

    for face_idx, (a, b, c) in enumerate(mesh.faces.tolist()):
        for vertex in (a, b, c):
            incident_faces[vertex].append(face_idx)
        for u, w in ((a, b), (b, c), (c, a)):
            if u != w:
                neighbor_sets[u].add(w)
                neighbor_sets[w].add(u)

    face_centers = _normalize_rows(mesh.vertices[mesh.faces].mean(axis=1)) * radius
    centers = mesh.vertices.copy()

    cell_neighbors = []
    cell_polygons = []
    for i in range(n_cells):
        up = mesh.vertices[i]

        ring = face_centers[incident_faces[i]]
        cell_polygons.append(ring[_angular_order(centers[i], up, ring)])

        neighbors = sorted(neighbor_sets[i])
        order = _angular_order(centers[i], up, centers[neighbors])
        cell_neighbors.append([neighbors[j] for j in order])

    graph = CellGraph(
        subdivisions=mesh.subdivisions,
        radius=radius,
        centers=centers,
        cell_neighbors=cell_neighbors,
        cell_polygons=cell_polygons,
    )

    if validate:
        problems = graph.validate()
        if problems:
            logger.error("Cell graph failed validation", problems=problems[:10])
            raise MeshTopologyError("; ".join(problems[:10]))

    logger.info("Cell graph built", cells=graph.n_cells,
                pentagons=len(graph.pentagon_cells()))
    return graph
