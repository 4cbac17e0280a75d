"""Geodesic sphere generation by repeated icosahedron subdivision."""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..exceptions import InvalidConfiguration

logger = structlog.get_logger()

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0

# Regular icosahedron, unnormalized
ICOSAHEDRON_VERTICES = np.array([
    (-1.0, GOLDEN_RATIO, 0.0), (1.0, GOLDEN_RATIO, 0.0),
    (-1.0, -GOLDEN_RATIO, 0.0), (1.0, -GOLDEN_RATIO, 0.0),
    (0.0, -1.0, GOLDEN_RATIO), (0.0, 1.0, GOLDEN_RATIO),
    (0.0, -1.0, -GOLDEN_RATIO), (0.0, 1.0, -GOLDEN_RATIO),
    (GOLDEN_RATIO, 0.0, -1.0), (GOLDEN_RATIO, 0.0, 1.0),
    (-GOLDEN_RATIO, 0.0, -1.0), (-GOLDEN_RATIO, 0.0, 1.0),
], dtype=np.float64)

ICOSAHEDRON_FACES = [
    (0, 11, 5), (0, 5, 1), (0, 1, 7), (0, 7, 10), (0, 10, 11),
    (1, 5, 9), (5, 11, 4), (11, 10, 2), (10, 7, 6), (7, 1, 8),
    (3, 9, 4), (3, 4, 2), (3, 2, 6), (3, 6, 8), (3, 8, 9),
    (4, 9, 5), (2, 4, 11), (6, 2, 10), (8, 6, 7), (9, 8, 1),
]

# Vectors shorter than this cannot be projected onto the sphere
MIN_PROJECTABLE_NORM = 1e-12

DEFAULT_MAX_SUBDIVISIONS = 6


@dataclass
class GeodesicMesh:
    """Triangulated unit sphere.

    Vertex ids are positions in ``vertices``; the first 12 are always the
    icosahedron corners, followed by edge midpoints in creation order.
    """
    subdivisions: int
    vertices: np.ndarray  # (V, 3) unit vectors
    faces: np.ndarray     # (F, 3) vertex ids

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    def edges(self) -> np.ndarray:
        """Unique undirected edges as sorted (a, b) rows."""
        edges = np.vstack([
            self.faces[:, [0, 1]],
            self.faces[:, [1, 2]],
            self.faces[:, [2, 0]],
        ])
        edges.sort(axis=1)
        return np.unique(edges, axis=0)

    def euler_characteristic(self) -> int:
        """V - E + F, which is 2 for any closed sphere-like mesh."""
        return self.n_vertices - len(self.edges()) + self.n_faces


def expected_vertex_count(subdivisions: int) -> int:
    """Vertex count after ``subdivisions`` rounds: 10 * 4^n + 2."""
    return 10 * 4 ** subdivisions + 2


def expected_face_count(subdivisions: int) -> int:
    """Face count after ``subdivisions`` rounds: 20 * 4^n."""
    return 20 * 4 ** subdivisions


def normalize(vector: np.ndarray) -> np.ndarray:
    """Project a vector onto the unit sphere.

    Raises:
        ValueError: if the vector is too short to have a direction
    """
    norm = float(np.linalg.norm(vector))
    if norm < MIN_PROJECTABLE_NORM:
        raise ValueError(f"Cannot project near-zero vector {vector!r} onto the unit sphere")
    return vector / norm


def midpoint_index(a: int, b: int, vertices: List[np.ndarray],
                   cache: Dict[Tuple[int, int], int]) -> int:
    """
    Return the id of the projected midpoint of edge (a, b), creating it once.

    The cache key is the order-independent pair of endpoint ids, so the two
    faces sharing an edge resolve to the same new vertex.
    """
    key = (a, b) if a < b else (b, a)
    index = cache.get(key)
    if index is None:
        vertices.append(normalize((vertices[a] + vertices[b]) * 0.5))
        index = len(vertices) - 1
        cache[key] = index
    return index


def subdivide(vertices: List[np.ndarray],
              faces: List[Tuple[int, int, int]]) -> List[Tuple[int, int, int]]:
    """
    Split every triangle into four, appending new midpoints to ``vertices``.

    Args:
        vertices: Mutable vertex list, extended in place
        faces: Current triangles

    Returns:
        The refined triangle list
    """
    cache: Dict[Tuple[int, int], int] = {}
    next_faces = []
    for v1, v2, v3 in faces:
        a = midpoint_index(v1, v2, vertices, cache)
        b = midpoint_index(v2, v3, vertices, cache)
        c = midpoint_index(v3, v1, vertices, cache)
        next_faces.extend([(v1, a, c), (v2, b, a), (v3, c, b), (a, b, c)])
    return next_faces


def validate_subdivisions(subdivisions, max_subdivisions: Optional[int] = None) -> int:
    """Check a subdivision tier and return it as an int."""
    limit = DEFAULT_MAX_SUBDIVISIONS if max_subdivisions is None else max_subdivisions
    if isinstance(subdivisions, bool) or not isinstance(subdivisions, (int, np.integer)):
        raise InvalidConfiguration(f"Subdivision tier must be an integer, got {subdivisions!r}")
    if subdivisions < 0 or subdivisions > limit:
        raise InvalidConfiguration(f"Subdivision tier {subdivisions} outside [0, {limit}]")
    return int(subdivisions)


def generate_geodesic_mesh(subdivisions: int,
                           max_subdivisions: Optional[int] = None) -> GeodesicMesh:
    """
    Build a geodesic sphere from a regular icosahedron.

    Deterministic: the same tier always yields the same vertex order and
    faces.

    Args:
        subdivisions: Number of 1-to-4 subdivision rounds
        max_subdivisions: Upper bound on the accepted tier

    Returns:
        GeodesicMesh with 10 * 4^n + 2 unit vertices
    """
    subdivisions = validate_subdivisions(subdivisions, max_subdivisions)
    logger.info("Generating geodesic mesh", subdivisions=subdivisions)

    vertices = [normalize(v) for v in ICOSAHEDRON_VERTICES]
    faces = list(ICOSAHEDRON_FACES)

    for _ in range(subdivisions):
        faces = subdivide(vertices, faces)

    mesh = GeodesicMesh(
        subdivisions=subdivisions,
        vertices=np.array(vertices, dtype=np.float64),
        faces=np.array(faces, dtype=np.int64),
    )

    logger.info("Geodesic mesh generated",
                vertices=mesh.n_vertices, faces=mesh.n_faces)
    return mesh
