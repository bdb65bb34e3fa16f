"""
Geometry Model
==============

Mutable adjacency graph for edge-collapse simplification.

Vertices and triangles live in flat arenas (Python lists) addressed by
stable integer indices. Neighbor and face links are index lists into the
same arenas, so the graph can be read concurrently during the batch
cost pass and is only mutated by `MeshGeometry.collapse`.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidInputError, ResourceExhaustionError

logger = logging.getLogger(__name__)


IndexBuffer = Union[np.ndarray, Sequence[int], Sequence[Sequence[int]]]


@dataclass
class Vertex:
    """A graph vertex. `id` is its index in `MeshGeometry.vertices`."""
    id: int
    position: np.ndarray
    position_world: np.ndarray
    neighbors: List[int] = field(default_factory=list)
    faces: List[int] = field(default_factory=list)
    is_border: bool = False
    cost: float = 0.0
    collapse_target: Optional[int] = None
    collapsed: bool = False


@dataclass
class Triangle:
    """A graph triangle. `index` is its position in `MeshGeometry.triangles`."""
    index: int
    indices: List[int]
    normal: np.ndarray
    submesh: int = 0
    removed: bool = False

    def has_vertex(self, vertex_id: int) -> bool:
        return vertex_id in self.indices


@dataclass
class TriangleList:
    """Triangles belonging to one submesh / material group."""
    submesh: int
    triangles: List[int] = field(default_factory=list)


def compute_normal(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """
    Unit normal of a triangle.

    Returns the zero vector for degenerate (zero-area) triangles.
    """
    normal = np.cross(v1 - v0, v2 - v0)
    norm_length = np.linalg.norm(normal)

    if norm_length < 1e-12:
        return np.zeros(3)

    return normal / norm_length


class MeshGeometry:
    """
    Vertex/triangle adjacency graph built from flat mesh buffers.

    The original buffers are kept untouched (`original_positions`,
    `original_triangles`) so meshes can be reassembled at any level
    without rebuilding the graph.
    """

    def __init__(self, positions: np.ndarray,
                 triangle_groups: List[np.ndarray],
                 world_matrix: Optional[np.ndarray] = None,
                 source_index: Optional[np.ndarray] = None,
                 representative: Optional[np.ndarray] = None,
                 attributes: Optional[Dict[str, np.ndarray]] = None):
        """
        Build the graph from already validated, welded buffers.

        Most callers should use `MeshGeometry.from_buffers`.

        Args:
            positions: (N, 3) local-space vertex positions
            triangle_groups: One (M_i, 3) index array per submesh
            world_matrix: Optional 4x4 local-to-world transform
            source_index: Raw input index -> vertex id mapping
            representative: Vertex id -> raw input index of its first occurrence
            attributes: Raw per-vertex attributes to carry through assembly
        """
        n_vertices = len(positions)
        self.original_positions = np.array(positions, dtype=float)
        self.original_triangles = [np.array(g, dtype=np.int64).reshape(-1, 3)
                                   for g in triangle_groups]
        self.world_matrix = (np.eye(4) if world_matrix is None
                             else np.asarray(world_matrix, dtype=float))
        self.source_index = (np.arange(n_vertices) if source_index is None
                             else np.asarray(source_index))
        self.representative = (np.arange(n_vertices) if representative is None
                               else np.asarray(representative))
        self.attributes = dict(attributes or {})

        try:
            self._build()
        except MemoryError as e:
            raise ResourceExhaustionError(
                f"Not enough memory to build adjacency for {n_vertices} vertices"
            ) from e

    @classmethod
    def from_buffers(cls, positions,
                     triangles: Union[IndexBuffer, List[IndexBuffer]],
                     world_matrix: Optional[np.ndarray] = None,
                     attributes: Optional[Dict[str, np.ndarray]] = None,
                     merge_duplicates: bool = True) -> "MeshGeometry":
        """
        Validate raw buffers and build a geometry model.

        Args:
            positions: (N, 3) vertex positions
            triangles: An index buffer, or a list of index buffers (one per
                submesh). Each buffer is flat or shaped (M, 3).
            world_matrix: Optional 4x4 local-to-world transform, used for
                relevance sphere tests
            attributes: Optional per-vertex arrays (UVs, normals, bone
                weights...) with N rows, carried through unchanged
            merge_duplicates: Weld vertices sharing the same position

        Returns:
            The built MeshGeometry

        Raises:
            InvalidInputError: If any buffer is empty or malformed
            ResourceExhaustionError: If the graph does not fit in memory
        """
        positions = _validate_positions(positions)
        groups = _validate_triangles(triangles, len(positions))
        attributes = _validate_attributes(attributes, len(positions))

        if world_matrix is not None:
            world_matrix = np.asarray(world_matrix, dtype=float)
            if world_matrix.shape != (4, 4) or not np.all(np.isfinite(world_matrix)):
                raise InvalidInputError("world_matrix must be a finite 4x4 matrix")

        if merge_duplicates:
            welded, source_index, representative = _weld(positions)
        else:
            welded = positions
            source_index = np.arange(len(positions))
            representative = np.arange(len(positions))

        welded_groups = []
        dropped = 0
        for group in groups:
            remapped = source_index[group]
            distinct = ((remapped[:, 0] != remapped[:, 1]) &
                        (remapped[:, 1] != remapped[:, 2]) &
                        (remapped[:, 0] != remapped[:, 2]))
            dropped += int(np.count_nonzero(~distinct))
            welded_groups.append(remapped[distinct])

        if dropped:
            logger.debug("Dropped %d degenerate input triangles", dropped)
        if len(welded) != len(positions):
            logger.debug("Welded %d duplicate vertices", len(positions) - len(welded))

        return cls(welded, welded_groups, world_matrix=world_matrix,
                   source_index=source_index, representative=representative,
                   attributes=attributes)

    def _build(self):
        """Create vertex/triangle arenas and derive adjacency."""
        positions = self.original_positions
        homogeneous = np.hstack([positions, np.ones((len(positions), 1))])
        positions_world = (homogeneous @ self.world_matrix.T)[:, :3]

        self.vertices: List[Vertex] = [
            Vertex(id=i, position=positions[i], position_world=positions_world[i])
            for i in range(len(positions))
        ]
        self.triangles: List[Triangle] = []
        self.triangle_lists: List[TriangleList] = []

        edge_count = Counter()

        for submesh, group in enumerate(self.original_triangles):
            tri_list = TriangleList(submesh=submesh)
            for face in group.tolist():
                index = len(self.triangles)
                a, b, c = face
                triangle = Triangle(
                    index=index,
                    indices=[a, b, c],
                    normal=compute_normal(positions[a], positions[b], positions[c]),
                    submesh=submesh,
                )
                self.triangles.append(triangle)
                tri_list.triangles.append(index)

                for vi in face:
                    vertex = self.vertices[vi]
                    vertex.faces.append(index)
                    for vj in face:
                        if vj != vi and vj not in vertex.neighbors:
                            vertex.neighbors.append(vj)

                for i in range(3):
                    edge = tuple(sorted((face[i], face[(i + 1) % 3])))
                    edge_count[edge] += 1

            self.triangle_lists.append(tri_list)

        for (a, b), count in edge_count.items():
            if count == 1:
                self.vertices[a].is_border = True
                self.vertices[b].is_border = True

        self._live_vertices = len(self.vertices)
        self._live_triangles = len(self.triangles)

        logger.debug("Built geometry: %d vertices, %d triangles, %d submeshes",
                     len(self.vertices), len(self.triangles), len(self.triangle_lists))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def vertex_count(self) -> int:
        """Number of vertices the graph was built with."""
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        """Number of triangles the graph was built with."""
        return len(self.triangles)

    @property
    def live_vertex_count(self) -> int:
        return self._live_vertices

    @property
    def live_triangle_count(self) -> int:
        return self._live_triangles

    @property
    def submesh_count(self) -> int:
        return len(self.triangle_lists)

    @property
    def mesh_scale(self) -> float:
        """Bounding box diagonal of the original positions (1.0 if degenerate)."""
        extents = self.original_positions.max(axis=0) - self.original_positions.min(axis=0)
        diagonal = float(np.linalg.norm(extents))
        return diagonal if diagonal > 1e-12 else 1.0

    def live_vertices(self) -> List[int]:
        return [v.id for v in self.vertices if not v.collapsed]

    def sides(self, u: int, v: int) -> List[Triangle]:
        """Live triangles incident to `u` that also contain `v`."""
        return [self.triangles[fi] for fi in self.vertices[u].faces
                if self.triangles[fi].has_vertex(v)]

    def to_buffers(self) -> Tuple[np.ndarray, List[np.ndarray]]:
        """
        Current live state as dense buffers.

        Returns:
            Tuple of (positions, per-submesh (M, 3) index arrays)
        """
        remap = {}
        positions = []
        for vertex in self.vertices:
            if not vertex.collapsed:
                remap[vertex.id] = len(positions)
                positions.append(vertex.position)

        groups = []
        for tri_list in self.triangle_lists:
            faces = [[remap[vi] for vi in self.triangles[ti].indices]
                     for ti in tri_list.triangles
                     if not self.triangles[ti].removed]
            groups.append(np.array(faces, dtype=np.int64).reshape(-1, 3))

        return np.array(positions).reshape(-1, 3), groups

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def collapse(self, u: int, v: Optional[int]) -> List[int]:
        """
        Collapse vertex `u` into its neighbor `v`.

        Triangles containing both vertices degenerate and are removed; the
        remaining triangles of `u` are rewired to `v`. `v` is None only
        when `u` has no neighbors, in which case `u` is simply dropped.

        Args:
            u: Vertex to remove
            v: Live neighbor of `u` that receives its triangles

        Returns:
            Ids of the live vertices whose adjacency changed

        Raises:
            ValueError: If `u` is already collapsed or `v` is not a live
                neighbor of `u`
        """
        source = self.vertices[u]
        if source.collapsed:
            raise ValueError(f"Vertex {u} is already collapsed")

        if v is None:
            if source.neighbors:
                raise ValueError(f"Vertex {u} has neighbors and needs a collapse target")
            self._remove_vertex(source)
            return []

        if v not in source.neighbors or self.vertices[v].collapsed:
            raise ValueError(f"Vertex {v} is not a live neighbor of {u}")

        target = self.vertices[v]
        former_neighbors = list(source.neighbors)

        for fi in list(source.faces):
            triangle = self.triangles[fi]
            if triangle.has_vertex(v):
                self._remove_triangle(triangle)
            else:
                triangle.indices[triangle.indices.index(u)] = v
                triangle.normal = self._triangle_normal(triangle)
                target.faces.append(fi)

        source.faces = []
        self._remove_vertex(source)

        touched = [v] + [n for n in former_neighbors if n != v]
        for vertex_id in touched:
            self._refresh_adjacency(self.vertices[vertex_id])

        return touched

    def _remove_vertex(self, vertex: Vertex):
        vertex.collapsed = True
        vertex.neighbors = []
        vertex.faces = []
        vertex.collapse_target = None
        self._live_vertices -= 1

    def _remove_triangle(self, triangle: Triangle):
        triangle.removed = True
        for vi in triangle.indices:
            self.vertices[vi].faces.remove(triangle.index)
        self._live_triangles -= 1

    def _triangle_normal(self, triangle: Triangle) -> np.ndarray:
        a, b, c = triangle.indices
        return compute_normal(self.vertices[a].position,
                              self.vertices[b].position,
                              self.vertices[c].position)

    def _refresh_adjacency(self, vertex: Vertex):
        """Rebuild neighbor order and border flag from the live faces of a vertex."""
        edge_uses = Counter()
        for fi in vertex.faces:
            for vi in self.triangles[fi].indices:
                if vi != vertex.id:
                    edge_uses[vi] += 1

        # Keep surviving neighbors in their current order, then append new ones
        neighbors = [n for n in vertex.neighbors if n in edge_uses]
        for n in edge_uses:
            if n not in neighbors:
                neighbors.append(n)

        vertex.neighbors = neighbors
        vertex.is_border = any(count == 1 for count in edge_uses.values())


def _validate_positions(positions) -> np.ndarray:
    try:
        positions = np.asarray(positions, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Positions are not numeric: {e}") from e

    if positions.size == 0:
        raise InvalidInputError("Position buffer is empty")
    if positions.ndim == 1 and positions.size % 3 == 0:
        positions = positions.reshape(-1, 3)
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise InvalidInputError(f"Positions must have shape (N, 3), got {positions.shape}")
    if not np.all(np.isfinite(positions)):
        raise InvalidInputError("Positions contain non-finite values")

    return positions


def _validate_triangles(triangles, n_vertices: int) -> List[np.ndarray]:
    """Normalize one or several index buffers into (M, 3) int arrays."""
    if isinstance(triangles, np.ndarray):
        buffers = [triangles]
    else:
        buffers = list(triangles)
        # A flat list of ints or a list of index triples is a single buffer
        if buffers and not any(isinstance(b, np.ndarray) for b in buffers):
            if not all(_is_buffer(b) for b in buffers) or \
                    all(_is_triple(b) for b in buffers):
                buffers = [triangles]

    if not buffers:
        raise InvalidInputError("No triangle index buffers given")

    groups = []
    for i, buffer in enumerate(buffers):
        indices = np.asarray(buffer)
        if indices.size == 0:
            groups.append(np.zeros((0, 3), dtype=np.int64))
            continue
        if not np.issubdtype(indices.dtype, np.integer):
            if not np.issubdtype(indices.dtype, np.number) or \
                    not np.all(np.mod(indices, 1) == 0):
                raise InvalidInputError(f"Index buffer {i} contains non-integer values")
        flat = indices.astype(np.int64).ravel()
        if len(flat) % 3 != 0:
            raise InvalidInputError(
                f"Index buffer {i} has {len(flat)} indices, not a multiple of 3"
            )
        if flat.min() < 0 or flat.max() >= n_vertices:
            raise InvalidInputError(
                f"Index buffer {i} references vertices outside [0, {n_vertices})"
            )
        groups.append(flat.reshape(-1, 3))

    if sum(len(g) for g in groups) == 0:
        raise InvalidInputError("Mesh has no triangles")

    return groups


def _is_buffer(item) -> bool:
    return isinstance(item, (list, tuple, np.ndarray))


def _is_triple(item) -> bool:
    return len(item) == 3 and all(np.isscalar(x) for x in item)


def _validate_attributes(attributes: Optional[Dict[str, np.ndarray]],
                         n_vertices: int) -> Dict[str, np.ndarray]:
    result = {}
    for name, values in (attributes or {}).items():
        values = np.asarray(values)
        if len(values) != n_vertices:
            raise InvalidInputError(
                f"Attribute '{name}' has {len(values)} rows, expected {n_vertices}"
            )
        result[name] = values
    return result


def _weld(positions: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Merge vertices with identical positions.

    Welded vertices are numbered by first appearance so a buffer without
    duplicates keeps its indexing.

    Returns:
        Tuple of (welded positions, raw index -> vertex id,
        vertex id -> first raw index)
    """
    _, first_index, inverse = np.unique(positions, axis=0,
                                        return_index=True, return_inverse=True)
    inverse = inverse.reshape(-1)
    order = np.argsort(first_index)
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))

    source_index = rank[inverse]
    representative = first_index[order]
    return positions[representative], source_index, representative
