"""
Mesh Assembly
=============

Rebuilds flat vertex/index buffers at any vertex count by replaying the
collapse log over the original buffers. The working graph is never
touched, so levels can be previewed repeatedly and in any order.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import trimesh

from .errors import InvalidInputError
from .geometry import MeshGeometry

logger = logging.getLogger(__name__)


@dataclass
class SimplifiedMesh:
    """
    Flat buffers of a mesh at one simplification level.

    Attributes:
        positions: (k, 3) vertex positions
        triangles: One (M_i, 3) index array per submesh
        attributes: Per-vertex attributes carried from the input
        vertex_map: Output vertex index -> graph vertex id
    """
    positions: np.ndarray
    triangles: List[np.ndarray]
    attributes: Dict[str, np.ndarray] = field(default_factory=dict)
    vertex_map: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return sum(len(g) for g in self.triangles)

    @property
    def faces(self) -> np.ndarray:
        """All submesh triangles stacked into one (M, 3) array."""
        if not self.triangles:
            return np.zeros((0, 3), dtype=np.int64)
        return np.vstack(self.triangles)

    def to_trimesh(self) -> trimesh.Trimesh:
        """
        Convert to a single trimesh object.

        Submeshes are concatenated and no merging or cleanup is applied,
        so vertex indices match `positions`.
        """
        mesh = trimesh.Trimesh(vertices=self.positions, faces=self.faces, process=False)
        if 'normals' in self.attributes:
            mesh.vertex_normals = self.attributes['normals']
        return mesh


def vertex_count_for_fraction(original_vertex_count: int, fraction: float) -> int:
    """Vertex count for a fraction of the original, never below 1."""
    if not 0.0 <= fraction <= 1.0:
        raise InvalidInputError(f"Vertex fraction must be in [0, 1], got {fraction}")
    return max(1, int(round(fraction * original_vertex_count)))


class MeshAssembler:
    """
    Builds meshes at arbitrary vertex counts from a collapse log.
    """

    def __init__(self, geometry: MeshGeometry, records: Sequence = ()):
        """
        Initialize the assembler.

        Args:
            geometry: Geometry whose original buffers are replayed; only
                its immutable original data is copied
            records: CollapseRecord sequence, in collapse order
        """
        self.positions = geometry.original_positions.copy()
        self.triangles = [g.copy() for g in geometry.original_triangles]
        self.representative = geometry.representative.copy()
        self.attributes = {k: v.copy() for k, v in geometry.attributes.items()}
        self.records = list(records)

    @property
    def original_vertex_count(self) -> int:
        return len(self.positions)

    @property
    def original_triangle_count(self) -> int:
        return sum(len(g) for g in self.triangles)

    @property
    def min_vertex_count(self) -> int:
        """Smallest vertex count reachable with the current records."""
        if not self.records:
            return self.original_vertex_count
        return self.records[-1].resulting_vertex_count

    def vertex_count_for_fraction(self, fraction: float) -> int:
        return vertex_count_for_fraction(self.original_vertex_count, fraction)

    def _resolve(self, vertex_count: int) -> np.ndarray:
        """
        Map every vertex to its surviving representative at a level.

        Records are walked backwards: a collapse target always outlives
        the vertex collapsed into it, so its own mapping is final by the
        time it is needed.
        """
        if not 0 < vertex_count <= self.original_vertex_count:
            raise InvalidInputError(
                f"Vertex count must be in [1, {self.original_vertex_count}], "
                f"got {vertex_count}"
            )

        applied = 0
        for record in self.records:
            if record.resulting_vertex_count < vertex_count:
                break
            applied += 1

        if applied == len(self.records) and self.min_vertex_count > vertex_count:
            logger.warning("Requested %d vertices but records only reach %d",
                           vertex_count, self.min_vertex_count)

        rep = np.arange(self.original_vertex_count)
        for record in reversed(self.records[:applied]):
            if record.target_vertex_id is None:
                rep[record.collapsed_vertex_id] = -1
            else:
                rep[record.collapsed_vertex_id] = rep[record.target_vertex_id]
        return rep

    def assemble(self, vertex_count: Optional[int] = None) -> SimplifiedMesh:
        """
        Assemble the mesh at a vertex count.

        Args:
            vertex_count: Target count in [1, original count]; None means
                the lowest level the records reach

        Returns:
            SimplifiedMesh with densely renumbered vertices
        """
        if vertex_count is None:
            vertex_count = self.min_vertex_count

        rep = self._resolve(vertex_count)
        alive = rep == np.arange(len(rep))
        vertex_map = np.flatnonzero(alive)

        dense = np.full(len(rep), -1, dtype=np.int64)
        dense[vertex_map] = np.arange(len(vertex_map))

        triangles = []
        for group in self.triangles:
            mapped = rep[group]
            keep = _live_faces(mapped)
            triangles.append(dense[mapped[keep]].reshape(-1, 3))

        source_rows = self.representative[vertex_map]
        attributes = {name: values[source_rows] for name, values in self.attributes.items()}

        return SimplifiedMesh(
            positions=self.positions[vertex_map],
            triangles=triangles,
            attributes=attributes,
            vertex_map=vertex_map,
        )

    def triangle_count(self, vertex_count: int) -> int:
        """Number of triangles of the mesh at a vertex count."""
        rep = self._resolve(vertex_count)
        total = 0
        for group in self.triangles:
            total += int(np.count_nonzero(_live_faces(rep[group])))
        return total


def _live_faces(mapped: np.ndarray) -> np.ndarray:
    """Mask of remapped faces that still have three distinct live vertices."""
    return ((mapped[:, 0] != mapped[:, 1]) &
            (mapped[:, 1] != mapped[:, 2]) &
            (mapped[:, 0] != mapped[:, 2]) &
            np.all(mapped >= 0, axis=1))
