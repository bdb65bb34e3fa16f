"""Graph and buffer consistency checks shared by the tests."""

from collections import Counter

import numpy as np

from meshsimplify.geometry import MeshGeometry
from meshsimplify.utils import create_mesh_with_boundary


def grid_buffers(rows: int = 4, cols: int = 4):
    """Flat grid over [-1, 1]^2 with vertex index row * cols + col."""
    mesh = create_mesh_with_boundary(rows=rows, cols=cols, amplitude=0.0)
    return np.asarray(mesh.vertices), np.asarray(mesh.faces)


def assert_consistent(geometry: MeshGeometry):
    """Check adjacency, border flags and counters against the live triangles."""
    live_triangles = [t for t in geometry.triangles if not t.removed]
    assert geometry.live_triangle_count == len(live_triangles)
    assert geometry.live_vertex_count == sum(1 for v in geometry.vertices if not v.collapsed)

    edge_count = Counter()
    for t in live_triangles:
        assert len(set(t.indices)) == 3
        for i in range(3):
            edge_count[tuple(sorted((t.indices[i], t.indices[(i + 1) % 3])))] += 1
    border = {vi for edge, count in edge_count.items() if count == 1 for vi in edge}

    for vertex in geometry.vertices:
        if vertex.collapsed:
            assert vertex.neighbors == []
            assert vertex.faces == []
            continue

        expected_faces = {t.index for t in live_triangles if vertex.id in t.indices}
        assert set(vertex.faces) == expected_faces
        assert len(vertex.faces) == len(expected_faces)

        expected_neighbors = {vi for t in live_triangles if vertex.id in t.indices
                              for vi in t.indices if vi != vertex.id}
        assert set(vertex.neighbors) == expected_neighbors
        assert len(vertex.neighbors) == len(expected_neighbors)
        for n in vertex.neighbors:
            assert not geometry.vertices[n].collapsed

        assert vertex.is_border == (vertex.id in border)


def assert_valid_buffers(mesh, vertex_count: int):
    assert mesh.vertex_count == vertex_count
    for group in mesh.triangles:
        assert group.ndim == 2 and group.shape[1] == 3
        if len(group):
            assert group.min() >= 0
            assert group.max() < vertex_count
            assert np.all(group[:, 0] != group[:, 1])
            assert np.all(group[:, 1] != group[:, 2])
            assert np.all(group[:, 0] != group[:, 2])
