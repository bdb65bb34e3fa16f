"""Shared fixtures."""

import numpy as np
import pytest

from meshsimplify.geometry import MeshGeometry
from meshsimplify.utils import create_cube, create_mesh_with_boundary

from tests.helpers import grid_buffers


@pytest.fixture
def grid_geometry():
    """Flat 4x4 grid: 12 border vertices, interior vertices 5, 6, 9, 10."""
    positions, faces = grid_buffers(4, 4)
    return MeshGeometry.from_buffers(positions, faces)


@pytest.fixture
def wavy_grid_geometry():
    mesh = create_mesh_with_boundary(rows=8, cols=8, amplitude=0.2)
    return MeshGeometry.from_buffers(mesh.vertices, mesh.faces)


@pytest.fixture
def cube_mesh():
    return create_cube(size=1.0, subdivisions=2)


@pytest.fixture
def cube_geometry(cube_mesh):
    return MeshGeometry.from_buffers(cube_mesh.vertices, cube_mesh.faces)


@pytest.fixture
def tetrahedron_buffers():
    positions = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ])
    faces = np.array([
        [0, 2, 1],
        [0, 1, 3],
        [1, 2, 3],
        [0, 3, 2],
    ])
    return positions, faces
