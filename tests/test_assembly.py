"""Tests for rebuilding meshes at arbitrary levels from the collapse log."""

import logging

import numpy as np
import pytest

from meshsimplify.assembly import MeshAssembler, vertex_count_for_fraction
from meshsimplify.errors import InvalidInputError
from meshsimplify.geometry import MeshGeometry
from meshsimplify.simplifier import MeshSimplifier

from tests.helpers import assert_valid_buffers


@pytest.fixture
def simplified_cube(cube_geometry):
    data = MeshSimplifier().compute_data(cube_geometry)
    return cube_geometry, data.records


def test_full_level_reproduces_input(simplified_cube):
    geometry, records = simplified_cube
    mesh = MeshAssembler(geometry, records).assemble(geometry.vertex_count)

    assert np.array_equal(mesh.positions, geometry.original_positions)
    assert np.array_equal(mesh.triangles[0], geometry.original_triangles[0])
    assert np.array_equal(mesh.vertex_map, np.arange(geometry.vertex_count))


def test_every_level_has_exact_vertex_count(simplified_cube):
    geometry, records = simplified_cube
    assembler = MeshAssembler(geometry, records)

    for count in range(1, geometry.vertex_count + 1):
        mesh = assembler.assemble(count)
        assert_valid_buffers(mesh, count)
        assert assembler.triangle_count(count) == mesh.triangle_count


def test_triangle_count_never_grows_while_reducing(simplified_cube):
    geometry, records = simplified_cube
    assembler = MeshAssembler(geometry, records)
    counts = [assembler.triangle_count(n) for n in range(geometry.vertex_count, 0, -1)]
    assert counts == sorted(counts, reverse=True)
    assert counts[-1] == 0


@pytest.mark.parametrize("target", [70, 40, 12, 3])
def test_level_matches_live_graph(cube_mesh, target):
    geometry = MeshGeometry.from_buffers(cube_mesh.vertices, cube_mesh.faces)
    data = MeshSimplifier().compute_data(geometry, target_vertex_count=target)

    mesh = MeshAssembler(geometry, data.records).assemble(target)
    positions, groups = geometry.to_buffers()

    assert np.array_equal(mesh.positions, positions)
    assert np.array_equal(mesh.triangles[0], groups[0])


def test_levels_in_any_order(simplified_cube):
    geometry, records = simplified_cube
    assembler = MeshAssembler(geometry, records)

    first = assembler.assemble(30)
    assembler.assemble(90)
    assembler.assemble(2)
    again = assembler.assemble(30)

    assert np.array_equal(first.positions, again.positions)
    assert np.array_equal(first.faces, again.faces)


def test_assemble_defaults_to_lowest_level(simplified_cube):
    geometry, records = simplified_cube
    assembler = MeshAssembler(geometry, records)
    assert assembler.min_vertex_count == 1
    assert assembler.assemble().vertex_count == 1


def test_without_records_returns_original(cube_geometry):
    assembler = MeshAssembler(cube_geometry)
    assert assembler.min_vertex_count == cube_geometry.vertex_count
    assert assembler.assemble().triangle_count == cube_geometry.triangle_count


def test_unreachable_level_returns_reached_one(cube_geometry, caplog):
    data = MeshSimplifier().compute_data(cube_geometry, target_vertex_count=50)
    assembler = MeshAssembler(cube_geometry, data.records)

    with caplog.at_level(logging.WARNING, logger="meshsimplify"):
        mesh = assembler.assemble(10)

    assert mesh.vertex_count == 50
    assert "records only reach 50" in caplog.text


@pytest.mark.parametrize("count", [0, -1, 99])
def test_invalid_vertex_count(simplified_cube, count):
    geometry, records = simplified_cube
    assert geometry.vertex_count == 98
    with pytest.raises(InvalidInputError):
        MeshAssembler(geometry, records).assemble(count)


def test_attributes_follow_welded_representatives():
    positions = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
    ])
    uv = np.arange(10, dtype=float).reshape(5, 2)
    geometry = MeshGeometry.from_buffers(positions, [[0, 1, 2], [3, 4, 2]],
                                         attributes={'uv': uv})
    data = MeshSimplifier().compute_data(geometry, target_vertex_count=3)

    mesh = MeshAssembler(geometry, data.records).assemble(3)

    expected = uv[geometry.representative[mesh.vertex_map]]
    assert np.array_equal(mesh.attributes['uv'], expected)


def test_submesh_groups_are_kept(tetrahedron_buffers):
    positions, faces = tetrahedron_buffers
    geometry = MeshGeometry.from_buffers(positions, [faces[:2], faces[2:]])
    data = MeshSimplifier().compute_data(geometry, target_vertex_count=3)

    mesh = MeshAssembler(geometry, data.records).assemble(3)

    assert len(mesh.triangles) == 2
    assert mesh.triangle_count == geometry.live_triangle_count
    assert_valid_buffers(mesh, 3)


def test_to_trimesh_keeps_indexing(simplified_cube):
    geometry, records = simplified_cube
    mesh = MeshAssembler(geometry, records).assemble(50)

    converted = mesh.to_trimesh()

    assert len(converted.vertices) == 50
    assert np.array_equal(np.asarray(converted.faces), mesh.faces)


@pytest.mark.parametrize("fraction, expected", [
    (1.0, 98), (0.5, 49), (0.0, 1), (0.001, 1),
])
def test_vertex_count_for_fraction(fraction, expected):
    assert vertex_count_for_fraction(98, fraction) == expected


@pytest.mark.parametrize("fraction", [-0.1, 1.1])
def test_vertex_count_for_invalid_fraction(fraction):
    with pytest.raises(InvalidInputError):
        vertex_count_for_fraction(98, fraction)
