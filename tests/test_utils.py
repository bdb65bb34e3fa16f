"""Tests for trimesh interop, sample meshes, metrics and plots."""

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pytest
import trimesh

from meshsimplify.assembly import MeshAssembler
from meshsimplify.evaluation import MeshEvaluator, border_edges
from meshsimplify.simplifier import MeshSimplifier
from meshsimplify.utils import (
    create_cube,
    create_mesh_with_boundary,
    create_sample_mesh,
    geometry_from_trimesh,
    get_mesh_info,
    load_mesh,
)
from meshsimplify.visualization import MeshVisualizer, collapse_order


@pytest.mark.parametrize("mesh_type", ["sphere", "torus", "cube", "cylinder", "grid"])
def test_sample_meshes(mesh_type):
    mesh = create_sample_mesh(mesh_type)
    assert len(mesh.vertices) > 0
    assert len(mesh.faces) > 0


def test_cube_is_closed(cube_mesh):
    info = get_mesh_info(cube_mesh)
    assert info['vertices'] == 98
    assert info['boundary_edges'] == 0
    assert info['is_watertight']


def test_grid_has_border_loop():
    mesh = create_mesh_with_boundary(rows=5, cols=6)
    assert len(mesh.vertices) == 30
    assert len(mesh.faces) == 2 * 4 * 5
    assert get_mesh_info(mesh)['boundary_edges'] == 2 * (4 + 5)


def test_noise_is_seeded():
    a = create_mesh_with_boundary(rows=4, cols=4, noise=0.01, seed=3)
    b = create_mesh_with_boundary(rows=4, cols=4, noise=0.01, seed=3)
    assert np.array_equal(a.vertices, b.vertices)


def test_geometry_from_trimesh_carries_normals():
    mesh = create_cube(subdivisions=1)
    geometry = geometry_from_trimesh(mesh)

    assert geometry.vertex_count == len(mesh.vertices)
    assert geometry.attributes['normals'].shape == (len(mesh.vertices), 3)


def test_load_mesh_round_trip(tmp_path, cube_mesh):
    path = tmp_path / "cube.ply"
    cube_mesh.export(str(path))

    loaded = load_mesh(str(path))

    assert isinstance(loaded, trimesh.Trimesh)
    assert len(loaded.faces) == len(cube_mesh.faces)


def test_metrics_identical_meshes(cube_mesh):
    evaluator = MeshEvaluator(sample_points=500)
    metrics = evaluator.compute_all_metrics(cube_mesh, cube_mesh)

    assert metrics['vertex_reduction_ratio'] == 1.0
    assert metrics['hausdorff_distance'] == pytest.approx(0.0, abs=1e-9)
    assert metrics['simplified_border_edges'] == 0


def test_metrics_after_simplification(cube_mesh):
    geometry = geometry_from_trimesh(cube_mesh)
    data = MeshSimplifier().compute_data(geometry)
    assembler = MeshAssembler(geometry, data.records)
    original = assembler.assemble(98).to_trimesh()
    simplified = assembler.assemble(20).to_trimesh()

    evaluator = MeshEvaluator(sample_points=500)
    metrics = evaluator.compute_all_metrics(original, simplified)
    report = evaluator.generate_report(metrics, "cube")

    assert metrics['simplified_vertices'] == 20
    assert metrics['hausdorff_distance'] >= metrics['hausdorff_forward'] - 1e-12
    assert metrics['chamfer_distance'] >= 0.0
    assert "Mesh Simplification Report - cube" in report


def test_border_edges():
    assert border_edges(np.array([[0, 1, 2], [0, 2, 3]])) == {
        (0, 1), (1, 2), (2, 3), (0, 3)
    }


def test_collapse_order_ranks(wavy_grid_geometry):
    data = MeshSimplifier().compute_data(wavy_grid_geometry, target_vertex_count=32)
    order = collapse_order(data.records, wavy_grid_geometry.vertex_count)

    first = data.records[0].collapsed_vertex_id
    assert order[first] == 0.0
    survivors = wavy_grid_geometry.live_vertices()
    assert np.all(order[survivors] == 1.0)


def test_plots(tmp_path, cube_mesh):
    geometry = geometry_from_trimesh(cube_mesh)
    data = MeshSimplifier().compute_data(geometry)
    assembler = MeshAssembler(geometry, data.records)
    original = assembler.assemble(98).to_trimesh()
    levels = [assembler.assemble(n).to_trimesh() for n in (50, 25)]
    visualizer = MeshVisualizer(figsize=(6, 3))

    fig = visualizer.plot_mesh_comparison(original, levels[0],
                                          save_path=str(tmp_path / "comparison.png"))
    plt.close(fig)
    fig = visualizer.plot_multi_resolution([original] + levels, ["98", "50", "25"])
    plt.close(fig)
    fig = visualizer.plot_collapse_order(original, collapse_order(data.records, 98),
                                         save_path=str(tmp_path / "order.png"))
    plt.close(fig)

    assert (tmp_path / "comparison.png").exists()
    assert (tmp_path / "order.png").exists()
