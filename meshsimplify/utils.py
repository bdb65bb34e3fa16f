"""
Utility Functions
=================

Mesh loading, trimesh interop and sample mesh creation utilities.
"""

from typing import Dict, Optional

import numpy as np
import trimesh

from .geometry import MeshGeometry


def load_mesh(path: str) -> trimesh.Trimesh:
    """
    Load a mesh from file.

    Supports: OBJ, PLY, STL, OFF, and other formats supported by trimesh.

    Args:
        path: Path to mesh file

    Returns:
        Loaded trimesh object
    """
    mesh = trimesh.load(path, force='mesh')

    if isinstance(mesh, trimesh.Scene):
        # Convert scene to single mesh
        meshes = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not meshes:
            raise ValueError("No valid meshes found in file")
        mesh = trimesh.util.concatenate(meshes)

    return mesh


def geometry_from_trimesh(mesh: trimesh.Trimesh,
                          world_matrix: Optional[np.ndarray] = None,
                          merge_duplicates: bool = True) -> MeshGeometry:
    """
    Build a MeshGeometry from a trimesh object.

    Vertex normals and, when present, texture coordinates are carried
    through as attributes.

    Args:
        mesh: Input mesh
        world_matrix: Optional 4x4 local-to-world transform
        merge_duplicates: Weld vertices sharing a position

    Returns:
        Geometry model ready for simplification
    """
    attributes: Dict[str, np.ndarray] = {
        'normals': np.asarray(mesh.vertex_normals),
    }
    uv = getattr(mesh.visual, 'uv', None)
    if uv is not None and len(uv) == len(mesh.vertices):
        attributes['uv'] = np.asarray(uv)

    return MeshGeometry.from_buffers(
        np.asarray(mesh.vertices),
        np.asarray(mesh.faces),
        world_matrix=world_matrix,
        attributes=attributes,
        merge_duplicates=merge_duplicates,
    )


def create_sample_mesh(mesh_type: str = "sphere") -> trimesh.Trimesh:
    """
    Create a sample mesh for testing.

    Args:
        mesh_type: Type of mesh to create:
            - "sphere": Icosphere
            - "torus": Torus
            - "cube": Subdivided cube
            - "cylinder": Cylinder
            - "grid": Open wavy grid with a border loop

    Returns:
        Generated trimesh object
    """
    if mesh_type == "torus":
        mesh = trimesh.creation.torus(major_radius=1.0, minor_radius=0.3,
                                      major_sections=48, minor_sections=24)
    elif mesh_type == "cube":
        mesh = create_cube(subdivisions=3)
    elif mesh_type == "cylinder":
        mesh = trimesh.creation.cylinder(radius=0.5, height=2.0, sections=48)
    elif mesh_type == "grid":
        mesh = create_mesh_with_boundary()
    else:
        mesh = trimesh.creation.icosphere(subdivisions=3, radius=1.0)

    return mesh


def create_cube(size: float = 1.0, subdivisions: int = 2) -> trimesh.Trimesh:
    """
    Create a closed, uniformly subdivided cube.

    Args:
        size: Edge length
        subdivisions: Number of midpoint subdivision passes

    Returns:
        Watertight cube mesh
    """
    mesh = trimesh.creation.box(extents=[size, size, size])
    for _ in range(subdivisions):
        mesh = mesh.subdivide()
    return mesh


def create_mesh_with_boundary(rows: int = 20, cols: int = 20,
                              amplitude: float = 0.2,
                              noise: float = 0.0,
                              seed: Optional[int] = None) -> trimesh.Trimesh:
    """
    Create a mesh with boundaries (open surface) for testing border handling.

    Creates a wavy surface grid.

    Args:
        rows: Number of rows in the grid
        cols: Number of columns in the grid
        amplitude: Height of the waves (0 gives a flat grid)
        noise: Standard deviation of random vertex jitter
        seed: Seed for the jitter

    Returns:
        Open surface mesh
    """
    x = np.linspace(-1, 1, cols)
    y = np.linspace(-1, 1, rows)
    X, Y = np.meshgrid(x, y)

    Z = amplitude * np.sin(3 * X) * np.cos(3 * Y)

    vertices = np.column_stack([X.flatten(), Y.flatten(), Z.flatten()])

    # Two triangles per grid cell
    faces = []
    for i in range(rows - 1):
        for j in range(cols - 1):
            idx = i * cols + j
            faces.append([idx, idx + 1, idx + cols])
            faces.append([idx + 1, idx + cols + 1, idx + cols])

    if noise > 0:
        rng = np.random.default_rng(seed)
        vertices = vertices + rng.normal(scale=noise, size=vertices.shape)

    return trimesh.Trimesh(vertices=vertices, faces=np.array(faces), process=False)


def get_mesh_info(mesh: trimesh.Trimesh) -> dict:
    """
    Get basic information about a mesh.

    Args:
        mesh: Input mesh

    Returns:
        Dictionary of mesh properties
    """
    edge_count = {}
    for face in mesh.faces:
        for i in range(3):
            edge = tuple(sorted([face[i], face[(i + 1) % 3]]))
            edge_count[edge] = edge_count.get(edge, 0) + 1

    return {
        'vertices': len(mesh.vertices),
        'faces': len(mesh.faces),
        'boundary_edges': sum(1 for count in edge_count.values() if count == 1),
        'is_watertight': mesh.is_watertight,
        'scale': float(mesh.scale),
    }
