"""
Mesh Visualization Module
=========================

matplotlib previews of simplification results: side-by-side comparison,
multi-level views and a collapse-order heatmap.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import cm
from mpl_toolkits.mplot3d import Axes3D
from mpl_toolkits.mplot3d.art3d import Poly3DCollection
import trimesh


def collapse_order(records: Sequence, vertex_count: int) -> np.ndarray:
    """
    Per-vertex collapse rank normalized to [0, 1].

    0 means collapsed first, 1 means never collapsed by the records.

    Args:
        records: CollapseRecord sequence
        vertex_count: Number of vertices in the original mesh
    """
    order = np.ones(vertex_count)
    total = max(1, len(records))
    for rank, record in enumerate(records):
        order[record.collapsed_vertex_id] = rank / total
    return order


class MeshVisualizer:
    """
    Visualization tools for mesh simplification results.
    """

    def __init__(self, figsize: Tuple[int, int] = (14, 7)):
        self.figsize = figsize
        self.order_colormap = cm.RdYlGn

    def plot_mesh_comparison(self, original: trimesh.Trimesh,
                             simplified: trimesh.Trimesh,
                             title: str = "Mesh Comparison",
                             show_wireframe: bool = True,
                             save_path: Optional[str] = None) -> plt.Figure:
        """
        Create side-by-side comparison of original and simplified meshes.

        Args:
            original: Original high-resolution mesh
            simplified: Simplified mesh
            title: Plot title
            show_wireframe: Whether to show wireframe overlay
            save_path: Optional path to save the figure

        Returns:
            Matplotlib figure object
        """
        fig, axes = plt.subplots(1, 2, figsize=self.figsize,
                                 subplot_kw={'projection': '3d'})

        self._plot_single_mesh(axes[0], original,
                               f"Original\n({len(original.faces)} faces, {len(original.vertices)} vertices)",
                               show_wireframe)
        self._plot_single_mesh(axes[1], simplified,
                               f"Simplified\n({len(simplified.faces)} faces, {len(simplified.vertices)} vertices)",
                               show_wireframe)

        fig.suptitle(title, fontsize=14, fontweight='bold')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        return fig

    def plot_multi_resolution(self, meshes: List[trimesh.Trimesh],
                              labels: Optional[List[str]] = None,
                              title: str = "Multi-Resolution Comparison",
                              save_path: Optional[str] = None) -> plt.Figure:
        """
        Plot several simplification levels of the same mesh.

        Args:
            meshes: Meshes at different levels
            labels: Optional labels for each mesh
            title: Plot title
            save_path: Optional path to save the figure

        Returns:
            Matplotlib figure object
        """
        n = len(meshes)
        cols = min(4, n)
        rows = (n + cols - 1) // cols

        fig = plt.figure(figsize=(5 * cols, 5 * rows))

        for i, mesh in enumerate(meshes):
            ax = fig.add_subplot(rows, cols, i + 1, projection='3d')
            if labels and i < len(labels):
                label = labels[i]
            else:
                label = f"{len(mesh.vertices)} vertices, {len(mesh.faces)} faces"
            self._plot_single_mesh(ax, mesh, label, show_wireframe=True)

        fig.suptitle(title, fontsize=14, fontweight='bold')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        return fig

    def plot_collapse_order(self, mesh: trimesh.Trimesh,
                            order: np.ndarray,
                            title: str = "Collapse Order",
                            save_path: Optional[str] = None) -> plt.Figure:
        """
        Color the original mesh by when each vertex gets collapsed.

        Red vertices go first, green ones survive longest. Useful to check
        the effect of relevance spheres and border protection.

        Args:
            mesh: Original mesh
            order: Per-vertex values from `collapse_order`
            title: Plot title
            save_path: Optional path to save the figure
        """
        fig = plt.figure(figsize=self.figsize)
        ax = fig.add_subplot(1, 1, 1, projection='3d')
        self._plot_single_mesh(ax, mesh, title, show_wireframe=False, vertex_values=order)

        sm = plt.cm.ScalarMappable(cmap=self.order_colormap, norm=plt.Normalize(0.0, 1.0))
        sm.set_array([])
        cbar = fig.colorbar(sm, ax=ax, shrink=0.6, aspect=20, pad=0.1)
        cbar.set_label('Collapse order', fontsize=10)

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        return fig

    def _plot_single_mesh(self, ax: Axes3D, mesh: trimesh.Trimesh,
                          title: str, show_wireframe: bool,
                          vertex_values: Optional[np.ndarray] = None):
        """Plot a single mesh on a 3D axis."""
        vertices = np.asarray(mesh.vertices)
        faces = np.asarray(mesh.faces)

        # Normalize to unit cube centered at origin
        center = vertices.mean(axis=0)
        scale = np.max(np.abs(vertices - center))
        if scale < 1e-12:
            scale = 1.0
        triangles = ((vertices - center) / scale)[faces]

        if vertex_values is not None:
            face_colors = self.order_colormap(vertex_values[faces].mean(axis=1))
        else:
            face_colors = self._compute_face_colors(mesh)

        poly = Poly3DCollection(triangles, facecolors=face_colors,
                                edgecolors='black' if show_wireframe else 'none',
                                linewidths=0.1 if show_wireframe else 0,
                                alpha=0.9)
        ax.add_collection3d(poly)

        ax.set_xlim(-1, 1)
        ax.set_ylim(-1, 1)
        ax.set_zlim(-1, 1)
        ax.set_box_aspect([1, 1, 1])
        ax.set_title(title, fontsize=10)

    def _compute_face_colors(self, mesh: trimesh.Trimesh) -> np.ndarray:
        """Diffuse shading from face normals."""
        light_dir = np.array([1, 1, 2])
        light_dir = light_dir / np.linalg.norm(light_dir)

        intensity = np.clip(np.asarray(mesh.face_normals) @ light_dir, 0.2, 1.0)

        colors = np.zeros((len(mesh.faces), 4))
        colors[:, 0] = 0.3 + 0.4 * intensity
        colors[:, 1] = 0.4 + 0.4 * intensity
        colors[:, 2] = 0.6 + 0.3 * intensity
        colors[:, 3] = 1.0
        return colors
