"""
Mesh Evaluation Module
======================

Quantitative quality metrics for simplified meshes:
- Vertex/face count statistics
- Hausdorff and Chamfer distances
- Border preservation
"""

from typing import Dict, Tuple

import numpy as np
import trimesh
from scipy.spatial import cKDTree


class MeshEvaluator:
    """
    Evaluation tools for assessing simplification quality.
    """

    def __init__(self, sample_points: int = 10000, seed: int = 0):
        """
        Initialize evaluator.

        Args:
            sample_points: Number of surface samples for distance metrics
            seed: Random seed for surface sampling
        """
        self.sample_points = sample_points
        self.seed = seed

    def compute_all_metrics(self, original: trimesh.Trimesh,
                            simplified: trimesh.Trimesh) -> Dict[str, float]:
        """
        Compute all available metrics.

        Args:
            original: Original high-resolution mesh
            simplified: Simplified mesh

        Returns:
            Dictionary of metric names to values
        """
        metrics = {
            'original_faces': len(original.faces),
            'simplified_faces': len(simplified.faces),
            'original_vertices': len(original.vertices),
            'simplified_vertices': len(simplified.vertices),
            'face_reduction_ratio': len(simplified.faces) / max(1, len(original.faces)),
            'vertex_reduction_ratio': len(simplified.vertices) / max(1, len(original.vertices)),
        }

        hausdorff, forward, backward = self.hausdorff_distance(original, simplified)
        metrics['hausdorff_distance'] = hausdorff
        metrics['hausdorff_forward'] = forward
        metrics['hausdorff_backward'] = backward
        metrics['chamfer_distance'] = self.chamfer_distance(original, simplified)

        metrics['original_border_edges'] = len(border_edges(original.faces))
        metrics['simplified_border_edges'] = len(border_edges(simplified.faces))

        return metrics

    def _samples(self, mesh: trimesh.Trimesh) -> np.ndarray:
        if len(mesh.faces) == 0:
            return np.asarray(mesh.vertices)
        points, _ = trimesh.sample.sample_surface(mesh, self.sample_points, seed=self.seed)
        return points

    def hausdorff_distance(self, mesh1: trimesh.Trimesh,
                           mesh2: trimesh.Trimesh) -> Tuple[float, float, float]:
        """
        Symmetric Hausdorff distance between two meshes, from surface samples.

        Returns:
            Tuple of (symmetric_hausdorff, forward, backward) distances
        """
        points1 = self._samples(mesh1)
        points2 = self._samples(mesh2)

        forward, _ = cKDTree(points2).query(points1)
        backward, _ = cKDTree(points1).query(points2)

        hausdorff_forward = float(np.max(forward))
        hausdorff_backward = float(np.max(backward))
        return max(hausdorff_forward, hausdorff_backward), hausdorff_forward, hausdorff_backward

    def chamfer_distance(self, mesh1: trimesh.Trimesh,
                         mesh2: trimesh.Trimesh) -> float:
        """Symmetric Chamfer distance (sum of mean squared nearest distances)."""
        points1 = self._samples(mesh1)
        points2 = self._samples(mesh2)

        forward, _ = cKDTree(points2).query(points1)
        backward, _ = cKDTree(points1).query(points2)

        return float(np.mean(forward ** 2)) + float(np.mean(backward ** 2))

    def generate_report(self, metrics: Dict[str, float],
                        title: str = "Simplification") -> str:
        """
        Generate a human-readable evaluation report.

        Args:
            metrics: Dictionary from compute_all_metrics
            title: Report title

        Returns:
            Formatted report string
        """
        lines = [
            "=" * 60,
            f"Mesh Simplification Report - {title}",
            "=" * 60,
            "",
            "MESH STATISTICS",
            "-" * 40,
            f"  Original:    {metrics.get('original_faces', 'N/A'):>8} faces, "
            f"{metrics.get('original_vertices', 'N/A'):>8} vertices",
            f"  Simplified:  {metrics.get('simplified_faces', 'N/A'):>8} faces, "
            f"{metrics.get('simplified_vertices', 'N/A'):>8} vertices",
            f"  Reduction:   {metrics.get('vertex_reduction_ratio', 0)*100:>7.2f}% of original vertices",
            "",
            "GEOMETRIC ACCURACY",
            "-" * 40,
            f"  Hausdorff Distance:    {metrics.get('hausdorff_distance', np.nan):>12.6f}",
            f"  Chamfer Distance:      {metrics.get('chamfer_distance', np.nan):>12.6f}",
            "",
            "BORDERS",
            "-" * 40,
            f"  Original Border Edges:   {metrics.get('original_border_edges', 0):>8}",
            f"  Simplified Border Edges: {metrics.get('simplified_border_edges', 0):>8}",
        ]

        if 'runtime' in metrics:
            lines.append(f"  Runtime:               {metrics['runtime']:>11.4f} seconds")

        lines.append("=" * 60)
        return "\n".join(lines)


def border_edges(faces: np.ndarray) -> set:
    """Edges used by exactly one face."""
    edge_count = {}
    for face in np.asarray(faces).tolist():
        for i in range(3):
            edge = tuple(sorted([face[i], face[(i + 1) % 3]]))
            edge_count[edge] = edge_count.get(edge, 0) + 1
    return {edge for edge, count in edge_count.items() if count == 1}
