"""
Relevance Volumes
=================

Oriented, scaled spheres that bias the collapse cost of the vertices
they enclose.

A sphere is the ball of radius 0.5 in its own local frame, placed in the
world by a translation * rotation * scale transform. When several spheres
contain the same vertex, the last one in list order decides the bias.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

import numpy as np
import trimesh

from .errors import InvalidInputError


SPHERE_RADIUS = 0.5


@dataclass
class RelevanceSphere:
    """
    A weighted region biasing simplification.

    Attributes:
        position: World-space center of the sphere
        rotation: Unit quaternion (w, x, y, z)
        scale: Per-axis scale; a scale of 1 gives a sphere of diameter 1
        relevance: Bias in [-1, 1]. Negative values make enclosed vertices
            collapse earlier, positive values protect them.
    """
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    relevance: float = 0.0

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).reshape(3)
        self.rotation = np.asarray(self.rotation, dtype=float).reshape(4)
        self.scale = np.asarray(self.scale, dtype=float).reshape(3)
        self.relevance = float(self.relevance)

        if not -1.0 <= self.relevance <= 1.0:
            raise InvalidInputError(
                f"Sphere relevance must be in [-1, 1], got {self.relevance}"
            )
        values = np.concatenate([self.position, self.rotation, self.scale])
        if not np.all(np.isfinite(values)):
            raise InvalidInputError("Sphere transform contains non-finite values")
        if np.any(np.abs(self.scale) < 1e-12):
            raise InvalidInputError("Sphere scale must be non-zero on every axis")
        if np.linalg.norm(self.rotation) < 1e-12:
            raise InvalidInputError("Sphere rotation quaternion must be non-zero")

    @property
    def matrix(self) -> np.ndarray:
        """4x4 local-to-world transform (translation * rotation * scale)."""
        T = trimesh.transformations.translation_matrix(self.position)
        R = trimesh.transformations.quaternion_matrix(self.rotation)
        S = np.diag([self.scale[0], self.scale[1], self.scale[2], 1.0])
        return T @ R @ S

    @property
    def inverse_matrix(self) -> np.ndarray:
        """4x4 world-to-local transform."""
        return np.linalg.inv(self.matrix)

    def contains(self, point: np.ndarray) -> bool:
        """Check whether a world-space point lies inside the sphere."""
        return _inside(self.inverse_matrix, point)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelevanceSphere":
        """Build a sphere from a plain dictionary (e.g. parsed JSON)."""
        return cls(
            position=data.get('position', (0.0, 0.0, 0.0)),
            rotation=data.get('rotation', (1.0, 0.0, 0.0, 0.0)),
            scale=data.get('scale', (1.0, 1.0, 1.0)),
            relevance=data.get('relevance', 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.position.tolist(),
            'rotation': self.rotation.tolist(),
            'scale': self.scale.tolist(),
            'relevance': self.relevance,
        }


def _inside(inverse_matrix: np.ndarray, point: np.ndarray) -> bool:
    p = np.array([point[0], point[1], point[2], 1.0])
    local = inverse_matrix @ p
    return float(np.linalg.norm(local[:3])) <= SPHERE_RADIUS


class RelevanceField:
    """
    Snapshot of a sphere list with precomputed inverse transforms.

    Taken at the start of every cost computation so that spheres edited
    between computations are always picked up.
    """

    def __init__(self, spheres: Sequence[RelevanceSphere] = ()):
        self.spheres = list(spheres)
        self._inverses = [s.inverse_matrix for s in self.spheres]
        self._relevances = [s.relevance for s in self.spheres]

    def __len__(self) -> int:
        return len(self.spheres)

    def bias(self, position_world: np.ndarray) -> float:
        """
        Relevance bias at a world-space position.

        Scans the spheres in list order; the last sphere containing the
        point wins. Returns 0.0 when no sphere contains it.
        """
        result = 0.0
        for inverse, relevance in zip(self._inverses, self._relevances):
            if _inside(inverse, position_world):
                result = relevance
        return result


def relevance_bias(position_world: np.ndarray,
                   spheres: Sequence[RelevanceSphere]) -> float:
    """
    Relevance bias of a world-space position for a list of spheres.

    Args:
        position_world: 3D point in world space
        spheres: Relevance spheres, evaluated in list order

    Returns:
        Relevance of the last containing sphere, or 0.0
    """
    return RelevanceField(spheres).bias(position_world)
