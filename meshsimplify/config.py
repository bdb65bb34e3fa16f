"""
Simplification Settings
=======================

The flattened configuration a simplification session runs with.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from .errors import InvalidInputError
from .relevance import RelevanceSphere


@dataclass
class SimplifyConfig:
    """
    Settings for one simplification session.

    Attributes:
        use_edge_length: Weight collapse cost by normalized edge length
        use_curvature: Weight collapse cost by local surface curvature
        border_curvature: Values > 1 force this cost on border vertices,
            keeping mesh borders until the interior is exhausted
        vertex_fraction: Fraction of original vertices to keep, in [0, 1]
        relevance_spheres: Relevance volumes, evaluated in list order
        mesh_scale: Edge length normalization (None = bounding box diagonal)
        workers: Worker threads for the batch cost pass (None = default)
        chunk_size: Vertices per batch chunk
        progress_interval: Collapses between progress callbacks
        name: Label passed to progress callbacks
    """
    use_edge_length: bool = True
    use_curvature: bool = True
    border_curvature: float = 0.0
    vertex_fraction: float = 1.0
    relevance_spheres: List[RelevanceSphere] = field(default_factory=list)
    mesh_scale: Optional[float] = None
    workers: Optional[int] = None
    chunk_size: int = 512
    progress_interval: int = 100
    name: str = "mesh"

    def validate(self) -> "SimplifyConfig":
        """Check value ranges, raising InvalidInputError on the first problem."""
        if not 0.0 <= self.vertex_fraction <= 1.0:
            raise InvalidInputError(
                f"vertex_fraction must be in [0, 1], got {self.vertex_fraction}"
            )
        if self.mesh_scale is not None and not self.mesh_scale > 0:
            raise InvalidInputError(f"mesh_scale must be positive, got {self.mesh_scale}")
        if self.workers is not None and self.workers < 1:
            raise InvalidInputError(f"workers must be >= 1, got {self.workers}")
        if self.chunk_size < 1:
            raise InvalidInputError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.progress_interval < 1:
            raise InvalidInputError(
                f"progress_interval must be >= 1, got {self.progress_interval}"
            )
        for sphere in self.relevance_spheres:
            if not isinstance(sphere, RelevanceSphere):
                raise InvalidInputError(f"Not a RelevanceSphere: {sphere!r}")
        return self

    def updated(self, **overrides) -> "SimplifyConfig":
        """Return a validated copy with some settings replaced."""
        return replace(self, **overrides).validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimplifyConfig":
        """
        Build a config from a plain dictionary.

        Unknown keys are rejected; spheres may be given as dictionaries.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidInputError(f"Unknown settings: {sorted(unknown)}")

        values = dict(data)
        spheres = values.get('relevance_spheres', [])
        values['relevance_spheres'] = [
            s if isinstance(s, RelevanceSphere) else RelevanceSphere.from_dict(s)
            for s in spheres
        ]
        return cls(**values).validate()
