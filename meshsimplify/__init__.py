"""
Relevance-Weighted Mesh Simplification
======================================

Greedy vertex-collapse simplification driven by an edge length and
curvature cost, with user-placed relevance spheres that protect or
sacrifice parts of the mesh. The collapse order is computed once and
any intermediate level can be assembled without recomputation.
"""

from .errors import MeshSimplifyError, InvalidInputError, ResourceExhaustionError
from .config import SimplifyConfig
from .geometry import MeshGeometry, Vertex, Triangle, TriangleList
from .relevance import RelevanceSphere, relevance_bias
from .cost import CostEvaluator, ISOLATED_VERTEX_COST
from .assembly import MeshAssembler, SimplifiedMesh
from .simplifier import (
    MeshSimplifier,
    CancellationToken,
    CollapseRecord,
    SimplificationData,
    SimplifierState,
    simplify_buffers,
)
from .logging_config import setup_logging

__version__ = "1.0.0"
__all__ = [
    "MeshSimplifyError", "InvalidInputError", "ResourceExhaustionError",
    "SimplifyConfig",
    "MeshGeometry", "Vertex", "Triangle", "TriangleList",
    "RelevanceSphere", "relevance_bias",
    "CostEvaluator", "ISOLATED_VERTEX_COST",
    "MeshAssembler", "SimplifiedMesh",
    "MeshSimplifier", "CancellationToken", "CollapseRecord",
    "SimplificationData", "SimplifierState", "simplify_buffers",
    "setup_logging",
]
