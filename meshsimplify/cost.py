"""
Collapse Cost Evaluation
========================

Computes, for each vertex, the cost of collapsing it into its cheapest
neighbor. The cost combines normalized edge length, local curvature
(from triangle normals around the edge), a border penalty and the
relevance bias of the spheres enclosing the vertex.

The batch pass is a read-only map over vertices and runs on a thread
pool; results are written back by the calling thread only.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import MeshGeometry, Vertex
from .relevance import RelevanceField, RelevanceSphere

logger = logging.getLogger(__name__)


# Cost of a vertex without neighbors; lower than any pair cost
ISOLATED_VERTEX_COST = -math.inf

# Curvature used when curvature weighting is off, and the curvature floor
MIN_CURVATURE = 0.001

EDGE_EPSILON = 1e-12

CostResult = Tuple[int, float, Optional[int]]
ProgressCallback = Callable[[str, str, float], None]


class CostEvaluator:
    """
    Collapse cost function for one simplification session.

    For a vertex u and neighbor v:

        edge_length = |v - u| / mesh_scale        (or 1 without edge length)
        curvature   = max over faces t of u of
                      min over sides s of (1 - n_t . n_s) / 2
        cost        = edge_length * (curvature + relevance_bias(u))

    where the sides are the triangles shared by u and v. Border vertices
    get a curvature of 1 when they sit on more than one side, or
    `border_curvature` when it exceeds 1.
    """

    def __init__(self, use_edge_length: bool = True,
                 use_curvature: bool = True,
                 border_curvature: float = 0.0,
                 mesh_scale: float = 1.0,
                 relevance_spheres: Sequence[RelevanceSphere] = ()):
        """
        Initialize the evaluator.

        Args:
            use_edge_length: Scale cost by edge length over mesh_scale
            use_curvature: Use normal variation around the edge
            border_curvature: Forced curvature for border vertices when > 1
            mesh_scale: Normalization constant for edge lengths
            relevance_spheres: Relevance volumes, last containing sphere wins
        """
        self.use_edge_length = use_edge_length
        self.use_curvature = use_curvature
        self.border_curvature = float(border_curvature)
        self.mesh_scale = float(mesh_scale)
        self.relevance_spheres = list(relevance_spheres)

    def relevance_field(self) -> RelevanceField:
        """Fresh snapshot of the current sphere list."""
        return RelevanceField(self.relevance_spheres)

    def edge_cost(self, geometry: MeshGeometry, u: Vertex, v: Vertex,
                  relevance_bias: float = 0.0) -> float:
        """
        Cost of collapsing `u` into its neighbor `v`.

        Args:
            geometry: Graph the vertices belong to
            u: Vertex being removed
            v: Vertex receiving u's triangles
            relevance_bias: Additive curvature bias for `u`

        Returns:
            Pair cost (may be negative with a negative bias)
        """
        if self.use_edge_length:
            edge_length = float(np.linalg.norm(v.position - u.position)) / self.mesh_scale
        else:
            edge_length = 1.0

        if edge_length < EDGE_EPSILON:
            return self.border_curvature

        sides = geometry.sides(u.id, v.id)
        curvature = MIN_CURVATURE

        if self.use_curvature:
            for fi in u.faces:
                normal = geometry.triangles[fi].normal
                min_curvature = 1.0
                for side in sides:
                    dot = float(np.dot(normal, side.normal))
                    min_curvature = min(min_curvature, (1.0 - dot) / 2.0)
                curvature = max(curvature, min_curvature)

        if u.is_border and len(sides) > 1:
            curvature = 1.0

        if self.border_curvature > 1 and u.is_border:
            curvature = self.border_curvature

        curvature += relevance_bias

        return edge_length * curvature

    def vertex_cost(self, geometry: MeshGeometry, vertex_id: int,
                    relevance: Optional[RelevanceField] = None) -> Tuple[float, Optional[int]]:
        """
        Cheapest collapse for one vertex.

        Args:
            geometry: Graph to read
            vertex_id: Vertex to evaluate
            relevance: Sphere snapshot (a fresh one is taken if None)

        Returns:
            Tuple of (cost, target vertex id). Isolated vertices return
            (ISOLATED_VERTEX_COST, None).
        """
        u = geometry.vertices[vertex_id]
        if not u.neighbors:
            return ISOLATED_VERTEX_COST, None

        if relevance is None:
            relevance = self.relevance_field()
        bias = relevance.bias(u.position_world)

        cost = math.inf
        target = None
        for n in u.neighbors:
            pair_cost = self.edge_cost(geometry, u, geometry.vertices[n], bias)
            # Strict comparison keeps the first neighbor among equal costs
            if target is None or pair_cost < cost:
                cost = pair_cost
                target = n

        return cost, target

    def evaluate(self, geometry: MeshGeometry, vertex_ids: Iterable[int],
                 relevance: Optional[RelevanceField] = None) -> List[CostResult]:
        """Evaluate a group of vertices without writing to the graph."""
        if relevance is None:
            relevance = self.relevance_field()
        results = []
        for vertex_id in vertex_ids:
            cost, target = self.vertex_cost(geometry, vertex_id, relevance)
            results.append((vertex_id, cost, target))
        return results

    def update(self, geometry: MeshGeometry, vertex_ids: Iterable[int]) -> List[CostResult]:
        """Evaluate vertices and store cost/target on them."""
        results = self.evaluate(geometry, vertex_ids)
        _apply(geometry, results)
        return results

    def compute_costs(self, geometry: MeshGeometry,
                      vertex_ids: Optional[Sequence[int]] = None,
                      workers: Optional[int] = None,
                      chunk_size: int = 512,
                      cancel_token=None,
                      progress_callback: Optional[ProgressCallback] = None,
                      label: str = "") -> bool:
        """
        Batch cost pass over many vertices on a thread pool.

        The graph is only read by workers. Each finished chunk is written
        back by the calling thread, so a cancelled pass leaves every
        vertex either fully updated or untouched.

        Args:
            geometry: Graph to evaluate
            vertex_ids: Vertices to evaluate (default: all live vertices)
            workers: Thread count (None = executor default)
            chunk_size: Vertices per work unit
            cancel_token: Optional CancellationToken checked between chunks
            progress_callback: Called with (phase, label, fraction) per chunk
            label: Item label passed to the progress callback

        Returns:
            True if every chunk completed, False if cancelled
        """
        if vertex_ids is None:
            vertex_ids = geometry.live_vertices()
        vertex_ids = list(vertex_ids)
        chunks = [vertex_ids[i:i + chunk_size]
                  for i in range(0, len(vertex_ids), chunk_size)]
        if not chunks:
            return True

        relevance = self.relevance_field()
        done = 0

        with ThreadPoolExecutor(max_workers=workers) as executor:
            pending = {executor.submit(self.evaluate, geometry, chunk, relevance)
                       for chunk in chunks}
            while pending:
                if cancel_token is not None and cancel_token.cancelled:
                    for future in pending:
                        future.cancel()
                    logger.info("Cost computation cancelled after %d/%d chunks",
                                done, len(chunks))
                    return False

                finished, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in finished:
                    _apply(geometry, future.result())
                    done += 1

                if progress_callback is not None:
                    progress_callback("Computing costs", label, done / len(chunks))

        return True


def _apply(geometry: MeshGeometry, results: List[CostResult]):
    for vertex_id, cost, target in results:
        vertex = geometry.vertices[vertex_id]
        vertex.cost = cost
        vertex.collapse_target = target
