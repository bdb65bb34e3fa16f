"""
Mesh Simplifier
===============

Greedy vertex-collapse simplification engine.

Runs the batch cost pass over every vertex, then repeatedly collapses
the cheapest vertex into its preferred neighbor using a priority queue
with lazy updates. Only the collapsed-into vertex and its neighborhood
are re-evaluated after each collapse. The collapse order is recorded so
any intermediate mesh can be assembled later without recomputation.
"""

import heapq
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .assembly import MeshAssembler, SimplifiedMesh, vertex_count_for_fraction
from .config import SimplifyConfig
from .cost import CostEvaluator, ProgressCallback
from .geometry import MeshGeometry

logger = logging.getLogger(__name__)


class SimplifierState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    REDUCING = "reducing"
    DONE = "done"
    CANCELLED = "cancelled"


class CancellationToken:
    """
    Cooperative stop request shared between a host and a session.

    The engine checks it between collapses and between batch chunks.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class CollapseRecord:
    """One logged collapse. `target_vertex_id` is None for isolated vertices."""
    collapsed_vertex_id: int
    target_vertex_id: Optional[int]
    resulting_vertex_count: int

    def as_tuple(self) -> Tuple[int, Optional[int], int]:
        return (self.collapsed_vertex_id, self.target_vertex_id,
                self.resulting_vertex_count)


@dataclass(order=True)
class CollapseCandidate:
    """Priority queue entry. Ties on cost are broken by vertex id."""
    cost: float
    vertex_id: int
    version: int = field(compare=False)  # For lazy deletion


@dataclass
class SimplificationData:
    """Result of a compute pass: the collapse log plus counts for display."""
    records: List[CollapseRecord]
    original_vertex_count: int
    original_triangle_count: int
    vertex_count: int
    triangle_count: int
    cancelled: bool = False


class MeshSimplifier:
    """
    Greedy edge-collapse simplification with relevance weighting.

    A session walks IDLE -> EVALUATING -> REDUCING -> DONE, or ends in
    CANCELLED when the cancellation token fires. Either way the geometry
    and the collapse records stay consistent and can be assembled.
    """

    def __init__(self, config: Optional[SimplifyConfig] = None, **overrides):
        """
        Initialize the simplifier.

        Args:
            config: Session settings (defaults if None)
            **overrides: Individual SimplifyConfig fields to replace,
                e.g. border_curvature=5.0
        """
        config = config or SimplifyConfig()
        self.config = config.updated(**overrides)

        self.state = SimplifierState.IDLE
        self._geometry: Optional[MeshGeometry] = None
        self._records: List[CollapseRecord] = []
        self._versions: Dict[int, int] = {}
        self._queue: List[CollapseCandidate] = []
        self._evaluator: Optional[CostEvaluator] = None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def compute_data(self, geometry: MeshGeometry,
                     target_vertex_count: int = 1,
                     cancel_token: Optional[CancellationToken] = None,
                     progress_callback: Optional[ProgressCallback] = None) -> SimplificationData:
        """
        Compute the collapse order for a mesh.

        With the default target of 1 the whole order is computed, so any
        level can be assembled afterwards.

        Args:
            geometry: Graph to simplify; owned by this session from now on
            target_vertex_count: Stop once this many live vertices remain
            cancel_token: Optional cooperative cancellation token
            progress_callback: Called with (phase, item, fraction)

        Returns:
            SimplificationData with the collapse records and counts
        """
        self._start(geometry)
        config = self.config
        target_vertex_count = max(1, int(target_vertex_count))

        logger.info("Simplifying '%s': %d vertices, %d triangles -> %d vertices",
                    config.name, geometry.live_vertex_count,
                    geometry.live_triangle_count, target_vertex_count)

        self.state = SimplifierState.EVALUATING
        completed = self._evaluator.compute_costs(
            geometry,
            workers=config.workers,
            chunk_size=config.chunk_size,
            cancel_token=cancel_token,
            progress_callback=progress_callback,
            label=config.name,
        )
        if not completed:
            self.state = SimplifierState.CANCELLED
            return self._result()

        self._initialize_queue()

        self.state = SimplifierState.REDUCING
        self._reduce(target_vertex_count, cancel_token, progress_callback)

        if self.state == SimplifierState.REDUCING:
            self.state = SimplifierState.DONE

        logger.info("Simplification of '%s' %s: %d vertices, %d triangles, %d collapses",
                    config.name, self.state.value, geometry.live_vertex_count,
                    geometry.live_triangle_count, len(self._records))

        return self._result()

    def simplify(self, geometry: MeshGeometry,
                 vertex_fraction: Optional[float] = None,
                 cancel_token: Optional[CancellationToken] = None,
                 progress_callback: Optional[ProgressCallback] = None) -> SimplifiedMesh:
        """
        Simplify to a fraction of the original vertex count and assemble.

        Args:
            geometry: Graph to simplify
            vertex_fraction: Fraction of vertices to keep
                (default: config.vertex_fraction)
            cancel_token: Optional cooperative cancellation token
            progress_callback: Called with (phase, item, fraction)

        Returns:
            The assembled simplified mesh (at the reached level if cancelled)
        """
        if vertex_fraction is None:
            vertex_fraction = self.config.vertex_fraction
        self.config = self.config.updated(vertex_fraction=vertex_fraction)

        target = vertex_count_for_fraction(geometry.vertex_count, vertex_fraction)
        self.compute_data(geometry, target, cancel_token, progress_callback)

        assembler = MeshAssembler(geometry, self.records)
        return assembler.assemble(geometry.live_vertex_count)

    def _start(self, geometry: MeshGeometry):
        if geometry.live_vertex_count != geometry.vertex_count:
            raise ValueError("Geometry was already reduced; build a fresh one per session")
        self._geometry = geometry
        self._records = []
        self._queue = []
        self._versions = {v.id: 0 for v in geometry.vertices}
        self._evaluator = CostEvaluator(
            use_edge_length=self.config.use_edge_length,
            use_curvature=self.config.use_curvature,
            border_curvature=self.config.border_curvature,
            mesh_scale=self.config.mesh_scale or geometry.mesh_scale,
            relevance_spheres=self.config.relevance_spheres,
        )

    def _result(self) -> SimplificationData:
        geometry = self._geometry
        return SimplificationData(
            records=self.records,
            original_vertex_count=geometry.vertex_count,
            original_triangle_count=geometry.triangle_count,
            vertex_count=geometry.live_vertex_count,
            triangle_count=geometry.live_triangle_count,
            cancelled=self.state == SimplifierState.CANCELLED,
        )

    # ------------------------------------------------------------------
    # Collapse loop
    # ------------------------------------------------------------------

    def _initialize_queue(self):
        self._queue = [
            CollapseCandidate(cost=v.cost, vertex_id=v.id, version=self._versions[v.id])
            for v in self._geometry.vertices if not v.collapsed
        ]
        heapq.heapify(self._queue)

    def _push(self, vertex_id: int):
        self._versions[vertex_id] += 1
        vertex = self._geometry.vertices[vertex_id]
        heapq.heappush(self._queue, CollapseCandidate(
            cost=vertex.cost,
            vertex_id=vertex_id,
            version=self._versions[vertex_id],
        ))

    def _pop_best_candidate(self) -> Optional[CollapseCandidate]:
        """Get the cheapest live vertex, skipping stale queue entries."""
        while self._queue:
            candidate = heapq.heappop(self._queue)
            if self._geometry.vertices[candidate.vertex_id].collapsed:
                continue
            if candidate.version != self._versions[candidate.vertex_id]:
                continue
            return candidate
        return None

    def _reduce(self, target_vertex_count: int,
                cancel_token: Optional[CancellationToken],
                progress_callback: Optional[ProgressCallback]):
        geometry = self._geometry
        interval = self.config.progress_interval
        start_count = geometry.live_vertex_count
        to_remove = max(1, start_count - target_vertex_count)

        while geometry.live_vertex_count > max(1, target_vertex_count):
            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Simplification of '%s' cancelled at %d vertices",
                            self.config.name, geometry.live_vertex_count)
                self.state = SimplifierState.CANCELLED
                return

            candidate = self._pop_best_candidate()
            if candidate is None:
                logger.warning("No more vertices to collapse at %d vertices",
                               geometry.live_vertex_count)
                return

            self._collapse(candidate.vertex_id)

            collapses = len(self._records)
            if progress_callback is not None and collapses % interval == 0:
                removed = start_count - geometry.live_vertex_count
                progress_callback("Simplifying mesh", self.config.name,
                                  min(1.0, removed / to_remove))

        if progress_callback is not None:
            progress_callback("Simplifying mesh", self.config.name, 1.0)

    def _collapse(self, vertex_id: int):
        """Collapse one vertex, log it and re-evaluate its neighborhood."""
        geometry = self._geometry
        vertex = geometry.vertices[vertex_id]
        target = vertex.collapse_target

        touched = geometry.collapse(vertex_id, target)
        self._records.append(CollapseRecord(
            collapsed_vertex_id=vertex_id,
            target_vertex_id=target,
            resulting_vertex_count=geometry.live_vertex_count,
        ))

        if target is None:
            return

        affected = list(touched)
        for n in geometry.vertices[target].neighbors:
            if n not in affected:
                affected.append(n)

        self._evaluator.update(geometry, affected)
        for n in affected:
            self._push(n)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def records(self) -> List[CollapseRecord]:
        """Copy of the collapse log of the current session."""
        return list(self._records)

    @property
    def geometry(self) -> Optional[MeshGeometry]:
        return self._geometry

    @property
    def original_vertex_count(self) -> int:
        return self._geometry.vertex_count if self._geometry else 0

    @property
    def original_triangle_count(self) -> int:
        return self._geometry.triangle_count if self._geometry else 0

    @property
    def vertex_count(self) -> int:
        return self._geometry.live_vertex_count if self._geometry else 0

    @property
    def triangle_count(self) -> int:
        return self._geometry.live_triangle_count if self._geometry else 0


def simplify_buffers(positions: np.ndarray,
                     triangles,
                     vertex_fraction: float,
                     attributes: Optional[Dict[str, np.ndarray]] = None,
                     world_matrix: Optional[np.ndarray] = None,
                     cancel_token: Optional[CancellationToken] = None,
                     progress_callback: Optional[Callable[[str, str, float], None]] = None,
                     **settings) -> SimplifiedMesh:
    """
    One-call simplification of raw buffers.

    Args:
        positions: (N, 3) vertex positions
        triangles: Index buffer or list of per-submesh index buffers
        vertex_fraction: Fraction of vertices to keep, in [0, 1]
        attributes: Optional per-vertex arrays carried to the output
        world_matrix: Optional 4x4 local-to-world transform
        cancel_token: Optional cooperative cancellation token
        progress_callback: Called with (phase, item, fraction)
        **settings: SimplifyConfig fields

    Returns:
        The simplified mesh
    """
    geometry = MeshGeometry.from_buffers(positions, triangles,
                                         world_matrix=world_matrix,
                                         attributes=attributes)
    simplifier = MeshSimplifier(SimplifyConfig(**settings))
    return simplifier.simplify(geometry, vertex_fraction, cancel_token, progress_callback)
