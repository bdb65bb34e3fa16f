"""
Relevance-Weighted Mesh Simplification - Demo
=============================================

This script:
1. Loads a mesh or generates a sample one
2. Computes the collapse order once (optionally with relevance spheres)
3. Assembles several simplification levels from the same data
4. Computes quality metrics and saves previews and meshes
"""

import argparse
import logging
import signal
import time
from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from meshsimplify import (
    CancellationToken,
    MeshAssembler,
    MeshSimplifier,
    RelevanceSphere,
    SimplifyConfig,
    setup_logging,
)
from meshsimplify.evaluation import MeshEvaluator
from meshsimplify.utils import create_sample_mesh, geometry_from_trimesh, get_mesh_info, load_mesh
from meshsimplify.visualization import MeshVisualizer, collapse_order


def parse_sphere(text: str) -> RelevanceSphere:
    """Parse 'x,y,z,diameter,relevance' into a relevance sphere."""
    values = [float(v) for v in text.split(",")]
    if len(values) != 5:
        raise argparse.ArgumentTypeError(
            "Sphere must be given as x,y,z,diameter,relevance"
        )
    x, y, z, diameter, relevance = values
    return RelevanceSphere(position=[x, y, z], scale=[diameter] * 3, relevance=relevance)


class ConsoleProgress:
    """Prints progress whenever the percentage or phase changes."""

    def __init__(self):
        self.last = None

    def __call__(self, phase: str, item: str, fraction: float):
        percent = int(fraction * 100)
        if (phase, percent // 10) != self.last:
            self.last = (phase, percent // 10)
            print(f"  {phase} [{item}]: {percent:3d}%")


def main():
    """Main demo entry point."""
    parser = argparse.ArgumentParser(
        description="Relevance-weighted mesh simplification demo"
    )
    parser.add_argument(
        "--mesh", "-m", type=str, default=None,
        help="Path to input mesh file. If not provided, uses a sample mesh."
    )
    parser.add_argument(
        "--sample", type=str, default="sphere",
        choices=["sphere", "torus", "cube", "cylinder", "grid"],
        help="Sample mesh to generate when --mesh is not given"
    )
    parser.add_argument(
        "--output", "-o", type=str, default="output",
        help="Output directory for results"
    )
    parser.add_argument(
        "--ratio", "-r", type=float, action="append", default=None,
        help="Vertex fraction to keep; repeat for several levels (default: 0.5 0.25 0.1)"
    )
    parser.add_argument(
        "--border-curvature", "-b", type=float, default=0.0,
        help="Border protection; values > 1 keep borders until the interior is gone"
    )
    parser.add_argument(
        "--no-edge-length", action="store_true",
        help="Ignore edge length in the collapse cost"
    )
    parser.add_argument(
        "--no-curvature", action="store_true",
        help="Ignore curvature in the collapse cost"
    )
    parser.add_argument(
        "--sphere", type=parse_sphere, action="append", default=[],
        help="Relevance sphere as x,y,z,diameter,relevance (repeatable, last wins)"
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Worker threads for the initial cost pass"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    ratios = args.ratio or [0.5, 0.25, 0.1]

    print("=" * 60)
    print("RELEVANCE-WEIGHTED MESH SIMPLIFICATION")
    print("=" * 60)

    if args.mesh:
        mesh = load_mesh(args.mesh)
        mesh_name = Path(args.mesh).stem
    else:
        mesh = create_sample_mesh(args.sample)
        mesh_name = args.sample

    info = get_mesh_info(mesh)
    print(f"\nMesh: {mesh_name}")
    print(f"  Vertices:       {info['vertices']}")
    print(f"  Faces:          {info['faces']}")
    print(f"  Boundary edges: {info['boundary_edges']}")
    print(f"  Watertight:     {info['is_watertight']}")

    config = SimplifyConfig(
        use_edge_length=not args.no_edge_length,
        use_curvature=not args.no_curvature,
        border_curvature=args.border_curvature,
        relevance_spheres=args.sphere,
        workers=args.workers,
        name=mesh_name,
    ).validate()

    # Ctrl+C requests a cooperative stop; partial data stays usable
    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())

    geometry = geometry_from_trimesh(mesh)
    simplifier = MeshSimplifier(config)

    print("\nComputing simplification data...")
    start_time = time.time()
    data = simplifier.compute_data(geometry, cancel_token=token,
                                   progress_callback=ConsoleProgress())
    runtime = time.time() - start_time

    print(f"  {len(data.records)} collapses in {runtime:.3f}s"
          f"{' (cancelled)' if data.cancelled else ''}")

    assembler = MeshAssembler(geometry, data.records)
    evaluator = MeshEvaluator()
    visualizer = MeshVisualizer()
    original = assembler.assemble(assembler.original_vertex_count).to_trimesh()

    levels = []
    for ratio in ratios:
        count = max(assembler.vertex_count_for_fraction(ratio), assembler.min_vertex_count)
        simplified = assembler.assemble(count).to_trimesh()
        levels.append(simplified)

        metrics = evaluator.compute_all_metrics(original, simplified)
        print(f"\n--- {ratio*100:.0f}% of vertices ---")
        print(f"  Vertices: {assembler.original_vertex_count} -> {len(simplified.vertices)}")
        print(f"  Faces:    {assembler.original_triangle_count} -> {len(simplified.faces)}")
        print(f"  Hausdorff: {metrics['hausdorff_distance']:.6f}")

        output_path = output_dir / f"{mesh_name}_simplified_{int(ratio*100)}pct.ply"
        simplified.export(str(output_path))
        print(f"  Saved: {output_path}")

    if levels:
        print("\n" + evaluator.generate_report(
            evaluator.compute_all_metrics(original, levels[-1]),
            f"{mesh_name} ({ratios[-1]*100:.0f}% of vertices)"
        ))

    print("\nGenerating visualizations...")
    fig = visualizer.plot_multi_resolution(
        [original] + levels,
        ["Original"] + [f"{r*100:.0f}%" for r in ratios],
        title=f"{mesh_name} - Multi-Resolution",
        save_path=str(output_dir / f"{mesh_name}_multi_resolution.png")
    )
    plt.close(fig)

    fig = visualizer.plot_collapse_order(
        original,
        collapse_order(data.records, assembler.original_vertex_count),
        title=f"{mesh_name} - Collapse Order",
        save_path=str(output_dir / f"{mesh_name}_collapse_order.png")
    )
    plt.close(fig)

    np.save(output_dir / f"{mesh_name}_collapse_records.npy",
            np.array([(r.collapsed_vertex_id,
                       -1 if r.target_vertex_id is None else r.target_vertex_id,
                       r.resulting_vertex_count) for r in data.records],
                     dtype=np.int64).reshape(-1, 3))

    print("\n" + "=" * 60)
    print("DEMO COMPLETE")
    print(f"Results saved to: {output_dir.absolute()}")
    print("=" * 60)


if __name__ == "__main__":
    main()
