import argparse
import concurrent.futures
import json
import sys
import time
from pathlib import Path
from typing import List

import torch

from tsp_route.data import Instance, load_data, load_request
from tsp_route.evaluation import BenchConfig, RouteFitness, aggregate_fitness, evaluate_solver, torch_distance_matrix
from tsp_route.itinerary import OptimizeRouteTool
from tsp_route.solvers import Mode, RouteConfig, RouteSolver


def log(msg: str) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", file=sys.stderr, flush=True)


def _load_or_build_dist_mats(instances: List[Instance], devices, cache_dir: Path):
    cache_dir.mkdir(parents=True, exist_ok=True)
    dist_mats = [None] * len(instances)

    def worker(idx_inst):
        idx, inst = idx_inst
        device = devices[idx % len(devices)]
        cache_path = cache_dir / f"{inst.name}.pt"
        mat = None
        if cache_path.exists():
            mat = torch.load(cache_path, map_location=device)
            if mat.shape != (len(inst.points), len(inst.points)):
                mat = None
        if mat is None:
            mat = torch_distance_matrix(inst.points, device=device)
            torch.save(mat.cpu(), cache_path)
        dist_mats[idx] = mat.cpu().numpy()

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, min(8, len(instances)))) as ex:
        list(ex.map(worker, enumerate(instances)))
    return dist_mats


def _format_fitness(name: str, n: int, fitness: RouteFitness) -> str:
    line = (
        f"{name:<16} n={n:<6} len={fitness.length:12.2f} nn={fitness.initial_length:12.2f} "
        f"swaps={fitness.exchanges:<6} t={fitness.runtime:7.3f}s"
    )
    if fitness.gap != float("inf"):
        line += f" gap={fitness.gap * 100:6.2f}%"
    if fitness.reference is not None:
        line += f" ref={fitness.reference:12.2f}"
    return line


def bench(args) -> None:
    t0 = time.perf_counter()
    data_root = Path(args.data_root)
    log(f"loading data from {data_root}")
    instances = load_data(data_root, max_nodes=args.max_nodes, max_instances=args.max_instances)
    if not instances:
        raise RuntimeError(
            f"No TSPLIB instances found in {data_root}. "
            "Place .tsp (and optional .opt.tour) files there before running."
        )
    log(f"loaded {len(instances)} instances in {time.perf_counter() - t0:.2f}s")

    device_count = torch.cuda.device_count()
    devices = [torch.device(f"cuda:{i}") for i in range(device_count)] if device_count else [torch.device("cpu")]
    dist_cache = data_root / ".cache"
    t_cache = time.perf_counter()
    log("building/loading distance matrices...")
    dist_mats = _load_or_build_dist_mats(instances, devices, dist_cache)
    log(f"distance matrices ready in {time.perf_counter() - t_cache:.2f}s (cache: {dist_cache}), devices={devices}")

    cfg = BenchConfig(
        mode=Mode(args.mode),
        max_runtime=args.max_runtime,
        runtime_weight=args.runtime_weight,
        reference=args.reference,
    )
    solver = RouteSolver(cfg.mode, RouteConfig(improve=not args.no_improve, max_passes=args.max_passes))
    fitnesses = []
    for inst, mat in zip(instances, dist_mats):
        fitness = evaluate_solver(
            solver,
            inst,
            max_runtime=cfg.max_runtime,
            runtime_weight=cfg.runtime_weight,
            dist_mat=mat,
            reference=cfg.reference,
        )
        fitnesses.append(fitness)
        print(_format_fitness(inst.name, len(inst.points), fitness), flush=True)
    summary = aggregate_fitness(fitnesses)
    log(
        f"mode={cfg.mode.value} instances={len(fitnesses)} score={summary['score']:.2f} "
        f"gap={summary['gap'] * 100:.2f}% improvement={summary['improvement'] * 100:.2f}% "
        f"runtime={summary['runtime']:.3f}s"
    )


def route(args) -> None:
    if args.request == "-":
        payload = json.load(sys.stdin)
    else:
        payload = load_request(Path(args.request))
    tool = OptimizeRouteTool()
    result = tool.run(payload)
    if args.pretty:
        result = json.dumps(json.loads(result), indent=2)
    print(result)
    if not json.loads(result).get("success"):
        sys.exit(1)


def schema(args) -> None:
    tool = OptimizeRouteTool()
    print(json.dumps({"name": tool.name, "description": tool.description, "parameters": tool.parameters()}, indent=2))


def main():
    parser = argparse.ArgumentParser(description="Nearest-neighbor + 2-opt route ordering")
    subparsers = parser.add_subparsers(dest="command", required=True)

    route_parser = subparsers.add_parser("route", help="Order the POIs of an optimize_route request (JSON)")
    route_parser.add_argument("request", help="Path to a JSON request, or - for stdin")
    route_parser.add_argument("--pretty", action="store_true")
    route_parser.set_defaults(func=route)

    schema_parser = subparsers.add_parser("schema", help="Print the optimize_route tool definition")
    schema_parser.set_defaults(func=schema)

    bench_parser = subparsers.add_parser("bench", help="Run the solver over a directory of TSPLIB instances")
    bench_parser.add_argument("--data-root", default="data/tsplib")
    bench_parser.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.CYCLE.value)
    bench_parser.add_argument("--max-nodes", type=int, default=None)
    bench_parser.add_argument("--max-instances", type=int, default=None)
    bench_parser.add_argument("--max-passes", type=int, default=None)
    bench_parser.add_argument("--max-runtime", type=float, default=BenchConfig.max_runtime)
    bench_parser.add_argument("--runtime-weight", type=float, default=BenchConfig.runtime_weight)
    bench_parser.add_argument("--no-improve", action="store_true", help="Skip 2-opt, report construction only")
    bench_parser.add_argument("--reference", action="store_true", help="Also report a networkx Christofides length")
    bench_parser.set_defaults(func=bench)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
