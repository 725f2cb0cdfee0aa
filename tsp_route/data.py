import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import tsplib95

from .solvers.base import Point, distance_matrix, tour_length


@dataclass
class Instance:
    name: str
    path: Path
    points: List[Point]
    optimum: Optional[float]


def hash_file(path: Path, chunk_size: int = 65536) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            data = f.read(chunk_size)
            if not data:
                break
            h.update(data)
    return h.hexdigest()


def _solution_candidates(path: Path) -> Iterable[Path]:
    yield path.with_suffix(".opt.tour")
    for ext in (".opt.tour", ".opt", ".tour"):
        yield path.parent / "solutions" / f"{path.stem}{ext}"


def _read_dimension(path: Path) -> Optional[int]:
    try:
        with path.open("r") as f:
            for line in f:
                if "DIMENSION" in line.upper():
                    parts = line.replace(":", " ").split()
                    for token in parts:
                        if token.isdigit():
                            return int(token)
        return None
    except OSError:
        return None


def _load_optimum(path: Path, node_index: Dict[int, int], points: List[Point]) -> Optional[float]:
    # Measured with the planar metric so gaps compare like with like.
    for candidate in _solution_candidates(path):
        if not candidate.exists():
            continue
        try:
            tour_file = tsplib95.parse(candidate.read_text())
            nodes = list(tour_file.tours[0])
        except Exception:
            continue
        if sorted(nodes) != sorted(node_index):
            continue
        tour = [node_index[node] for node in nodes]
        tour.append(tour[0])
        return tour_length(distance_matrix(points), tour)
    return None


def load_instance(path: Path, find_optimum: bool = True) -> Instance:
    problem = tsplib95.load(path)
    if not problem.node_coords:
        raise ValueError(f"{path} has no NODE_COORD_SECTION; only coordinate instances are supported.")
    node_ids = sorted(problem.node_coords)
    points = []
    for node in node_ids:
        coord = problem.node_coords[node]
        points.append(Point(float(coord[0]), float(coord[1]), str(node)))
    optimum = None
    if find_optimum:
        node_index = {node: i for i, node in enumerate(node_ids)}
        optimum = _load_optimum(path, node_index, points)
    return Instance(name=problem.name or path.stem, path=path, points=points, optimum=optimum)


def _manifest_entry(path: Path, known: Dict[str, Dict]) -> Dict:
    digest = hash_file(path)
    item = known.get(str(path))
    if item is not None and item.get("hash") == digest:
        return dict(item)
    return {"path": str(path), "hash": digest, "dimension": _read_dimension(path)}


def load_tsplib_instances(
    root: Path,
    max_nodes: Optional[int] = None,
    max_instances: Optional[int] = None,
    manifest: Optional[List[Dict]] = None,
) -> Tuple[List[Instance], List[Dict]]:
    """
    Load the ``*.tsp`` files under ``root``, reusing what ``manifest`` already knows.

    Returns the selected instances and a manifest entry for every file in the
    directory, so a filtered load never narrows the manifest.
    """
    known = {item["path"]: item for item in manifest or []}
    instances: List[Instance] = []
    entries: List[Dict] = []
    for p in sorted(root.glob("*.tsp")):
        item = _manifest_entry(p, known)
        entries.append(item)
        if max_instances is not None and len(instances) >= max_instances:
            continue
        dim = item.get("dimension")
        if max_nodes is not None and dim is not None and dim > max_nodes:
            continue
        if "optimum" in item:
            inst = load_instance(p, find_optimum=False)
            inst.optimum = item["optimum"]
        else:
            inst = load_instance(p)
            item["name"] = inst.name
            item["optimum"] = inst.optimum
        instances.append(inst)
    return instances, entries


def cache_manifest(entries: List[Dict], cache_path: Path) -> None:
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    cache_path.write_text(json.dumps(entries, indent=2))


def load_manifest(cache_path: Path) -> Optional[List[Dict]]:
    if not cache_path.exists():
        return None
    return json.loads(cache_path.read_text())


def load_data(
    root: Path,
    use_cache: bool = True,
    max_nodes: Optional[int] = None,
    max_instances: Optional[int] = None,
) -> List[Instance]:
    cache_path = root / "manifest.json"
    manifest = load_manifest(cache_path) if use_cache else None
    instances, entries = load_tsplib_instances(
        root, max_nodes=max_nodes, max_instances=max_instances, manifest=manifest
    )
    if use_cache and entries != manifest:
        cache_manifest(entries, cache_path)
    return instances


def load_request(path: Path) -> Dict:
    return json.loads(path.read_text())
