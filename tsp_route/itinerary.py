"""
Caller-side ``optimize_route`` tool: orders a day's POIs between a start and an optional end.

Requests are validated with pydantic before anything reaches the solver. The
start is placed at index 0 and, in path mode, the end at the last index, which
is the layout :func:`tsp_route.solvers.compute_route` expects.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .solvers import Mode, Point, Tour, compute_route, distance_matrix, tour_length


logger = logging.getLogger(__name__)


class Location(BaseModel):
    latitude: float = Field(..., description="Latitude, used as a planar coordinate")
    longitude: float = Field(..., description="Longitude, used as a planar coordinate")

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinates must be finite numbers")
        return value

    def same_place(self, other: "Location") -> bool:
        return self.latitude == other.latitude and self.longitude == other.longitude


class POI(Location):
    id: Optional[str] = Field(None, description="Opaque label, returned unchanged")


class OptimizeRouteArgs(BaseModel):
    day_pois: List[POI] = Field(
        ..., description="POIs for a single day with location data"
    )
    start_location: Location = Field(..., description="Starting location (e.g., hotel)")
    end_location: Optional[Location] = Field(
        None, description="Ending location (optional, defaults to start_location)"
    )
    transportation_mode: str = Field(
        "walking", description="Primary mode of transportation (walking, driving, public_transit)"
    )

    @property
    def mode(self) -> Mode:
        if self.end_location is None or self.end_location.same_place(self.start_location):
            return Mode.CYCLE
        return Mode.PATH


@dataclass
class Stop:
    id: Optional[str]
    latitude: float
    longitude: float
    role: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "role": self.role,
        }


@dataclass
class PlannedRoute:
    mode: Mode
    stops: List[Stop]
    total_distance: float
    optimized: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "mode": self.mode.value,
            "optimized": self.optimized,
            # Overflowing coordinates give inf, which JSON cannot carry.
            "total_distance": self.total_distance if math.isfinite(self.total_distance) else None,
            "route": [s.to_dict() for s in self.stops],
        }


def _assemble(args: OptimizeRouteArgs):
    start = args.start_location
    points = [Point(start.latitude, start.longitude)]
    roles = ["start"]
    for poi in args.day_pois:
        points.append(Point(poi.latitude, poi.longitude, poi.id))
        roles.append("poi")
    if args.mode is Mode.PATH:
        end = args.end_location
        points.append(Point(end.latitude, end.longitude))
        roles.append("end")
    return points, roles


def _input_order(mode: Mode, n: int) -> Tour:
    tour = list(range(n))
    if mode is Mode.CYCLE and n > 1:
        tour.append(0)
    return tour


def plan_route(args: OptimizeRouteArgs) -> PlannedRoute:
    points, roles = _assemble(args)
    mode = args.mode
    optimized = True
    if not args.day_pois:
        tour = _input_order(mode, len(points))
    else:
        try:
            tour = compute_route(points, mode)
        except ValueError as exc:
            logger.warning("route optimization failed, keeping input order: %s", exc)
            tour = _input_order(mode, len(points))
            optimized = False
    stops = [
        Stop(id=points[i].id, latitude=points[i].lat, longitude=points[i].lng, role=roles[i])
        for i in tour
    ]
    length = tour_length(distance_matrix(points), tour)
    return PlannedRoute(mode=mode, stops=stops, total_distance=length, optimized=optimized)


class OptimizeRouteTool:
    """
    Optimizes the order of POIs for a day to minimize travel distance.

    ``run`` takes the raw tool input (as decoded from the agent's JSON call)
    and returns a JSON string. Malformed input is reported in the payload
    instead of raising.
    """

    name = "optimize_route"
    description = (
        "Optimizes the order of POIs for a day to minimize travel distance using "
        "Traveling Salesman Problem heuristics. Returns the most efficient route."
    )
    args_schema = OptimizeRouteArgs

    def parameters(self) -> Dict[str, Any]:
        return self.args_schema.model_json_schema()

    def run(self, tool_input: Dict[str, Any]) -> str:
        try:
            args = self.args_schema.model_validate(tool_input)
        except ValidationError as exc:
            return json.dumps({"success": False, "error": str(exc)})
        return json.dumps(plan_route(args).to_dict())
