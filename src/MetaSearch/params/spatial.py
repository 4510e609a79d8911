"""Spatial and orbital condition building.

Spatial parameters are turned into conditions the engine can execute cheaply:

- An MBR prefilter: the indexed minimum bounding rectangle of a document must
  intersect the MBR of the query shape (antimeridian aware).
- An exact `spatial` script condition, ORed with a largest-interior-rectangle
  condition when the query shape has one (points and bounding boxes).

For granule searches with orbit parameters available, an orbital backtracking
condition is ORed in so orbiting granules without stored spatial extents can
still match.

Value formats
- bounding-box: `W,S,E,N`
- point: `lon,lat`
- line: `lon1,lat1,lon2,lat2,...` (at least two points)
- polygon: `lon1,lat1,...,lon1,lat1` (closed, at least four points)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from MetaSearch.core.conditions import (
    AND,
    OR,
    BooleanCondition,
    Condition,
    NumericRangeCondition,
    NumericRangeIntersectionCondition,
    ScriptCondition,
    StringCondition,
    and_conds,
    group_conds,
    or_conds,
)
from MetaSearch.core.context import QueryContext
from MetaSearch.core.errors import InvalidSpatialError
from MetaSearch.core.query import GRANULE
from MetaSearch.params.options import as_values, is_and
from MetaSearch.utils.log import log

BOUNDING_BOX = "bounding-box"
POINT = "point"
LINE = "line"
POLYGON = "polygon"
SPATIAL_FIELDS = (BOUNDING_BOX, POINT, LINE, POLYGON)

_ORDINATE_MULTIPLIER = 10_000_000
_SHAPE_TYPE_CODES = {POLYGON: 1, BOUNDING_BOX: 3, POINT: 4, LINE: 5}
_ORBIT_SHAPE_TYPES = {POLYGON: "poly", BOUNDING_BOX: "br", POINT: "point", LINE: "line"}


@dataclass(frozen=True, slots=True)
class BoundingRectangle:
    west: float
    north: float
    east: float
    south: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.west > self.east


def _crosses_antimeridian(lons: Sequence[float]) -> bool:
    """Return whether any edge between consecutive longitudes spans more than 180 degrees."""
    return any(abs(lon2 - lon1) > 180.0 for lon1, lon2 in zip(lons, lons[1:]))


def _wrap_longitude(lon: float) -> float:
    return lon - 360.0 if lon > 180.0 else lon


@dataclass(frozen=True, slots=True)
class Shape:
    """Parsed query shape.

    Attributes:
        kind: One of bounding-box, point, line or polygon.
        points: (lon, lat) pairs. A bounding box stores its upper-left and
            lower-right corners.
    """

    kind: str
    points: tuple[tuple[float, float], ...]

    def mbr(self) -> BoundingRectangle:
        if self.kind == BOUNDING_BOX:
            (west, north), (east, south) = self.points
            return BoundingRectangle(west=west, north=north, east=east, south=south)
        lons = [lon for lon, _ in self.points]
        lats = [lat for _, lat in self.points]
        if _crosses_antimeridian(lons):
            # Measure longitudes eastward from the prime meridian so the span stays contiguous.
            shifted = [lon + 360.0 if lon < 0 else lon for lon in lons]
            west, east = (_wrap_longitude(lon) for lon in (min(shifted), max(shifted)))
        else:
            west, east = min(lons), max(lons)
        return BoundingRectangle(west=west, north=max(lats), east=east, south=min(lats))

    def interior_rectangle(self) -> BoundingRectangle | None:
        """Return the largest interior rectangle when it is known exactly."""
        if self.kind in (BOUNDING_BOX, POINT):
            return self.mbr()
        return None

    def ordinates(self) -> list[float]:
        if self.kind == BOUNDING_BOX:
            mbr = self.mbr()
            return [mbr.west, mbr.north, mbr.east, mbr.south]
        return [ordinate for point in self.points for ordinate in point]


def parse_shape(kind: str, value: str) -> Shape:
    """Parse a spatial parameter value.

    Raises:
        InvalidSpatialError: If the value does not describe a valid shape.
    """
    ordinates = _parse_ordinates(kind, value)
    if kind == BOUNDING_BOX:
        if len(ordinates) != 4:
            raise InvalidSpatialError(
                f"Spatial parameter [{kind}] requires 4 values W,S,E,N but was [{value}]."
            )
        west, south, east, north = ordinates
        for lon, lat in ((west, south), (east, north)):
            _check_point(kind, lon, lat)
        if north < south:
            raise InvalidSpatialError(
                f"Spatial parameter [{kind}] north [{north}] must not be less than south [{south}]."
            )
        return Shape(kind=kind, points=((west, north), (east, south)))

    if len(ordinates) % 2 != 0:
        raise InvalidSpatialError(
            f"Spatial parameter [{kind}] must have an even number of ordinates but was [{value}]."
        )
    points = tuple(zip(ordinates[0::2], ordinates[1::2]))
    for lon, lat in points:
        _check_point(kind, lon, lat)

    if kind == POINT and len(points) != 1:
        raise InvalidSpatialError(f"Spatial parameter [{kind}] requires exactly one lon,lat pair.")
    if kind == LINE and len(points) < 2:
        raise InvalidSpatialError(f"Spatial parameter [{kind}] requires at least two points.")
    if kind == POLYGON:
        if len(points) < 4:
            raise InvalidSpatialError(f"Spatial parameter [{kind}] requires at least four points.")
        if points[0] != points[-1]:
            raise InvalidSpatialError(
                f"Spatial parameter [{kind}] must be closed: the first and last points must match."
            )
    return Shape(kind=kind, points=points)


def _parse_ordinates(kind: str, value: str) -> list[float]:
    try:
        return [float(part) for part in value.split(",")]
    except ValueError as exc:
        raise InvalidSpatialError(
            f"Spatial parameter [{kind}] value [{value}] must be comma separated numbers."
        ) from exc


def _check_point(kind: str, lon: float, lat: float) -> None:
    if not -180.0 <= lon <= 180.0:
        raise InvalidSpatialError(f"Spatial parameter [{kind}] longitude [{lon}] must be within -180 and 180.")
    if not -90.0 <= lat <= 90.0:
        raise InvalidSpatialError(f"Spatial parameter [{kind}] latitude [{lat}] must be within -90 and 90.")


def bounding_rectangle_condition(prefix: str, br: BoundingRectangle) -> Condition:
    """Return a condition matching indexed rectangles that intersect `br`.

    Indexed rectangles are stored as `<prefix>-west`, `<prefix>-north`, etc.
    with a `<prefix>-crosses-antimeridian` flag.
    """

    def range_cond(field: str, lower: float, upper: float) -> Condition:
        return NumericRangeCondition(field=f"{prefix}-{field}", min_value=lower, max_value=upper)

    crosses = BooleanCondition(field=f"{prefix}-crosses-antimeridian", value=True)

    if br.crosses_antimeridian:
        am_conds = and_conds(
            [
                crosses,
                or_conds([range_cond("west", -180.0, br.west), range_cond("west", br.west, 180.0)]),
                or_conds([range_cond("east", -180.0, br.east), range_cond("east", br.east, 180.0)]),
            ]
        )
        lon_cond = or_conds(
            [
                range_cond("west", -180.0, br.east),
                range_cond("east", br.west, 180.0),
                am_conds,
            ]
        )
        return and_conds(
            [
                lon_cond,
                range_cond("north", br.south, 90.0),
                range_cond("south", -90.0, br.north),
            ]
        )

    west_cond = range_cond("west", -180.0, br.east)
    east_cond = range_cond("east", br.west, 180.0)
    am_conds = and_conds([crosses, or_conds([west_cond, east_cond])])
    non_am_conds = and_conds([west_cond, east_cond])
    return and_conds(
        [
            range_cond("north", br.south, 90.0),
            range_cond("south", -90.0, br.north),
            or_conds([am_conds, non_am_conds]),
        ]
    )


def shape_script_condition(shape: Shape) -> ScriptCondition:
    """Return the exact `spatial` script condition for a shape."""
    stored = [str(int(round(ordinate * _ORDINATE_MULTIPLIER))) for ordinate in shape.ordinates()]
    return ScriptCondition(
        name="spatial",
        params={
            "ords-info": f"{_SHAPE_TYPE_CODES[shape.kind]},{len(stored)}",
            "ords": ",".join(stored),
        },
    )


def _optional_or(conditions: Iterable[Condition]) -> Condition | None:
    items = list(conditions)
    return or_conds(items) if items else None


def _latitude_range_condition(ranges: Sequence[tuple[float, float]]) -> Condition | None:
    return _optional_or(
        NumericRangeIntersectionCondition(
            min_field="orbit-start-clat",
            max_field="orbit-end-clat",
            min_value=start_lat,
            max_value=end_lat,
        )
        for start_lat, end_lat in ranges
    )


def _crossing_direction_condition(
    latitude_cond: Condition | None, crossings: Sequence[tuple[float, float]]
) -> Condition | None:
    crossing_cond = _optional_or(
        NumericRangeCondition(field="orbit-asc-crossing-lon", min_value=start, max_value=end)
        for start, end in crossings
    )
    if latitude_cond is None or crossing_cond is None:
        return None
    return and_conds([latitude_cond, crossing_cond])


def orbital_condition(context: QueryContext | None, shape: Shape) -> Condition | None:
    """Return an orbital backtracking condition, or None when it does not apply.

    For each queried collection with orbit parameters, the ascending and
    descending equator crossing ranges whose swath covers the shape are
    computed by the injected orbit calculator. Granules match when their
    crossing longitude falls in one of those ranges and their orbit latitude
    span intersects the shape's latitude band.
    """
    if context is None or context.orbit_calculator is None:
        return None
    orbit_params = context.orbit_parameters()
    if not orbit_params:
        return None

    calculator = context.orbit_calculator
    mbr = shape.mbr()
    asc_lat_ranges, desc_lat_ranges = calculator.denormalize_latitude_range(mbr.south, mbr.north)
    asc_lat_cond = _latitude_range_condition(asc_lat_ranges)
    desc_lat_cond = _latitude_range_condition(desc_lat_ranges)

    shape_type = _ORBIT_SHAPE_TYPES[shape.kind]
    coordinates = shape.ordinates()
    per_collection: list[Condition] = []
    for params in orbit_params:
        asc_crossings = calculator.area_crossing_range(shape_type, coordinates, True, params)
        desc_crossings = calculator.area_crossing_range(shape_type, coordinates, False, params)
        directions = [
            cond
            for cond in (
                _crossing_direction_condition(asc_lat_cond, asc_crossings),
                _crossing_direction_condition(desc_lat_cond, desc_crossings),
            )
            if cond is not None
        ]
        if not directions:
            continue
        per_collection.append(
            and_conds(
                [
                    StringCondition(
                        field="collection-concept-id",
                        value=params.concept_id,
                        case_sensitive=True,
                        pattern=False,
                    ),
                    or_conds(directions),
                ]
            )
        )

    log.debug("Orbital backtracking matched %d of %d collections", len(per_collection), len(orbit_params))
    return _optional_or(per_collection)


def spatial_condition(concept_type: str, shape: Shape, context: QueryContext | None = None) -> Condition:
    """Return the executable condition for one query shape."""
    mbr_cond = bounding_rectangle_condition("mbr", shape.mbr())
    script_cond = shape_script_condition(shape)
    interior = shape.interior_rectangle()
    if interior is not None:
        exact_cond = or_conds([bounding_rectangle_condition("lr", interior), script_cond])
    else:
        exact_cond = script_cond
    cond = and_conds([mbr_cond, exact_cond])

    if concept_type == GRANULE:
        orbital = orbital_condition(context, shape)
        if orbital is not None:
            return or_conds([cond, orbital])
    return cond


def build_spatial_condition(
    concept_type: str,
    field: str,
    value: Any,
    options: Mapping[str, Any] | None,
    context: QueryContext | None = None,
) -> Condition:
    """Condition builder for the spatial parameters."""
    shapes = [parse_shape(field, item) for item in as_values(field, value)]
    operation = AND if is_and(field, options) else OR
    return group_conds(operation, [spatial_condition(concept_type, shape, context) for shape in shapes])
