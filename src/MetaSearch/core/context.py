"""Request context and injected collaborators used while building conditions.

The orbit backtracking math and the orbit-parameter lookup (normally backed by
a collection metadata cache) live outside this package. They are injected
through `QueryContext` so condition building stays a pure function of its
inputs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, Sequence

LatitudeRanges = Sequence[tuple[float, float]]


@dataclass(frozen=True, slots=True)
class OrbitParameters:
    """Orbit parameters of a single collection.

    Attributes:
        concept_id: Collection concept id.
        swath_width: Swath width in kilometers.
        period: Orbital period in minutes.
        inclination_angle: Inclination angle in degrees.
        number_of_orbits: Number of orbits per granule.
        start_circular_latitude: Latitude where granules start, in degrees.
    """

    concept_id: str
    swath_width: float
    period: float
    inclination_angle: float
    number_of_orbits: float
    start_circular_latitude: float = 0.0


class OrbitCalculator(Protocol):
    """Geometry service for orbital backtracking."""

    def area_crossing_range(
        self,
        shape_type: str,
        coordinates: Sequence[float],
        ascending: bool,
        params: OrbitParameters,
    ) -> Sequence[tuple[float, float]]:
        """Return equator crossing longitude ranges whose swath covers the area."""
        raise NotImplementedError

    def denormalize_latitude_range(self, south: float, north: float) -> tuple[LatitudeRanges, LatitudeRanges]:
        """Return (ascending, descending) orbit latitude ranges for a latitude band."""
        raise NotImplementedError


OrbitParametersLookup = Callable[[Sequence[str]], Sequence[OrbitParameters]]


@dataclass(frozen=True, slots=True)
class QueryContext:
    """Per-request collaborators for condition building.

    Attributes:
        query_collection_ids: Collection concept ids targeted by a granule query.
        orbit_calculator: Orbital backtracking service, if available.
        orbit_parameters_lookup: Returns orbit parameters for collection ids.
    """

    query_collection_ids: tuple[str, ...] = ()
    orbit_calculator: OrbitCalculator | None = None
    orbit_parameters_lookup: OrbitParametersLookup | None = None

    def orbit_parameters(self) -> Sequence[OrbitParameters]:
        """Return orbit parameters for the queried collections, or nothing."""
        if self.orbit_parameters_lookup is None:
            return ()
        return self.orbit_parameters_lookup(self.query_collection_ids)
