"""
Path sampling for block arraying.

A path is either a straight line or a polyline. Whatever the source entity,
it is reduced once to a SampledPath: start point, end point, unit direction of
the start-to-end chord and the length measured along the path itself.

Polyline segments with a non-zero bulge are arcs and are measured as arcs.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# Below this chord length start and end are treated as the same point
ZERO_LENGTH_TOL = 1e-12


class UnsupportedGeometry(Exception):
    """Path entity is neither a line nor a polyline with at least two vertices."""


def as_point3(point: Sequence[float]) -> NDArray[np.float64]:
    """Promote a 2D or 3D point to a float64 array of shape (3,)."""
    arr = np.asarray(point, dtype=np.float64).reshape(-1)
    if arr.shape[0] == 2:
        return np.array([arr[0], arr[1], 0.0])
    if arr.shape[0] != 3:
        raise ValueError(f"Point must have 2 or 3 coordinates, got {arr.shape[0]}")
    return arr


@dataclass(frozen=True, eq=False)
class LineGeometry:
    """Two-point straight segment."""
    start: NDArray[np.float64]
    end: NDArray[np.float64]

    def __post_init__(self):
        object.__setattr__(self, 'start', as_point3(self.start))
        object.__setattr__(self, 'end', as_point3(self.end))


@dataclass(frozen=True, eq=False)
class PolylineGeometry:
    """Polyline vertices with optional per-vertex bulges.

    Attributes:
        vertices: Nx3 vertex array
        bulges: bulge of the segment starting at each vertex (N values);
            empty means all segments are straight
        closed: whether a closing segment runs from the last vertex back to
            the first
    """
    vertices: NDArray[np.float64]
    bulges: NDArray[np.float64] = field(default_factory=lambda: np.zeros(0))
    closed: bool = False

    def __post_init__(self):
        verts = [as_point3(v) for v in self.vertices]
        object.__setattr__(
            self, 'vertices',
            np.array(verts, dtype=np.float64).reshape(-1, 3),
        )
        bulges = np.asarray(self.bulges, dtype=np.float64).reshape(-1)
        if bulges.size == 0:
            bulges = np.zeros(len(verts))
        elif bulges.size != len(verts):
            raise ValueError(
                f"Expected {len(verts)} bulge values, got {bulges.size}"
            )
        object.__setattr__(self, 'bulges', bulges)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def cumulative_length(self) -> NDArray[np.float64]:
        """Distance along the polyline at each vertex, starting at 0."""
        seg = segment_lengths(self.vertices, self.bulges, closed=False)
        return np.concatenate([[0.0], np.cumsum(seg)])


PathGeometry = Union[LineGeometry, PolylineGeometry]


@dataclass(frozen=True, eq=False)
class SampledPath:
    """Canonical path description used by the arraying core.

    Attributes:
        start: first point of the path
        end: last point of the path
        direction: unit vector from start to end, zero vector when they coincide
        length: length measured along the path (>= 0)
    """
    start: NDArray[np.float64]
    end: NDArray[np.float64]
    direction: NDArray[np.float64]
    length: float

    @property
    def is_degenerate(self) -> bool:
        """True when the direction is undefined (start == end)."""
        return not np.any(self.direction)

    def point_at(self, distance: float) -> NDArray[np.float64]:
        """Point at ``distance`` from start along the start-to-end chord."""
        return self.start + self.direction * distance


def arc_length(chord: float, bulge: float) -> float:
    """Length of a bulged polyline segment.

    The included angle is 4*atan(|bulge|) and the radius follows from the
    chord, so the arc is r * theta.
    """
    if bulge == 0.0 or chord < ZERO_LENGTH_TOL:
        return chord
    theta = 4.0 * math.atan(abs(bulge))
    radius = chord / (2.0 * math.sin(theta / 2.0))
    return radius * theta


def segment_lengths(
    vertices: NDArray[np.float64],
    bulges: NDArray[np.float64],
    closed: bool = False,
) -> NDArray[np.float64]:
    """Lengths of every polyline segment, arcs included."""
    if closed:
        ends = np.roll(vertices, -1, axis=0)
        seg_bulges = bulges
    else:
        ends = vertices[1:]
        seg_bulges = bulges[:-1]
    starts = vertices[:len(ends)]
    chords = np.linalg.norm(ends - starts, axis=1)
    return np.array(
        [arc_length(float(c), float(b)) for c, b in zip(chords, seg_bulges)],
        dtype=np.float64,
    )


def unit_direction(start: NDArray[np.float64], end: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalized ``end - start``; zero vector for coincident points."""
    delta = end - start
    norm = float(np.linalg.norm(delta))
    if norm < ZERO_LENGTH_TOL:
        return np.zeros(3)
    return delta / norm


def sample_path(geometry: Optional[PathGeometry]) -> SampledPath:
    """Reduce a line or polyline to a SampledPath.

    Args:
        geometry: LineGeometry or PolylineGeometry

    Returns:
        SampledPath

    Raises:
        UnsupportedGeometry: for any other object or a polyline with fewer
            than two vertices
    """
    if isinstance(geometry, LineGeometry):
        start, end = geometry.start, geometry.end
        length = float(np.linalg.norm(end - start))
    elif isinstance(geometry, PolylineGeometry):
        if geometry.n_vertices < 2:
            raise UnsupportedGeometry(
                f"Polyline needs at least 2 vertices, got {geometry.n_vertices}"
            )
        start = geometry.vertices[0]
        end = geometry.vertices[-1]
        length = float(segment_lengths(
            geometry.vertices, geometry.bulges, closed=geometry.closed
        ).sum())
    else:
        raise UnsupportedGeometry(
            f"Unsupported path geometry: {type(geometry).__name__}"
        )

    direction = unit_direction(start, end)
    path = SampledPath(
        start=start.copy(),
        end=end.copy(),
        direction=direction,
        length=length,
    )
    if path.is_degenerate:
        logger.debug("Path start and end coincide; alignment falls back to 0")
    return path
