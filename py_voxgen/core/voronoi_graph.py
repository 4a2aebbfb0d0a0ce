"""
Per-chunk Voronoi graph generation.

Every chunk builds its own partition: jittered sites on a square
chunk-aligned grid around the target chunk are triangulated with
``scipy.spatial.Delaunay`` and the dual Voronoi graph is derived from the
triangulation. The grid is sized from the blend radius so that it holds
every cell able to weigh on the chunk's columns. Sites, and the climate
sampled at them, depend only on absolute position, so neighboring chunks
agree on every site they share without any global precomputation.

The graph is stored as flat arenas (lists) of centers, corners and edges;
all adjacency is expressed with integer indices into those arenas.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import Delaunay, QhullError

from .errors import PartitionError
from .voxel import CHUNK_DIM

logger = structlog.get_logger()

GRID_RADIUS = 2  # default grid spans -2..2 chunks in x and z
SITE_JITTER = CHUNK_DIM * 0.75
CORNER_EPSILON = 1e-6
# Separates the x and z jitter samples in noise space
_JITTER_PHASE = 71.37

Point = Tuple[float, float]


class NoiseValues(NamedTuple):
    """Climate parameters of a point, each in the generator's output range."""

    elevation: float
    temperature: float
    moisture: float


@dataclass
class Center:
    """Voronoi cell (biome region) around a jittered site."""

    point: Point
    noise: NoiseValues
    biome: Optional[int] = None

    # Reserved for a hydrology pass, always False for now
    water: bool = False
    ocean: bool = False
    coast: bool = False

    neighbors: List[int] = field(default_factory=list)
    borders: List[int] = field(default_factory=list)
    corners: List[int] = field(default_factory=list)


@dataclass
class Corner:
    """Voronoi vertex, the circumcenter of a Delaunay triangle."""

    point: Point
    touches: List[int] = field(default_factory=list)
    protrudes: List[int] = field(default_factory=list)
    adjacent: List[int] = field(default_factory=list)


@dataclass
class Edge:
    """
    Voronoi boundary and its dual Delaunay edge.

    ``d0``/``d1`` are the centers the edge separates, ``v0``/``v1`` the
    corners it connects. A missing corner marks the partition boundary.
    """

    d0: Optional[int] = None
    d1: Optional[int] = None
    v0: Optional[int] = None
    v1: Optional[int] = None
    midpoint: Optional[Point] = None


def center_site(grid_radius: int = GRID_RADIUS) -> int:
    """Index of the chunk's own site in a grid of the given radius."""
    return (2 * grid_radius + 1) ** 2 // 2


CENTER_SITE = center_site()


def grid_radius_for(blend_radius: float, margin: int = 0) -> int:
    """
    Smallest site grid radius holding every cell that can affect a column.

    A cell takes part in a point's blend only when its site is within
    ``4 * blend_radius`` of the point plus the distance to the nearest
    site. Columns within ``margin`` blocks of the chunk are at most
    ``reach`` blocks from the chunk's own site on each axis, and sites
    ``k`` chunks away are at least ``k * CHUNK_DIM - reach`` blocks away.

    Args:
        blend_radius: Blend distance in blocks
        margin: Extra columns around the chunk that must be covered

    Returns:
        Grid radius in chunks, never below ``GRID_RADIUS``
    """
    reach = CHUNK_DIM // 2 + SITE_JITTER + margin
    nearest = math.sqrt(2.0) * reach
    needed = math.floor((4.0 * blend_radius + nearest + reach) / CHUNK_DIM)
    return max(GRID_RADIUS, needed)


def _bucket(point: Point) -> Tuple[int, int]:
    return (math.floor(point[0] + 0.5), math.floor(point[1] + 0.5))


def _add_unique(values: List[int], value: Optional[int]) -> None:
    if value is not None and value not in values:
        values.append(value)


@dataclass
class LocalPartition:
    """Voronoi graph for one chunk generation call."""

    chunk_position: Tuple[int, int, int]
    sites: np.ndarray
    centers: List[Center] = field(default_factory=list)
    corners: List[Corner] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    # Rounded-position lookups used for deduplication
    center_lookup: Dict[Tuple[int, int], int] = field(default_factory=dict)
    corner_lookup: Dict[Tuple[int, int], List[int]] = field(default_factory=dict)
    edge_lookup: Dict[Tuple[int, int], int] = field(default_factory=dict)

    # Center indices in biome assignment order
    site_order: List[int] = field(default_factory=list)

    def center_points(self) -> np.ndarray:
        return np.array([c.point for c in self.centers], dtype=np.float64)

    def make_center(self, point: Point, climate: Callable[[Point], NoiseValues]) -> int:
        """
        Find the center at a (rounded) position or create it with its climate sample.

        Raises:
            PartitionError: If a different site already holds the rounded position
        """
        key = _bucket(point)
        index = self.center_lookup.get(key)
        if index is not None and self.centers[index].point != point:
            raise PartitionError(f"sites {self.centers[index].point} and {point} round to the same position {key}")
        if index is None:
            index = len(self.centers)
            self.centers.append(Center(point=point, noise=climate(point)))
            self.center_lookup[key] = index
        return index

    def make_corner(self, point: Point) -> int:
        """Find a corner within ``CORNER_EPSILON`` of a point or create it."""
        bx, by = _bucket(point)
        for x in range(bx - 2, bx + 3):
            for y in range(by - 2, by + 3):
                for index in self.corner_lookup.get((x, y), ()):
                    q = self.corners[index].point
                    if math.hypot(point[0] - q[0], point[1] - q[1]) < CORNER_EPSILON:
                        return index

        index = len(self.corners)
        self.corners.append(Corner(point=point))
        self.corner_lookup.setdefault((bx, by), []).append(index)
        return index

    def link_edge(self, index: int) -> None:
        """Register all adjacency implied by one edge. Called once per edge."""
        edge = self.edges[index]
        centers, corners = self.centers, self.corners

        # Centers point to edges, corners point to edges
        for d in (edge.d0, edge.d1):
            if d is not None:
                _add_unique(centers[d].borders, index)
        for v in (edge.v0, edge.v1):
            if v is not None:
                _add_unique(corners[v].protrudes, index)

        if edge.d0 is not None and edge.d1 is not None:
            _add_unique(centers[edge.d0].neighbors, edge.d1)
            _add_unique(centers[edge.d1].neighbors, edge.d0)

        if edge.v0 is not None and edge.v1 is not None:
            _add_unique(corners[edge.v0].adjacent, edge.v1)
            _add_unique(corners[edge.v1].adjacent, edge.v0)

        for d in (edge.d0, edge.d1):
            if d is not None:
                _add_unique(centers[d].corners, edge.v0)
                _add_unique(centers[d].corners, edge.v1)

        for v in (edge.v0, edge.v1):
            if v is not None:
                _add_unique(corners[v].touches, edge.d0)
                _add_unique(corners[v].touches, edge.d1)

    def summary(self) -> Dict[str, int]:
        return {
            "centers": len(self.centers),
            "corners": len(self.corners),
            "edges": len(self.edges),
            "boundary_edges": sum(1 for e in self.edges if e.v0 is None or e.v1 is None),
        }


def chunk_site_points(
    chunk_position: Tuple[int, int, int], jitter_noise, jitter_scale: float, grid_radius: int = GRID_RADIUS
) -> np.ndarray:
    """
    Jittered square grid of sites around a chunk, 5x5 at the default radius.

    Site ``(i, j)`` starts at the middle column of the chunk ``i`` chunks
    away in x and ``j`` in z, then moves by up to ``SITE_JITTER`` blocks
    on each axis. The offset noise is sampled at the site's own absolute
    position only.

    Args:
        chunk_position: Absolute chunk coordinate (x, y, z)
        jitter_noise: Noise with a ``get((x, z))`` method
        jitter_scale: Noise-space distance between neighboring sites
        grid_radius: Grid extent in chunks on each side of the chunk

    Returns:
        Array of shape ((2r + 1)^2, 2); row ``center_site(r)`` is the chunk's own site
    """
    half = CHUNK_DIM // 2
    points = []
    for i in range(-grid_radius, grid_radius + 1):
        for j in range(-grid_radius, grid_radius + 1):
            sx = (chunk_position[0] + i) * CHUNK_DIM + half
            sz = (chunk_position[2] + j) * CHUNK_DIM + half
            nx = sx / CHUNK_DIM * jitter_scale
            nz = sz / CHUNK_DIM * jitter_scale
            jx = SITE_JITTER * jitter_noise.get((nx, nz))
            jz = SITE_JITTER * jitter_noise.get((nz + _JITTER_PHASE, nx + _JITTER_PHASE))
            points.append((sx + jx, sz + jz))
    return np.array(points, dtype=np.float64)


def compute_circumcenters(points: np.ndarray, simplices: np.ndarray) -> np.ndarray:
    """Circumcenter of every triangle, vectorised."""
    a = points[simplices[:, 0]]
    b = points[simplices[:, 1]]
    c = points[simplices[:, 2]]

    d = 2.0 * (a[:, 0] * (b[:, 1] - c[:, 1]) + b[:, 0] * (c[:, 1] - a[:, 1]) + c[:, 0] * (a[:, 1] - b[:, 1]))
    a2 = np.sum(a * a, axis=1)
    b2 = np.sum(b * b, axis=1)
    c2 = np.sum(c * c, axis=1)

    ux = (a2 * (b[:, 1] - c[:, 1]) + b2 * (c[:, 1] - a[:, 1]) + c2 * (a[:, 1] - b[:, 1])) / d
    uy = (a2 * (c[:, 0] - b[:, 0]) + b2 * (a[:, 0] - c[:, 0]) + c2 * (b[:, 0] - a[:, 0])) / d
    return np.column_stack([ux, uy])


def triangulate(sites: np.ndarray) -> Delaunay:
    """
    Delaunay triangulation of the sites.

    Raises:
        PartitionError: On duplicate or degenerate input
    """
    unique = np.unique(sites, axis=0)
    if len(unique) != len(sites):
        raise PartitionError(f"duplicate site positions in {sites.tolist()}")
    try:
        tri = Delaunay(sites)
    except QhullError as e:
        raise PartitionError(f"failed to triangulate sites: {e}") from e
    if len(tri.coplanar):
        raise PartitionError(f"sites {tri.coplanar[:, 0].tolist()} were left out of the triangulation")
    return tri


def _edge_triangles(simplices: np.ndarray) -> Dict[Tuple[int, int], List[int]]:
    triangles: Dict[Tuple[int, int], List[int]] = {}
    for t, (a, b, c) in enumerate(simplices.tolist()):
        for p, q in ((a, b), (b, c), (c, a)):
            triangles.setdefault((min(p, q), max(p, q)), []).append(t)
    return triangles


def _sorted_neighbors(tri: Delaunay, site: int) -> List[int]:
    """Delaunay neighbors of a site in counter-clockwise order."""
    indptr, indices = tri.vertex_neighbor_vertices
    neighbors = indices[indptr[site]:indptr[site + 1]]
    origin = tri.points[site]
    angles = [math.atan2(tri.points[n][1] - origin[1], tri.points[n][0] - origin[0]) for n in neighbors]
    return [int(n) for _, n in sorted(zip(angles, neighbors.tolist()))]


def build_local_partition(
    chunk_position: Tuple[int, int, int],
    jitter_noise,
    climate: Callable[[Point], NoiseValues],
    jitter_scale: float,
    grid_radius: int = GRID_RADIUS,
) -> LocalPartition:
    """
    Build the Voronoi graph around a chunk.

    Args:
        chunk_position: Absolute chunk coordinate
        jitter_noise: Point-offset noise used to jitter the sites
        climate: Climate sampler, called once per new center
        jitter_scale: Site spacing in offset-noise space
        grid_radius: Site grid extent in chunks, see ``grid_radius_for``

    Returns:
        Complete local partition

    Raises:
        PartitionError: If the sites cannot be triangulated or two sites share a rounded position
    """
    sites = chunk_site_points(chunk_position, jitter_noise, jitter_scale, grid_radius)
    tri = triangulate(sites)
    partition = LocalPartition(chunk_position=tuple(chunk_position), sites=sites)

    circumcenters = compute_circumcenters(tri.points, tri.simplices)
    edge_triangles = _edge_triangles(tri.simplices)
    simplices = tri.simplices.tolist()

    def site_point(index: int) -> Point:
        return (float(sites[index][0]), float(sites[index][1]))

    own = center_site(grid_radius)
    order = [i for i in range(len(sites)) if i != own] + [own]
    for site in order:
        center = partition.make_center(site_point(site), climate)
        partition.site_order.append(center)

        for neighbor in _sorted_neighbors(tri, site):
            key = (min(site, neighbor), max(site, neighbor))
            if key in partition.edge_lookup:
                continue

            other = partition.make_center(site_point(neighbor), climate)

            # The triangle left of site -> neighbor gives v0, the right one v1
            direction = sites[neighbor] - sites[site]
            v0 = v1 = None
            for t in edge_triangles[key]:
                third = next(p for p in simplices[t] if p != site and p != neighbor)
                offset = sites[third] - sites[site]
                corner = partition.make_corner((float(circumcenters[t][0]), float(circumcenters[t][1])))
                if direction[0] * offset[1] - direction[1] * offset[0] > 0:
                    v0 = corner
                else:
                    v1 = corner

            edge = Edge(d0=center, d1=other, v0=v0, v1=v1)
            if v0 is not None and v1 is not None:
                p0, p1 = partition.corners[v0].point, partition.corners[v1].point
                edge.midpoint = ((p0[0] + p1[0]) / 2.0, (p0[1] + p1[1]) / 2.0)

            index = len(partition.edges)
            partition.edges.append(edge)
            partition.edge_lookup[key] = index
            partition.link_edge(index)

    logger.debug("Local partition built", chunk=partition.chunk_position, **partition.summary())
    return partition
