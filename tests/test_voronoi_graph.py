"""Tests for the per-chunk Voronoi partition."""

import numpy as np
import pytest

from py_voxgen.core.errors import PartitionError
from py_voxgen.core.fbm_noise import Fbm
from py_voxgen.core import voronoi_graph
from py_voxgen.core.voronoi_graph import (
    CENTER_SITE,
    GRID_RADIUS,
    SITE_JITTER,
    NoiseValues,
    build_local_partition,
    center_site,
    chunk_site_points,
    compute_circumcenters,
    grid_radius_for,
    triangulate,
    _edge_triangles,
)

JITTER_SCALE = 0.73


def site_climate(point):
    """Climate that depends only on the site position."""
    return NoiseValues(point[0] * 0.01, point[1] * 0.01, 1.0)


class TestSitePoints:
    """Test jittered site placement."""

    def setup_method(self):
        """Setup test fixtures."""
        self.noise = Fbm(seed=77, octaves=[1.0])

    def test_shape_and_center(self):
        """Test that the chunk's own site is within jitter of its middle."""
        sites = chunk_site_points((0, 0, 0), self.noise, JITTER_SCALE)
        assert sites.shape == (25, 2)
        assert abs(sites[CENTER_SITE][0] - 8.0) <= SITE_JITTER
        assert abs(sites[CENTER_SITE][1] - 8.0) <= SITE_JITTER

    def test_jittered(self):
        """Test that sites leave the regular grid."""
        sites = chunk_site_points((0, 0, 0), self.noise, JITTER_SCALE)
        offsets = (sites - 8.0) % 16.0
        assert not np.allclose(offsets, 0.0)

    def test_shared_sites_identical(self):
        """Test that neighboring chunks compute the same shared sites."""
        a = chunk_site_points((0, 0, 0), self.noise, JITTER_SCALE)
        b = chunk_site_points((1, 0, 0), self.noise, JITTER_SCALE)
        # Site (i=1, j=0) of chunk 0 is site (i=0, j=0) of chunk 1
        np.testing.assert_array_equal(a[17], b[12])

    def test_independent_of_y(self):
        """Test that the vertical chunk coordinate does not move sites."""
        a = chunk_site_points((2, 0, -1), self.noise, JITTER_SCALE)
        b = chunk_site_points((2, -3, -1), self.noise, JITTER_SCALE)
        np.testing.assert_array_equal(a, b)

    def test_larger_grid(self):
        """Test that a wider grid keeps the 5x5 sites in place."""
        small = chunk_site_points((1, 0, -2), self.noise, JITTER_SCALE)
        large = chunk_site_points((1, 0, -2), self.noise, JITTER_SCALE, grid_radius=4)
        assert large.shape == (81, 2)
        np.testing.assert_array_equal(large[center_site(4)], small[CENTER_SITE])
        # Site (i=1, j=-2) in both grids
        np.testing.assert_array_equal(large[5 * 9 + 2], small[3 * 5 + 0])


class TestGridRadius:
    """Test sizing the site grid from the blend radius."""

    def test_minimum(self):
        """Test that the grid never drops below 5x5."""
        assert grid_radius_for(0.5) >= GRID_RADIUS

    def test_grows_with_radius_and_margin(self):
        """Test monotonic growth."""
        assert grid_radius_for(8.0) <= grid_radius_for(32.0)
        assert grid_radius_for(32.0) <= grid_radius_for(32.0, margin=16)
        assert grid_radius_for(64.0) > grid_radius_for(8.0)

    def test_default_radius(self):
        """Test the grid for the default blend radius and one border column."""
        # reach 21, nearest site within 21 * sqrt(2), blend reach 128
        assert grid_radius_for(32.0, margin=1) == 11

    def test_covers_blend_reach(self):
        """Test that sites outside the grid are beyond the blend cutoff."""
        for blend_radius in (4.0, 8.0, 32.0):
            radius = grid_radius_for(blend_radius)
            nearest_bound = np.hypot(20.0, 20.0)
            closest_excluded = (radius + 1) * 16 - 20.0
            assert closest_excluded > 4.0 * blend_radius + nearest_bound


class TestTriangulation:
    """Test triangulation helpers."""

    def test_circumcenter(self):
        """Test circumcenter of a right triangle."""
        points = np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 2.0]])
        centers = compute_circumcenters(points, np.array([[0, 1, 2]]))
        np.testing.assert_allclose(centers[0], [1.0, 1.0])

    def test_duplicate_sites(self):
        """Test that duplicate sites are a partition error."""
        points = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0], [4.0, 0.0]])
        with pytest.raises(PartitionError):
            triangulate(points)

    def test_collinear_sites(self):
        """Test that degenerate input is a partition error."""
        points = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]])
        with pytest.raises(PartitionError):
            triangulate(points)


class TestLocalPartition:
    """Test the Voronoi graph built for a chunk."""

    def setup_method(self):
        """Setup test fixtures."""
        self.noise = Fbm(seed=2024, octaves=[1.0])
        self.partition = build_local_partition((0, 0, 0), self.noise, site_climate, JITTER_SCALE)

    def test_centers(self):
        """Test that every site maps to a center with its climate."""
        partition = self.partition
        assert len(partition.site_order) == 25
        assert set(partition.site_order) == set(range(len(partition.centers)))
        for center in partition.centers:
            assert center.noise == site_climate(center.point)
            assert center.biome is None

    def test_neighbors_symmetric(self):
        """Test center adjacency is mutual."""
        for i, center in enumerate(self.partition.centers):
            assert i not in center.neighbors
            for n in center.neighbors:
                assert i in self.partition.centers[n].neighbors

    def test_edges_linked_once(self):
        """Test edges are unique and registered on both sides."""
        partition = self.partition
        pairs = set()
        for index, edge in enumerate(partition.edges):
            pair = (min(edge.d0, edge.d1), max(edge.d0, edge.d1))
            assert pair not in pairs
            pairs.add(pair)
            assert partition.centers[edge.d0].borders.count(index) == 1
            assert partition.centers[edge.d1].borders.count(index) == 1

    def test_edge_count_matches_delaunay(self):
        """Test one edge per Delaunay edge."""
        tri = triangulate(self.partition.sites)
        assert len(self.partition.edges) <= len(_edge_triangles(tri.simplices))
        if len(self.partition.centers) == 25:
            assert len(self.partition.edges) == len(_edge_triangles(tri.simplices))

    def test_hull_edges(self):
        """Test that boundary edges have exactly one corner and no midpoint."""
        boundary = [e for e in self.partition.edges if e.v0 is None or e.v1 is None]
        assert len(boundary) >= 3
        for edge in boundary:
            assert (edge.v0 is None) != (edge.v1 is None)
            assert edge.midpoint is None

        for edge in self.partition.edges:
            if edge.v0 is not None and edge.v1 is not None:
                assert edge.midpoint is not None

    def test_corners(self):
        """Test corner adjacency."""
        partition = self.partition
        for i, corner in enumerate(partition.corners):
            assert len(corner.touches) >= 3
            for a in corner.adjacent:
                assert i in partition.corners[a].adjacent
            for e in corner.protrudes:
                edge = partition.edges[e]
                assert i in (edge.v0, edge.v1)

    def test_center_corners(self):
        """Test that a center's corners touch it back."""
        partition = self.partition
        for i, center in enumerate(partition.centers):
            for c in center.corners:
                assert i in partition.corners[c].touches

    def test_deterministic(self):
        """Test that rebuilding gives the same graph."""
        again = build_local_partition((0, 0, 0), self.noise, site_climate, JITTER_SCALE)
        assert [c.point for c in again.centers] == [c.point for c in self.partition.centers]
        assert [(e.d0, e.d1, e.v0, e.v1) for e in again.edges] == [
            (e.d0, e.d1, e.v0, e.v1) for e in self.partition.edges
        ]

    def test_neighbor_chunk_agrees(self):
        """Test shared centers have identical positions and climate."""
        other = build_local_partition((1, 0, 0), self.noise, site_climate, JITTER_SCALE)
        ours = {c.point: c.noise for c in self.partition.centers}
        theirs = {c.point: c.noise for c in other.centers}
        shared = set(ours) & set(theirs)
        assert len(shared) >= 15
        for point in shared:
            assert ours[point] == theirs[point]

    def test_summary(self):
        """Test partition statistics."""
        summary = self.partition.summary()
        assert summary["centers"] == len(self.partition.centers)
        assert summary["edges"] == len(self.partition.edges)
        assert 0 < summary["boundary_edges"] < summary["edges"]


class TestRoundingCollision:
    """Test sites that share a rounded position."""

    def test_colliding_sites_raise(self, monkeypatch):
        """Test that two distinct sites in one bucket are a partition error."""
        rng = np.random.default_rng(5)
        grid = np.array([(8.0 + 16 * i, 8.0 + 16 * j) for i in range(-2, 3) for j in range(-2, 3)])
        sites = grid + rng.uniform(-2.0, 2.0, size=grid.shape)
        # Sites 12 and 17 both round to (16, 8)
        sites[CENTER_SITE] = (15.7, 8.1)
        sites[17] = (16.2, 7.9)
        monkeypatch.setattr(voronoi_graph, "chunk_site_points", lambda *args: sites)

        with pytest.raises(PartitionError):
            build_local_partition((0, 0, 0), Fbm(seed=1, octaves=[1.0]), site_climate, JITTER_SCALE)
