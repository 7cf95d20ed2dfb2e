#!/usr/bin/env python3
"""
Tests for TileCalculator utility
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from models.tile import BoundingBox, TileCoordinate, ZoomRange
from utils.tile_calculator import TileCalculator


ZHENGZHOU = BoundingBox(min_lat=34.2667, min_lng=112.7211, max_lat=34.9895, max_lng=114.2209)


class TestTileCalculator:
    """Test cases for TileCalculator class"""
    
    def test_project_known_tiles(self):
        assert TileCalculator.project(0.0, 0.0, 0) == (0, 0)
        assert TileCalculator.project(0.0, 0.0, 1) == (1, 1)
        assert TileCalculator.project(-180.0, 0.0, 3) == (0, 4)
        assert TileCalculator.project(-0.1, 0.1, 1) == (0, 0)
        assert TileCalculator.project(0.1, -0.1, 1) == (1, 1)
    
    def test_unproject_corners(self):
        lon, lat = TileCalculator.unproject(0, 0, 0)
        assert lon == pytest.approx(-180.0)
        assert lat == pytest.approx(85.0511, abs=1e-4)
        
        lon, lat = TileCalculator.unproject(1, 1, 1)
        assert lon == pytest.approx(0.0)
        assert lat == pytest.approx(0.0, abs=1e-9)
    
    def test_tile_center_is_offset_by_half_a_tile(self):
        assert TileCalculator.tile_center(3, 5, 4) == TileCalculator.unproject(3.5, 5.5, 4)
    
    @pytest.mark.parametrize("lon,lat", [
        (113.6, 34.7),
        (-74.0060, 40.7128),
        (151.2093, -33.8688),
        (-179.9, 85.0),
        (179.9, -85.0),
        (0.0, 0.0),
    ])
    @pytest.mark.parametrize("zoom", [0, 5, 13, 19])
    def test_round_trip_through_tile_center(self, lon, lat, zoom):
        x, y = TileCalculator.project(lon, lat, zoom)
        center_lon, center_lat = TileCalculator.tile_center(x, y, zoom)
        assert TileCalculator.project(center_lon, center_lat, zoom) == (x, y)
    
    def test_in_bounds_is_inclusive(self):
        assert TileCalculator.in_bounds(112.7211, 34.2667, ZHENGZHOU)
        assert TileCalculator.in_bounds(114.2209, 34.9895, ZHENGZHOU)
        assert TileCalculator.in_bounds(113.5, 34.5, ZHENGZHOU)
        assert not TileCalculator.in_bounds(112.72, 34.5, ZHENGZHOU)
        assert not TileCalculator.in_bounds(113.5, 35.0, ZHENGZHOU)
    
    def test_tile_range_is_ordered(self):
        x_min, x_max, y_min, y_max = TileCalculator.tile_range(ZHENGZHOU, 13)
        assert x_min <= x_max
        assert y_min <= y_max
        # northern edge maps to the smaller y
        assert TileCalculator.project(ZHENGZHOU.min_lng, ZHENGZHOU.max_lat, 13)[1] == y_min
        assert TileCalculator.project(ZHENGZHOU.max_lng, ZHENGZHOU.min_lat, 13)[1] == y_max
    
    @pytest.mark.parametrize("zoom", [8, 11, 13])
    def test_iter_tiles_matches_brute_force(self, zoom):
        x_min, x_max, y_min, y_max = TileCalculator.tile_range(ZHENGZHOU, zoom)
        expected = set()
        # scan a margin around the rectangle too
        for x in range(x_min - 2, x_max + 3):
            for y in range(y_min - 2, y_max + 3):
                lon, lat = TileCalculator.tile_center(x, y, zoom)
                if TileCalculator.in_bounds(lon, lat, ZHENGZHOU):
                    expected.add(TileCoordinate(zoom, x, y))
        
        tiles = list(TileCalculator.iter_tiles(ZHENGZHOU, zoom))
        
        assert len(tiles) == len(set(tiles))
        assert set(tiles) == expected
    
    def test_zhengzhou_zoom_13_is_nonempty_and_bounded(self):
        tiles = list(TileCalculator.iter_tiles(ZHENGZHOU, 13))
        x_min, x_max, y_min, y_max = TileCalculator.tile_range(ZHENGZHOU, 13)
        
        assert 0 < len(tiles) <= (x_max - x_min + 1) * (y_max - y_min + 1)
        for tile in tiles:
            assert tile.z == 13
            assert x_min <= tile.x <= x_max
            assert y_min <= tile.y <= y_max
    
    def test_small_bbox_inside_one_tile_may_yield_nothing(self):
        # The center of the containing tile lies outside this sliver
        bbox = BoundingBox(min_lat=34.70, min_lng=113.60, max_lat=34.7001, max_lng=113.6001)
        assert list(TileCalculator.iter_tiles(bbox, 5)) == []
    
    def test_calculate_tile_count(self):
        counts = TileCalculator.calculate_tile_count(ZHENGZHOU, ZoomRange(10, 12))
        
        assert list(counts) == [10, 11, 12]
        assert all(count > 0 for count in counts.values())
        assert counts[12] > counts[10]
        assert counts[11] == len(list(TileCalculator.iter_tiles(ZHENGZHOU, 11)))


if __name__ == "__main__":
    pytest.main([__file__])
