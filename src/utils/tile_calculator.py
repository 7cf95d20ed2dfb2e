import math
from typing import Dict, Iterator, Tuple

from models.tile import BoundingBox, TileCoordinate, ZoomRange


class TileCalculator:
    """Utility class for Web-Mercator tile coordinate calculations.
    
    Latitudes must lie inside the Mercator domain (about +/-85.0511 degrees).
    Results for latitudes outside it are undefined; nothing is clamped.
    """
    
    @staticmethod
    def project(lon: float, lat: float, zoom: int) -> Tuple[int, int]:
        """Convert lon/lat to the (x, y) tile containing it at zoom"""
        lat_rad = math.radians(lat)
        n = 2.0 ** zoom
        xtile = math.floor((lon + 180.0) / 360.0 * n)
        ytile = math.floor((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)
        return xtile, ytile
    
    @staticmethod
    def unproject(x: float, y: float, zoom: int) -> Tuple[float, float]:
        """Convert a (possibly fractional) tile position back to lon/lat"""
        n = 2.0 ** zoom
        lon = x / n * 360.0 - 180.0
        lat = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))
        return lon, lat
    
    @staticmethod
    def tile_center(x: int, y: int, zoom: int) -> Tuple[float, float]:
        """lon/lat of the center of tile (x, y)"""
        return TileCalculator.unproject(x + 0.5, y + 0.5, zoom)
    
    @staticmethod
    def in_bounds(lon: float, lat: float, bbox: BoundingBox) -> bool:
        return bbox.min_lng <= lon <= bbox.max_lng and bbox.min_lat <= lat <= bbox.max_lat
    
    @staticmethod
    def tile_range(bbox: BoundingBox, zoom: int) -> Tuple[int, int, int, int]:
        """Return (x_min, x_max, y_min, y_max) covering bbox at zoom.
        
        Tile y grows southwards, so the projected corners are re-ordered.
        """
        x1, y1 = TileCalculator.project(bbox.min_lng, bbox.min_lat, zoom)
        x2, y2 = TileCalculator.project(bbox.max_lng, bbox.max_lat, zoom)
        return min(x1, x2), max(x1, x2), min(y1, y2), max(y1, y2)
    
    @staticmethod
    def iter_tiles(bbox: BoundingBox, zoom: int) -> Iterator[TileCoordinate]:
        """Yield tiles in the covering rectangle whose center lies inside bbox"""
        x_min, x_max, y_min, y_max = TileCalculator.tile_range(bbox, zoom)
        for x in range(x_min, x_max + 1):
            for y in range(y_min, y_max + 1):
                lon, lat = TileCalculator.tile_center(x, y, zoom)
                if TileCalculator.in_bounds(lon, lat, bbox):
                    yield TileCoordinate(z=zoom, x=x, y=y)
    
    @staticmethod
    def calculate_tile_count(bbox: BoundingBox, zoom_range: ZoomRange) -> Dict[int, int]:
        """Count in-bounds tiles per zoom level without materializing them"""
        return {zoom: sum(1 for _ in TileCalculator.iter_tiles(bbox, zoom)) for zoom in zoom_range}
