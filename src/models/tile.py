from dataclasses import dataclass
from typing import Iterator, List, Sequence

from exceptions.tile_downloader_exceptions import ValidationError


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle in degrees. Edges are inclusive."""
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float
    
    def __post_init__(self):
        if not self.min_lat < self.max_lat:
            raise ValidationError(f"min_lat ({self.min_lat}) must be less than max_lat ({self.max_lat})")
        if not self.min_lng < self.max_lng:
            raise ValidationError(f"min_lng ({self.min_lng}) must be less than max_lng ({self.max_lng})")
    
    @classmethod
    def from_list(cls, bbox: Sequence[float]) -> 'BoundingBox':
        """Build from [min_lon, min_lat, max_lon, max_lat]"""
        if len(bbox) != 4:
            raise ValidationError(f"bbox must have 4 values, got {len(bbox)}")
        min_lon, min_lat, max_lon, max_lat = (float(v) for v in bbox)
        return cls(min_lat=min_lat, min_lng=min_lon, max_lat=max_lat, max_lng=max_lon)
    
    def to_list(self) -> List[float]:
        """Return [min_lon, min_lat, max_lon, max_lat]"""
        return [self.min_lng, self.min_lat, self.max_lng, self.max_lat]


@dataclass(frozen=True)
class ZoomRange:
    """Inclusive range of zoom levels"""
    min_zoom: int
    max_zoom: int
    
    def __post_init__(self):
        if self.min_zoom < 0:
            raise ValidationError(f"min_zoom must be >= 0, got {self.min_zoom}")
        if self.min_zoom > self.max_zoom:
            raise ValidationError(f"min_zoom ({self.min_zoom}) cannot be greater than max_zoom ({self.max_zoom})")
    
    def __iter__(self) -> Iterator[int]:
        return iter(range(self.min_zoom, self.max_zoom + 1))


@dataclass(frozen=True)
class TileCoordinate:
    z: int
    x: int
    y: int


@dataclass(frozen=True)
class TileTask:
    """One unit of work: where to fetch a tile from and where to put it"""
    tile: TileCoordinate
    url: str
    path: str


@dataclass(frozen=True)
class FailureLogEntry:
    z: int
    x: int
    y: int
    url: str
    
    @classmethod
    def from_task(cls, task: TileTask) -> 'FailureLogEntry':
        return cls(z=task.tile.z, x=task.tile.x, y=task.tile.y, url=task.url)
    
    def to_line(self) -> str:
        return f"z={self.z}, x={self.x}, y={self.y}, url={self.url}\n"
