from dataclasses import dataclass, field
from typing import Dict, Optional

from interfaces.tile_server import ITileServer
from models.tile import BoundingBox, ZoomRange


@dataclass
class TileServer(ITileServer):
    """Data model for tile server configuration"""
    name: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    
    def get_tile_url(self, zoom: int, x: int, y: int) -> str:
        """Generate tile URL for given coordinates"""
        return self.url.format(z=zoom, x=x, y=y)
    
    def get_headers(self) -> Dict[str, str]:
        """Get request headers"""
        return self.headers.copy()
    

@dataclass
class Region:
    """Data model for geographic region"""
    name: str
    bbox: BoundingBox
    zoom_range: ZoomRange
    description: str = ''


@dataclass
class DownloadConfig:
    """Data model for download configuration"""
    server: TileServer
    regions: Dict[str, Region]
    output_dir: str = 'tiles'
    failure_log: str = 'failed_tiles.log'
    concurrency: int = 2000
    batch_size: int = 1000
    retry_attempts: int = 3
    retry_delay: float = 1.0
    retry_backoff: str = 'fixed'
    timeout: float = 10
    throttle_every: int = 100000
    throttle_seconds: float = 5.0
    log_interval: int = 2000
    logging: Dict[str, str] = field(default_factory=dict)
    
    def get_region(self, name: str) -> Optional[Region]:
        return self.regions.get(name)
