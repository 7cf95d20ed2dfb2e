from abc import ABC, abstractmethod
from typing import Dict, Any


class ITileServer(ABC):
    """Interface for tile server implementations"""
    
    @abstractmethod
    def get_tile_url(self, zoom: int, x: int, y: int) -> str:
        """Generate tile URL for given coordinates"""
        pass
    
    @abstractmethod
    def get_headers(self) -> Dict[str, str]:
        """Get request headers for this server"""
        pass
    

class ITileFetcher(ABC):
    """Interface for single-tile download implementations"""
    
    @abstractmethod
    def fetch_tile(self, url: str, dest_path: str) -> bool:
        """Download one tile to dest_path, retrying transient failures"""
        pass


class IFailureSink(ABC):
    """Destination for tiles that exhausted their retries"""

    def open(self) -> None:
        """Prepare the sink before the first tile is processed"""
        pass

    @abstractmethod
    def record(self, entry) -> None:
        """Record one failed tile"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""
    
    @abstractmethod
    def load_config(self, config_path: str) -> Any:
        """Load configuration from file"""
        pass
    
    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
