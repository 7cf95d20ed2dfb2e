import json
import os
from typing import Dict, Any

from interfaces.tile_server import IConfigLoader
from models.tile import BoundingBox, ZoomRange
from models.tile_server import TileServer, Region, DownloadConfig
from utils.retry_policy import RetryPolicy
from exceptions.tile_downloader_exceptions import ConfigurationError, ValidationError


class ConfigService(IConfigLoader):
    """Service for loading and validating configuration"""

    # key -> (type, minimum)
    TUNABLES = {
        'concurrency': (int, 1),
        'batch_size': (int, 1),
        'retry_attempts': (int, 1),
        'retry_delay': (float, 0),
        'timeout': (float, 0),
        'throttle_every': (int, 1),
        'throttle_seconds': (float, 0),
        'log_interval': (int, 1),
    }

    # urllib3 rejects a zero timeout
    POSITIVE = ('timeout',)

    def load_config(self, config_path: str) -> DownloadConfig:
        """Load configuration from JSON file"""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading config {config_path}: {e}")

        return self.build_config(config)

    def build_config(self, config: Dict[str, Any]) -> DownloadConfig:
        """Validate a raw config dict and turn it into a DownloadConfig"""
        self.validate_config(config)
        return self._process_config(config)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration structure"""
        if not isinstance(config, dict):
            raise ValidationError("Configuration must be a JSON object")

        for key in ('server', 'regions'):
            if key not in config:
                raise ValidationError(f"Missing required key: {key}")

        server = config['server']
        if not isinstance(server, dict) or 'url' not in server:
            raise ValidationError("server must be an object with a 'url'")
        for placeholder in ('{z}', '{x}', '{y}'):
            if placeholder not in server['url']:
                raise ValidationError(f"server url must contain {placeholder}")

        if not isinstance(config['regions'], dict):
            raise ValidationError("regions must be a dictionary")
        for name, region in config['regions'].items():
            if not isinstance(region, dict) or 'bbox' not in region:
                raise ValidationError(f"Region '{name}' must define a bbox")

        for key, (kind, minimum) in self.TUNABLES.items():
            if key not in config:
                continue
            value = config[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{key} must be a number")
            if kind is int and not isinstance(value, int):
                raise ValidationError(f"{key} must be an integer")
            if value < minimum:
                raise ValidationError(f"{key} must be >= {minimum}")
            if key in self.POSITIVE and value <= 0:
                raise ValidationError(f"{key} must be > 0")

        return True

    def _process_config(self, config: Dict[str, Any]) -> DownloadConfig:
        """Convert raw dicts into model objects, filling in defaults"""
        server_data = config['server']
        server = TileServer(
            name=server_data.get('name', 'default'),
            url=server_data['url'],
            headers=server_data.get('headers', {})
        )

        regions = {}
        for name, region_data in config['regions'].items():
            regions[name] = Region(
                name=name,
                bbox=BoundingBox.from_list(region_data['bbox']),
                zoom_range=ZoomRange(region_data.get('min_zoom', 13), region_data.get('max_zoom', 19)),
                description=region_data.get('description', '')
            )

        tunables = {key: kind(config[key]) for key, (kind, _) in self.TUNABLES.items() if key in config}
        download_config = DownloadConfig(
            server=server,
            regions=regions,
            output_dir=config.get('output_dir', 'tiles'),
            failure_log=config.get('failure_log', 'failed_tiles.log'),
            retry_backoff=config.get('retry_backoff', 'fixed'),
            logging=config.get('logging', {}),
            **tunables
        )

        # Reject unknown backoff names at load time
        self.get_retry_policy(download_config)
        return download_config

    def get_retry_policy(self, config: DownloadConfig) -> RetryPolicy:
        return RetryPolicy.from_name(config.retry_backoff, config.retry_attempts, config.retry_delay)

    def get_region(self, config: DownloadConfig, region_name: str) -> Region:
        """Get region configuration by name"""
        region = config.get_region(region_name)
        if region is None:
            raise ConfigurationError(f"Region '{region_name}' not found")
        return region
