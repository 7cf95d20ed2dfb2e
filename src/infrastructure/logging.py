"""Logging configuration"""
import logging
import sys
from typing import Dict, Any


class LoggingManager:
    """Manages application logging configuration"""
    
    DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    
    @staticmethod
    def setup_logging(config: Dict[str, Any]) -> None:
        """Setup logging based on configuration"""
        logging_config = config.get('logging', {})
        
        level_name = str(logging_config.get('level', 'INFO')).upper()
        level = getattr(logging, level_name, logging.INFO)
        format_str = logging_config.get('format', LoggingManager.DEFAULT_FORMAT)
        
        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stdout
        )
        # basicConfig is a no-op once handlers exist; the level still applies
        logging.getLogger().setLevel(level)
        
        # Set specific loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
