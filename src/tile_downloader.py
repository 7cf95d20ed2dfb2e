#!/usr/bin/env python3
"""
Offline Tile Fetcher - Main Entry Point
Downloads the map tiles covering a bounding box for offline use
"""

import sys
import os
import logging

# Add src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from core.tile_download_manager import TileDownloadManager, build_arg_parser
from exceptions.tile_downloader_exceptions import TileDownloaderException
from infrastructure.logging import LoggingManager


def main(argv=None) -> int:
    """Main entry point for the tile downloader application"""
    args = build_arg_parser().parse_args(argv)

    try:
        # Defaults until the config file is read
        LoggingManager.setup_logging({})
        logger = logging.getLogger(__name__)

        manager = TileDownloadManager.from_config_file(
            args.config,
            output_dir=args.output_dir,
            concurrency=args.concurrency
        )
        LoggingManager.setup_logging({'logging': manager.config.logging})

        logger.info("Starting tile download")
        return manager.run_from_command_line(args)

    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        return 1
    except TileDownloaderException as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
