import argparse
import dataclasses
import logging
import signal
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional

from core.run_counters import RunCounters, RunSummary
from interfaces.tile_server import IFailureSink, ITileFetcher
from models.tile import BoundingBox, FailureLogEntry, TileCoordinate, TileTask, ZoomRange
from models.tile_server import DownloadConfig
from services.config_service import ConfigService
from services.failure_log import FailureLog
from services.tile_download_service import TileDownloadService
from utils.file_utils import FileUtils
from utils.tile_calculator import TileCalculator
from exceptions.tile_downloader_exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


class TileDownloadManager:
    """Fetches every in-bounds tile of a bounding box, one zoom level at a time.

    Tiles are pushed through a thread pool in fixed-size batches; a batch is
    fully drained before the next one is submitted, and at most
    ``config.concurrency`` tiles are in flight at once. Tiles whose file
    already exists with a valid PNG header are skipped, so an interrupted run
    can simply be started again.
    """

    def __init__(self, config: DownloadConfig,
                 fetcher: Optional[ITileFetcher] = None,
                 failure_sink: Optional[IFailureSink] = None,
                 config_service: Optional[ConfigService] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.config_service = config_service or ConfigService()
        self.fetcher = fetcher or TileDownloadService(
            retry_policy=self.config_service.get_retry_policy(config),
            timeout=config.timeout,
            headers=config.server.get_headers(),
            pool_size=config.concurrency,
            sleep=sleep
        )
        self.failure_sink = failure_sink or FailureLog(config.failure_log)
        self._sleep = sleep
        self._stop = threading.Event()
        self._fatal_lock = threading.Lock()
        self._fatal_error: Optional[StorageError] = None

    @classmethod
    def from_config_file(cls, config_path: str = "config.json", **overrides) -> 'TileDownloadManager':
        """Load config_path; non-None keyword overrides replace config values"""
        config_service = ConfigService()
        config = config_service.load_config(config_path)
        overrides = {key: value for key, value in overrides.items() if value is not None}
        if overrides.get('concurrency', 1) < 1:
            raise ValidationError("concurrency must be >= 1")
        if overrides:
            config = dataclasses.replace(config, **overrides)
        return cls(config, config_service=config_service)

    def request_stop(self) -> None:
        """Finish the batch in flight, then stop before the next one"""
        if not self._stop.is_set():
            logger.warning("Stop requested, waiting for the current batch to finish")
        self._stop.set()

    def count_tiles(self, bbox: BoundingBox, zoom_range: ZoomRange) -> Dict[int, int]:
        return TileCalculator.calculate_tile_count(bbox, zoom_range)

    def download_area(self, bbox: BoundingBox, zoom_range: ZoomRange) -> RunSummary:
        """Download all tiles of bbox for every zoom in zoom_range.

        Per-tile failures only show up in the counters and the failure log.
        Raises StorageError if the local filesystem fails; tiles already in
        flight are allowed to finish first.
        """
        self._stop.clear()
        self._fatal_error = None
        counters = RunCounters(self.config.log_interval)

        logger.info("Bounding box: %s", bbox.to_list())
        logger.info("Zoom levels: %d to %d", zoom_range.min_zoom, zoom_range.max_zoom)
        logger.info("Output directory: %s", self.config.output_dir)

        self.failure_sink.open()

        with ThreadPoolExecutor(max_workers=self.config.concurrency,
                                thread_name_prefix='tile') as executor:
            gate = threading.BoundedSemaphore(self.config.concurrency)
            for zoom in zoom_range:
                if self._stop.is_set():
                    break
                completed = self._download_zoom(executor, gate, bbox, zoom, counters)
                if self._fatal_error is not None:
                    logger.error("Zoom %d aborted, %s", zoom, counters.snapshot())
                elif not completed:
                    logger.warning("Zoom %d stopped before all tiles were processed, %s", zoom, counters.snapshot())
                else:
                    logger.info("Zoom %d finished, %s", zoom, counters.snapshot())

        summary = counters.snapshot()
        if self._fatal_error is not None:
            logger.error("Download aborted! %s", summary)
            raise self._fatal_error

        if self._stop.is_set():
            logger.info("Download stopped early. %s", summary)
        else:
            logger.info("Download finished! %s", summary)
        if summary.fail > 0:
            logger.info("Failed tiles were written to %s", self.config.failure_log)
        return summary

    def _download_zoom(self, executor: ThreadPoolExecutor, gate: threading.BoundedSemaphore,
                       bbox: BoundingBox, zoom: int, counters: RunCounters) -> bool:
        """Returns False if the run stopped before every tile of zoom was processed"""
        batch: List[Future] = []
        for tile in TileCalculator.iter_tiles(bbox, zoom):
            batch.append(self._submit(executor, gate, self._make_task(tile), counters))
            if len(batch) >= self.config.batch_size:
                self._drain(batch, counters)
                batch = []
                if self._stop.is_set():
                    return False

        if batch:
            self._drain(batch, counters)
        return True

    def _make_task(self, tile: TileCoordinate) -> TileTask:
        return TileTask(
            tile=tile,
            url=self.config.server.get_tile_url(tile.z, tile.x, tile.y),
            path=FileUtils.get_tile_path(self.config.output_dir, tile.z, tile.x, tile.y)
        )

    def _submit(self, executor: ThreadPoolExecutor, gate: threading.BoundedSemaphore,
                task: TileTask, counters: RunCounters) -> Future:
        # Blocks while the pool is saturated
        gate.acquire()
        try:
            future = executor.submit(self._process_tile, task, counters)
        except BaseException:
            gate.release()
            raise
        future.add_done_callback(lambda _: gate.release())
        return future

    def _drain(self, futures: List[Future], counters: RunCounters) -> None:
        wait(futures)
        for future in futures:
            error = future.exception()
            if error is not None:
                logger.error("Tile task crashed", exc_info=error)
                counters.add_fail()

    def _process_tile(self, task: TileTask, counters: RunCounters) -> None:
        if not FileUtils.should_download(task.path):
            if counters.add_skipped():
                self._log_progress(counters)
            return

        if FileUtils.file_exists(task.path):
            logger.info("Corrupted tile detected, downloading again: %s", task.path)

        self._throttle(counters)

        try:
            ok = self.fetcher.fetch_tile(task.url, task.path)
        except StorageError as e:
            logger.error("Local storage error for tile %d/%d/%d: %s",
                         task.tile.z, task.tile.x, task.tile.y, e)
            counters.add_fail()
            self._abort(e)
            self._record_failure(task)
            return

        if ok:
            if counters.add_success():
                self._log_progress(counters)
        else:
            counters.add_fail()
            self._record_failure(task)

    def _record_failure(self, task: TileTask) -> None:
        try:
            self.failure_sink.record(FailureLogEntry.from_task(task))
        except StorageError as e:
            logger.error("%s", e)
            self._abort(e)

    def _throttle(self, counters: RunCounters) -> None:
        """Pause this task every throttle_every successful downloads.

        The check is not atomic with the pause, so several tasks may pause
        around the same count.
        """
        success = counters.success
        # success == 0 is skipped: pausing there would stall the whole first batch
        if success > 0 and success % self.config.throttle_every == 0:
            logger.info("Pausing %.1fs, %s", self.config.throttle_seconds, counters.snapshot())
            self._sleep(self.config.throttle_seconds)

    def _abort(self, error: StorageError) -> None:
        with self._fatal_lock:
            if self._fatal_error is None:
                self._fatal_error = error
        self._stop.set()

    @staticmethod
    def _log_progress(counters: RunCounters) -> None:
        logger.info("Progress: %s", counters.snapshot())

    def list_regions(self) -> None:
        """List available regions"""
        print("Available regions:")
        for name, region in self.config.regions.items():
            description = region.description or 'No description'
            zooms = f"z{region.zoom_range.min_zoom}-{region.zoom_range.max_zoom}"
            print(f"  {name}: {description} {region.bbox.to_list()} {zooms}")

    def run_from_command_line(self, args: argparse.Namespace) -> int:
        """Run the command-line actions selected by args; returns an exit code"""
        if args.list_regions:
            self.list_regions()
            return 0

        if args.region:
            region = self.config_service.get_region(self.config, args.region)
            bbox = region.bbox
            min_zoom = region.zoom_range.min_zoom if args.min_zoom is None else args.min_zoom
            max_zoom = region.zoom_range.max_zoom if args.max_zoom is None else args.max_zoom
        elif args.bbox:
            bbox = BoundingBox.from_list(args.bbox)
            if args.min_zoom is None or args.max_zoom is None:
                raise ValidationError("--bbox requires --min-zoom and --max-zoom")
            min_zoom, max_zoom = args.min_zoom, args.max_zoom
        else:
            print("Please provide --region or --bbox!")
            print()
            self.list_regions()
            return 1

        zoom_range = ZoomRange(min_zoom, max_zoom)

        if args.count_only:
            counts = self.count_tiles(bbox, zoom_range)
            for zoom, count in counts.items():
                print(f"  Zoom {zoom}: {count} tiles")
            print(f"Total: {sum(counts.values())} tiles")
            return 0

        self._install_signal_handlers()
        self.download_area(bbox, zoom_range)
        return 0

    def _install_signal_handlers(self) -> None:
        def handle(signum, frame):
            self.request_stop()
            # A second Ctrl+C interrupts immediately
            signal.signal(signal.SIGINT, signal.default_int_handler)

        signal.signal(signal.SIGINT, handle)
        if hasattr(signal, 'SIGTERM'):
            signal.signal(signal.SIGTERM, handle)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Download the map tiles covering a bounding box into <output_dir>/<z>/<x>/<y>.png.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Examples:\n\n'
            '1) Download a configured region:\n'
            '   python src/tile_downloader.py --region zhengzhou\n\n'
            '2) Custom BBOX (lon/lat order), one zoom level:\n'
            '   python src/tile_downloader.py --bbox 112.7211 34.2667 114.2209 34.9895 --min-zoom 13 --max-zoom 13\n\n'
            '3) Count tiles without downloading:\n'
            '   python src/tile_downloader.py --region zhengzhou --count-only\n\n'
            'Notes:\n'
            '- Existing tiles with a valid PNG header are skipped; re-run to resume.\n'
            '- Tiles that still fail after all retries are appended to the failure log.'
        )
    )
    parser.add_argument('--config', default='config.json', help='Path to the JSON configuration (default: config.json)')
    parser.add_argument('--region', help='Region name to download. Must exist in config.json -> regions.')
    parser.add_argument('--bbox', nargs=4, type=float, metavar=('min_lon', 'min_lat', 'max_lon', 'max_lat'),
                        help='Custom BBOX (lon/lat)')
    parser.add_argument('--min-zoom', type=int, help='Minimum zoom level (default: region setting)')
    parser.add_argument('--max-zoom', type=int, help='Maximum zoom level (default: region setting)')
    parser.add_argument('--output-dir', help='Override output_dir from the config')
    parser.add_argument('--concurrency', type=int, help='Override the concurrent download limit')
    parser.add_argument('--list-regions', action='store_true', help='List configured regions')
    parser.add_argument('--count-only', action='store_true', help='Print the number of tiles per zoom and exit')
    return parser
