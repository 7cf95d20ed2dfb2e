class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    pass


class ConfigurationError(TileDownloaderException):
    """Configuration related errors"""
    pass


class DownloadError(TileDownloaderException):
    """Transient download errors (retried by the fetcher)"""
    pass


class StorageError(TileDownloaderException):
    """Local filesystem errors that abort the run"""
    pass


class ValidationError(TileDownloaderException):
    """Validation related errors"""
    pass
