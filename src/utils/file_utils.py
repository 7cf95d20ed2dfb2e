import os

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


class FileUtils:
    """Utility class for tile file operations"""
    
    @staticmethod
    def ensure_directory_exists(directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        os.makedirs(directory_path, exist_ok=True)
    
    @staticmethod
    def get_tile_path(output_dir: str, zoom: int, x: int, y: int, extension: str = 'png') -> str:
        """Generate tile file path. Distinct tiles never share a path."""
        return os.path.join(output_dir, str(zoom), str(x), f"{y}.{extension}")
    
    @staticmethod
    def file_exists(file_path: str) -> bool:
        """Check if file exists. Errors count as missing."""
        try:
            return os.path.exists(file_path)
        except (OSError, ValueError):
            return False
    
    @staticmethod
    def is_valid_tile(file_path: str) -> bool:
        """Check the PNG signature in the first 8 bytes.
        
        Catches truncated or partial writes only; a file with a correct header
        but a damaged body still passes.
        """
        try:
            with open(file_path, 'rb') as f:
                header = f.read(len(PNG_SIGNATURE))
        except OSError:
            return False
        return header == PNG_SIGNATURE
    
    @staticmethod
    def should_download(file_path: str) -> bool:
        return not FileUtils.file_exists(file_path) or not FileUtils.is_valid_tile(file_path)
