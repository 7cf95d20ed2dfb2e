from dataclasses import dataclass
from typing import Callable

from exceptions.tile_downloader_exceptions import ConfigurationError


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a download gets and how long to wait between them.
    
    backoff maps the 0-based index of the failed attempt to a delay in seconds.
    """
    max_attempts: int = 3
    backoff: Callable[[int], float] = lambda attempt: 1.0
    
    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
    
    def delay_for(self, attempt: int) -> float:
        return max(0.0, float(self.backoff(attempt)))
    
    @classmethod
    def fixed(cls, max_attempts: int = 3, delay: float = 1.0) -> 'RetryPolicy':
        return cls(max_attempts=max_attempts, backoff=lambda attempt: delay)
    
    @classmethod
    def exponential(cls, max_attempts: int = 3, base: float = 1.0, cap: float = 30.0) -> 'RetryPolicy':
        return cls(max_attempts=max_attempts, backoff=lambda attempt: min(cap, base * (2 ** attempt)))
    
    @classmethod
    def from_name(cls, name: str, max_attempts: int, delay: float) -> 'RetryPolicy':
        builders = {
            'fixed': lambda: cls.fixed(max_attempts, delay),
            'exponential': lambda: cls.exponential(max_attempts, delay),
        }
        if name not in builders:
            raise ConfigurationError(f"Unknown retry_backoff '{name}', expected one of: {', '.join(builders)}")
        return builders[name]()
