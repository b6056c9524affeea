"""Discovery engine and progress events."""

from .events import ProgressChannel
from .service import ClipDiscoveryEngine, DiscoveryResult

__all__ = [
    "ClipDiscoveryEngine",
    "DiscoveryResult",
    "ProgressChannel",
]
