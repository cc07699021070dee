"""
Offline queue package.
"""

from ai_resilience.queue.offline_queue import OfflineQueue
from ai_resilience.queue.preview import create_preview

__all__ = ["OfflineQueue", "create_preview"]
