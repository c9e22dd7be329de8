"""
Spark Chat Module

Queue-file entry point for out-of-document chat clients.
"""

from .queue_handler import ChatQueueHandler, ChatResult, QueuedMessage, parse_queue_file

__all__ = [
    "ChatQueueHandler",
    "ChatResult",
    "QueuedMessage",
    "parse_queue_file",
]
