"""
Spark Execution Module

Orchestrates context -> prompt -> backend call -> write-back.
"""

from .executor import CommandExecutor, context_counts
from .prompts import COMMAND_SYSTEM_PROMPT, INLINE_CHAT_SYSTEM_PROMPT

__all__ = [
    "CommandExecutor",
    "context_counts",
    "COMMAND_SYSTEM_PROMPT",
    "INLINE_CHAT_SYSTEM_PROMPT",
]
