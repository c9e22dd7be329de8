"""
Spark Daemon

Document automation for markdown vaults. Watches for author-written directives
(slash commands, agent mentions, inline chat markers), assembles a bounded
context bundle from related documents, dispatches to a language-model backend
and writes the result back into the originating document.

Philosophy:
- Never re-process our own output (result and chat markers are skipped)
- Context assembly never aborts a run
- Every externally visible failure carries a message, a code and context
- Services are constructed explicitly and passed by reference

Usage:
    from spark_daemon.common import load_config, SparkError
    from spark_daemon.parser import FileParser, MentionParser
    from spark_daemon.context import ContextLoader
    from spark_daemon.execution import CommandExecutor
    from spark_daemon.daemon import SparkDaemon, ChangeEvent
"""

__version__ = "0.1.0"
