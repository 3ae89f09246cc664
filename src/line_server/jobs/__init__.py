"""Background jobs that run against a LineService."""

from line_server.jobs.prewarm import PREWARM_INDEX, prewarm, start_prewarm_thread

__all__ = ["PREWARM_INDEX", "prewarm", "start_prewarm_thread"]
