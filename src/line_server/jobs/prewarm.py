import logging
import threading
import time
from typing import Optional

from line_server.service import LineService

logger = logging.getLogger(__name__)

# Far past any real file, so the builder scans to the end once.
PREWARM_INDEX = 2**63 - 1


def prewarm(service: LineService) -> Optional[int]:
    """Index the whole file ahead of traffic. Returns the number of lines found."""
    started = time.perf_counter()
    service.content_cache.purge_expired()
    line = service.fetch_line(PREWARM_INDEX)
    if line is not None:
        logger.warning("Pre-warm unexpectedly found line %d in %s", PREWARM_INDEX, service.file_path)
    total = service.status()["total_lines"]
    logger.info(
        "Pre-warmed %s: %s line(s) in %.2fs",
        service.file_path,
        total,
        time.perf_counter() - started,
    )
    return total


def start_prewarm_thread(service: LineService) -> threading.Thread:
    def _run() -> None:
        try:
            prewarm(service)
        except Exception:
            logger.exception("Pre-warm of %s failed", service.file_path)

    thread = threading.Thread(target=_run, name="line-server-prewarm", daemon=True)
    thread.start()
    return thread
