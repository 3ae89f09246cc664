from line_server.index.builder import OffsetIndexBuilder
from line_server.index.lock import BuildLock
from line_server.index.models import OffsetTable
from line_server.index.offsets import OffsetIndexStore, namespace_for

__all__ = [
    "BuildLock",
    "OffsetIndexBuilder",
    "OffsetIndexStore",
    "OffsetTable",
    "namespace_for",
]
