from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class OffsetTable:
    """Byte offsets of the records in one chunk, in record order."""

    chunk_index: int
    offsets: List[int]
    chunk_size: int

    @property
    def first_index(self) -> int:
        return self.chunk_index * self.chunk_size

    @property
    def is_short(self) -> bool:
        """True when the file ends inside this chunk."""
        return len(self.offsets) < self.chunk_size

    def offset_at(self, position: int) -> Optional[int]:
        if 0 <= position < len(self.offsets):
            return self.offsets[position]
        return None
