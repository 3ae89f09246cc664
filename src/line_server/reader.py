from pathlib import Path
from typing import Optional


def strip_newline(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


class RecordReader:
    """
    Reads single newline-delimited records by byte offset.
    Every call opens its own handle, so concurrent callers never share a cursor.
    """

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)
        if not self.file_path.is_file():
            raise FileNotFoundError(f"Backing file not found: {self.file_path}")

    def read_record_at(self, offset: int) -> Optional[bytes]:
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        with self.file_path.open("rb") as f:
            f.seek(offset)
            line = f.readline()
        if not line:
            return None
        return strip_newline(line)
