"""
Persistent time series of dependent counts.

On disk a store is a directory holding a JSON header (`db.json`) and chunk
files `db0`, `db1`, ... The header records the high-water mark and the
SHA-256 digest of every chunk, in load order.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .codec import decode_chunk, digest, encode_chunk
from .errors import CodecError, IntegrityError
from .models import Entry
from .time_utils import EPOCH, ensure_utc, format_timestamp, parse_timestamp


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1_000_000
HEADER_FILE = "db.json"


def chunk_file(index: int) -> str:
    return f"db{index}"


def stage_file(path: Path, data: bytes) -> Path:
    """Write `data` to a temporary file next to `path` and return its path."""
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    return tmp_path


def write_atomic(path: Path, data: bytes) -> None:
    """Write `data` next to `path` and move it into place."""
    os.replace(stage_file(path, data), path)


@dataclass
class DbHeader:
    """High-water mark and ordered chunk digests."""

    update: datetime
    hash: List[str] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps({"update": format_timestamp(self.update), "hash": self.hash})

    @classmethod
    def from_json(cls, text: str) -> "DbHeader":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CodecError(f"Malformed store header: {exc}") from exc

        if not isinstance(data, dict) or "update" not in data or "hash" not in data:
            raise CodecError("Store header must contain 'update' and 'hash'")

        update = parse_timestamp(data["update"])
        if update is None:
            raise CodecError(f"Invalid update timestamp in header: {data['update']!r}")
        hashes = data["hash"]
        if not isinstance(hashes, list) or not all(isinstance(h, str) for h in hashes):
            raise CodecError("Store header 'hash' must be a list of hex digests")
        return cls(update=update, hash=hashes)


class Db:
    """Dependent-count history per crate plus the last update time."""

    def __init__(
        self,
        update: Optional[datetime] = None,
        history: Optional[Dict[str, List[Entry]]] = None,
    ) -> None:
        self.update = ensure_utc(update) if update is not None else EPOCH
        self.map: Dict[str, List[Entry]] = history if history is not None else {}

    @classmethod
    def new(cls) -> "Db":
        return cls()

    def last_entry(self, name: str) -> Optional[Entry]:
        entries = self.map.get(name)
        return entries[-1] if entries else None

    def append(self, name: str, entry: Entry) -> bool:
        """Append `entry` unless it repeats the last recorded counts.

        Returns:
            True if the entry was appended

        Raises:
            ValueError: If a changed entry is not newer than the last one
        """
        last = self.last_entry(name)
        if last is not None:
            if last.counts == entry.counts:
                return False
            if entry.time <= last.time:
                raise ValueError(
                    f"Entry for {name} at {entry.time} is not newer than {last.time}"
                )
        self.map.setdefault(name, []).append(entry)
        return True

    def pairs(self) -> List[Tuple[str, Entry]]:
        """All (name, Entry) pairs sorted by name, then time."""
        data = [(name, entry) for name, entries in self.map.items() for entry in entries]
        data.sort(key=lambda pair: (pair[0], pair[1].time))
        return data

    @classmethod
    def load(cls, directory: Union[str, Path], verify: bool = True) -> "Db":
        """Load a store directory.

        Args:
            directory: Directory containing the header and chunk files
            verify: Check every chunk against the digest recorded in the header

        Raises:
            CodecError: If the header or a chunk is malformed
            IntegrityError: If `verify` is set and a digest does not match
            OSError: If a file is missing or unreadable
        """
        directory = Path(directory)
        header = DbHeader.from_json((directory / HEADER_FILE).read_text(encoding="utf-8"))
        db = cls(update=header.update)

        for i, expected in enumerate(header.hash):
            path = directory / chunk_file(i)
            data = path.read_bytes()
            if verify and digest(data) != expected:
                raise IntegrityError(f"Digest mismatch for {path}: expected {expected}")
            try:
                pairs = decode_chunk(data)
            except CodecError as exc:
                raise CodecError(f"Failed to decode {path}") from exc
            for name, entry in pairs:
                db.map.setdefault(name, []).append(entry)

        logger.info("Loaded %d crates from %s (%d chunks)", len(db.map), directory, len(header.hash))
        return db

    def save(self, directory: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> DbHeader:
        """Save the store as chunk files followed by the header.

        All chunks are staged under temporary names before any live chunk is
        replaced, so a failed write leaves the previous store untouched. The
        header is moved into place last.
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        data = self.pairs()
        chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)] or [[]]

        staged: List[Path] = []
        hashes = []
        try:
            for i, chunk in enumerate(chunks):
                encoded = encode_chunk(chunk)
                staged.append(stage_file(directory / chunk_file(i), encoded))
                hashes.append(digest(encoded))
        except Exception:
            for i in range(len(chunks)):
                tmp_path = directory / (chunk_file(i) + ".tmp")
                if tmp_path.exists():
                    tmp_path.unlink()
            raise

        for i, tmp_path in enumerate(staged):
            os.replace(tmp_path, directory / chunk_file(i))
            logger.info("Wrote %s (%d entries)", chunk_file(i), len(chunks[i]))

        header = DbHeader(update=self.update, hash=hashes)
        write_atomic(directory / HEADER_FILE, header.to_json().encode("utf-8"))

        stale = len(hashes)
        while (directory / chunk_file(stale)).exists():
            (directory / chunk_file(stale)).unlink()
            stale += 1

        return header
