"""
Binary codec for store chunks.

A chunk is a list of (crate name, Entry) pairs stored as a Parquet table.
"""

from __future__ import annotations

import hashlib
import io
from typing import List, Sequence, Tuple

import pandas as pd

from .errors import CodecError
from .models import Entry
from .time_utils import from_epoch_seconds, to_epoch_seconds


COLUMNS = ["name", "time", "direct_dependents", "transitive_dependents", "total_crates"]


def encode_chunk(pairs: Sequence[Tuple[str, Entry]]) -> bytes:
    """Encode (name, Entry) pairs in their given order."""
    df = pd.DataFrame({
        "name": pd.Series([name for name, _ in pairs], dtype="object"),
        "time": pd.Series([to_epoch_seconds(e.time) for _, e in pairs], dtype="int64"),
        "direct_dependents": pd.Series([e.direct_dependents for _, e in pairs], dtype="uint64"),
        "transitive_dependents": pd.Series([e.transitive_dependents for _, e in pairs], dtype="uint64"),
        "total_crates": pd.Series([e.total_crates for _, e in pairs], dtype="uint64"),
    })
    buffer = io.BytesIO()
    df.to_parquet(buffer, index=False)
    return buffer.getvalue()


def decode_chunk(data: bytes) -> List[Tuple[str, Entry]]:
    """Decode a chunk back into (name, Entry) pairs.

    Raises:
        CodecError: If the bytes are not a readable chunk
    """
    try:
        df = pd.read_parquet(io.BytesIO(data))
    except (OSError, ValueError) as exc:
        raise CodecError(f"Unreadable chunk ({len(data)} bytes): {exc}") from exc

    missing = [column for column in COLUMNS if column not in df.columns]
    if missing:
        raise CodecError(f"Chunk is missing columns: {', '.join(missing)}")

    pairs = []
    for name, time, direct, transitive, total in df[COLUMNS].itertuples(index=False, name=None):
        pairs.append((
            str(name),
            Entry(
                time=from_epoch_seconds(time),
                direct_dependents=int(direct),
                transitive_dependents=int(transitive),
                total_crates=int(total),
            ),
        ))
    return pairs


def digest(data: bytes) -> str:
    """SHA-256 hex digest of encoded chunk bytes."""
    return hashlib.sha256(data).hexdigest()
