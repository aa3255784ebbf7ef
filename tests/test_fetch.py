"""Tests for fetching a published store."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
import requests

from crate_trend.codec import digest
from crate_trend.errors import IntegrityError
from crate_trend.fetch import DbFetcher
from crate_trend.models import Entry
from crate_trend.store import HEADER_FILE, Db


HEADER_URL = "https://store.invalid/db.json"
CHUNK_URL = "https://store.invalid/db{index}"


class FakeResponse:
    def __init__(self, content=b"", status_code=200):
        self.content = content
        self.status_code = status_code

    @property
    def text(self):
        return self.content.decode("utf-8")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, responses):
        self.responses = {url: list(items) for url, items in responses.items()}
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        items = self.responses.get(url)
        if not items:
            return FakeResponse(status_code=404)
        return items.pop(0) if len(items) > 1 else items[0]


def published_store(tmp_path: Path):
    """Save a small store and return its header text and chunk bytes."""
    source = tmp_path / "published"
    db = Db(update=datetime(2022, 1, 2, tzinfo=timezone.utc))
    db.append("log", Entry(datetime(2022, 1, 1, tzinfo=timezone.utc), 3, 5, 10))
    db.append("serde", Entry(datetime(2022, 1, 1, tzinfo=timezone.utc), 7, 8, 10))
    header = db.save(source, chunk_size=1)
    chunks = [(source / f"db{i}").read_bytes() for i in range(len(header.hash))]
    return db, (source / HEADER_FILE).read_bytes(), chunks


def fetcher(output_dir, session, **kwargs):
    return DbFetcher(
        output_dir,
        header_url=HEADER_URL,
        chunk_url=CHUNK_URL,
        session=session,
        max_workers=1,
        progress=False,
        **kwargs,
    )


def test_fetch_downloads_store(tmp_path: Path):
    db, header_bytes, chunks = published_store(tmp_path)
    session = FakeSession({
        HEADER_URL: [FakeResponse(header_bytes)],
        CHUNK_URL.format(index=0): [FakeResponse(chunks[0])],
        CHUNK_URL.format(index=1): [FakeResponse(chunks[1])],
    })
    output_dir = tmp_path / "local"

    header = fetcher(output_dir, session).fetch()

    assert len(header.hash) == 2
    assert (output_dir / HEADER_FILE).read_bytes() == header_bytes
    assert Db.load(output_dir, verify=True).map == db.map


def test_fetch_skips_current_chunks(tmp_path: Path):
    _, header_bytes, chunks = published_store(tmp_path)
    output_dir = tmp_path / "local"
    output_dir.mkdir()
    (output_dir / "db0").write_bytes(chunks[0])
    (output_dir / "db1").write_bytes(b"stale")
    session = FakeSession({
        HEADER_URL: [FakeResponse(header_bytes)],
        CHUNK_URL.format(index=1): [FakeResponse(chunks[1])],
    })

    fetcher(output_dir, session).fetch()

    assert CHUNK_URL.format(index=0) not in session.requested
    assert session.requested.count(CHUNK_URL.format(index=1)) == 1
    assert (output_dir / "db1").read_bytes() == chunks[1]


def test_fetch_chunk_retries_on_mismatch(tmp_path: Path):
    session = FakeSession({
        CHUNK_URL.format(index=0): [FakeResponse(b"garbled"), FakeResponse(b"payload")],
    })
    output_dir = tmp_path / "local"
    output_dir.mkdir()

    path = fetcher(output_dir, session).fetch_chunk(0, digest(b"payload"))

    assert path.read_bytes() == b"payload"
    assert len(session.requested) == 2


def test_fetch_fails_when_every_attempt_mismatches(tmp_path: Path):
    _, header_bytes, chunks = published_store(tmp_path)
    session = FakeSession({
        HEADER_URL: [FakeResponse(header_bytes)],
        CHUNK_URL.format(index=0): [FakeResponse(chunks[0])],
        CHUNK_URL.format(index=1): [FakeResponse(b"garbled")],
    })
    output_dir = tmp_path / "local"

    with pytest.raises(IntegrityError):
        fetcher(output_dir, session, retries=1).fetch()

    assert session.requested.count(CHUNK_URL.format(index=1)) == 2
    assert not (output_dir / HEADER_FILE).exists()
    assert not (output_dir / "db1").exists()


def test_fetch_propagates_http_errors(tmp_path: Path):
    session = FakeSession({})

    with pytest.raises(requests.HTTPError):
        fetcher(tmp_path / "local", session).fetch()
