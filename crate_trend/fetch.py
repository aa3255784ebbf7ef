"""
Download of a published store.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Union

import requests
from tqdm import tqdm

from .codec import digest
from .errors import IntegrityError
from .store import HEADER_FILE, DbHeader, chunk_file, write_atomic


logger = logging.getLogger(__name__)


class DbFetcher:
    """Mirror a published store into a local directory.

    Chunks whose local digest already matches the published header are kept;
    the others are downloaded and verified before they are written.
    """

    HEADER_URL = "https://raw.githubusercontent.com/dalance/cargo-trend/master/db_v3/db.json"
    CHUNK_URL = "https://github.com/dalance/cargo-trend/raw/master/db_v3/db{index}"

    def __init__(
        self,
        output_dir: Union[str, Path],
        header_url: Optional[str] = None,
        chunk_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        max_workers: int = 4,
        retries: int = 2,
        timeout: float = 60,
        progress: bool = True,
    ):
        """Initialize store fetcher.

        Args:
            output_dir: Local store directory
            header_url: URL of the published header
            chunk_url: URL template of the chunks, formatted with `index`
            session: HTTP session to use
            max_workers: Number of parallel chunk downloads
            retries: Extra attempts for a chunk whose digest does not match
            timeout: Per-request timeout in seconds
            progress: Show a progress bar
        """
        self.output_dir = Path(output_dir)
        self.header_url = header_url or self.HEADER_URL
        self.chunk_url = chunk_url or self.CHUNK_URL
        self.session = session or requests.Session()
        self.max_workers = max_workers
        self.retries = retries
        self.timeout = timeout
        self.progress = progress

    def _get(self, url: str) -> requests.Response:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response

    def is_current(self, index: int, expected: str) -> bool:
        """Whether the local chunk `index` matches the expected digest."""
        path = self.output_dir / chunk_file(index)
        if not path.exists():
            return False
        return digest(path.read_bytes()) == expected

    def fetch_chunk(self, index: int, expected: str) -> Path:
        """Download chunk `index`, retrying while its digest does not match.

        Raises:
            IntegrityError: If every attempt returned mismatching bytes
        """
        url = self.chunk_url.format(index=index)
        path = self.output_dir / chunk_file(index)

        for attempt in range(self.retries + 1):
            data = self._get(url).content
            actual = digest(data)
            if actual == expected:
                write_atomic(path, data)
                return path
            logger.warning(
                "Digest mismatch for %s (attempt %d/%d): expected %s, got %s",
                url, attempt + 1, self.retries + 1, expected, actual,
            )

        raise IntegrityError(f"Digest mismatch for {url} after {self.retries + 1} attempts")

    def fetch(self) -> DbHeader:
        """Bring the local store in line with the published header.

        The header is written only after every chunk is in place.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Fetching store header from %s", self.header_url)
        header_text = self._get(self.header_url).text
        header = DbHeader.from_json(header_text)

        stale: List[int] = [i for i, h in enumerate(header.hash) if not self.is_current(i, h)]
        logger.info("%d of %d chunks need downloading", len(stale), len(header.hash))

        if stale:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [pool.submit(self.fetch_chunk, i, header.hash[i]) for i in stale]
                for future in tqdm(
                    as_completed(futures), total=len(futures), desc="Fetch DB", disable=not self.progress
                ):
                    future.result()

        write_atomic(self.output_dir / HEADER_FILE, header_text.encode("utf-8"))
        return header
