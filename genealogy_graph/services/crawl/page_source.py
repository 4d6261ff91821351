from __future__ import annotations

import logging
import os
import time
from typing import Callable, Dict, Optional

import httpx

from genealogy_graph.config import DEFAULT_BASE_URL
from genealogy_graph.errors import FetchError

logger = logging.getLogger(__name__)


class PageSource:
    """Resolve a page id ("p12.htm") to raw HTML.

    Lookup order: in-memory cache, then the on-disk cache directory (if set),
    then the network. Network results are cached in memory, written to disk
    when `save_html` is on, and followed by a fixed politeness delay.
    A failed fetch is logged and returned as None.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        cache: Optional[Dict[str, str]] = None,
        data_dir: Optional[str] = None,
        save_html: bool = False,
        delay_seconds: float = 0.1,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.cache = cache if cache is not None else {}
        self.data_dir = data_dir
        self.save_html = bool(save_html and data_dir)
        self.delay_seconds = float(delay_seconds)
        self.timeout = float(timeout)
        self.headers = headers or {"User-Agent": "genealogy-graph/0.1"}
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self.pages_fetched = 0
        self.cache_hits = 0
        self.fetch_failures = 0
        if self.save_html:
            os.makedirs(self.data_dir, exist_ok=True)

    # --- Public API ---
    def fetch(self, page_id: str) -> Optional[str]:
        if page_id in self.cache:
            self.cache_hits += 1
            return self.cache[page_id]

        html = self._read_disk(page_id)
        if html is not None:
            self.cache_hits += 1
            self.cache[page_id] = html
            return html

        try:
            logger.info("Fetching %s", page_id)
            html = self._get(page_id)
        except FetchError as exc:
            self.fetch_failures += 1
            logger.error("Failed to fetch %s: %s", page_id, exc)
            return None

        self.pages_fetched += 1
        self.cache[page_id] = html
        if self.save_html:
            self._write_disk(page_id, html)
        self._sleep(self.delay_seconds)
        return html

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "PageSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- Internals ---
    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, headers=self.headers, follow_redirects=True)
        return self._client

    def _get(self, page_id: str) -> str:
        url = f"{self.base_url}{page_id}"
        try:
            r = self._http().get(url)
            r.raise_for_status()
            return r.text
        except httpx.HTTPError as exc:
            raise FetchError(f"{url}: {exc}") from exc

    def _disk_path(self, page_id: str) -> Optional[str]:
        if not self.data_dir:
            return None
        return os.path.join(self.data_dir, os.path.basename(page_id))

    def _read_disk(self, page_id: str) -> Optional[str]:
        path = self._disk_path(page_id)
        if not path or not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as exc:
            logger.warning("Could not read cached %s, fetching instead: %s", path, exc)
            return None

    def _write_disk(self, page_id: str, html: str) -> None:
        path = self._disk_path(page_id)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(html)
            logger.debug("Saved %s", path)
        except OSError as exc:
            logger.warning("Could not save %s: %s", path, exc)
