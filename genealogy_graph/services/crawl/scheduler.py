from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterable, List, Optional, Set

from genealogy_graph.errors import LoadError, RecordNotFound
from genealogy_graph.models.person import Person

from .base import CrawlStats, ParsedPerson, QueueItem
from .page_source import PageSource
from .spiders.person_spider import PersonSpider

logger = logging.getLogger(__name__)


def describe_person(person: Person) -> str:
    """One-line summary used in crawl progress logs."""
    parts = [f"{person.name} (ID: {person.id})"]
    if person.first_name and person.last_name:
        middle = f" {person.middle_name}" if person.middle_name else ""
        parts.append(f"[{person.first_name}{middle} {person.last_name}]")
    if person.gender:
        parts.append(person.gender)
    if person.birth:
        parts.append(f"b:{person.birth}" + (f" @{person.birth_place}" if person.birth_place else ""))
    if person.death:
        parts.append(f"d:{person.death}" + (f" @{person.death_place}" if person.death_place else ""))
    if person.burial:
        parts.append(f"buried:{person.burial}")
    if person.marriage_date:
        parts.append(f"m:{person.marriage_date}")
    if person.father or person.mother:
        parts.append(f"parents:{person.father or '?'}+{person.mother or '?'}")
    parts.append(f"| spouses={len(person.spouses)} children={len(person.children)}")
    return " ".join(parts)


class CrawlScheduler:
    """Breadth-first crawl over (page, anchor) keys.

    The queue and visited-set may be handed in so several crawls can be run or
    inspected in isolation. Each key is processed at most once, which is what
    ends the crawl on cyclic family links. Parsed people are collected into a
    batch and handed to the loader when the batch is full and when the crawl
    ends. With no loader the batches are dropped (dry run).
    """

    def __init__(
        self,
        page_source: PageSource,
        loader=None,
        *,
        spider: Optional[PersonSpider] = None,
        batch_size: int = 300,
        max_records: Optional[int] = None,
        visited: Optional[Set[str]] = None,
        queue: Optional[Deque[QueueItem]] = None,
    ) -> None:
        self.page_source = page_source
        self.loader = loader
        self.spider = spider or PersonSpider()
        self.batch_size = max(1, int(batch_size))
        self.max_records = max_records if max_records and max_records > 0 else None
        self.visited: Set[str] = visited if visited is not None else set()
        self.queue: Deque[QueueItem] = queue if queue is not None else deque()
        self.batch: List[Person] = []
        self.stats = CrawlStats()

    # --- Public API ---
    def run(self, seeds: Iterable[QueueItem]) -> CrawlStats:
        for seed in seeds:
            self.queue.append(seed)
        logger.info(
            "Starting crawl: batch_size=%d, max_records=%s, loader=%s",
            self.batch_size, self.max_records or "unlimited", "on" if self.loader else "off (dry run)",
        )

        while self.queue and not self._limit_reached():
            item = self.queue.popleft()
            if item.key in self.visited:
                continue
            self.visited.add(item.key)
            self._process(item)

        if self.batch:
            self._flush(final=True)

        self.stats.pages_fetched = self.page_source.pages_fetched
        logger.info(
            "Crawl complete: %d people processed%s, %d not found, %d fetch failures, %d pages fetched",
            self.stats.processed,
            f" (limited to {self.max_records})" if self.max_records else "",
            self.stats.not_found,
            self.stats.fetch_failed,
            self.stats.pages_fetched,
        )
        return self.stats

    # --- Internals ---
    def _limit_reached(self) -> bool:
        return self.max_records is not None and self.stats.processed >= self.max_records

    def _process(self, item: QueueItem) -> None:
        html = self.page_source.fetch(item.page)
        if html is None:
            self.stats.fetch_failed += 1
            logger.warning("Skipping %s: page could not be fetched", item.key)
            return

        try:
            parsed = self._parse(html, item)
        except RecordNotFound as exc:
            self.stats.not_found += 1
            logger.warning("Person not found: %s", exc)
            return

        person = parsed.person
        self.batch.append(person)
        self.stats.processed += 1

        for ref in parsed.discovered:
            nxt = ref.to_queue_item()
            if nxt.key not in self.visited:
                self.queue.append(nxt)
                self.stats.discovered += 1

        logger.info(
            "[%d] %s | queue=%d batch=%d",
            self.stats.processed, describe_person(person), len(self.queue), len(self.batch),
        )

        if len(self.batch) >= self.batch_size:
            self._flush()

    def _parse(self, html: str, item: QueueItem) -> ParsedPerson:
        parsed = self.spider.parse_person(html, item.anchor, item.page)
        if parsed is None:
            raise RecordNotFound(item.key)
        return parsed

    def _flush(self, final: bool = False) -> None:
        size = len(self.batch)
        label = "final batch" if final else "batch"
        if self.loader is None:
            logger.info("Skipping save of %s of %d people (store writes disabled)", label, size)
            self.batch = []
            return
        logger.info("Saving %s of %d people to Neo4j...", label, size)
        try:
            self.loader.load_batch(self.batch)
            self.stats.batches_flushed += 1
            logger.info("Batch saved")
        except LoadError as exc:
            self.stats.batches_failed += 1
            logger.error("%s; re-run the crawl (pages are cached) to retry", exc)
        self.batch = []
