from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from genealogy_graph.models.person import Person

# Cross reference between records: "p123.htm#i4567"
PERSON_LINK_RE = re.compile(r"(p\d+\.htm)#i(\d+)")
ANCHOR_RE = re.compile(r"^i\d+$")


@dataclass(frozen=True)
class QueueItem:
    page: str
    anchor: str

    @property
    def key(self) -> str:
        return f"{self.page}#{self.anchor}"

    @classmethod
    def parse(cls, ref: str) -> "QueueItem":
        """Build an item from "p1.htm#i1" (or "p1.htm", which defaults to anchor i<page number>)."""
        page, _, anchor = ref.strip().partition("#")
        if not anchor:
            digits = re.sub(r"\D", "", page)
            anchor = f"i{digits}" if digits else ""
        if not page or not ANCHOR_RE.match(anchor):
            raise ValueError(f"Invalid record reference: {ref!r}")
        return cls(page=page, anchor=anchor)


@dataclass(frozen=True)
class DiscoveredReference:
    """A link to another record found while parsing one record."""

    page: str
    anchor: str
    relation: str

    @property
    def person_id(self) -> str:
        return anchor_to_id(self.anchor)

    def to_queue_item(self) -> QueueItem:
        return QueueItem(page=self.page, anchor=self.anchor)


@dataclass
class ParsedPerson:
    person: Person
    discovered: List[DiscoveredReference] = field(default_factory=list)


@dataclass
class CrawlStats:
    processed: int = 0
    not_found: int = 0
    fetch_failed: int = 0
    discovered: int = 0
    batches_flushed: int = 0
    batches_failed: int = 0
    pages_fetched: int = 0

    def to_dict(self) -> dict:
        return dict(self.__dict__)


def anchor_to_id(anchor: str) -> str:
    return anchor[1:] if anchor.startswith("i") else anchor


def page_sort_key(filename: str) -> int:
    m = re.search(r"\d+", filename)
    return int(m.group(0)) if m else 0
