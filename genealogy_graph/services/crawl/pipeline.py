from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from genealogy_graph.errors import SnapshotError
from genealogy_graph.models.person import Person, SnapshotFile, SnapshotMetadata

from .base import page_sort_key
from .spiders.person_spider import PersonSpider

logger = logging.getLogger(__name__)

SNAPSHOT_SOURCE = "Culpepper Connections HTML Files"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def list_html_files(data_dir: str) -> List[str]:
    """Cached page filenames in numeric page order (p1.htm, p2.htm, ..., p10.htm)."""
    if not os.path.isdir(data_dir):
        raise SnapshotError(f"Data directory not found: {data_dir}")
    files = [f for f in os.listdir(data_dir) if f.endswith(".htm") or f.endswith(".html")]
    return sorted(files, key=lambda f: (page_sort_key(f), f))


def collect_people(data_dir: str, *, spider: Optional[PersonSpider] = None) -> Dict[str, Person]:
    """Parse every record on every cached page, merging repeats by id."""
    spider = spider or PersonSpider()
    people: Dict[str, Person] = {}
    for filename in list_html_files(data_dir):
        path = os.path.join(data_dir, filename)
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                html = f.read()
        except OSError as exc:
            logger.error("Error reading %s: %s", filename, exc)
            continue
        parsed = spider.parse_page(html, page=filename)
        logger.debug("Parsed %d people from %s", len(parsed), filename)
        for item in parsed:
            existing = people.get(item.person.id)
            if existing is None:
                people[item.person.id] = item.person
            else:
                existing.merge(item.person)
    return people


def build_snapshot(data_dir: str, *, source: str = SNAPSHOT_SOURCE, spider: Optional[PersonSpider] = None) -> SnapshotFile:
    files = list_html_files(data_dir)
    logger.info("Found %d HTML files in %s", len(files), data_dir)
    people = sorted(collect_people(data_dir, spider=spider).values(), key=Person.sort_key)
    metadata = SnapshotMetadata(
        export_date=datetime.now(timezone.utc).isoformat(),
        total_people=len(people),
        total_files=len(files),
        source=source,
        source_location=data_dir,
    )
    return SnapshotFile(metadata=metadata, people=people)


def write_snapshot(snapshot: SnapshotFile, out_path: str) -> str:
    """Write the snapshot JSON (2-space indent, UTF-8). Returns the path written."""
    ensure_dir(os.path.dirname(os.path.abspath(out_path)))
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_json_dict(), f, ensure_ascii=False, indent=2)
    size_kb = os.path.getsize(out_path) / 1024
    logger.info("Snapshot written to %s (%.2f KB, %d people)", out_path, size_kb, snapshot.metadata.total_people)
    return out_path


def html_to_snapshot(data_dir: str, out_path: str) -> SnapshotFile:
    snapshot = build_snapshot(data_dir)
    write_snapshot(snapshot, out_path)
    for person in snapshot.people[:3]:
        logger.info(
            "Sample: %s - %s (spouses=%d, children=%d)",
            person.id, person.name, len(person.spouses), len(person.children),
        )
    return snapshot
