"""Compare person ids in the cached HTML with those in the graph.

Parse failures and aborted batch loads drop records silently; the only way to
see them is to diff the two id sets after the fact. Nothing here writes to the
store.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from selectolax.parser import HTMLParser

from genealogy_graph.services.crawl.base import ANCHOR_RE, anchor_to_id
from genealogy_graph.services.crawl.pipeline import list_html_files
from genealogy_graph.services.graph import get_person_ids

logger = logging.getLogger(__name__)


@dataclass
class MissingReport:
    missing_ids: List[str] = field(default_factory=list)
    by_page: Dict[str, List[str]] = field(default_factory=dict)
    total_html_ids: int = 0
    total_store_ids: int = 0

    def to_dict(self) -> Dict:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "totalHtmlIds": self.total_html_ids,
            "totalNeo4jIds": self.total_store_ids,
            "missingCount": len(self.missing_ids),
            "missingIds": self.missing_ids,
            "byPage": self.by_page,
        }


def _id_key(pid: str):
    return (0, int(pid), "") if pid.isdigit() else (1, 0, pid)


def ids_in_html(html: str) -> Set[str]:
    """Every record id on a page: any element whose id looks like i<N>."""
    ids: Set[str] = set()
    for node in HTMLParser(html or "").css("[id]"):
        anchor = (node.attributes or {}).get("id") or ""
        if ANCHOR_RE.match(anchor):
            ids.add(anchor_to_id(anchor))
    return ids


def scan_html_ids(data_dir: str) -> Dict[str, str]:
    """Map person id -> first page (numeric page order) that carries its anchor."""
    found: Dict[str, str] = {}
    for filename in list_html_files(data_dir):
        with open(os.path.join(data_dir, filename), "r", encoding="utf-8", errors="replace") as f:
            html = f.read()
        for pid in ids_in_html(html):
            found.setdefault(pid, filename)
    return found


def find_missing(db, data_dir: str) -> MissingReport:
    html_ids = scan_html_ids(data_dir)
    logger.info("Found %d unique person ids in HTML files", len(html_ids))
    store_ids = get_person_ids(db)
    logger.info("Found %d people in Neo4j", len(store_ids))

    missing = sorted((pid for pid in html_ids if pid not in store_ids), key=_id_key)
    by_page: Dict[str, List[str]] = {}
    for pid in missing:
        by_page.setdefault(html_ids[pid], []).append(pid)

    return MissingReport(
        missing_ids=missing,
        by_page=by_page,
        total_html_ids=len(html_ids),
        total_store_ids=len(store_ids),
    )


def log_report(report: MissingReport, base_url: Optional[str] = None) -> None:
    logger.info(
        "Total ids in HTML files: %d, in Neo4j: %d, missing: %d",
        report.total_html_ids, report.total_store_ids, len(report.missing_ids),
    )
    if not report.missing_ids:
        logger.info("No missing records; every HTML id is in Neo4j")
        return
    for page in sorted(report.by_page):
        for pid in report.by_page[page]:
            url = f" URL: {base_url}{page}#i{pid}" if base_url else ""
            logger.warning("Missing %s: ID %s (anchor i%s)%s", page, pid, pid, url)


def write_report(report: MissingReport, out_path: str) -> str:
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)
    logger.info("Results saved to %s", out_path)
    return out_path
