import json
import logging
import math
import os
import time
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from genealogy_graph.errors import LoadError, SnapshotError
from genealogy_graph.models.person import Person, SnapshotFile
from genealogy_graph.services.graph import (
    clear_database,
    count_people,
    count_relationships,
    merge_parent_links,
    merge_spouse_links,
    parent_pairs,
    spouse_pairs,
    upsert_people,
)

logger = logging.getLogger(__name__)


def _resolve_path(path: str, project_root: Optional[str]) -> str:
    """Resolve a possibly relative path against the project root.

    If path is absolute (or no root is given), return it unchanged.
    """
    if os.path.isabs(path) or not project_root:
        return path
    return os.path.join(project_root, path)


def dedupe_people(people: Iterable[Person]) -> List[Person]:
    """Collapse repeated ids with fill-missing merge, keeping first-seen order."""
    by_id: Dict[str, Person] = {}
    for p in people:
        existing = by_id.get(p.id)
        if existing is None:
            by_id[p.id] = p.model_copy(deep=True)
        else:
            existing.merge(p)
    return list(by_id.values())


class BatchLoader:
    """Write batches of Person records into the graph with MERGE semantics.

    Nodes first, then SPOUSE and PARENT_OF edges. Every statement is an
    upsert, so loading the same batch again leaves the graph unchanged.
    """

    def __init__(self, db) -> None:
        self.db = db
        self.batches_loaded = 0
        self.people_loaded = 0

    def load_batch(self, persons: List[Person]) -> Dict[str, int]:
        people = dedupe_people(persons)
        if not people:
            return {"people": 0, "spouse_links": 0, "parent_links": 0}
        spouses = spouse_pairs(people)
        parents = parent_pairs(people)
        try:
            upsert_people(self.db, people)
            merge_spouse_links(self.db, spouses)
            merge_parent_links(self.db, parents)
        except Exception as exc:
            raise LoadError(f"Failed to load batch of {len(people)} people: {exc}") from exc
        self.batches_loaded += 1
        self.people_loaded += len(people)
        return {"people": len(people), "spouse_links": len(spouses), "parent_links": len(parents)}


def read_snapshot(path: str, *, project_root: Optional[str] = None) -> SnapshotFile:
    """Load and validate a snapshot file.

    Errors: SnapshotError for a missing file, invalid JSON or a wrong shape.
    """
    p = _resolve_path(path, project_root)
    if not os.path.isfile(p):
        raise SnapshotError(f"Snapshot file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot file is not valid JSON: {p}: {exc}") from exc
    try:
        return SnapshotFile.model_validate(payload)
    except ValidationError as exc:
        raise SnapshotError(f"Snapshot file has an unexpected shape: {p}: {exc}") from exc


def load_snapshot(
    db,
    snapshot_path: str,
    *,
    project_root: Optional[str] = None,
    batch_size: int = 100,
    confirm_delay: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    loader: Optional[BatchLoader] = None,
) -> Dict:
    """Full-replace load: wipe the graph, then import every person from a snapshot.

    Contract:
    - Inputs: store handle, snapshot path, batch size, grace period before the wipe
    - Outputs: summary with uploaded count and node/relationship counts read back
    - Errors: SnapshotError before anything is deleted; LoadError mid-load
      (re-running the same snapshot is safe)
    """
    snapshot = read_snapshot(snapshot_path, project_root=project_root)
    people = snapshot.people
    logger.info(
        "Loaded %d people from %s (export date %s, source %s)",
        len(people), snapshot_path, snapshot.metadata.export_date, snapshot.metadata.source,
    )

    logger.info("Testing Neo4j connection...")
    db.run_cypher("RETURN 1 AS ok")

    if confirm_delay and confirm_delay > 0:
        logger.warning(
            "This will DELETE ALL EXISTING DATA and upload %d people. Press Ctrl+C within %.0f seconds to cancel.",
            len(people), confirm_delay,
        )
        sleep(confirm_delay)

    logger.warning("Clearing all existing data from Neo4j...")
    cleared = clear_database(db)
    logger.info("Database cleared (%d nodes, %d relationships removed)", cleared["deleted_nodes"], cleared["deleted_relationships"])

    loader = loader or BatchLoader(db)
    batch_size = max(1, int(batch_size))
    total = len(people)
    total_batches = math.ceil(total / batch_size) if total else 0
    uploaded = 0
    for i in range(0, total, batch_size):
        batch = people[i:i + batch_size]
        loader.load_batch(batch)
        uploaded += len(batch)
        logger.info(
            "Batch %d/%d - uploaded %d/%d (%.1f%%)",
            i // batch_size + 1, total_batches, uploaded, total, uploaded / total * 100.0,
        )

    nodes = count_people(db)
    rels = count_relationships(db)
    logger.info("Verification: %d Person nodes, %d relationships in database", nodes, rels)
    return {
        "snapshot": {
            "people": total,
            "uploaded": uploaded,
            "batches": total_batches,
        },
        "verification": {
            "nodes": nodes,
            "relationships": rels,
        },
    }
