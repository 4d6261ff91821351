import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def clear_database(db, batch_size: int = 10000) -> Dict[str, Any]:
    """Delete all nodes and relationships from the Neo4j database.

    Deletes in LIMIT-ed DETACH DELETE batches so large graphs don't exhaust
    transaction memory. Returns counts observed before deletion.
    """
    nb = db.run_cypher("MATCH (n) RETURN count(n) AS cnt")
    nodes_before = (nb[0].get("cnt") if nb else 0) or 0
    rb = db.run_cypher("MATCH ()-[r]->() RETURN count(r) AS cnt")
    rels_before = (rb[0].get("cnt") if rb else 0) or 0

    deleted_total = 0
    while True:
        res = db.run_cypher(
            "MATCH (n) WITH n LIMIT $limit DETACH DELETE n RETURN count(n) AS deleted",
            {"limit": int(batch_size)},
        )
        deleted = (res[0].get("deleted") if res else 0) or 0
        deleted_total += deleted
        if deleted:
            logger.info("Deleted %d nodes (total: %d)", deleted, deleted_total)
        if deleted < batch_size:
            break

    return {"deleted_nodes": nodes_before, "deleted_relationships": rels_before}
