from typing import Any, Dict


def get_database_stats(db) -> Dict[str, Any]:
    """Node counts by label, relationship counts by type, and one sample Person."""
    label_rows = db.run_cypher(
        "MATCH (n) UNWIND labels(n) AS label "
        "RETURN label, count(*) AS count ORDER BY count DESC"
    )
    rel_rows = db.run_cypher(
        "MATCH ()-[r]->() RETURN type(r) AS type, count(r) AS count ORDER BY count DESC"
    )
    sample = db.run_cypher("MATCH (p:Person) RETURN properties(p) AS props LIMIT 1")

    nodes = {r["label"]: int(r.get("count") or 0) for r in label_rows if r.get("label")}
    rels = {r["type"]: int(r.get("count") or 0) for r in rel_rows if r.get("type")}
    total = db.run_cypher("MATCH (n) RETURN count(n) AS cnt")
    return {
        "nodes_by_label": nodes,
        "relationships_by_type": rels,
        "total_nodes": (total[0].get("cnt") if total else 0) or 0,
        "total_relationships": sum(rels.values()),
        "sample_person": (sample[0].get("props") if sample else None),
    }
