from typing import Any, Dict, Iterable, List, Set, Tuple

from genealogy_graph.models.person import Person

# Fill-missing-only: a stored value is kept, nulls in the row change nothing.
UPSERT_PEOPLE = (
    "UNWIND $rows AS row "
    "MERGE (p:Person {id: row.id}) "
    "SET p.name = coalesce(p.name, row.name), "
    "    p.firstName = coalesce(p.firstName, row.firstName), "
    "    p.middleName = coalesce(p.middleName, row.middleName), "
    "    p.lastName = coalesce(p.lastName, row.lastName), "
    "    p.gender = coalesce(p.gender, row.gender), "
    "    p.birth = coalesce(p.birth, row.birth), "
    "    p.birthPlace = coalesce(p.birthPlace, row.birthPlace), "
    "    p.death = coalesce(p.death, row.death), "
    "    p.deathPlace = coalesce(p.deathPlace, row.deathPlace), "
    "    p.burial = coalesce(p.burial, row.burial), "
    "    p.burialPlace = coalesce(p.burialPlace, row.burialPlace), "
    "    p.marriageDate = coalesce(p.marriageDate, row.marriageDate), "
    "    p.father = coalesce(p.father, row.father), "
    "    p.mother = coalesce(p.mother, row.mother), "
    "    p.page = coalesce(p.page, row.page) "
    "RETURN count(p) AS cnt"
)

MERGE_SPOUSES = (
    "UNWIND $pairs AS pair "
    "MERGE (a:Person {id: pair[0]}) "
    "MERGE (b:Person {id: pair[1]}) "
    "MERGE (a)-[:SPOUSE]-(b) "
    "RETURN count(*) AS cnt"
)

MERGE_PARENTS = (
    "UNWIND $pairs AS pair "
    "MERGE (parent:Person {id: pair[0]}) "
    "MERGE (child:Person {id: pair[1]}) "
    "MERGE (parent)-[:PARENT_OF]->(child) "
    "RETURN count(*) AS cnt"
)


def spouse_pairs(people: Iterable[Person]) -> List[Tuple[str, str]]:
    """Unordered spouse pairs, each reported once."""
    seen: Set[Tuple[str, str]] = set()
    out: List[Tuple[str, str]] = []
    for p in people:
        for s in p.spouses:
            if not s or s == p.id:
                continue
            key = (p.id, s) if p.id < s else (s, p.id)
            if key in seen:
                continue
            seen.add(key)
            out.append(key)
    return out


def parent_pairs(people: Iterable[Person]) -> List[Tuple[str, str]]:
    """Directed (parent, child) pairs from children lists and father/mother fields."""
    seen: Set[Tuple[str, str]] = set()
    out: List[Tuple[str, str]] = []

    def add(parent: str, child: str) -> None:
        if not parent or not child or parent == child:
            return
        if (parent, child) in seen:
            return
        seen.add((parent, child))
        out.append((parent, child))

    for p in people:
        for c in p.children:
            add(p.id, c)
        if p.father:
            add(p.father, p.id)
        if p.mother:
            add(p.mother, p.id)
    return out


def upsert_people(db, people: List[Person]) -> int:
    if not people:
        return 0
    rows = [p.to_store_params() for p in people]
    res = db.run_cypher(UPSERT_PEOPLE, {"rows": rows})
    return (res[0].get("cnt") if res else 0) or 0


def merge_spouse_links(db, pairs: List[Tuple[str, str]]) -> int:
    if not pairs:
        return 0
    db.run_cypher(MERGE_SPOUSES, {"pairs": [list(p) for p in pairs]})
    return len(pairs)


def merge_parent_links(db, pairs: List[Tuple[str, str]]) -> int:
    if not pairs:
        return 0
    db.run_cypher(MERGE_PARENTS, {"pairs": [list(p) for p in pairs]})
    return len(pairs)


def get_person_ids(db) -> Set[str]:
    rows = db.run_cypher("MATCH (p:Person) RETURN p.id AS id")
    return {r["id"] for r in rows if r.get("id")}


def get_person(db, person_id: str) -> Dict[str, Any]:
    """Fetch a single Person's properties by id. Returns empty dict if not found."""
    res = db.run_cypher("MATCH (p:Person {id: $id}) RETURN properties(p) AS props", {"id": person_id})
    return (res[0].get("props") or {}) if res else {}


def count_people(db) -> int:
    res = db.run_cypher("MATCH (p:Person) RETURN count(p) AS cnt")
    return (res[0].get("cnt") if res else 0) or 0


def count_relationships(db) -> int:
    res = db.run_cypher("MATCH ()-[r]->() RETURN count(r) AS cnt")
    return (res[0].get("cnt") if res else 0) or 0
