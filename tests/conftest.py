import shutil
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


class FakeGraphDB:
    """In-memory stand-in for Neo4jConnector.

    Routes on query intent like a tiny Cypher interpreter for the handful of
    statements the services issue. MERGE semantics are kept: nodes by id,
    SPOUSE as unordered pairs, PARENT_OF as ordered pairs.
    """

    def __init__(self):
        self.calls = []
        self.nodes = {}
        self.spouses = set()
        self.parents = set()
        self.fail_on = None
        self.closed = False

    def __call__(self, query, params=None):
        return self.run_cypher(query, params)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.closed = True

    def _node(self, pid):
        return self.nodes.setdefault(pid, {"id": pid})

    def delete_node(self, pid):
        self.nodes.pop(pid, None)
        self.spouses = {s for s in self.spouses if pid not in s}
        self.parents = {p for p in self.parents if pid not in p}

    def relationship_count(self):
        return len(self.spouses) + len(self.parents)

    def run_cypher(self, query, params=None):
        self.calls.append((query, params))
        params = params or {}
        if self.fail_on and self.fail_on in query:
            raise RuntimeError("store unavailable")

        if "UNWIND $rows" in query:
            for row in params["rows"]:
                node = self._node(row["id"])
                for key, value in row.items():
                    if value is not None and node.get(key) is None:
                        node[key] = value
            return [{"cnt": len(params["rows"])}]
        if "UNWIND $pairs" in query and ":SPOUSE" in query:
            for a, b in params["pairs"]:
                self._node(a)
                self._node(b)
                self.spouses.add(frozenset((a, b)))
            return [{"cnt": len(params["pairs"])}]
        if "UNWIND $pairs" in query and ":PARENT_OF" in query:
            for parent, child in params["pairs"]:
                self._node(parent)
                self._node(child)
                self.parents.add((parent, child))
            return [{"cnt": len(params["pairs"])}]
        if "DETACH DELETE" in query:
            victims = list(self.nodes)[: params["limit"]]
            for pid in victims:
                self.delete_node(pid)
            return [{"deleted": len(victims)}]
        if "RETURN 1" in query:
            return [{"ok": 1}]
        if "UNWIND labels(n)" in query:
            return [{"label": "Person", "count": len(self.nodes)}] if self.nodes else []
        if "type(r)" in query:
            rows = []
            if self.parents:
                rows.append({"type": "PARENT_OF", "count": len(self.parents)})
            if self.spouses:
                rows.append({"type": "SPOUSE", "count": len(self.spouses)})
            return rows
        if "properties(p) AS props" in query:
            if "id" in params:
                node = self.nodes.get(params["id"])
                return [{"props": dict(node)}] if node else []
            return [{"props": dict(n)} for n in list(self.nodes.values())[:1]]
        if "RETURN p.id AS id" in query:
            return [{"id": pid} for pid in self.nodes]
        if "MATCH (p:Person) RETURN count(p)" in query or "MATCH (n) RETURN count(n)" in query:
            return [{"cnt": len(self.nodes)}]
        if "MATCH ()-[r]->() RETURN count(r)" in query:
            return [{"cnt": self.relationship_count()}]
        return []


@pytest.fixture
def graph_db():
    return FakeGraphDB()


@pytest.fixture
def graph_db_factory():
    return FakeGraphDB


@pytest.fixture
def site_dir(tmp_path):
    """A cache directory holding copies of the fixture pages."""
    for name in ("p1.htm", "p2.htm", "p3.htm"):
        shutil.copy(FIXTURES / name, tmp_path / name)
    return tmp_path
