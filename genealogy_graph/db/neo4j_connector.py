from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase

from neo4j.exceptions import Neo4jError, ServiceUnavailable

from genealogy_graph.config import Neo4jSettings, load_neo4j_settings
from genealogy_graph.errors import StoreError


class Neo4jConnector:
    """Explicit handle on a Neo4j driver.

    One instance is constructed by the entry point and passed to every service
    that reads or writes the graph. Services only rely on `run_cypher`, so tests
    can hand them any object exposing the same method.
    """

    def __init__(self, uri: str, user: str, password: str, *, database: Optional[str] = None) -> None:
        self.uri = uri
        self.database = database
        try:
            self._driver = GraphDatabase.driver(uri, auth=(user, password))
        except Exception as exc:
            raise StoreError(
                f"Failed to create Neo4j driver for URI '{uri}'. Check that the database is running and the credentials are correct.\nError: {exc}"
            ) from exc

    @classmethod
    def from_settings(cls, settings: Neo4jSettings) -> "Neo4jConnector":
        return cls(settings.uri, settings.user, settings.password, database=settings.database)

    @classmethod
    def from_env(cls) -> "Neo4jConnector":
        """Build a connector from NEO4J_* environment variables (or .env).

        Raises ConfigError when credentials are missing.
        """
        return cls.from_settings(load_neo4j_settings())

    def run_cypher(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a Cypher statement and return list of records as dicts."""
        with self._driver.session(database=self.database) as session:
            result = session.run(query, parameters or {})
            return [record.data() for record in result]

    def verify_connectivity(self) -> None:
        try:
            self.run_cypher("RETURN 1 AS ok")
        except (ServiceUnavailable, Neo4jError) as exc:
            raise StoreError(f"Cannot reach Neo4j at {self.uri}: {exc}") from exc

    def close(self) -> None:
        if self._driver is not None:
            self._driver.close()
            self._driver = None

    def __enter__(self) -> "Neo4jConnector":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
