"""Crawl a Second Site genealogy website and load it into Neo4j."""

__version__ = "0.1.0"
