class GenealogyGraphError(Exception):
    """Base exception for crawl/load failures."""


class ConfigError(GenealogyGraphError):
    """Raised when required settings are missing; aborts before any work."""


class FetchError(GenealogyGraphError):
    """Raised when a page cannot be retrieved from the origin site."""


class RecordNotFound(GenealogyGraphError):
    """Raised when a record anchor is absent from a fetched page."""


class LoadError(GenealogyGraphError):
    """Raised when a batch write to the graph store fails."""


class SnapshotError(GenealogyGraphError):
    """Raised when a snapshot file is missing or malformed."""


class StoreError(GenealogyGraphError):
    """Raised when the graph store cannot be reached."""
