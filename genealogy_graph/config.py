import os
from dataclasses import dataclass
from typing import Optional, Tuple

from genealogy_graph.errors import ConfigError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DEFAULT_BASE_URL = "https://www.culpepperconnections.com/ss/g0/"
DEFAULT_SEED = "p1.htm#i1"


@dataclass
class CrawlSettings:
    base_url: str = DEFAULT_BASE_URL
    batch_size: int = 300
    max_records: Optional[int] = None
    save_html: bool = True
    skip_save: bool = False
    data_dir: str = os.path.join(PROJECT_ROOT, "data")
    delay_seconds: float = 0.1
    snapshot_path: str = os.path.join(PROJECT_ROOT, "data", "genealogy-data.json")


@dataclass
class Neo4jSettings:
    uri: str
    user: str
    password: str
    database: Optional[str] = None


def load_env_file(root_dir: str = PROJECT_ROOT) -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    Avoids an external dependency on python-dotenv for this small use case.
    """
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            # Allow space around '=' like KEY = value
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_crawl_settings() -> CrawlSettings:
    """Read crawl settings from the environment (and .env), applying defaults."""
    load_env_file()
    defaults = CrawlSettings()
    data_dir = os.getenv("CRAWL_DATA_DIR") or defaults.data_dir
    max_records = _env_int("CRAWL_MAX_RECORDS", None)
    settings = CrawlSettings(
        base_url=os.getenv("CRAWL_BASE_URL") or defaults.base_url,
        batch_size=_env_int("CRAWL_BATCH_SIZE", defaults.batch_size) or defaults.batch_size,
        max_records=max_records if max_records and max_records > 0 else None,
        save_html=_env_bool("CRAWL_SAVE_HTML", defaults.save_html),
        skip_save=_env_bool("CRAWL_SKIP_SAVE", defaults.skip_save),
        data_dir=data_dir,
        delay_seconds=_env_float("CRAWL_DELAY_SECONDS", defaults.delay_seconds),
        snapshot_path=os.getenv("SNAPSHOT_PATH") or os.path.join(data_dir, "genealogy-data.json"),
    )
    if settings.batch_size < 1:
        raise ConfigError("CRAWL_BATCH_SIZE must be at least 1")
    return settings


def get_neo4j_config() -> Tuple[str, str, str]:
    """Get Neo4j URI, user, and password, loading .env if necessary and applying defaults.

    Returns (uri, user, password). Raises ConfigError when required values are missing.
    """
    load_env_file()

    uri = os.getenv("NEO4J_URI") or "bolt://localhost:7687"
    user = os.getenv("NEO4J_USER") or "neo4j"
    pwd = os.getenv("NEO4J_PASSWORD")

    missing = []
    if not uri:
        missing.append("NEO4J_URI")
    if not user:
        missing.append("NEO4J_USER")
    if not pwd:
        missing.append("NEO4J_PASSWORD")

    if missing:
        hint = (
            "One or more Neo4j settings are missing: " + ", ".join(missing) +
            "\nDefine them in your environment or in a .env file at the project root.\n"
            "Example:\n"
            "export NEO4J_URI='bolt://localhost:7687' NEO4J_USER='neo4j' NEO4J_PASSWORD='your_password'"
        )
        raise ConfigError(hint)

    return uri, user, pwd


def load_neo4j_settings() -> Neo4jSettings:
    uri, user, pwd = get_neo4j_config()
    return Neo4jSettings(uri=uri, user=user, password=pwd, database=os.getenv("NEO4J_DATABASE") or None)
