import json

import pytest

from genealogy_graph import runner


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # keep a developer's .env and shell settings out of the tests
    monkeypatch.setattr("genealogy_graph.config.load_env_file", lambda *a, **kw: None)
    for key in (
        "NEO4J_URI", "NEO4J_USER", "NEO4J_PASSWORD", "NEO4J_DATABASE",
        "CRAWL_BASE_URL", "CRAWL_BATCH_SIZE", "CRAWL_MAX_RECORDS", "CRAWL_SAVE_HTML",
        "CRAWL_SKIP_SAVE", "CRAWL_DATA_DIR", "CRAWL_DELAY_SECONDS", "SNAPSHOT_PATH",
    ):
        monkeypatch.delenv(key, raising=False)


def use_store(monkeypatch, db):
    monkeypatch.setattr("genealogy_graph.runner._connect", lambda: db)


def test_missing_password_exits_with_config_error():
    assert runner.main(["stats"]) == 2


def test_bad_numeric_setting_is_a_config_error(monkeypatch, site_dir):
    monkeypatch.setenv("CRAWL_BATCH_SIZE", "lots")
    assert runner.main(["crawl", "--skip-save", "--data-dir", str(site_dir)]) == 2


def test_wipe_requires_confirmation(monkeypatch):
    def boom():
        raise AssertionError("should not connect")

    monkeypatch.setattr("genealogy_graph.runner._connect", boom)
    assert runner.main(["wipe"]) == 2


def test_crawl_dry_run_reads_cached_pages(site_dir, capsys):
    code = runner.main(["crawl", "--skip-save", "--no-save-html", "--data-dir", str(site_dir)])
    assert code == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["processed"] == 6
    assert stats["pages_fetched"] == 0


def test_crawl_loads_into_store(monkeypatch, graph_db, site_dir, capsys):
    use_store(monkeypatch, graph_db)
    code = runner.main(["crawl", "--data-dir", str(site_dir), "--batch-size", "2", "--max-records", "4"])
    assert code == 0
    assert set(graph_db.nodes) >= {"1", "2", "3", "4"}
    assert graph_db.closed
    assert json.loads(capsys.readouterr().out)["batches_flushed"] == 2


def test_snapshot_load_find_missing_and_stats(monkeypatch, graph_db, site_dir, tmp_path, capsys):
    use_store(monkeypatch, graph_db)
    snap = tmp_path / "snap.json"

    assert runner.main(["snapshot", "--data-dir", str(site_dir), "--out", str(snap)]) == 0
    assert runner.main(["load-snapshot", "--snapshot", str(snap), "--yes"]) == 0
    capsys.readouterr()

    assert runner.main(["find-missing", "--data-dir", str(site_dir)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["missingCount"] == 0

    assert runner.main(["stats"]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["total_nodes"] == 6
    assert stats["relationships_by_type"] == {"PARENT_OF": 6, "SPOUSE": 2}


def test_wipe_with_confirmation(monkeypatch, graph_db, site_dir, tmp_path, capsys):
    use_store(monkeypatch, graph_db)
    snap = tmp_path / "snap.json"
    runner.main(["snapshot", "--data-dir", str(site_dir), "--out", str(snap)])
    runner.main(["load-snapshot", "--snapshot", str(snap), "--yes"])
    capsys.readouterr()

    assert runner.main(["wipe", "--yes"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary == {"deleted_nodes": 6, "deleted_relationships": 8}
    assert graph_db.nodes == {}


def test_missing_snapshot_is_reported(monkeypatch, graph_db, tmp_path):
    use_store(monkeypatch, graph_db)
    assert runner.main(["load-snapshot", "--snapshot", str(tmp_path / "none.json"), "--yes"]) == 1


def test_malformed_seed_is_a_config_error(monkeypatch, site_dir):
    def boom():
        raise AssertionError("should not connect")

    monkeypatch.setattr("genealogy_graph.runner._connect", boom)
    code = runner.main(["crawl", "--data-dir", str(site_dir), "--seed", "p1.htm#x1"])
    assert code == 2
