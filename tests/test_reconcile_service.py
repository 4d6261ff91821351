import json

from genealogy_graph.services.crawl.base import QueueItem
from genealogy_graph.services.crawl.page_source import PageSource
from genealogy_graph.services.crawl.pipeline import html_to_snapshot
from genealogy_graph.services.crawl.scheduler import CrawlScheduler
from genealogy_graph.services.import_service import BatchLoader, load_snapshot
from genealogy_graph.services.reconcile_service import find_missing, ids_in_html, scan_html_ids, write_report


def load_all(graph_db, site_dir, tmp_path):
    out = tmp_path / "snap.json"
    html_to_snapshot(str(site_dir), str(out))
    load_snapshot(graph_db, str(out), confirm_delay=0)


def test_ids_in_html_only_counts_record_anchors():
    html = '<div id="i12"></div><a id="i7"></a><div id="container"></div><p id="ix3"></p>'
    assert ids_in_html(html) == {"12", "7"}


def test_scan_html_ids_maps_first_page(site_dir):
    found = scan_html_ids(str(site_dir))
    assert found == {"1": "p1.htm", "2": "p1.htm", "3": "p2.htm", "4": "p2.htm", "5": "p3.htm", "6": "p3.htm"}


def test_nothing_missing_after_full_load(graph_db, site_dir, tmp_path):
    load_all(graph_db, site_dir, tmp_path)
    report = find_missing(graph_db, str(site_dir))
    assert report.missing_ids == []
    assert report.by_page == {}
    assert report.total_html_ids == 6
    assert report.total_store_ids == 6


def test_nothing_missing_after_crawl_and_load(graph_db, site_dir):
    source = PageSource(base_url="https://example.test/", data_dir=str(site_dir), sleep=lambda s: None)
    stats = CrawlScheduler(source, BatchLoader(graph_db), batch_size=4).run([QueueItem.parse("p1.htm#i1")])
    assert stats.processed == 6
    assert stats.pages_fetched == 0

    report = find_missing(graph_db, str(site_dir))
    assert report.missing_ids == []
    assert report.total_store_ids == report.total_html_ids == 6

    graph_db.delete_node("3")
    report = find_missing(graph_db, str(site_dir))
    assert report.by_page == {"p2.htm": ["3"]}


def test_deleted_node_is_reported_under_its_page(graph_db, site_dir, tmp_path):
    load_all(graph_db, site_dir, tmp_path)
    graph_db.delete_node("4")
    graph_db.delete_node("6")
    seen = len(graph_db.calls)

    report = find_missing(graph_db, str(site_dir))

    assert report.missing_ids == ["4", "6"]
    assert report.by_page == {"p2.htm": ["4"], "p3.htm": ["6"]}
    # read-only: nothing was written back
    assert not any("MERGE" in q or "DELETE" in q for q, _ in graph_db.calls[seen:])


def test_write_report_shape(graph_db, site_dir, tmp_path):
    report = find_missing(graph_db, str(site_dir))
    path = write_report(report, str(tmp_path / "missing-records.json"))

    data = json.loads(open(path, encoding="utf-8").read())
    assert set(data) == {"timestamp", "totalHtmlIds", "totalNeo4jIds", "missingCount", "missingIds", "byPage"}
    assert data["missingCount"] == 6
    assert data["missingIds"] == ["1", "2", "3", "4", "5", "6"]
    assert data["totalNeo4jIds"] == 0
