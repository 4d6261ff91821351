from collections import deque
from pathlib import Path

import httpx
import pytest

from genealogy_graph.errors import LoadError
from genealogy_graph.services.crawl.base import QueueItem
from genealogy_graph.services.crawl.page_source import PageSource
from genealogy_graph.services.crawl.scheduler import CrawlScheduler, describe_person
from genealogy_graph.services.crawl.spiders.person_spider import PersonSpider
from genealogy_graph.services.import_service import BatchLoader


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


def record(anchor, name, family_links=()):
    links = "".join(f'<a href="{href}">x</a>' for href in family_links)
    return (
        f'<div class="itp" id="{anchor}"><h2>{name}</h2>'
        f'<table class="grid ss-family"><tr><td><h3 class="family">Family</h3></td><td>{links}</td></tr></table>'
        "</div>"
    )


class RecordingLoader:
    def __init__(self):
        self.batches = []

    def load_batch(self, persons):
        self.batches.append([p.id for p in persons])


class FailingLoader:
    def __init__(self):
        self.calls = 0

    def load_batch(self, persons):
        self.calls += 1
        raise LoadError("boom")


def make_source(pages):
    requested = []

    def handler(request):
        name = request.url.path.rsplit("/", 1)[-1]
        requested.append(name)
        if name in pages:
            return httpx.Response(200, text=pages[name])
        return httpx.Response(500)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    source = PageSource(base_url="https://example.test/", client=client, sleep=lambda s: None)
    return source, requested


def fixture_source():
    return make_source({name: read_fixture(name) for name in ("p1.htm", "p2.htm", "p3.htm")})


def test_cycle_visits_each_record_once():
    pages = {
        "p1.htm": record("i1", "Alpha Culpepper", ["p2.htm#i2"]),
        "p2.htm": record("i2", "Beta Culpepper", ["p1.htm#i1"]),
    }
    source, requested = make_source(pages)
    loader = RecordingLoader()
    scheduler = CrawlScheduler(source, loader, batch_size=10)

    stats = scheduler.run([QueueItem.parse("p1.htm#i1")])

    assert stats.processed == 2
    assert loader.batches == [["1", "2"]]
    assert scheduler.visited == {"p1.htm#i1", "p2.htm#i2"}
    assert not scheduler.queue
    # each page goes over the wire once
    assert sorted(requested) == ["p1.htm", "p2.htm"]


def test_not_found_and_fetch_failures_are_counted_and_skipped():
    pages = {
        "p1.htm": record("i1", "Alpha Culpepper", ["p1.htm#i9", "p5.htm#i50", "p1.htm#i2"])
        + record("i2", "Gamma Culpepper"),
    }
    source, _ = make_source(pages)
    loader = RecordingLoader()

    stats = CrawlScheduler(source, loader).run([QueueItem.parse("p1.htm#i1")])

    assert stats.processed == 2
    assert stats.not_found == 1
    assert stats.fetch_failed == 1
    assert loader.batches == [["1", "2"]]


def test_full_fixture_crawl_batches():
    source, requested = fixture_source()
    loader = RecordingLoader()
    stats = CrawlScheduler(source, loader, batch_size=4).run([QueueItem.parse("p1.htm#i1")])

    assert stats.processed == 6
    assert stats.batches_flushed == 2
    assert stats.pages_fetched == 3
    # breadth-first: the seed, then its spouse and children in link order
    assert loader.batches == [["1", "2", "3", "4"], ["5", "6"]]
    assert sorted(requested) == ["p1.htm", "p2.htm", "p3.htm"]


def test_max_records_caps_scheduling_and_flushes_partial_batch():
    source, _ = fixture_source()
    loader = RecordingLoader()
    stats = CrawlScheduler(source, loader, batch_size=100, max_records=3).run([QueueItem.parse("p1.htm#i1")])

    assert stats.processed == 3
    assert loader.batches == [["1", "2", "3"]]


def test_load_error_does_not_stop_the_crawl():
    source, _ = fixture_source()
    loader = FailingLoader()
    stats = CrawlScheduler(source, loader, batch_size=2).run([QueueItem.parse("p1.htm#i1")])

    assert stats.processed == 6
    assert loader.calls == 3
    assert stats.batches_failed == 3
    assert stats.batches_flushed == 0


def test_dry_run_without_loader():
    source, _ = fixture_source()
    scheduler = CrawlScheduler(source, None, batch_size=2)
    stats = scheduler.run([QueueItem.parse("p1.htm#i1")])
    assert stats.processed == 6
    assert stats.batches_flushed == 0
    assert scheduler.batch == []


def test_shared_visited_set_skips_known_keys():
    source, requested = fixture_source()
    visited = {"p1.htm#i1"}
    stats = CrawlScheduler(source, RecordingLoader(), visited=visited, queue=deque()).run(
        [QueueItem.parse("p1.htm#i1")]
    )
    assert stats.processed == 0
    assert requested == []


def test_crawl_into_graph_store(graph_db):
    source, _ = fixture_source()
    CrawlScheduler(source, BatchLoader(graph_db), batch_size=4).run([QueueItem.parse("p1.htm#i1")])

    assert set(graph_db.nodes) == {"1", "2", "3", "4", "5", "6"}
    assert graph_db.spouses == {frozenset(("1", "2")), frozenset(("1", "5"))}
    assert graph_db.parents == {("1", "3"), ("1", "4"), ("1", "6"), ("2", "3"), ("2", "4"), ("5", "6")}


def test_queue_item_parse():
    assert QueueItem.parse("p12.htm#i340").key == "p12.htm#i340"
    assert QueueItem.parse("p1.htm").anchor == "i1"
    with pytest.raises(ValueError):
        QueueItem.parse("p1.htm#x1")


def test_describe_person():
    text = describe_person(PersonSpider().parse_person(read_fixture("p1.htm"), "i1").person)
    assert text.startswith("Henry James Culpepper (ID: 1)")
    assert "spouses=2 children=3" in text
