"""Crawling subsystem for Second Site genealogy pages.

Structure:
- base.py: queue items, discovered references, crawl stats
- names.py: name splitting and date cleanup
- spiders/person_spider.py: HTML record -> Person + discovered references
- page_source.py: cached, rate-limited page fetching
- scheduler.py: breadth-first crawl feeding the batch loader
- pipeline.py: cached HTML -> JSON snapshot
"""
