"""Graph store operations for Person nodes.

Every function takes the store handle (anything with `run_cypher`) as its first
argument; there is no module-level connection.
"""
from .persons import (
    upsert_people,
    merge_spouse_links,
    merge_parent_links,
    spouse_pairs,
    parent_pairs,
    get_person_ids,
    get_person,
    count_people,
    count_relationships,
)
from .admin import clear_database
from .stats import get_database_stats

__all__ = [
    # persons
    'upsert_people','merge_spouse_links','merge_parent_links','spouse_pairs','parent_pairs',
    'get_person_ids','get_person','count_people','count_relationships',
    # admin
    'clear_database',
    # stats
    'get_database_stats',
]
