"""
Query module.

CollectionQuery accumulates conditions as a predicate tree (see predicate.py) and translates it into MongoDB
query documents when a terminal operation runs.
"""

from .collection_query import CollectionQuery
from .predicate import AllOf, AnyOf, Between, Compare, Equals, In, IsNull, NotIn, NotNull, Predicate
