from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class QueryDescriptor:
	""" Snapshot of what CollectionQuery.get() will execute.
	get() applies these in a fixed order: projection -> sort -> skip -> limit. The order of the builder calls doesn't matter. """
	collection_name: str
	filter: dict[str, Any] = field(default_factory=dict)
	projection: dict[str, int] | None = None
	""" None means all fields. """
	sort: list[tuple[str, int]] = field(default_factory=list)
	""" Ordered by precedence. """
	skip: int | None = None
	limit: int | None = None
