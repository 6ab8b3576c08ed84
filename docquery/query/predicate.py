from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .comparison_operator import ComparisonOperator

"""
Filter predicates.

A CollectionQuery keeps its filter as a tree of these nodes and only renders it into a MongoDB query document when
a terminal operation runs (or when build() is called). Field predicates constrain a single column; AllOf and AnyOf
combine other predicates.

Rendering:
	Equals       {column: value}
	Compare      {column: {"$gt": value}} (and $lt, $gte, $lte, $ne)
	Between      {column: {"$gte": low, "$lte": high}}
	In / NotIn   {column: {"$in": [...]}} / {column: {"$nin": [...]}}
	IsNull       {column: None}
	NotNull      {column: {"$ne": None}}
	AnyOf        {"$or": [...]}
	AllOf        the children merged into one document, or {"$and": [...]} if two children render the same key
"""


class Predicate:
	""" Base class for all filter nodes. """

	def to_mongo(self) -> dict[str, Any]:
		raise NotImplementedError


@dataclass(frozen=True)
class FieldPredicate(Predicate):
	""" A predicate on a single column. A query holds at most one of these per column at its top level. """
	column: str


@dataclass(frozen=True)
class Equals(FieldPredicate):
	value: Any

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: self.value }


@dataclass(frozen=True)
class Compare(FieldPredicate):
	operator: ComparisonOperator
	value: Any

	def to_mongo(self) -> dict[str, Any]:
		mongo_operator = self.operator.mongo_operator
		if mongo_operator is None:
			return { self.column: self.value }
		return { self.column: { mongo_operator: self.value } }


@dataclass(frozen=True)
class Between(FieldPredicate):
	""" Inclusive on both ends. """
	low: Any
	high: Any

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: { "$gte": self.low, "$lte": self.high } }


@dataclass(frozen=True)
class In(FieldPredicate):
	values: tuple[Any, ...]

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: { "$in": list(self.values) } }


@dataclass(frozen=True)
class NotIn(FieldPredicate):
	values: tuple[Any, ...]

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: { "$nin": list(self.values) } }


@dataclass(frozen=True)
class IsNull(FieldPredicate):
	""" Matches documents where the column is null or missing (MongoDB semantics for {column: None}). """

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: None }


@dataclass(frozen=True)
class NotNull(FieldPredicate):

	def to_mongo(self) -> dict[str, Any]:
		return { self.column: { "$ne": None } }


@dataclass(frozen=True)
class AnyOf(Predicate):
	predicates: tuple[Predicate, ...]

	def to_mongo(self) -> dict[str, Any]:
		return { "$or": [predicate.to_mongo() for predicate in self.predicates] }


@dataclass(frozen=True)
class AllOf(Predicate):
	""" Implicit conjunction. The root of every CollectionQuery filter. """
	predicates: tuple[Predicate, ...] = field(default_factory=tuple)

	def is_empty(self) -> bool:
		return not self.predicates

	def with_condition(self, predicate: Predicate) -> AllOf:
		""" Returns a copy with the predicate added. A field predicate replaces the existing one on the same column, keeping its position. """
		if isinstance(predicate, FieldPredicate):
			for idx, existing in enumerate(self.predicates):
				if isinstance(existing, FieldPredicate) and existing.column == predicate.column:
					return AllOf(self.predicates[:idx] + (predicate,) + self.predicates[idx + 1:])
		return AllOf(self.predicates + (predicate,))

	def to_mongo(self) -> dict[str, Any]:
		rendered = [predicate.to_mongo() for predicate in self.predicates]
		output: dict[str, Any] = {}
		for document in rendered:
			if any(key in output for key in document):
				# Two children claim the same key (e.g. two $or branches), so they can't share one document
				return { "$and": rendered }
			output.update(document)
		return output
