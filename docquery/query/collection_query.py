from collections.abc import Iterable, Mapping
from typing import Any, Self
import time

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from .comparison_operator import ComparisonOperator
from .predicate import AllOf, AnyOf, Between, Compare, Equals, FieldPredicate, In, IsNull, NotIn, NotNull
from .query_descriptor import QueryDescriptor
from ..utilities import logger as log
from ..utilities.query_error import InvalidArgument, MissingFilter, StoreOperationError
from ..utilities.setup_error import SetupError

"""
Query Behavior:

Predicate and modifier methods (select, where*, order_by, limit, skip, page) only record state and return self, so
calls can be chained. Nothing touches the database until a terminal coroutine runs:
	connect, count, get, first, find, insert, update, delete, drop

A CollectionQuery is single use and belongs to one task. Its state is never cleared, so reusing it after a terminal
call runs the old conditions again. Create a new one per query with MongoDB.collection().

Errors:
	- InvalidOperator / InvalidArgument / MissingFilter are raised before any I/O and before any state changes.
	- Every driver error raised by a terminal call is logged and re-raised as StoreOperationError.
	- SetupError is raised on first connect if the store handle couldn't create its client.
"""

class CollectionQuery:
	""" Fluent query builder bound to a single collection. """

	def __init__(
		self,
		name: str,
		db_name: str | None,
		client: Any,
		database: AsyncDatabase | None = None,
		exclude_fields: Iterable[str] | None = None,
		setup_error: Exception | None = None
	) -> None:
		self._collection_name = name
		self._db_name = db_name
		self._client = client
		self._setup_error = setup_error

		# Bound lazily by connect()
		self.database: AsyncDatabase | None = database
		self.collection: AsyncCollection | None = None

		self.filter: AllOf = AllOf()
		self.projection: dict[str, int] = {}
		self.sort: dict[str, int] = {}
		self.limit_value: int | None = None
		self.skip_value: int | None = None
		self.exclude_fields: list[str] = list(exclude_fields) if exclude_fields else []

	@property
	def collection_name(self) -> str:
		return self._collection_name

	@property
	def db_name(self) -> str | None:
		return self._db_name

	def __repr__(self) -> str:
		return f"CollectionQuery({self._db_name}.{self._collection_name}, filter={self.filter.to_mongo()})"

	# region: Predicates
	def select(self, fields: Iterable[str]) -> Self:
		""" Only return these fields from get(). Replaces any previous selection. """
		self.projection = { field: 1 for field in fields }
		return self

	def where(self, column: str, operator: str, value: Any) -> Self:
		""" Constrain a column. Calling this again for the same column replaces the earlier condition. """
		predicate = self._comparison(column, operator, value)
		self.filter = self.filter.with_condition(predicate)
		return self

	def or_where(self, column: str, operator: str, value: Any) -> Self:
		""" Match documents that satisfy everything added so far OR this condition.
		The filter becomes {"$or": [<previous filter>, {column: <condition>}]}. With no previous conditions this is the same as where().

		NOTE: The legacy builder overwrote the column first and then OR'd the result with an empty condition, which matched
		every document. This method keeps the earlier filter intact as the first branch instead. """
		predicate = self._comparison(column, operator, value)
		if self.filter.is_empty():
			self.filter = self.filter.with_condition(predicate)
		else:
			self.filter = AllOf((AnyOf((self.filter, predicate)),))
		return self

	def where_in(self, column: str, values: Iterable[Any]) -> Self:
		self.filter = self.filter.with_condition(In(column, self._values("where_in", column, values)))
		return self

	def where_not_in(self, column: str, values: Iterable[Any]) -> Self:
		self.filter = self.filter.with_condition(NotIn(column, self._values("where_not_in", column, values)))
		return self

	def where_null(self, column: str) -> Self:
		self.filter = self.filter.with_condition(IsNull(column))
		return self

	def where_not_null(self, column: str) -> Self:
		self.filter = self.filter.with_condition(NotNull(column))
		return self

	def where_between(self, column: str, bounds: Iterable[Any]) -> Self:
		""" Inclusive range. bounds is a (low, high) pair. """
		bounds = self._values("where_between", column, bounds)
		if len(bounds) != 2:
			raise InvalidArgument(f"where_between() expects a [low, high] pair for '{column}', got {len(bounds)} values.")
		low, high = bounds
		self.filter = self.filter.with_condition(Between(column, low, high))
		return self

	@staticmethod
	def _comparison(column: str, operator: str, value: Any) -> FieldPredicate:
		comparison_operator = ComparisonOperator.parse(operator)
		if comparison_operator is ComparisonOperator.EQ:
			return Equals(column, value)
		return Compare(column, comparison_operator, value)

	@staticmethod
	def _values(method: str, column: str, values: Iterable[Any]) -> tuple[Any, ...]:
		""" Strings, bytes and mappings are iterable but never a list of values. """
		if isinstance(values, (str, bytes, bytearray, Mapping)) or not isinstance(values, Iterable):
			raise InvalidArgument(f"{method}() expects a list of values for '{column}', got {type(values).__name__}.")
		return tuple(values)
	# endregion

	# region: Modifiers
	def order_by(self, column: str, direction: str) -> Self:
		""" "ASC" sorts ascending, anything else (including "asc") descending. Earlier calls take precedence. """
		self.sort[column] = 1 if direction == "ASC" else -1
		return self

	def limit(self, number: int) -> Self:
		self.limit_value = number
		return self

	def skip(self, number: int) -> Self:
		self.skip_value = number
		return self

	def page(self, page: int, size: int) -> Self:
		""" 1-indexed. page(1, 10) returns the first ten results. Values are not validated. """
		self.skip_value = (page - 1) * size
		self.limit_value = size
		return self

	def build(self) -> QueryDescriptor:
		""" Returns what get() will execute. Does not touch the database. """
		if self.projection:
			projection = dict(self.projection)
		elif self.exclude_fields:
			projection = { field: 0 for field in self.exclude_fields }
		else:
			projection = None

		return QueryDescriptor(
			collection_name=self._collection_name,
			filter=self.filter.to_mongo(),
			projection=projection,
			sort=list(self.sort.items()),
			skip=self.skip_value,
			limit=self.limit_value
		)
	# endregion

	# region: Connection
	async def connect(self) -> AsyncCollection:
		""" Resolve the collection handle. Only the first call does any I/O. """
		if self.collection is not None:
			return self.collection

		if self._client is None:
			raise SetupError(f"MongoDB client is not initialized: {self._setup_error}", cause=self._setup_error)

		try:
			if self.database is None:
				await self._client.aconnect()
				self.database = self._client[self._db_name]
			self.collection = self.database[self._collection_name]
		except PyMongoError as e:
			raise self._store_error("connect", "Error connecting to the database", e) from e
		return self.collection
	# endregion

	# region: Retrieval
	async def count(self) -> int:
		start_time = time.time()
		collection = await self.connect()
		query = self.filter.to_mongo()
		try:
			result = await collection.count_documents(query)
		except PyMongoError as e:
			raise self._store_error("count", "Error counting documents", e) from e
		self._log_usage("count", query, start_time)
		return result

	async def get(self) -> list[dict[str, Any]]:
		""" Returns all matching documents. Projection, sort, skip and limit are applied in that order. """
		start_time = time.time()
		collection = await self.connect()
		descriptor = self.build()
		try:
			cursor = collection.find(descriptor.filter, descriptor.projection)
			if descriptor.sort:
				cursor = cursor.sort(descriptor.sort)
			if descriptor.skip is not None:
				cursor = cursor.skip(descriptor.skip)
			if descriptor.limit is not None:
				cursor = cursor.limit(descriptor.limit)
			documents = await cursor.to_list()
		except PyMongoError as e:
			raise self._store_error("get", "Error retrieving documents", e) from e
		self._log_usage("get", descriptor.filter, start_time, f"{len(documents)} documents")
		return documents

	async def first(self) -> dict[str, Any] | None:
		""" Returns the first matching document, or None. Ignores projection, sort, skip and limit. """
		start_time = time.time()
		collection = await self.connect()
		query = self.filter.to_mongo()
		try:
			document = await collection.find_one(query)
		except PyMongoError as e:
			raise self._store_error("first", "Error retrieving the first result", e) from e
		self._log_usage("first", query, start_time)
		return document

	async def find(self, value: Any, column: str = "id") -> dict[str, Any] | None:
		""" Look up one document by a single field. Ignores every condition on the query. Use column="_id" for the primary key. """
		start_time = time.time()
		collection = await self.connect()
		query = { column: value }
		try:
			document = await collection.find_one(query)
		except PyMongoError as e:
			raise self._store_error("find", "Error finding the record", e) from e
		self._log_usage("find", query, start_time)
		return document
	# endregion

	# region: Mutation
	async def insert(self, new_data: Mapping[str, Any] | list[Mapping[str, Any]] | tuple[Mapping[str, Any], ...]) -> Any:
		""" Insert one document, or many if given a list. Returns new_data as passed in.
		NOTE: The driver adds the generated _id to each inserted dict. """
		if isinstance(new_data, (list, tuple)):
			for document in new_data:
				if not isinstance(document, Mapping):
					raise InvalidArgument(f"insert() expects documents to be mappings, got {type(document).__name__}.")
		elif not isinstance(new_data, Mapping):
			raise InvalidArgument(f"insert() expects a mapping or a list of mappings, got {type(new_data).__name__}.")

		start_time = time.time()
		collection = await self.connect()
		try:
			if isinstance(new_data, (list, tuple)):
				# The driver rejects empty batches
				if new_data:
					await collection.insert_many(new_data)
			else:
				await collection.insert_one(new_data)
		except PyMongoError as e:
			raise self._store_error("insert", "Error saving the data", e) from e
		self._log_usage("insert", {}, start_time)
		return new_data

	async def update(self, data: Mapping[str, Any]) -> int:
		""" $set the given fields on every matching document. Returns the number of modified documents. """
		if not isinstance(data, Mapping):
			raise InvalidArgument("update() requires a mapping of field names to values.")
		if not data:
			raise InvalidArgument("update() requires at least one field to set.")
		if self.filter.is_empty():
			raise MissingFilter("At least one where condition is required to run update().")

		start_time = time.time()
		collection = await self.connect()
		query = self.filter.to_mongo()
		try:
			result = await collection.update_many(query, { "$set": dict(data) })
		except PyMongoError as e:
			raise self._store_error("update", "Error updating the data", e) from e
		self._log_usage("update", query, start_time, f"{result.modified_count} modified")
		return result.modified_count

	async def delete(self) -> int:
		""" Delete every matching document. Returns the number of deleted documents. """
		if self.filter.is_empty():
			raise MissingFilter("At least one where condition is required to run delete().")

		start_time = time.time()
		collection = await self.connect()
		query = self.filter.to_mongo()
		try:
			result = await collection.delete_many(query)
		except PyMongoError as e:
			raise self._store_error("delete", "Error deleting the data", e) from e
		self._log_usage("delete", query, start_time, f"{result.deleted_count} deleted")
		return result.deleted_count

	async def drop(self) -> bool:
		""" Drops the whole collection. Unlike update() and delete(), this does not require a filter. """
		start_time = time.time()
		collection = await self.connect()
		try:
			await collection.drop()
		except PyMongoError as e:
			raise self._store_error("drop", "Error dropping the collection", e) from e
		self._log_usage("drop", {}, start_time)
		return True
	# endregion

	def _store_error(self, operation: str, prefix: str, error: PyMongoError) -> StoreOperationError:
		log.logger.error(f"{prefix} in collection '{self._collection_name}': {error}")
		return StoreOperationError(operation, f"{prefix}: {error}")

	def _log_usage(self, operation: str, query: dict[str, Any], start_time: float, detail: str = "") -> None:
		suffix = f" ({detail})" if detail else ""
		log.logger.debug(f"Database Usage Logging: {operation} on '{self._collection_name}' for query: {query}{suffix} in {(time.time() - start_time):.3f} seconds")
