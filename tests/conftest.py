"""
Shared fixtures.

FakeAsyncClient mimics the part of pymongo's AsyncMongoClient surface CollectionQuery uses, keeps documents in memory
and records every call so tests can assert on what was (or wasn't) sent to the store.
"""

import copy
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId

from docquery.document.mongo_config import MongoConfig
from docquery.document.mongo_db import MongoDB, reset_mongo_db


_MISSING = object()


def _lookup(document: dict, column: str) -> Any:
	current: Any = document
	for part in column.split("."):
		if not isinstance(current, dict) or part not in current:
			return _MISSING
		current = current[part]
	return current

def _match_operator(value: Any, operator: str, argument: Any) -> bool:
	if operator == "$ne":
		if argument is None:
			return value is not _MISSING and value is not None
		return value != argument
	if operator == "$in":
		return (None if value is _MISSING else value) in argument
	if operator == "$nin":
		return (None if value is _MISSING else value) not in argument
	if value is _MISSING or value is None:
		return False
	if operator == "$gt": return value > argument
	if operator == "$lt": return value < argument
	if operator == "$gte": return value >= argument
	if operator == "$lte": return value <= argument
	raise ValueError(f"Fake store doesn't support {operator}")

def matches(document: dict, query: dict) -> bool:
	for key, condition in query.items():
		if key == "$or":
			if not any(matches(document, sub_query) for sub_query in condition):
				return False
		elif key == "$and":
			if not all(matches(document, sub_query) for sub_query in condition):
				return False
		else:
			value = _lookup(document, key)
			if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
				if not all(_match_operator(value, op, arg) for op, arg in condition.items()):
					return False
			elif condition is None:
				if value is not _MISSING and value is not None:
					return False
			elif value is _MISSING or value != condition:
				return False
	return True

def project(document: dict, projection: dict | None) -> dict:
	if not projection:
		return document
	if any(projection.values()):
		return { k: v for k, v in document.items() if k == "_id" or projection.get(k) }
	return { k: v for k, v in document.items() if k not in projection }


class FakeCursor:
	def __init__(self, collection: 'FakeCollection', query: dict, projection: dict | None) -> None:
		self.collection = collection
		self.query = query
		self.projection = projection
		self.operations: list[tuple[str, Any]] = [("find", (query, projection))]
		self._sort: list[tuple[str, int]] = []
		self._skip = 0
		self._limit = 0

	def sort(self, keys: list[tuple[str, int]]) -> 'FakeCursor':
		self.operations.append(("sort", list(keys)))
		self._sort = list(keys)
		return self

	def skip(self, number: int) -> 'FakeCursor':
		self.operations.append(("skip", number))
		self._skip = number
		return self

	def limit(self, number: int) -> 'FakeCursor':
		self.operations.append(("limit", number))
		self._limit = number
		return self

	async def to_list(self, length: int | None = None) -> list[dict]:
		self.collection._maybe_fail()
		documents = [copy.deepcopy(d) for d in self.collection.documents if matches(d, self.query)]
		for column, direction in reversed(self._sort):
			documents.sort(key=lambda d: _lookup(d, column), reverse=direction == -1)
		documents = documents[self._skip:]
		if self._limit:
			documents = documents[:self._limit]
		return [project(d, self.projection) for d in documents]


class FakeCollection:
	def __init__(self, name: str, calls: list) -> None:
		self.name = name
		self.documents: list[dict] = []
		self.calls = calls
		self.cursors: list[FakeCursor] = []
		self.fail_with: Exception | None = None
		self.dropped = False

	def _record(self, operation: str, *args: Any) -> None:
		self.calls.append((self.name, operation, args))

	def _maybe_fail(self) -> None:
		if self.fail_with is not None:
			raise self.fail_with

	def find(self, query: dict, projection: dict | None = None) -> FakeCursor:
		self._record("find", query, projection)
		cursor = FakeCursor(self, query, projection)
		self.cursors.append(cursor)
		return cursor

	async def find_one(self, query: dict) -> dict | None:
		self._record("find_one", query)
		self._maybe_fail()
		for document in self.documents:
			if matches(document, query):
				return copy.deepcopy(document)
		return None

	async def count_documents(self, query: dict) -> int:
		self._record("count_documents", query)
		self._maybe_fail()
		return sum(1 for d in self.documents if matches(d, query))

	async def insert_one(self, document: dict) -> SimpleNamespace:
		self._record("insert_one", document)
		self._maybe_fail()
		document.setdefault("_id", ObjectId())
		self.documents.append(copy.deepcopy(document))
		return SimpleNamespace(inserted_id=document["_id"])

	async def insert_many(self, documents: list[dict]) -> SimpleNamespace:
		self._record("insert_many", documents)
		self._maybe_fail()
		for document in documents:
			document.setdefault("_id", ObjectId())
			self.documents.append(copy.deepcopy(document))
		return SimpleNamespace(inserted_ids=[d["_id"] for d in documents])

	async def update_many(self, query: dict, update: dict) -> SimpleNamespace:
		self._record("update_many", query, update)
		self._maybe_fail()
		modified = 0
		for document in self.documents:
			if matches(document, query):
				changed = { k: v for k, v in update["$set"].items() if document.get(k, _MISSING) != v }
				if changed:
					document.update(changed)
					modified += 1
		return SimpleNamespace(modified_count=modified)

	async def delete_many(self, query: dict) -> SimpleNamespace:
		self._record("delete_many", query)
		self._maybe_fail()
		remaining = [d for d in self.documents if not matches(d, query)]
		deleted = len(self.documents) - len(remaining)
		self.documents = remaining
		return SimpleNamespace(deleted_count=deleted)

	async def drop(self) -> None:
		self._record("drop")
		self._maybe_fail()
		self.documents = []
		self.dropped = True


class FakeDatabase:
	def __init__(self, name: str, calls: list) -> None:
		self.name = name
		self.calls = calls
		self.collections: dict[str, FakeCollection] = {}

	def __getitem__(self, name: str) -> FakeCollection:
		if name not in self.collections:
			self.collections[name] = FakeCollection(name, self.calls)
		return self.collections[name]


class FakeAsyncClient:
	def __init__(self) -> None:
		self.calls: list = []
		self.databases: dict[str, FakeDatabase] = {}
		self.connect_count = 0
		self.closed = False
		self.fail_connect_with: Exception | None = None

	async def aconnect(self) -> None:
		if self.fail_connect_with is not None:
			raise self.fail_connect_with
		self.connect_count += 1

	async def close(self) -> None:
		self.closed = True

	def __getitem__(self, name: str) -> FakeDatabase:
		if name not in self.databases:
			self.databases[name] = FakeDatabase(name, self.calls)
		return self.databases[name]


@pytest.fixture
def config() -> MongoConfig:
	return MongoConfig(database="app", host="localhost", port=27017, user="root", password="secret")

@pytest.fixture
def fake_client() -> FakeAsyncClient:
	return FakeAsyncClient()

@pytest.fixture
def mongo_db(config: MongoConfig, fake_client: FakeAsyncClient) -> MongoDB:
	return MongoDB(config, client=fake_client)

@pytest.fixture
def store_calls(fake_client: FakeAsyncClient) -> list:
	""" Every operation that reached a collection, as (collection_name, operation, args). """
	return fake_client.calls

@pytest.fixture(autouse=True)
def _reset_cached_store():
	reset_mongo_db()
	yield
	reset_mongo_db()
