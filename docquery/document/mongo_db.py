from typing import Any

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from .mongo_config import MongoConfig
from ..query.collection_query import CollectionQuery
from ..utilities import logger as log
from ..utilities.query_error import StoreOperationError
from ..utilities.setup_error import SetupError


class MongoDB:
	""" Store handle. Owns the connection settings and the single AsyncMongoClient every CollectionQuery shares.

	The client is created here but only connects on first use. If the settings can't be read or the client can't be
	created, the error is logged and kept on the handle; the handle stays usable as an object and every query raises
	SetupError when it first tries to connect.

	Use create_mongo_db() for the process-wide instance, or construct one yourself and pass it to whatever builds queries.
	"""

	def __init__(self, config: MongoConfig | None = None, client: Any = None) -> None:
		self.config: MongoConfig | None = None
		self.client: Any = None
		self.database: AsyncDatabase | None = None
		""" Set once this handle has connected. Passed on to queries created afterwards. """
		self.setup_error: Exception | None = None

		try:
			self.config = config if config is not None else MongoConfig.from_env()
			self.client = client if client is not None else AsyncMongoClient(self.config.url)
		except (SetupError, PyMongoError, ValueError, TypeError) as e:
			self.setup_error = e
			log.logger.error(f"Error initializing MongoDB: {e}")

	@property
	def db_name(self) -> str | None:
		return self.config.database if self.config else None

	def collection(self, name: str, exclude_fields: list[str] | None = None) -> CollectionQuery:
		""" Returns a new query bound to the collection. exclude_fields are left out of get() results unless select() is used. """
		return CollectionQuery(
			name,
			self.db_name,
			self.client,
			database=self.database,
			exclude_fields=exclude_fields,
			setup_error=self.setup_error
		)

	async def connect(self) -> AsyncDatabase:
		""" Connects the shared client and caches the database handle. Idempotent. """
		if self.database is None:
			if self.client is None:
				raise SetupError(f"MongoDB client is not initialized: {self.setup_error}", cause=self.setup_error)
			try:
				await self.client.aconnect()
				self.database = self.client[self.db_name]
			except PyMongoError as e:
				log.logger.error(f"Error connecting to MongoDB database '{self.db_name}': {e}")
				raise StoreOperationError("connect", f"Error connecting to the database: {e}") from e
			log.logger.debug(f"Connected to MongoDB database '{self.db_name}'")
		return self.database

	async def close(self) -> None:
		""" Closes the shared client. Queries created from this handle can't be used afterwards. """
		if self.client is not None:
			await self.client.close()
		self.database = None


# Module-level cache for the store handle
_mongo_db: MongoDB | None = None

def create_mongo_db() -> MongoDB:
	""" Returns the process-wide store handle, creating it on the first call. Settings are not re-read afterwards. """
	global _mongo_db
	if _mongo_db is not None:
		return _mongo_db

	_mongo_db = MongoDB()
	return _mongo_db

def reset_mongo_db() -> None:
	""" Forget the cached store handle. The next create_mongo_db() call builds a new one. Does not close the old client. """
	global _mongo_db
	_mongo_db = None
