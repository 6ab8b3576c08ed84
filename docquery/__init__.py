"""
docquery

A fluent query builder over MongoDB's async driver.

	db = create_mongo_db()
	users = await db.collection("users").where("age", ">=", 18).order_by("name").page(2, 20).get()

The package maintains one stateful store handle per process, available through `create_mongo_db()`.
"""

from .document.mongo_config import MongoConfig
from .document.mongo_db import MongoDB, create_mongo_db, reset_mongo_db
from .query.collection_query import CollectionQuery
from .query.comparison_operator import ComparisonOperator
from .query.query_descriptor import QueryDescriptor
from .utilities.logger import set_log_level, set_logger
from .utilities.query_error import InvalidArgument, InvalidOperator, MissingFilter, QueryError, StoreOperationError
from .utilities.setup_error import SetupError
