import os
from dataclasses import dataclass

from ..utilities.setup_error import SetupError


@dataclass(frozen=True, repr=False)
class MongoConfig:
	""" Connection settings for the store handle. Read once, when the handle is constructed. """
	database: str
	host: str
	port: int
	user: str
	password: str
	auth_source: str = "admin"
	scheme: str = "mongodb"

	@property
	def url(self) -> str:
		""" NOTE: Credentials are not escaped. Pre-encode them (urllib.parse.quote_plus) if they contain reserved characters. """
		return f"{self.scheme}://{self.user}:{self.password}@{self.host}:{self.port}?authSource={self.auth_source}"

	@classmethod
	def from_env(cls) -> 'MongoConfig':
		MONGODB_DATABASE = _require_env("MONGODB_DATABASE")
		MONGODB_HOST = _require_env("MONGODB_HOST")
		MONGODB_PORT = _require_env("MONGODB_PORT")
		MONGODB_USER = _require_env("MONGODB_USER")
		MONGODB_PASSWORD = _require_env("MONGODB_PASSWORD")

		try:
			port = int(MONGODB_PORT)
		except ValueError:
			raise SetupError(f"MONGODB_PORT must be an integer, got {MONGODB_PORT!r}.") from None

		return cls(
			database=MONGODB_DATABASE,
			host=MONGODB_HOST,
			port=port,
			user=MONGODB_USER,
			password=MONGODB_PASSWORD
		)

	def __repr__(self) -> str:
		# Keep the password out of logs
		return f"MongoConfig(database={self.database!r}, host={self.host!r}, port={self.port}, user={self.user!r}, auth_source={self.auth_source!r})"


def _require_env(name: str) -> str:
	value = os.environ.get(name)
	if not value: raise SetupError(f"Please set {name} in your environment variables.")
	return value
