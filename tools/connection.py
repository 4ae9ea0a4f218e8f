from dataclasses import dataclass
from typing import Any, Mapping, Optional

from neo4j import Driver, GraphDatabase

from tools.errors import CredentialsMissingError

DEFAULT_DATABASE = "neo4j"

# seconds
LOAD_OPTIONS_TIMEOUT = 3.0
CREDENTIAL_TEST_TIMEOUT = 5.0

REQUIRED_FIELDS = ("host", "port", "username", "password")


@dataclass(frozen=True)
class Neo4jCredentials:
    host: str
    port: str
    username: str
    password: str
    database: str = DEFAULT_DATABASE

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Neo4jCredentials":
        """
        Build credentials from the host's credential store entry.

        Raises CredentialsMissingError when the entry is empty or a required
        field is blank.
        """
        if not data:
            raise CredentialsMissingError([])

        missing = [field for field in REQUIRED_FIELDS if not str(data.get(field) or "").strip()]
        if missing:
            raise CredentialsMissingError(missing)

        return cls(
            host=str(data["host"]).strip(),
            port=str(data["port"]).strip(),
            username=str(data["username"]),
            password=str(data["password"]),
            database=str(data.get("database") or "").strip() or DEFAULT_DATABASE,
        )

    @property
    def uri(self) -> str:
        host = self.host if "://" in self.host else f"bolt://{self.host}"
        return f"{host}:{self.port}"


def open_driver(credentials: Neo4jCredentials, connection_timeout: Optional[float] = None) -> Driver:
    config = {}
    if connection_timeout is not None:
        config["connection_timeout"] = connection_timeout
    return GraphDatabase.driver(
        credentials.uri,
        auth=(credentials.username, credentials.password),
        **config,
    )
