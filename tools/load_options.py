import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from dify_plugin.config.logger_format import plugin_logger_handler
from neo4j import READ_ACCESS, Session
from neo4j.exceptions import Neo4jError

from tools.connection import LOAD_OPTIONS_TIMEOUT, Neo4jCredentials, open_driver
from tools.errors import CredentialsMissingError, error_text

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)

ERROR_VALUE = "__ERROR__"
CREDENTIALS_ERROR_VALUE = "__ERROR_CREDENTIALS__"


@dataclass(frozen=True)
class OptionRecord:
    name: str
    value: str


def error_option(error: Exception) -> OptionRecord:
    if isinstance(error, Neo4jError):
        first_line = error_text(error).split("\n")[0]
        name = f"Neo4j Error: {first_line}"
    else:
        name = f"Error: {error_text(error)}"
    return OptionRecord(name=name, value=ERROR_VALUE)


def safe_neo4j_operation(
    credentials: Optional[Mapping[str, Any]],
    operation: Callable[[Session], list[OptionRecord]],
) -> list[OptionRecord]:
    """
    Run a read-only option query against the configured database.

    Dropdowns must keep working when the database is unreachable, so every
    failure is returned as a single error option instead of being raised.
    The session and driver opened here are closed before returning.
    """
    try:
        parsed = Neo4jCredentials.from_mapping(credentials)
    except CredentialsMissingError:
        return [OptionRecord(name="Error: Credentials not found", value=CREDENTIALS_ERROR_VALUE)]

    driver = None
    try:
        driver = open_driver(parsed, connection_timeout=LOAD_OPTIONS_TIMEOUT)
        driver.verify_connectivity()
        with driver.session(database=parsed.database, default_access_mode=READ_ACCESS) as session:
            return operation(session)
    except Exception as e:
        logger.error("Error during Neo4j load options: %s", error_text(e))
        return [error_option(e)]
    finally:
        if driver is not None:
            driver.close()


def _single_column_options(session: Session, query: str, column: str) -> list[OptionRecord]:
    result = session.run(query)
    return [OptionRecord(name=record[column], value=record[column]) for record in result]


def get_node_labels(credentials: Optional[Mapping[str, Any]]) -> list[OptionRecord]:
    return safe_neo4j_operation(
        credentials,
        lambda session: _single_column_options(
            session, "CALL db.labels() YIELD label RETURN label ORDER BY label", "label"
        ),
    )


def get_relationship_types(credentials: Optional[Mapping[str, Any]]) -> list[OptionRecord]:
    return safe_neo4j_operation(
        credentials,
        lambda session: _single_column_options(
            session,
            "CALL db.relationshipTypes() YIELD relationshipType RETURN relationshipType ORDER BY relationshipType",
            "relationshipType",
        ),
    )


def get_property_keys(credentials: Optional[Mapping[str, Any]]) -> list[OptionRecord]:
    # Lists every key in the database, not only those used by selected labels.
    return safe_neo4j_operation(
        credentials,
        lambda session: _single_column_options(
            session,
            "CALL db.propertyKeys() YIELD propertyKey RETURN propertyKey ORDER BY propertyKey",
            "propertyKey",
        ),
    )


LOAD_OPTIONS: dict[str, Callable[[Optional[Mapping[str, Any]]], list[OptionRecord]]] = {
    "getNodeLabels": get_node_labels,
    "getRelationshipTypes": get_relationship_types,
    "getPropertyKeys": get_property_keys,
}
