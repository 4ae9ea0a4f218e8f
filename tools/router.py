import logging
from typing import Any, Mapping, Optional

from dify_plugin.config.logger_format import plugin_logger_handler

from tools.connection import Neo4jCredentials, open_driver
from tools.errors import Neo4jOperationError, parse_neo4j_error
from tools.operations import OPERATIONS

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)


def run_operation(
    credentials: Optional[Mapping[str, Any]], operation: str, parameters: Mapping[str, Any]
) -> list[dict]:
    """
    Open a connection, run one operation and close everything again.

    Failures are re-raised as Neo4jOperationError with a parsed message.
    """
    handler = OPERATIONS.get(operation)
    if handler is None:
        raise Neo4jOperationError(f'The operation "{operation}" is not supported!', operation=operation)
    parsed = Neo4jCredentials.from_mapping(credentials)

    driver = None
    try:
        driver = open_driver(parsed)
        driver.verify_connectivity()
        with driver.session(database=parsed.database) as session:
            return handler(session, parameters)
    except Neo4jOperationError as e:
        logger.error("Neo4j operation %s failed: %s", operation, e.description)
        raise
    except Exception as e:
        parsed_error = parse_neo4j_error(e, operation)
        logger.error("Neo4j operation %s failed: %s", operation, parsed_error.description)
        raise parsed_error from e
    finally:
        if driver is not None:
            driver.close()
