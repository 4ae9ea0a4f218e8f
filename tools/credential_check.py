import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dify_plugin.config.logger_format import plugin_logger_handler

from tools.connection import CREDENTIAL_TEST_TIMEOUT, Neo4jCredentials, open_driver
from tools.errors import CredentialsMissingError, parse_neo4j_error

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)

STATUS_OK = "OK"
STATUS_ERROR = "Error"


@dataclass(frozen=True)
class CredentialTestResult:
    status: str
    message: str

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def check_credentials(credentials: Optional[Mapping[str, Any]]) -> CredentialTestResult:
    """
    Check that the entered credentials reach the target database.

    Never raises: every failure comes back as an ``Error`` result with a
    parsed message.
    """
    try:
        parsed = Neo4jCredentials.from_mapping(credentials)
    except CredentialsMissingError as e:
        return CredentialTestResult(STATUS_ERROR, e.message)

    driver = None
    try:
        driver = open_driver(parsed, connection_timeout=CREDENTIAL_TEST_TIMEOUT)
        driver.verify_connectivity()
        with driver.session(database=parsed.database) as session:
            session.run("RETURN 1").consume()
        return CredentialTestResult(STATUS_OK, "Connection tested successfully!")
    except Exception as e:
        parsed_error = parse_neo4j_error(e, "credentialTest")
        logger.warning("Neo4j credential test failed: %s", parsed_error.description)
        return CredentialTestResult(STATUS_ERROR, parsed_error.message)
    finally:
        if driver is not None:
            driver.close()
