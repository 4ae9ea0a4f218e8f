from typing import Optional

from neo4j.exceptions import AuthError, Neo4jError


class Neo4jOperationError(Exception):
    """
    Error raised back to the host when a Neo4j operation fails.

    ``message`` is the short summary shown in the UI, ``description`` keeps
    the full driver text for the run log.
    """

    def __init__(self, message: str, description: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.description = description or message
        self.operation = operation


class CredentialsMissingError(Neo4jOperationError):
    def __init__(self, missing: list[str]):
        if missing:
            message = f"Missing required credential fields: {', '.join(missing)}"
        else:
            message = "Credentials data is missing."
        super().__init__(message)
        self.missing = missing


def error_text(error: Exception) -> str:
    # Neo4jError.__str__ wraps code and message, the bare message reads better
    if isinstance(error, Neo4jError):
        return getattr(error, "message", None) or str(error)
    return str(error)


def parse_neo4j_error(error: Exception, operation: Optional[str] = None) -> Neo4jOperationError:
    """
    Turn a driver or connection error into a Neo4jOperationError with a
    consistent, user-facing summary.

    :param error: The exception raised by the driver or by our own checks
    :param operation: Name of the operation that failed, kept for reporting
    """
    if isinstance(error, Neo4jOperationError):
        return error

    text = error_text(error)
    message = text.split("\n")[0] if text else "Neo4j Error"
    description = text or "An unknown error occurred"

    if isinstance(error, Neo4jError):
        code = getattr(error, "code", None) or ""
        if code.startswith("Neo.TransientError.Transaction."):
            message = "Transaction error (temporary)"
            description = f"Temporary transaction error, the operation can be retried. Details: {text}"
        elif code.startswith("Neo.TransientError.Cluster."):
            message = "Cluster synchronization error"
            description = f"Cluster synchronization error, try again later. Details: {text}"
        elif code.startswith("Neo.ClientError.Transaction."):
            message = "Transaction constraint error"
            description = f"Transaction constraint error, check data consistency. Details: {text}"
        elif (
            code == "Neo.ClientError.Security.Unauthorized"
            or isinstance(error, AuthError)
            or "authentication failure" in text.lower()
        ):
            message = "Authentication failed"
            description = "Please check your Neo4j credentials (host, port, username, password)."
        elif code == "Neo.ClientError.Security.Forbidden":
            message = "Permission denied"
            description = "The provided credentials do not have permission to perform this operation."
        elif code == "Neo.ClientError.Schema.ConstraintValidationFailed":
            message = "Constraint violation"
            description = f"A database constraint was violated. Details: {text}"
        elif code.startswith("Neo.ClientError.Statement."):
            message = "Cypher statement error"
    else:
        lowered = text.lower()
        if "refused" in lowered:
            message = "Connection refused"
            description = (
                "Could not connect to Neo4j using the provided credentials. "
                "Ensure Neo4j is running and the host and port are correct."
            )
        elif (
            "failed to dns resolve" in lowered
            or "name or service not known" in lowered
            or "nodename nor servname" in lowered
        ):
            message = "Host not found"
            description = "Could not resolve the Neo4j host. Check the host name."
        elif "timed out" in lowered:
            message = "Connection timed out"
            description = "Connection attempt to Neo4j timed out. Check network connectivity and firewall rules."

    return Neo4jOperationError(message, description, operation)
