from typing import Any

from dify_plugin import ToolProvider
from dify_plugin.errors.tool import ToolProviderCredentialValidationError

from tools.credential_check import check_credentials


class Neo4jProvider(ToolProvider):
    def _validate_credentials(self, credentials: dict[str, Any]) -> None:
        """
        Validate Neo4j credentials by trying to connect.
        """
        result = check_credentials(credentials)
        if not result.ok:
            raise ToolProviderCredentialValidationError(result.message)
