import json
from typing import Any, Generator

from dify_plugin import Tool
from dify_plugin.entities import I18nObject, ParameterOption
from dify_plugin.entities.tool import ToolInvokeMessage

from tools.errors import Neo4jOperationError
from tools.load_options import LOAD_OPTIONS
from tools.resource_mapping import missing_required_fields, resource_mapping
from tools.router import run_operation

DEFAULT_OPERATION = "executeQuery"

# dynamic-select parameter -> load options method
PARAMETER_OPTIONS = {
    "labels": "getNodeLabels",
    "matchLabels": "getNodeLabels",
    "startNodeLabel": "getNodeLabels",
    "endNodeLabel": "getNodeLabels",
    "relationshipType": "getRelationshipTypes",
    "returnProperty": "getPropertyKeys",
}


class Neo4jTool(Tool):
    def _invoke(
        self, tool_parameters: dict[str, Any]
    ) -> Generator[ToolInvokeMessage, None, None]:
        """
        Runs one graph operation (create, match, update, delete, relate or a raw query).
        """
        operation = tool_parameters.get("operation") or DEFAULT_OPERATION

        missing = missing_required_fields(operation, tool_parameters)
        if missing:
            raise Neo4jOperationError(
                f"Missing required parameters for `{operation}`: {', '.join(missing)}",
                operation=operation,
            )

        records = run_operation(self.runtime.credentials, operation, tool_parameters)
        response_data = {"results": records} if records else {"message": "No results found"}

        yield self.create_text_message(
            f"Operation `{operation}` executed\nResults: {json.dumps(response_data, indent=4, default=str)}"
        )
        yield self.create_json_message(response_data)

    def _fetch_parameter_options(self, parameter: str) -> list[ParameterOption]:
        """
        Populates the label, relationship type and property key pickers.
        """
        method = PARAMETER_OPTIONS.get(parameter)
        if method is None:
            raise ValueError(f"No options available for parameter: {parameter}")

        options = LOAD_OPTIONS[method](self.runtime.credentials)
        return [
            ParameterOption(value=option.value, label=I18nObject(en_US=option.name))
            for option in options
        ]

    def resource_mapping(self, operation: str) -> dict[str, Any]:
        """
        Field descriptors an agent needs for ``operation``, in the host's
        resource-mapping shape. Dify has no hook that calls this; it completes
        the method table next to ``_invoke`` and ``_fetch_parameter_options``.
        """
        return {"fields": [field.to_dict() for field in resource_mapping(operation)]}
