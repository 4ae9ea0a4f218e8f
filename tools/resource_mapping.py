import logging
from dataclasses import dataclass
from typing import Any, Mapping

from dify_plugin.config.logger_format import plugin_logger_handler

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)


@dataclass(frozen=True)
class FieldDescriptor:
    id: str
    display_name: str
    type: str
    required: bool
    display: bool = True
    default_match: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "type": self.type,
            "required": self.required,
            "display": self.display,
            "defaultMatch": self.default_match,
        }


_FIELDS: dict[str, tuple[FieldDescriptor, ...]] = {
    "executeQuery": (
        FieldDescriptor("query", "Cypher Query", "string", True),
    ),
    "createNode": (
        FieldDescriptor("labels", "Labels", "string", True),
        FieldDescriptor("properties", "Properties", "object", True),
    ),
    "matchNodes": (
        FieldDescriptor("labels", "Labels", "string", True),
        FieldDescriptor("matchProperties", "Match Properties", "object", False),
        FieldDescriptor("returnProperty", "Return Property", "string", False),
    ),
    "updateNode": (
        FieldDescriptor("matchLabels", "Match Labels", "string", True),
        FieldDescriptor("matchProperties", "Match Properties", "object", True),
        FieldDescriptor("updateProperties", "Update Properties", "object", True),
    ),
    "deleteNode": (
        FieldDescriptor("matchLabels", "Match Labels", "string", True),
        FieldDescriptor("matchProperties", "Match Properties", "object", True),
        FieldDescriptor("detach", "Detach Relationships", "boolean", False),
    ),
    "createRelationship": (
        FieldDescriptor("startNodeLabel", "Start Node Label", "string", True),
        FieldDescriptor("startNodeMatchProperties", "Start Node Match Properties", "object", True),
        FieldDescriptor("endNodeLabel", "End Node Label", "string", True),
        FieldDescriptor("endNodeMatchProperties", "End Node Match Properties", "object", True),
        FieldDescriptor("relationshipType", "Relationship Type", "string", True),
        FieldDescriptor("properties", "Relationship Properties", "object", False),
    ),
}


def resource_mapping(operation: str) -> list[FieldDescriptor]:
    """
    Describe the input fields an operation expects when the node is called
    as a tool by an agent.

    Unknown operations get an empty list; this never raises.
    """
    fields = _FIELDS.get(operation)
    if fields is None:
        logger.warning("Resource mapping not defined for operation: %s", operation)
        return []
    return list(fields)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_required_fields(operation: str, parameters: Mapping[str, Any]) -> list[str]:
    return [
        field.id
        for field in resource_mapping(operation)
        if field.required and _is_blank(parameters.get(field.id))
    ]
