import logging
import re
from datetime import date, datetime, time
from typing import Any, Mapping, Union

import json_repair
from dify_plugin.config.logger_format import plugin_logger_handler
from neo4j import Record, Session
from neo4j.graph import Node, Path, Relationship
from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time

from tools.errors import Neo4jOperationError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)

ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?$")


def escape_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def format_labels(labels_raw: Union[str, list[str], None]) -> str:
    """
    Format labels for a node pattern, e.g. "Person, User" -> ":`Person`:`User`".
    """
    if not labels_raw:
        return ""
    labels = labels_raw if isinstance(labels_raw, list) else labels_raw.split(",")
    labels = [label.strip() for label in labels if label and label.strip()]
    if not labels:
        return ""
    return ":" + ":".join(escape_identifier(label) for label in labels)


def build_where_clause(properties: Mapping[str, Any], alias: str, prefix: str = "where_") -> tuple[str, dict]:
    """
    Build a WHERE clause that matches every given property.

    Strings match with CONTAINS, other values with equality.

    :return: The clause (including "WHERE") and its query parameters
    """
    conditions = []
    parameters = {}
    for index, (key, value) in enumerate(properties.items()):
        param_name = f"{prefix}{index}"
        parameters[param_name] = value
        property_ref = f"{escape_identifier(alias)}.{escape_identifier(key)}"
        if isinstance(value, str):
            conditions.append(f"{property_ref} CONTAINS ${param_name}")
        else:
            conditions.append(f"{property_ref} = ${param_name}")

    if not conditions:
        return "", {}
    return "WHERE " + " AND ".join(conditions), parameters


def parse_json_parameter(value: Any, name: str) -> dict:
    """
    Accept an object parameter either as a mapping or as JSON text.

    Agents often produce slightly broken JSON, so text goes through
    json_repair before being rejected.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        if not value.strip():
            return {}
        parsed = json_repair.loads(value)
        if isinstance(parsed, dict):
            return parsed
    raise Neo4jOperationError(f"Parameter JSON is invalid: `{name}` must be a JSON object.")


def _prepare_value(value: Any) -> Any:
    if isinstance(value, str) and ISO_DATETIME.match(value):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, Mapping):
        return {key: _prepare_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_prepare_value(item) for item in value]
    return value


def prepare_query_params(parameters: Mapping[str, Any]) -> dict:
    # ISO-8601 strings become datetimes so the driver stores them as temporal values
    return {key: _prepare_value(value) for key, value in parameters.items()}


def _properties(entity: Union[Node, Relationship]) -> dict:
    return {key: convert_value(value) for key, value in entity.items()}


def convert_value(value: Any) -> Any:
    """
    Convert a value returned by the driver into plain JSON-friendly data.
    """
    if value is None:
        return None
    if isinstance(value, Node):
        return {
            "elementId": value.element_id,
            "labels": sorted(value.labels),
            "properties": _properties(value),
        }
    if isinstance(value, Relationship):
        return {
            "elementId": value.element_id,
            "startNodeElementId": value.start_node.element_id if value.start_node is not None else None,
            "endNodeElementId": value.end_node.element_id if value.end_node is not None else None,
            "type": value.type,
            "properties": _properties(value),
        }
    if isinstance(value, Path):
        # segments follow walk order, which can run against a relationship's own direction
        return {
            "segments": [
                {
                    "start": convert_value(start),
                    "relationship": convert_value(rel),
                    "end": convert_value(end),
                }
                for start, rel, end in zip(value.nodes, value.relationships, value.nodes[1:])
            ],
            "length": len(value),
            "start": convert_value(value.start_node),
            "end": convert_value(value.end_node),
        }
    if isinstance(value, (Date, DateTime, Time, Duration)):
        return value.iso_format()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Point):
        point = {"srid": value.srid, "x": value[0], "y": value[1]}
        if len(value) > 2:
            point["z"] = value[2]
        return point
    if isinstance(value, (list, tuple)):
        return [convert_value(item) for item in value]
    if isinstance(value, Mapping):
        return {key: convert_value(item) for key, item in value.items()}
    return value


def record_to_dict(record: Union[Record, Mapping[str, Any]]) -> dict:
    return {key: convert_value(record[key]) for key in record.keys()}


def run_cypher_query(session: Session, query: str, parameters: Mapping[str, Any], is_write: bool) -> list[dict]:
    """
    Run a query in a managed read or write transaction and return the rows
    as plain dicts.
    """
    prepared = prepare_query_params(parameters)
    logger.debug("Running Cypher query: %s", query)
    logger.debug("With prepared parameters: %s", prepared)

    def work(tx):
        return list(tx.run(query, prepared))

    if is_write:
        records = session.execute_write(work)
    else:
        records = session.execute_read(work)
    return [record_to_dict(record) for record in records]
