import re
from typing import Any, Callable, Mapping

from neo4j import Session

from tools.cypher import (
    build_where_clause,
    escape_identifier,
    format_labels,
    parse_json_parameter,
    run_cypher_query,
)
from tools.errors import Neo4jOperationError

WRITE_KEYWORDS = ("CREATE", "MERGE", "SET", "DELETE", "REMOVE")
RELATIONSHIP_TYPE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
DEFAULT_MATCH_LIMIT = 50

Operation = Callable[[Session, Mapping[str, Any]], list[dict]]


def _flag(parameters: Mapping[str, Any], name: str, default: bool) -> bool:
    value = parameters.get(name)
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def is_write_query(query: str, transaction_type: str = "auto") -> bool:
    if transaction_type == "write":
        return True
    if transaction_type == "read":
        return False
    upper_query = query.upper()
    return any(keyword in upper_query for keyword in WRITE_KEYWORDS)


def execute_query(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    query = (parameters.get("query") or "").strip()
    if not query:
        raise Neo4jOperationError("Cypher Query cannot be empty.", operation="executeQuery")
    transaction_type = parameters.get("transactionType") or "auto"
    return run_cypher_query(session, query, {}, is_write_query(query, transaction_type))


def create_node(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    labels = format_labels(parameters.get("labels"))
    if not labels:
        raise Neo4jOperationError("No valid labels provided.", operation="createNode")
    properties = parse_json_parameter(parameters.get("properties"), "properties")

    query = f"CREATE (n{labels} $props)"
    if _flag(parameters, "returnData", True):
        query += " RETURN elementId(n) AS elementId, properties(n) AS properties"
    return run_cypher_query(session, query, {"props": properties}, True)


def match_nodes(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    labels = format_labels(parameters.get("labels"))
    match_properties = parse_json_parameter(parameters.get("matchProperties"), "matchProperties")
    limit = parameters.get("limit")
    try:
        limit = int(limit) if limit not in (None, "") else DEFAULT_MATCH_LIMIT
    except (TypeError, ValueError):
        raise Neo4jOperationError("Return Limit must be a number.", operation="matchNodes")
    if limit < 1:
        raise Neo4jOperationError("Return Limit must be at least 1.", operation="matchNodes")

    query = f"MATCH (n{labels})"
    where_clause, query_params = build_where_clause(match_properties, "n", "match_")
    if where_clause:
        query += f" {where_clause}"

    return_property = (parameters.get("returnProperty") or "").strip()
    if return_property:
        query += f" RETURN elementId(n) AS elementId, n.{escape_identifier(return_property)} AS {escape_identifier(return_property)}"
    else:
        query += " RETURN elementId(n) AS elementId, labels(n) AS labels, properties(n) AS properties"
    query += " LIMIT $limit"
    query_params["limit"] = limit
    return run_cypher_query(session, query, query_params, False)


def update_node(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    match_properties = parse_json_parameter(parameters.get("matchProperties"), "matchProperties")
    if not match_properties:
        raise Neo4jOperationError(
            "Match Properties cannot be empty for update operation to prevent accidental mass updates.",
            operation="updateNode",
        )
    update_properties = parse_json_parameter(parameters.get("updateProperties"), "updateProperties")
    if not update_properties:
        raise Neo4jOperationError("Update Properties cannot be empty.", operation="updateNode")

    labels = format_labels(parameters.get("matchLabels"))
    where_clause, query_params = build_where_clause(match_properties, "n", "match_")
    set_operator = "=" if parameters.get("updateMode") == "set" else "+="

    query = f"MATCH (n{labels}) {where_clause} SET n {set_operator} $updateProps"
    query_params["updateProps"] = update_properties
    if _flag(parameters, "returnData", True):
        query += " RETURN elementId(n) AS elementId, labels(n) AS labels, properties(n) AS properties"
    return run_cypher_query(session, query, query_params, True)


def delete_node(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    match_properties = parse_json_parameter(parameters.get("matchProperties"), "matchProperties")
    if not match_properties:
        raise Neo4jOperationError(
            "Match Properties cannot be empty for delete operation to prevent accidental mass deletes.",
            operation="deleteNode",
        )

    labels = format_labels(parameters.get("matchLabels"))
    where_clause, query_params = build_where_clause(match_properties, "n", "match_")
    delete_prefix = "DETACH " if _flag(parameters, "detach", True) else ""

    query = f"MATCH (n{labels}) {where_clause} {delete_prefix}DELETE n"
    if _flag(parameters, "returnCount", False):
        query += " RETURN count(n) AS deletedCount"
    return run_cypher_query(session, query, query_params, True)


def create_relationship(session: Session, parameters: Mapping[str, Any]) -> list[dict]:
    relationship_type = (parameters.get("relationshipType") or "").strip()
    if not relationship_type:
        raise Neo4jOperationError("Relationship Type cannot be empty.", operation="createRelationship")
    if not RELATIONSHIP_TYPE.match(relationship_type):
        raise Neo4jOperationError(
            f'Invalid Relationship Type: "{relationship_type}". Use only letters, numbers, '
            "and underscores, starting with a letter or underscore.",
            operation="createRelationship",
        )

    start_properties = parse_json_parameter(parameters.get("startNodeMatchProperties"), "startNodeMatchProperties")
    end_properties = parse_json_parameter(parameters.get("endNodeMatchProperties"), "endNodeMatchProperties")
    if not start_properties or not end_properties:
        raise Neo4jOperationError(
            "Start Node and End Node Match Properties cannot be empty.", operation="createRelationship"
        )
    relationship_properties = parse_json_parameter(parameters.get("properties"), "properties")

    start_labels = format_labels(parameters.get("startNodeLabel"))
    end_labels = format_labels(parameters.get("endNodeLabel"))
    start_where, start_params = build_where_clause(start_properties, "a", "start_")
    end_where, end_params = build_where_clause(end_properties, "b", "end_")

    # both clauses start with "WHERE "
    query = (
        f"MATCH (a{start_labels}), (b{end_labels}) "
        f"WHERE {start_where[6:]} AND {end_where[6:]} "
        f"CREATE (a)-[r:{escape_identifier(relationship_type)} $relProps]->(b)"
    )
    if _flag(parameters, "returnData", True):
        query += " RETURN elementId(r) AS elementId, type(r) AS type, properties(r) AS properties"
    query_params = {**start_params, **end_params, "relProps": relationship_properties}
    return run_cypher_query(session, query, query_params, True)


OPERATIONS: dict[str, Operation] = {
    "executeQuery": execute_query,
    "createNode": create_node,
    "matchNodes": match_nodes,
    "updateNode": update_node,
    "deleteNode": delete_node,
    "createRelationship": create_relationship,
}
