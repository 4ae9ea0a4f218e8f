from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import yaml
from dify_plugin.errors.tool import ToolProviderCredentialValidationError
from neo4j.exceptions import ServiceUnavailable

from provider.neo4j import Neo4jProvider
from tools.errors import Neo4jOperationError
from tools.load_options import CREDENTIALS_ERROR_VALUE
from tools.neo4j import PARAMETER_OPTIONS, Neo4jTool


@pytest.fixture
def tool(credentials):
    return Neo4jTool(runtime=SimpleNamespace(credentials=credentials), session=MagicMock())


def test_invoke_yields_text_and_json(tool, fake_neo4j):
    fake_neo4j.rows = [{"name": "Ann"}]

    messages = list(tool._invoke({"operation": "executeQuery", "query": "MATCH (n) RETURN n.name AS name"}))

    assert len(messages) == 2
    assert "Operation `executeQuery` executed" in messages[0].message.text
    assert messages[1].message.json_object == {"results": [{"name": "Ann"}]}


def test_invoke_without_results(tool, fake_neo4j):
    messages = list(tool._invoke({"operation": "createNode", "labels": "Person", "properties": "{}", "returnData": False}))
    assert messages[1].message.json_object == {"message": "No results found"}


def test_invoke_defaults_to_execute_query(tool, fake_neo4j):
    list(tool._invoke({"query": "RETURN 1"}))
    assert fake_neo4j.last_query[0] == "RETURN 1"


def test_invoke_checks_required_fields_before_connecting(tool, fake_neo4j):
    with pytest.raises(Neo4jOperationError, match="startNodeLabel, endNodeLabel, relationshipType"):
        list(
            tool._invoke(
                {
                    "operation": "createRelationship",
                    "startNodeMatchProperties": '{"id": 1}',
                    "endNodeMatchProperties": '{"id": 2}',
                }
            )
        )
    assert fake_neo4j.drivers == []


def test_invoke_reports_parsed_errors(tool, fake_neo4j):
    fake_neo4j.connect_error = ServiceUnavailable("Couldn't connect (Connection refused)")
    with pytest.raises(Neo4jOperationError, match="Connection refused"):
        list(tool._invoke({"operation": "executeQuery", "query": "RETURN 1"}))


@pytest.mark.parametrize("parameter", ["labels", "matchLabels", "startNodeLabel", "endNodeLabel"])
def test_label_pickers(tool, fake_neo4j, parameter):
    fake_neo4j.rows = [{"label": "Movie"}, {"label": "Person"}]

    options = tool._fetch_parameter_options(parameter)

    assert [(option.value, option.label.en_US) for option in options] == [("Movie", "Movie"), ("Person", "Person")]
    assert "db.labels()" in fake_neo4j.last_query[0]


def test_relationship_type_and_property_pickers(tool, fake_neo4j):
    fake_neo4j.rows = [{"relationshipType": "KNOWS"}]
    assert [option.value for option in tool._fetch_parameter_options("relationshipType")] == ["KNOWS"]

    fake_neo4j.rows = [{"propertyKey": "email"}]
    assert [option.value for option in tool._fetch_parameter_options("returnProperty")] == ["email"]


def test_picker_shows_error_option(fake_neo4j):
    tool = Neo4jTool(runtime=SimpleNamespace(credentials={}), session=MagicMock())
    options = tool._fetch_parameter_options("labels")
    assert [option.value for option in options] == [CREDENTIALS_ERROR_VALUE]
    assert options[0].label.en_US == "Error: Credentials not found"


def test_picker_for_unknown_parameter(tool):
    with pytest.raises(ValueError):
        tool._fetch_parameter_options("query")


def test_resource_mapping(tool):
    mapping = tool.resource_mapping("createNode")
    assert [field["id"] for field in mapping["fields"]] == ["labels", "properties"]
    assert all(field["required"] for field in mapping["fields"])
    assert tool.resource_mapping("somethingElse") == {"fields": []}


def test_every_dynamic_select_has_a_loader():
    schema = yaml.safe_load((Path(__file__).parent.parent / "tools" / "neo4j.yaml").read_text())
    dynamic = {p["name"] for p in schema["parameters"] if p["type"] == "dynamic-select"}
    assert dynamic == set(PARAMETER_OPTIONS)


def test_provider_accepts_working_credentials(fake_neo4j, credentials):
    Neo4jProvider()._validate_credentials(credentials)
    assert fake_neo4j.last_driver.close_count == 1


def test_provider_rejects_failing_credentials(fake_neo4j, credentials):
    fake_neo4j.connect_error = ServiceUnavailable("Couldn't connect (Connection refused)")
    with pytest.raises(ToolProviderCredentialValidationError, match="Connection refused"):
        Neo4jProvider()._validate_credentials(credentials)


def test_provider_rejects_incomplete_credentials(fake_neo4j):
    with pytest.raises(ToolProviderCredentialValidationError, match="password"):
        Neo4jProvider()._validate_credentials({"host": "localhost", "port": "7687", "username": "neo4j"})
    assert fake_neo4j.drivers == []
