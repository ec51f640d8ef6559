"""Tests for document loading and Swagger 2.0 conversion."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from openapi_mock_server.loader import (
    OpenAPILoadError,
    ensure_supported_version,
    load_openapi_document,
    parse_document_text,
    prepare_document,
    upgrade_swagger2,
)
from .fixture_helpers import fixture_dir, iter_fixture_paths, parametrize_fixtures


@parametrize_fixtures()
def test_every_fixture_loads_as_openapi3(fixture_path: Path) -> None:
    """Every bundled fixture should load as an OpenAPI 3.x document."""
    document = load_openapi_document(fixture_path)

    assert document["openapi"].startswith("3."), fixture_path
    assert isinstance(document["paths"], dict)


def test_fixture_directory_is_populated() -> None:
    """The fixture directory should contain the sample documents."""
    assert fixture_dir().is_dir()
    assert len(iter_fixture_paths()) >= 3


def test_json_documents_are_parsed_as_json(tmp_path: Path) -> None:
    """``.json`` files should be read with the JSON parser."""
    path = tmp_path / "api.json"
    path.write_text(
        json.dumps({"openapi": "3.0.0", "info": {"title": "J", "version": "1"}, "paths": {}}),
        encoding="utf-8",
    )

    assert load_openapi_document(path)["info"]["title"] == "J"


def test_missing_file_raises_load_error(tmp_path: Path) -> None:
    """Unreadable files should raise a load error naming the path."""
    with pytest.raises(OpenAPILoadError, match="Failed to read"):
        load_openapi_document(tmp_path / "absent.yaml")


def test_invalid_yaml_raises_load_error() -> None:
    """Malformed YAML should be reported as a load error."""
    with pytest.raises(OpenAPILoadError, match="Failed to parse YAML"):
        parse_document_text("openapi: [3.0", source="broken.yaml")


def test_non_mapping_document_is_rejected() -> None:
    """Top-level lists and scalars are not OpenAPI documents."""
    with pytest.raises(OpenAPILoadError, match="mapping"):
        parse_document_text("- a\n- b\n", source="list.yaml")


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ({"info": {"title": "t", "version": "1"}, "paths": {}}, "Missing 'openapi'"),
        ({"openapi": "3.0.0", "paths": {}}, "info"),
        ({"openapi": "3.0.0", "info": {"version": "1"}, "paths": {}}, "info.title"),
        ({"openapi": "3.0.0", "info": {"title": "t", "version": "1"}}, "paths"),
    ],
)
def test_prepare_document_checks_required_fields(document: dict[str, object], message: str) -> None:
    """Documents missing fields the server depends on should be rejected."""
    with pytest.raises(OpenAPILoadError, match=message):
        prepare_document(document)


@pytest.mark.parametrize("version", ["2.0", "4.0.0", "abc"])
def test_unsupported_versions_are_rejected(version: str) -> None:
    """Only OpenAPI 3.x is accepted."""
    with pytest.raises(OpenAPILoadError):
        ensure_supported_version(version)


def test_swagger2_upgrade_converts_bodies_and_refs() -> None:
    """Body parameters, responses and definitions should move to their 3.0 homes."""
    document = load_openapi_document(fixture_dir() / "petstore_swagger2.yaml")

    assert document["openapi"] == "3.0.3"
    assert document["servers"] == [{"url": "https://petstore.example.com/v1"}]
    assert "Pet" in document["components"]["schemas"]

    create = document["paths"]["/pets"]["post"]
    body_schema = create["requestBody"]["content"]["application/json"]["schema"]
    assert body_schema == {"$ref": "#/components/schemas/Pet"}
    assert "parameters" not in create

    listing = document["paths"]["/pets"]["get"]
    assert listing["parameters"][0]["schema"] == {"type": "integer", "format": "int32"}
    items = listing["responses"]["200"]["content"]["application/json"]["schema"]["items"]
    assert items == {"$ref": "#/components/schemas/Pet"}


def test_swagger2_form_parameters_become_form_body() -> None:
    """``formData`` parameters should be gathered into a form request body."""
    upgraded = upgrade_swagger2(
        {
            "swagger": "2.0",
            "info": {"title": "t", "version": "1"},
            "paths": {
                "/upload": {
                    "post": {
                        "parameters": [
                            {"name": "file", "in": "formData", "type": "file", "required": True},
                            {"name": "note", "in": "formData", "type": "string"},
                        ],
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            },
        }
    )

    body = upgraded["paths"]["/upload"]["post"]["requestBody"]
    schema = body["content"]["application/x-www-form-urlencoded"]["schema"]
    assert schema["properties"]["file"] == {"type": "string", "format": "binary"}
    assert schema["required"] == ["file"]
    assert upgraded["servers"] == [{"url": "/"}]


@pytest.mark.parametrize(
    "text",
    [
        '{"openapi": "3.0.0", "info": {"title": "X", "version": "1"}, "paths": {}}',
        "openapi: 3.0.0\ninfo:\n  title: X\n  version: '1'\npaths: {}\n",
    ],
)
def test_extensionless_documents_accept_json_or_yaml(text: str) -> None:
    """Sources without a known suffix should parse as JSON or YAML."""
    assert parse_document_text(text, source="openapi")["info"]["title"] == "X"
