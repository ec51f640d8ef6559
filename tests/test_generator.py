"""Property tests for schema-driven value generation."""

from __future__ import annotations

import re
from typing import Any, Optional

import pytest
from faker import Faker

from openapi_mock_server.generator import (
    MAX_OBJECT_DEPTH,
    GenerationSession,
    ValueGenerator,
    stable_seed,
)
from openapi_mock_server.resolver import Resolver
from openapi_mock_server.schema_model import SchemaNode, parse_schema
from .fixture_helpers import load_fixture

_TRIALS = 200
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def _generator(document: Optional[dict[str, Any]] = None, *, seed: Optional[int] = 1234) -> ValueGenerator:
    return ValueGenerator(Resolver(document or {"paths": {}}), seed=seed)


def _samples(raw_schema: dict[str, Any], trials: int = _TRIALS) -> list[Any]:
    generator = _generator()
    schema: SchemaNode = parse_schema(raw_schema)
    return [generator.generate(schema, generator.new_context()) for _ in range(trials)]


def _object_depth(value: Any) -> int:
    if isinstance(value, dict):
        return 1 + max((_object_depth(child) for child in value.values()), default=0)
    if isinstance(value, list):
        return max((_object_depth(child) for child in value), default=0)
    return 0


@pytest.mark.parametrize(
    ("min_length", "max_length"),
    [(1, 3), (5, 8), (12, 12), (30, 60)],
)
def test_string_length_stays_within_bounds(min_length: int, max_length: int) -> None:
    """Generated strings should honor ``minLength`` and ``maxLength``."""
    for value in _samples({"type": "string", "minLength": min_length, "maxLength": max_length}):
        assert isinstance(value, str), value
        assert min_length <= len(value) <= max_length, value


def test_format_value_that_violates_length_falls_back_to_text() -> None:
    """A format generator whose output is too long should not break ``maxLength``."""
    for value in _samples({"type": "string", "format": "email", "maxLength": 6}):
        assert 1 <= len(value) <= 6, value


def test_pattern_strings_still_honor_length_bounds() -> None:
    """Patterned strings fall back to plain text inside the declared bounds."""
    for value in _samples({"type": "string", "pattern": "^[A-Z]{3}$", "minLength": 3, "maxLength": 3}):
        assert len(value) == 3, value


@pytest.mark.parametrize(
    "raw_schema",
    [
        {"type": "integer", "minimum": -5, "maximum": 5},
        {"type": "integer", "minimum": 10, "maximum": 10},
        {"type": "number", "minimum": 0.5, "maximum": 2.25},
        {"type": "number", "minimum": 100},
    ],
)
def test_numbers_stay_within_bounds(raw_schema: dict[str, Any]) -> None:
    """Numbers should lie inside ``[minimum, maximum]`` and integers be whole."""
    minimum = raw_schema.get("minimum", 0)
    maximum = max(raw_schema.get("maximum", 1000), minimum)
    for value in _samples(raw_schema):
        assert minimum <= value <= maximum, value
        if raw_schema["type"] == "integer":
            assert isinstance(value, int) and not isinstance(value, bool), value


def test_enum_values_are_always_members() -> None:
    """Every generated value should come from the declared enum."""
    allowed = ["red", "green", 3]
    for value in _samples({"type": "string", "enum": allowed}):
        assert value in allowed, value


@pytest.mark.parametrize(
    ("raw_schema", "lower", "upper"),
    [
        ({"type": "array", "items": {"type": "integer"}}, 1, 5),
        ({"type": "array", "items": {"type": "integer"}, "minItems": 3, "maxItems": 4}, 3, 4),
        ({"type": "array", "items": {"type": "integer"}, "minItems": 0, "maxItems": 1000}, 0, 100),
    ],
)
def test_array_length_stays_within_bounds(raw_schema: dict[str, Any], lower: int, upper: int) -> None:
    """Array length should lie in ``[minItems or 1, min(maxItems or 5, 100)]``."""
    for value in _samples(raw_schema, trials=50):
        assert isinstance(value, list), value
        assert lower <= len(value) <= upper, len(value)


def test_example_is_returned_unchanged() -> None:
    """An example should win over every other constraint."""
    example = {"nested": [1, 2, {"deep": True}]}
    for value in _samples({"type": "string", "maxLength": 2, "enum": ["a"], "example": example}, trials=10):
        assert value == example


def test_example_is_copied_between_calls() -> None:
    """Mutating one generated example must not leak into the next."""
    generator = _generator()
    schema = parse_schema({"type": "array", "example": [1, 2]})

    first = generator.generate(schema, generator.new_context())
    first.append(3)

    assert generator.generate(schema, generator.new_context()) == [1, 2]


def test_required_and_optional_properties() -> None:
    """Required ids are always present; optional members appear most of the time."""
    samples = _samples(
        {
            "type": "object",
            "properties": {
                "id": {"type": "string", "format": "uuid"},
                "role": {"type": "string", "enum": ["admin", "user", "guest"]},
            },
            "required": ["id"],
        },
        trials=500,
    )

    role_count = 0
    for value in samples:
        assert _UUID_RE.match(value["id"]), value
        if "role" in value:
            role_count += 1
            assert value["role"] in ("admin", "user", "guest"), value

    assert 0.65 < role_count / len(samples) < 0.95, role_count


def test_nullable_values_are_sometimes_null() -> None:
    """Nullable schemas should occasionally produce ``None``."""
    samples = _samples({"type": "integer", "nullable": True}, trials=500)

    assert None in samples
    assert any(isinstance(value, int) for value in samples)


def test_all_of_merges_member_objects() -> None:
    """``allOf`` members should be merged into one object."""
    samples = _samples(
        {
            "allOf": [
                {"type": "object", "required": ["a"], "properties": {"a": {"type": "integer"}}},
                {"type": "object", "required": ["b"], "properties": {"b": {"type": "boolean"}}},
            ]
        },
        trials=20,
    )
    for value in samples:
        assert set(value) == {"a", "b"}, value


def test_one_of_picks_a_member() -> None:
    """``oneOf`` should produce a value of one of its member types."""
    for value in _samples({"oneOf": [{"type": "string", "enum": ["x"]}, {"type": "boolean"}]}, trials=50):
        assert value == "x" or isinstance(value, bool), value


def test_property_name_heuristics_apply_to_plain_strings() -> None:
    """Well-known property names should produce realistic values."""
    samples = _samples(
        {
            "type": "object",
            "required": ["email", "status"],
            "properties": {"email": {"type": "string"}, "status": {"type": "string"}},
        },
        trials=20,
    )
    for value in samples:
        assert value["email"].endswith("@example.com"), value
        assert value["status"] in ("active", "inactive", "pending"), value


def test_untyped_schema_with_properties_is_an_object() -> None:
    """A schema with properties but no type should still produce an object."""
    for value in _samples({"properties": {"n": {"type": "integer"}}, "required": ["n"]}, trials=10):
        assert isinstance(value, dict) and isinstance(value["n"], int), value


def test_self_referencing_schema_terminates() -> None:
    """Cyclic schemas should produce finite output bounded by the object depth limit."""
    document = load_fixture("cyclic_tree.yaml")
    generator = ValueGenerator(Resolver(document), seed=99)
    schema = generator.resolver.resolve_ref("#/components/schemas/Node")

    value = generator.generate(schema, generator.new_context())

    assert isinstance(value, dict)
    assert "label" in value
    assert _object_depth(value) <= MAX_OBJECT_DEPTH + 2


def test_deterministic_generators_replay_the_same_sequence() -> None:
    """Two generators with the same seed should emit identical values in order."""
    raw_schema = {
        "type": "object",
        "required": ["name", "count", "tags"],
        "properties": {
            "name": {"type": "string"},
            "count": {"type": "integer"},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
    }
    schema = parse_schema(raw_schema)
    first = _generator(seed=42)
    second = _generator(seed=42)

    first_values = [first.generate(schema, first.new_context()) for _ in range(5)]
    second_values = [second.generate(schema, second.new_context()) for _ in range(5)]

    assert first_values == second_values
    assert first_values[0] != first_values[1]


def test_stable_key_replays_across_calls() -> None:
    """Contexts opened with the same stable key should repeat their output."""
    generator = _generator(seed=None)
    schema = parse_schema({"type": "array", "items": {"type": "integer"}})

    first = generator.generate(schema, generator.new_context(stable_key="/things:get"))
    second = generator.generate(schema, generator.new_context(stable_key="/things:get"))

    assert first == second


def test_stable_seed_is_process_independent() -> None:
    """Seeds derived from text keys should be fixed values."""
    assert stable_seed("/users:get") == stable_seed("/users:get")
    assert stable_seed("/users:get") != stable_seed("/users:post")


def test_session_ids_are_uuid4() -> None:
    """Session ids should look like version 4 UUIDs."""
    session = GenerationSession(3)

    assert _UUID_RE.match(session.new_id())


def test_sessions_from_one_generator_share_a_faker() -> None:
    """Opening a session should not build a new ``Faker`` instance."""
    generator = _generator()

    first = generator.new_context().session
    second = generator.new_context().session

    assert first.fake is second.fake
    assert first.random is not second.random


def test_interleaved_sessions_keep_their_own_streams() -> None:
    """Sessions sharing a ``Faker`` should each replay their own seed."""
    shared = Faker("en_US")
    first = GenerationSession(1, fake=shared)
    second = GenerationSession(2, fake=shared)

    interleaved = [(first.fake.word(), second.fake.word()) for _ in range(5)]

    first_alone = GenerationSession(1)
    second_alone = GenerationSession(2)
    assert [pair[0] for pair in interleaved] == [first_alone.fake.word() for _ in range(5)]
    assert [pair[1] for pair in interleaved] == [second_alone.fake.word() for _ in range(5)]
