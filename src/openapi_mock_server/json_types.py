"""Typing aliases for JSON documents, generated payloads and stored items."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Union

type JSONPrimitive = Union[str, int, float, bool, None]
type JSONValue = Union[JSONPrimitive, list[JSONValue], Mapping[str, JSONValue]]
type JSONArray = list[JSONValue]
type JSONObject = Mapping[str, JSONValue]
# Generated objects and store items are built in place before being returned.
type MutableJSONObject = dict[str, JSONValue]
