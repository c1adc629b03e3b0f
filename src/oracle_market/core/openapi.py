"""Minimal OpenAPI 3.0 and Swagger UI: /openapi.json and /docs."""
from __future__ import annotations

import dataclasses
import types
import typing
from typing import Any, Union

# (path, method) -> OpenAPI fragments (requestBody, parameters, tags)
RouteSchemas = dict[tuple[str, str], dict[str, Any]]

_JSON_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    bool: "boolean",
    float: "number",
    list: "array",
    dict: "object",
}


def _strip_optional(t: Any) -> tuple[Any, bool]:
    """Return (inner type, is_optional) for X | None / Optional[X]."""
    origin = typing.get_origin(t)
    if origin in (Union, types.UnionType):
        args = [a for a in typing.get_args(t) if a is not type(None)]
        return (args[0] if args else str), len(args) != len(typing.get_args(t))
    return t, False


def _json_type(t: Any) -> str:
    inner, _ = _strip_optional(t)
    return _JSON_TYPES.get(typing.get_origin(inner) or inner, "string")


def _field_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        return {f.name: f.type for f in dataclasses.fields(cls)}


def _is_required(f: dataclasses.Field) -> bool:
    return f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING


def schema_from_dataclass(cls: type) -> dict[str, Any]:
    """Build JSON schema from a command/query dataclass so Swagger shows required fields and types."""
    if not dataclasses.is_dataclass(cls):
        return {"type": "object"}
    hints = _field_hints(cls)
    props: dict[str, Any] = {}
    required: list[str] = []
    for f in dataclasses.fields(cls):
        if f.name.startswith("_"):
            continue
        prop: dict[str, Any] = {"type": _json_type(hints.get(f.name, str)), "description": f.name.replace("_", " ")}
        if prop["type"] == "array":
            item_args = typing.get_args(_strip_optional(hints.get(f.name, list))[0])
            prop["items"] = {"type": _json_type(item_args[0]) if item_args else "string"}
        props[f.name] = prop
        if _is_required(f):
            required.append(f.name)
    return {"type": "object", "properties": props, "required": required}


def parameters_from_dataclass(cls: type) -> list[dict[str, Any]]:
    """Build OpenAPI query parameters from a dataclass (for GET queries)."""
    if not dataclasses.is_dataclass(cls):
        return []
    hints = _field_hints(cls)
    return [
        {
            "name": f.name,
            "in": "query",
            "required": _is_required(f),
            "schema": {"type": _json_type(hints.get(f.name, str))},
        }
        for f in dataclasses.fields(cls)
        if not f.name.startswith("_")
    ]


def build_openapi_spec(
    routes: list[tuple[str, list[str]]],
    *,
    title: str = "API",
    version: str = "0.1.0",
    route_schemas: RouteSchemas | None = None,
) -> dict[str, Any]:
    """Build OpenAPI 3.0 spec from (path, methods) pairs and optional per-route fragments."""
    route_schemas = route_schemas or {}
    paths: dict[str, Any] = {}
    for path, methods in routes:
        for method in methods:
            method_lower = method.lower()
            op: dict[str, Any] = {
                "summary": f"{method} {path}",
                "responses": {
                    "200": {"description": "OK", "content": {"application/json": {"schema": {"type": "object"}}}},
                    "400": {"description": "Rejected by a market rule (error envelope)"},
                },
                "tags": ["default"],
            }
            fragment = route_schemas.get((path, method_lower), {})
            if "body" in fragment and method_lower == "post":
                op["requestBody"] = {
                    "required": True,
                    "content": {"application/json": {"schema": fragment["body"]}},
                }
            if "parameters" in fragment and method_lower == "get":
                op["parameters"] = fragment["parameters"]
            if "tags" in fragment:
                op["tags"] = fragment["tags"]
            paths.setdefault(path, {})[method_lower] = op
    return {
        "openapi": "3.0.0",
        "info": {"title": title, "version": version},
        "paths": paths,
    }


SWAGGER_UI_HTML = """<!DOCTYPE html>
<html>
<head>
  <link rel="stylesheet" type="text/css" href="https://unpkg.com/swagger-ui-dist@5/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    SwaggerUIBundle({
      url: "{openapi_path}",
      dom_id: "#swagger-ui",
    });
  </script>
</body>
</html>
"""
