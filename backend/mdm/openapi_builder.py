"""Deterministic OpenAPI spec builder.

Scope:
- Auth endpoints: /iam/auth/login (POST), /iam/auth/me (GET)
- For each registered entity: list + single GET with caching headers, and
  the write operations the entity supports
- Screen-specific endpoints from EXTRA_PATHS

This is the canonical builder module; `mdm/openapi.py` re-exports from here.
"""
from typing import Any, Dict
from .openapi_parts.constants import ENTITIES
from .openapi_parts.helpers import entity_schema
from .openapi_parts.domains import build_entity_paths, build_extra_paths

__all__ = ["build_openapi_spec"]


def build_openapi_spec() -> Dict[str, Any]:
    schemas = {e[0]: entity_schema(e[0]) for e in ENTITIES}

    components: Dict[str, Any] = {
        "schemas": schemas
        | {
            "Page": {
                "type": "object",
                "properties": {
                    "items": {"type": "array", "items": {}},
                    "page": {"type": "integer"},
                    "limit": {"type": "integer"},
                    "total": {"type": "integer"},
                    "totalPages": {"type": "integer"},
                    "hasNext": {"type": "boolean"},
                    "hasPrevious": {"type": "boolean"},
                },
                "required": ["items", "page", "limit", "total", "totalPages"],
            },
            "Error": {
                "type": "object",
                "properties": {
                    "error": {
                        "type": "object",
                        "properties": {
                            "status": {"type": "integer"},
                            "title": {"type": "string"},
                            "detail": {"type": "string"},
                        },
                    }
                },
                "required": ["error"],
            },
        },
        "responses": {
            "NotFound": {"description": "Not Found"},
            "BadRequest": {"description": "Bad Request"},
            "Conflict": {"description": "Conflict"},
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "PageParam": {"name": "page", "in": "query", "schema": {"type": "integer", "default": 1, "minimum": 1}},
            "LimitParam": {"name": "limit", "in": "query",
                           "schema": {"type": "integer", "default": 20, "minimum": 1, "maximum": 100}},
        },
    }

    paths: Dict[str, Any] = {
        "/iam/auth/login": {"post": {"summary": "Login", "responses": {"200": {"description": "JWT issued"}}}},
        "/iam/auth/me": {"get": {"summary": "Current user", "responses": {"200": {"description": "OK"}}}},
    }

    for schema_name, coll, id_param, id_type, service in ENTITIES:
        for k, v in build_entity_paths(schema_name, coll, id_param, id_type, service).items():
            paths.setdefault(k, {}).update(v)
    for k, v in build_extra_paths().items():
        paths.setdefault(k, {}).update(v)

    # operationIds & tags from the first path segment after /api
    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        parts = path.strip("/").split("/")
        tag = (parts[1] if parts[0] == "api" and len(parts) > 1 else parts[0]).capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
            od["operationId"] = f"auto_{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "MDM API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
