"""Path builders for the OpenAPI spec.

Per entity, in order: the collection path (list, HEAD, create), then the
item path (get, HEAD, update, delete). Extra endpoints come last in
registry order, which keeps the output deterministic.
"""
from typing import Any, Dict

from .constants import PAGED, WRITABLE, SORT_DETAILS, EXTRA_PATHS
from .helpers import caching_headers, path_params


def _list_response(schema_name: str) -> Dict[str, Any]:
    item_ref = {"$ref": f"#/components/schemas/{schema_name}"}
    if schema_name in PAGED:
        schema = {
            "allOf": [
                {"$ref": "#/components/schemas/Page"},
                {"type": "object", "properties": {"items": {"type": "array", "items": item_ref}}},
            ]
        }
    else:
        schema = {"type": "object", "additionalProperties": {"type": "array", "items": item_ref}}
    return {"description": "OK", "headers": caching_headers(), "content": {"application/json": {"schema": schema}}}


def build_entity_paths(schema_name: str, coll: str, id_param: str, id_type: str, service: str) -> Dict[str, Any]:
    paths: Dict[str, Any] = {}
    single_path = f"{coll}/{{{id_param}}}"
    id_params = [{"name": id_param, "in": "path", "required": True, "schema": {"type": id_type}}]
    ref = {"$ref": f"#/components/schemas/{schema_name}"}
    writes = WRITABLE.get(schema_name, ())

    list_params = []
    if schema_name in PAGED:
        list_params = [{"$ref": "#/components/parameters/PageParam"}, {"$ref": "#/components/parameters/LimitParam"}]
    if schema_name in SORT_DETAILS:
        list_params += [
            {"name": "sortBy", "in": "query", "schema": {"type": "string"}, "description": SORT_DETAILS[schema_name]},
            {"name": "sortOrder", "in": "query", "schema": {"type": "string", "enum": ["ASC", "DESC"]}},
        ]

    if schema_name != "CatalogProduct":
        paths[coll] = {
            "get": {
                "summary": f"List {coll.rsplit('/', 1)[-1].replace('-', ' ')}",
                "parameters": list_params,
                "responses": {
                    "200": _list_response(schema_name),
                    "304": {"description": "Not Modified"},
                    "400": {"$ref": "#/components/responses/BadRequest"},
                },
                "x-required-permissions": [f"{service}.READ"],
            },
        }
    if "post" in writes:
        paths.setdefault(coll, {})["post"] = {
            "summary": f"Create {schema_name}",
            "requestBody": {"content": {"application/json": {"schema": ref}}},
            "responses": {
                "201": {"description": "Created", "content": {"application/json": {"schema": ref}}},
                "400": {"$ref": "#/components/responses/BadRequest"},
                "409": {"$ref": "#/components/responses/Conflict"},
            },
            "x-required-permissions": [f"{service}.MANAGE"],
        }

    paths[single_path] = {
        "get": {
            "summary": f"Get {schema_name}",
            "parameters": id_params,
            "responses": {
                "200": {"description": "OK", "headers": caching_headers(),
                        "content": {"application/json": {"schema": ref}}},
                "304": {"description": "Not Modified"},
                "404": {"$ref": "#/components/responses/NotFound"},
            },
            "x-required-permissions": [f"{service}.READ"],
        },
    }
    if "put" in writes:
        paths[single_path]["put"] = {
            "summary": f"Update {schema_name}",
            "parameters": id_params,
            "requestBody": {"content": {"application/json": {"schema": ref}}},
            "responses": {
                "200": {"description": "OK", "content": {"application/json": {"schema": ref}}},
                "400": {"$ref": "#/components/responses/BadRequest"},
                "404": {"$ref": "#/components/responses/NotFound"},
            },
            "x-required-permissions": [f"{service}.MANAGE"],
        }
    if "delete" in writes:
        paths[single_path]["delete"] = {
            "summary": f"Delete {schema_name}",
            "parameters": id_params,
            "responses": {"200": {"description": "Deleted"}, "404": {"$ref": "#/components/responses/NotFound"}},
            "x-required-permissions": [f"{service}.MANAGE"],
        }
    return paths


def build_extra_paths() -> Dict[str, Any]:
    paths: Dict[str, Any] = {}
    for path, method, summary, permission in EXTRA_PATHS:
        op: Dict[str, Any] = {
            "summary": summary,
            "responses": {"200": {"description": "OK"}, "400": {"$ref": "#/components/responses/BadRequest"}},
            "x-required-permissions": [permission],
        }
        params = path_params(path)
        if params:
            op["parameters"] = params
            op["responses"]["404"] = {"$ref": "#/components/responses/NotFound"}
        paths.setdefault(path, {})[method] = op
    return paths


__all__ = ["build_entity_paths", "build_extra_paths"]
