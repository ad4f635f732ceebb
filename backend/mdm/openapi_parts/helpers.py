"""Helper functions for the OpenAPI builder."""
from typing import Any, Dict

from .constants import SCHEMA_FIELDS, ENUMS


def entity_schema(name: str) -> Dict[str, Any]:
    props: Dict[str, Any] = {}
    for field, typ in SCHEMA_FIELDS[name].items():
        prop: Dict[str, Any] = {"type": typ}
        if (name, field) in ENUMS:
            prop["enum"] = ENUMS[(name, field)]
        props[field] = prop
    return {"type": "object", "properties": props, "required": ["id"]}


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def path_params(path: str) -> list:
    """Path template params; ids are integers except product and node ids."""
    out = []
    for part in path.split("/"):
        if part.startswith("{") and part.endswith("}"):
            name = part[1:-1]
            typ = "integer" if name.endswith("_id") and name not in ("product_id", "node_id") else "string"
            out.append({"name": name, "in": "path", "required": True, "schema": {"type": typ}})
    return out


__all__ = ["entity_schema", "caching_headers", "path_params"]
