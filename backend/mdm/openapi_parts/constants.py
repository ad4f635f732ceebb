"""Centralized constants for the OpenAPI spec builder.

Splitting these out keeps `mdm/openapi_builder.py` concise. Tests depend on
deterministic ordering and content.
"""
from typing import Dict, List, Tuple

# Entity registry: (SchemaName, collection path, id param, id type, service code)
ENTITIES: List[Tuple[str, str, str, str, str]] = [
    ("Product", "/api/products", "product_id", "string", "PRODUCT"),
    ("Catalog", "/api/catalogs", "catalog_id", "integer", "CATALOG"),
    ("Channel", "/api/channels", "channel_id", "integer", "CATALOG"),
    ("CatalogProduct", "/api/catalogproduct", "cp_id", "integer", "CATALOG"),
    ("DataDictionaryEntry", "/api/data-dictionary", "entry_id", "integer", "DICT"),
    ("BackgroundJob", "/api/catalogmanagement/jobs", "job_id", "integer", "JOBS"),
]

# Collections whose list response is the page envelope
PAGED = {"Product", "Catalog", "Channel"}

# Writable collections: POST on the collection, PUT/DELETE on the item
WRITABLE: Dict[str, Tuple[str, ...]] = {
    "Product": ("post", "put", "delete"),
    "Catalog": ("post", "put", "delete"),
    "Channel": ("post", "put"),
    "CatalogProduct": ("post", "put"),
}

# Schema properties: name -> OpenAPI type
SCHEMA_FIELDS: Dict[str, Dict[str, str]] = {
    "Product": {
        "id": "string", "sku": "string", "name": "string", "description": "string", "type": "string",
        "class": "string", "basePrice": "number", "costPrice": "number", "available": "boolean",
        "webDisplay": "boolean", "licenseRequired": "boolean", "contractItem": "boolean",
        "seatBasedPricing": "boolean", "slug": "string", "status": "string", "updatedAt": "string",
    },
    "Catalog": {
        "id": "integer", "code": "string", "name": "string", "regionCode": "string", "channelCode": "string",
        "currencyCode": "string", "priority": "integer", "status": "string", "isActive": "boolean",
        "isDefault": "boolean", "effectiveFrom": "string", "effectiveTo": "string",
    },
    "Channel": {"id": "integer", "code": "string", "name": "string", "isActive": "boolean"},
    "CatalogProduct": {
        "id": "integer", "catalogId": "integer", "productId": "string", "isActive": "boolean",
        "pricingMode": "string", "overridePrice": "number", "discountPercentage": "number",
        "finalPrice": "number", "pricingBadge": "string", "productSku": "string", "productName": "string",
    },
    "DataDictionaryEntry": {
        "id": "integer", "columnName": "string", "displayName": "string", "dataType": "string",
        "category": "string", "requiredForActive": "boolean", "maintenanceRole": "string",
    },
    "BackgroundJob": {"id": "integer", "type": "string", "status": "string", "entityId": "string"},
}

ENUMS: Dict[Tuple[str, str], List[str]] = {
    ("Product", "status"): ["draft", "active", "deprecated", "archived"],
    ("Catalog", "status"): ["draft", "active", "inactive"],
    ("CatalogProduct", "pricingMode"): ["override", "discount", "none"],
    ("BackgroundJob", "status"): ["Pending", "Processing", "Completed", "Failed"],
}

SORT_DETAILS = {
    "Product": "name,sku,status,type,basePrice,createdAt,updatedAt",
    "Catalog": "name,code,priority,status,createdAt,updatedAt",
}

# Endpoints outside the generic collection pattern: (path, method, summary, permission)
EXTRA_PATHS: List[Tuple[str, str, str, str]] = [
    ("/api/products/analytics/summary", "get", "Product totals by status and type", "PRODUCT.READ"),
    ("/api/products/types/list", "get", "Distinct product types", "PRODUCT.READ"),
    ("/api/catalogs/regions", "get", "Region lookup", "CATALOG.READ"),
    ("/api/catalogs/currencies", "get", "Currency lookup", "CATALOG.READ"),
    ("/api/catalogproduct/catalog/{catalog_id}/products", "get", "Products of a catalog", "CATALOG.READ"),
    ("/api/catalogproduct/product/{product_id}/catalogs", "get", "Catalogs containing a product", "CATALOG.READ"),
    ("/api/catalogproduct/catalog/{catalog_id}/product/{product_id}", "delete", "Remove product from catalog", "CATALOG.MANAGE"),
    ("/api/catalogproduct/bulk-add", "post", "Add products to a catalog", "CATALOG.MANAGE"),
    ("/api/catalogproduct/catalog/{catalog_id}/bulk-remove", "post", "Remove products from a catalog", "CATALOG.MANAGE"),
    ("/api/catalogproduct/{cp_id}/activate", "post", "Activate catalog product", "CATALOG.MANAGE"),
    ("/api/catalogproduct/{cp_id}/deactivate", "post", "Deactivate catalog product", "CATALOG.MANAGE"),
    ("/api/catalogproduct/exists", "get", "Catalog/product pair existence", "CATALOG.READ"),
    ("/api/catalogproduct/stats", "get", "Catalog product statistics", "CATALOG.READ"),
    ("/api/data-dictionary/categories", "get", "Dictionary categories", "DICT.READ"),
    ("/api/data-dictionary/validation-rules", "get", "Validation rules by column", "DICT.READ"),
    ("/api/tree", "get", "Region/country/locale tree", "TREE.READ"),
    ("/api/tree/node/{node_id}", "get", "Tree node", "TREE.READ"),
    ("/api/tree/node/{node_id}", "put", "Update tree node", "TREE.MANAGE"),
    ("/api/tree/create-node", "post", "Create tree node", "TREE.MANAGE"),
    ("/api/tree/bulk-operations", "post", "Bulk tree operation", "TREE.MANAGE"),
    ("/api/compliance/screen/country/{code}", "get", "Screen a country", "COMPLIANCE.READ"),
    ("/api/compliance/assess/region/{code}", "get", "Assess a region", "COMPLIANCE.READ"),
    ("/api/compliance/alerts", "get", "Active compliance alerts", "COMPLIANCE.READ"),
    ("/api/catalogmanagement/workflow-jobs", "get", "Workflow jobs", "JOBS.READ"),
    ("/api/catalogmanagement/complete-stuck-workflow-jobs", "post", "Complete stuck workflow jobs", "JOBS.MANAGE"),
    ("/api/outbox", "get", "Outbox events", "JOBS.READ"),
    ("/api/outbox/relay", "post", "Relay pending outbox events", "JOBS.MANAGE"),
    ("/iam/users", "get", "List users", "ADMIN.USER.MANAGE"),
    ("/iam/users", "post", "Create user", "ADMIN.USER.MANAGE"),
    ("/iam/users/{user_id}", "put", "Update user", "ADMIN.USER.MANAGE"),
    ("/iam/audit/logs", "get", "Audit log", "ADMIN.AUDIT.READ"),
]

__all__ = [
    "ENTITIES",
    "PAGED",
    "WRITABLE",
    "SCHEMA_FIELDS",
    "ENUMS",
    "SORT_DETAILS",
    "EXTRA_PATHS",
]
