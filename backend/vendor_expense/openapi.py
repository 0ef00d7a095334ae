"""Minimal deterministic OpenAPI spec builder.

Scope (purposefully narrow):
- Auth endpoints: /iam/auth/seed, /iam/auth/login, /iam/auth/me
- For each tracked entity: list + single GET & HEAD with caching headers
- Action endpoints from ACTION_REGISTRY with their required permission
- Report endpoints
"""
from typing import Any, Dict, List, Tuple

from vendor_expense.services.room_cycle import ROOM_FSM

__all__ = ["build_openapi_spec", "ENTITIES", "ACTION_REGISTRY"]

ADMIN = "admin"

# (SchemaName, domain prefix, collection path, id param, read permission, sort fields)
ENTITIES: List[Tuple[str, str, str, str, str, str]] = [
    ("Role", "iam", "roles", "role_id", ADMIN, "name,updated_at,id"),
    ("User", "iam", "users", "user_id", ADMIN, "name,email,role,updated_at,id"),
    ("Vendor", "ledger", "vendors", "vendor_id", "vendors.view", "name,status,updated_at,id"),
    ("Material", "ledger", "materials", "material_id", "materials.view", "name,category,updated_at,id"),
    ("Voucher", "ledger", "vouchers", "voucher_id", "vouchers.view", "date_of_purchase,final_amount,payment_status,updated_at,id"),
    ("Stage", "grow", "stages", "stage_id", ADMIN, "sequence_order,name,updated_at,id"),
    ("GrowingRoom", "grow", "rooms", "room_id", ADMIN, "name,updated_at,id"),
]

# Declarative registry for action (state-changing) endpoints.
ACTION_REGISTRY: Dict[str, List[Dict[str, str]]] = {
    "Vendor": [
        {"action": "activate", "summary": "Activate vendor", "permission": "vendors.edit"},
        {"action": "deactivate", "summary": "Deactivate vendor", "permission": "vendors.edit"},
    ],
    "Voucher": [
        {"action": "payment-status", "summary": "Change voucher payment status", "permission": "vouchers.edit"},
    ],
    "GrowingRoom": [
        {"action": "init-stage", "summary": "Seed room into the first stage", "permission": "roomStages.edit"},
        {"action": "move-stage", "summary": "Advance room (or jump to stageId)", "permission": "roomStages.edit"},
        {"action": "activities", "summary": "Toggle a daily activity", "permission": "roomActivities.edit"},
    ],
}

REPORTS: List[Tuple[str, str, str]] = [
    ("vendor-expenses", "Spend per vendor", "reports.view"),
    ("material-summary", "Quantity and spend per material", "reports.view"),
    ("expenses", "Expense totals", "reports.view"),
    ("tax-payments", "Tax and payment breakdown", "reports.view"),
    ("dashboard", "Dashboard summary", "dashboard.view"),
]


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _id_param(id_param: str) -> Dict[str, Any]:
    return {"name": id_param, "in": "path", "required": True, "schema": {"type": "integer"}}


def _sort_param_name(schema_name: str) -> str:
    return f"Sort{schema_name}Param"


def _entity_paths(schema_name: str, domain: str, coll: str, id_param: str, read_perm: str) -> Dict[str, Any]:
    list_path = f"/{domain}/{coll}"
    single_path = f"{list_path}/{{{id_param}}}"
    ref = {"$ref": f"#/components/schemas/{schema_name}"}
    paths: Dict[str, Any] = {
        list_path: {
            "get": {
                "summary": f"List {coll}",
                "parameters": [
                    {"$ref": "#/components/parameters/LimitParam"},
                    {"$ref": "#/components/parameters/OffsetParam"},
                    {"$ref": f"#/components/parameters/{_sort_param_name(schema_name)}"},
                ],
                "responses": {
                    "200": {
                        "description": "OK",
                        "headers": caching_headers(),
                        "content": {"application/json": {"schema": {
                            "type": "object",
                            "properties": {
                                "data": {"type": "array", "items": ref},
                                "pagination": {"$ref": "#/components/schemas/Pagination"},
                            },
                        }}},
                    },
                    "304": {"description": "Not Modified"},
                    "400": {"$ref": "#/components/responses/BadRequest"},
                },
                "x-required-permissions": [read_perm],
            },
            "head": {
                "summary": f"{schema_name} list validators",
                "responses": {"200": {"description": "Headers only", "headers": caching_headers()}, "304": {"description": "Not Modified"}},
                "x-required-permissions": [read_perm],
            },
        },
        single_path: {
            "get": {
                "summary": f"Get {schema_name}",
                "parameters": [_id_param(id_param)],
                "responses": {
                    "200": {"description": "OK", "headers": caching_headers(), "content": {"application/json": {"schema": ref}}},
                    "304": {"description": "Not Modified"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": [read_perm],
            },
        },
    }
    for spec in ACTION_REGISTRY.get(schema_name, []):
        paths[f"{single_path}/{spec['action']}"] = {
            "post": {
                "summary": spec["summary"],
                "parameters": [_id_param(id_param)],
                "responses": {
                    "200": {"description": "OK", "content": {"application/json": {"schema": ref}}},
                    "400": {"$ref": "#/components/responses/BadRequest"},
                    "403": {"$ref": "#/components/responses/Forbidden"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": [spec["permission"]],
            }
        }
    return paths


def build_openapi_spec() -> Dict[str, Any]:
    schemas: Dict[str, Any] = {
        e[0]: {"type": "object", "properties": {"id": {"type": "integer"}}, "required": ["id"]} for e in ENTITIES
    }
    schemas["GrowingRoom"]["x-transitions"] = sorted(ROOM_FSM.graph)
    schemas["Vendor"]["x-transitions"] = ["Active", "Inactive"]
    schemas["Pagination"] = {
        "type": "object",
        "properties": {k: {"type": "integer"} for k in ("total", "limit", "offset", "returned")},
        "required": ["total", "limit", "offset", "returned"],
    }
    schemas["Error"] = {
        "type": "object",
        "properties": {"error": {
            "type": "object",
            "properties": {"status": {"type": "integer"}, "title": {"type": "string"}, "detail": {"type": "string"}},
            "required": ["status", "title", "detail"],
        }},
        "required": ["error"],
    }

    error_ref = {"application/json": {"schema": {"$ref": "#/components/schemas/Error"}}}
    components: Dict[str, Any] = {
        "schemas": schemas,
        "responses": {
            "NotFound": {"description": "Not Found", "content": error_ref},
            "BadRequest": {"description": "Bad Request", "content": error_ref},
            "Forbidden": {"description": "Forbidden", "content": error_ref},
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
        },
    }
    for schema_name, _, _, _, _, fields in ENTITIES:
        components["parameters"][_sort_param_name(schema_name)] = {
            "name": "sort", "in": "query", "schema": {"type": "string"},
            "description": f"Multi-field sort ({fields}). Prefix - for desc",
        }

    paths: Dict[str, Any] = {
        "/iam/auth/seed": {"post": {"summary": "Create the first user", "security": [], "responses": {"201": {"description": "Created"}}}},
        "/iam/auth/login": {"post": {"summary": "Login", "security": [], "responses": {"200": {"description": "JWT issued"}}}},
        "/iam/auth/me": {"get": {"summary": "Current user with effective permissions", "responses": {"200": {"description": "OK"}}}},
        "/grow/rooms/status": {"get": {
            "summary": "Room status board (resets daily checklists past a day boundary)",
            "responses": {"200": {"description": "OK"}},
            "x-required-permissions": ["roomStages.view", "roomStages.edit", "roomActivities.view", "roomActivities.edit"],
        }},
        "/grow/stages/summary": {"get": {"summary": "Interval budget summary", "responses": {"200": {"description": "OK"}}, "x-required-permissions": [ADMIN]}},
    }
    for schema_name, domain, coll, id_param, read_perm, _ in ENTITIES:
        paths.update(_entity_paths(schema_name, domain, coll, id_param, read_perm))
    for slug, summary, perm in REPORTS:
        paths[f"/reports/{slug}"] = {"get": {
            "summary": summary,
            "parameters": [
                {"name": "start", "in": "query", "schema": {"type": "string", "format": "date"}},
                {"name": "end", "in": "query", "schema": {"type": "string", "format": "date"}},
            ],
            "responses": {"200": {"description": "OK"}},
            "x-required-permissions": [perm],
        }}

    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        tag = path.split("/")[1].capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
            od["operationId"] = f"auto_{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "Vendor Expense API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
