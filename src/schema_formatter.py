"""
Presentation utilities for GraphQL introspection documents.

This module reshapes the raw `data` payload of an introspection query into the
compact structures returned by the MCP tools: root-operation field listings,
search/kind filtered type listings, single type and field details, and the
printed SDL. Type references are parsed into small tagged dataclasses before
formatting so that wrapper nesting (NON_NULL/LIST) survives unchanged. It is
used by the MCP server and by the CLI at the bottom of this file.
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from typing import Iterable, Literal, Union

from graphql import build_client_schema, print_schema

from config import load_introspection_config
from errors import IntrospectionError, NotFoundError, SchemaBuildError
from introspection_client import AuthOptions, IntrospectionClient

OperationType = Literal["query", "mutation", "subscription"]
TYPE_KINDS = ("OBJECT", "SCALAR", "ENUM", "INTERFACE", "UNION", "INPUT_OBJECT")
_ROOT_KEYS = {
    "query": "queryType",
    "mutation": "mutationType",
    "subscription": "subscriptionType",
}


@dataclass(frozen=True)
class NamedTypeRef:
    kind: str
    name: str | None
    description: str | None = None


@dataclass(frozen=True)
class NonNullTypeRef:
    of_type: TypeRef | None


@dataclass(frozen=True)
class ListTypeRef:
    of_type: TypeRef | None


TypeRef = Union[NamedTypeRef, NonNullTypeRef, ListTypeRef]


def parse_type_ref(raw: dict | None) -> TypeRef | None:
    if not raw:
        return None
    kind = raw.get("kind")
    if kind == "NON_NULL":
        return NonNullTypeRef(of_type=parse_type_ref(raw.get("ofType")))
    if kind == "LIST":
        return ListTypeRef(of_type=parse_type_ref(raw.get("ofType")))
    return NamedTypeRef(kind=kind, name=raw.get("name"), description=raw.get("description"))


def _format_ref(ref: TypeRef | None) -> dict | None:
    if ref is None:
        return None
    if isinstance(ref, NonNullTypeRef):
        return {"kind": "NON_NULL", "of_type": _format_ref(ref.of_type), "is_required": True}
    if isinstance(ref, ListTypeRef):
        return {"kind": "LIST", "of_type": _format_ref(ref.of_type), "is_list": True}
    formatted = {"kind": ref.kind, "name": ref.name}
    if ref.description is not None:
        formatted["description"] = ref.description
    return formatted


def format_type(raw: dict | None) -> dict | None:
    """Format an introspection type reference, keeping every wrapper level."""
    return _format_ref(parse_type_ref(raw))


def format_arguments(args: list[dict] | None) -> list[dict]:
    if not args:
        return []
    return [
        {
            "name": arg.get("name"),
            "description": arg.get("description"),
            "type": format_type(arg.get("type")),
            "default_value": arg.get("defaultValue"),
        }
        for arg in args
    ]


def format_type_fields(fields: list[dict]) -> list[dict]:
    return [
        {
            "name": field.get("name"),
            "description": field.get("description"),
            "type": format_type(field.get("type")),
            "deprecated": field.get("isDeprecated"),
            "deprecation_reason": field.get("deprecationReason"),
        }
        for field in fields
    ]


def format_enum_values(values: list[dict]) -> list[dict]:
    return [
        {
            "name": value.get("name"),
            "description": value.get("description"),
            "deprecated": value.get("isDeprecated"),
            "deprecation_reason": value.get("deprecationReason"),
        }
        for value in values
    ]


def format_input_fields(fields: list[dict]) -> list[dict]:
    return [
        {
            "name": field.get("name"),
            "description": field.get("description"),
            "type": format_type(field.get("type")),
            "default_value": field.get("defaultValue"),
        }
        for field in fields
    ]


def _schema_root(data: dict) -> dict:
    return data["__schema"]


def _all_types(data: dict) -> list[dict]:
    return _schema_root(data).get("types") or []


def _is_internal(type_def: dict) -> bool:
    return (type_def.get("name") or "").startswith("__")


def find_type(data: dict, type_name: str | None) -> dict | None:
    if not type_name:
        return None
    for type_def in _all_types(data):
        if type_def.get("name") == type_name:
            return type_def
    return None


def root_type_name(data: dict, operation: OperationType) -> str | None:
    root = _schema_root(data).get(_ROOT_KEYS[operation])
    if not root:
        return None
    return root.get("name")


def _matches_search(item: dict, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    name = item.get("name") or ""
    description = item.get("description") or ""
    return needle in name.lower() or needle in description.lower()


def _field_summary(field: dict, detailed: bool) -> dict:
    summary = {
        "name": field.get("name"),
        "description": field.get("description"),
        "deprecated": field.get("isDeprecated"),
        "deprecation_reason": field.get("deprecationReason"),
    }
    if detailed:
        summary["arguments"] = format_arguments(field.get("args"))
        summary["return_type"] = format_type(field.get("type"))
    return summary


def _field_detail(field: dict) -> dict:
    return {
        "name": field.get("name"),
        "description": field.get("description"),
        "arguments": format_arguments(field.get("args")),
        "return_type": format_type(field.get("type")),
        "deprecated": field.get("isDeprecated"),
        "deprecation_reason": field.get("deprecationReason"),
    }


def _root_fields(data: dict, operation: OperationType) -> list[dict] | None:
    root_type = find_type(data, root_type_name(data, operation))
    if root_type is None:
        return None
    return root_type.get("fields")


def format_types(types: Iterable[dict]) -> list[dict]:
    return [
        {
            "name": type_def.get("name"),
            "kind": type_def.get("kind"),
            "description": type_def.get("description"),
        }
        for type_def in types
        if not _is_internal(type_def)
    ]


def format_root_fields(data: dict, operation: OperationType) -> list[dict]:
    fields = _root_fields(data, operation)
    if not fields:
        return []
    return [_field_detail(field) for field in fields]


def summarize_schema(data: dict) -> dict:
    """Build the `get_graphql_schema` payload: printed SDL plus flattened listings."""
    try:
        schema = build_client_schema(data)
        return {
            "sdl": print_schema(schema),
            "introspection": data,
            "types": format_types(_all_types(data)),
            "queries": format_root_fields(data, "query"),
            "mutations": format_root_fields(data, "mutation"),
            "subscriptions": format_root_fields(data, "subscription"),
        }
    except Exception as exc:
        raise SchemaBuildError(str(exc) or "Unknown error") from exc


def filter_root_fields(
    data: dict,
    operation: OperationType,
    *,
    search: str | None = None,
    detailed: bool = False,
) -> list[dict]:
    fields = _root_fields(data, operation)
    if not fields:
        return []
    return [_field_summary(field, detailed) for field in fields if _matches_search(field, search)]


def _type_detail_facets(type_def: dict) -> dict:
    fields = type_def.get("fields")
    enum_values = type_def.get("enumValues")
    input_fields = type_def.get("inputFields")
    return {
        "fields": format_type_fields(fields) if fields is not None else None,
        "enum_values": format_enum_values(enum_values) if enum_values is not None else None,
        "input_fields": format_input_fields(input_fields) if input_fields is not None else None,
    }


def filter_types(
    data: dict,
    *,
    search: str | None = None,
    kind: str | None = None,
    detailed: bool = False,
) -> list[dict]:
    types = [type_def for type_def in _all_types(data) if not _is_internal(type_def)]
    if kind:
        types = [type_def for type_def in types if type_def.get("kind") == kind]
    types = [type_def for type_def in types if _matches_search(type_def, search)]

    formatted = []
    for type_def in types:
        entry = {
            "name": type_def.get("name"),
            "kind": type_def.get("kind"),
            "description": type_def.get("description"),
        }
        if detailed:
            interfaces = type_def.get("interfaces")
            possible_types = type_def.get("possibleTypes")
            entry.update(_type_detail_facets(type_def))
            entry["interfaces"] = (
                [item.get("name") for item in interfaces] if interfaces is not None else None
            )
            entry["possible_types"] = (
                [item.get("name") for item in possible_types] if possible_types is not None else None
            )
        formatted.append(entry)
    return formatted


def type_details(data: dict, type_name: str) -> dict:
    type_def = find_type(data, type_name)
    if type_def is None:
        raise NotFoundError(f'Type "{type_name}" not found')

    interfaces = type_def.get("interfaces")
    possible_types = type_def.get("possibleTypes")
    details = {
        "name": type_def.get("name"),
        "kind": type_def.get("kind"),
        "description": type_def.get("description"),
    }
    details.update(_type_detail_facets(type_def))
    details["interfaces"] = (
        [{"name": item.get("name"), "kind": item.get("kind")} for item in interfaces]
        if interfaces is not None
        else None
    )
    details["possible_types"] = (
        [{"name": item.get("name"), "kind": item.get("kind")} for item in possible_types]
        if possible_types is not None
        else None
    )
    details["of_type"] = format_type(type_def) if type_def.get("ofType") else None
    return details


def field_details(data: dict, field_name: str, operation_type: OperationType = "query") -> dict:
    type_name = root_type_name(data, operation_type)
    if not type_name:
        raise NotFoundError(f"No {operation_type} type available")

    root_type = find_type(data, type_name)
    if root_type is None or root_type.get("fields") is None:
        raise NotFoundError(f"{operation_type} type has no fields")

    for field in root_type["fields"]:
        if field.get("name") == field_name:
            return _field_detail(field)
    raise NotFoundError(f'Field "{field_name}" not found in {operation_type} type')


def _run_command(args: argparse.Namespace, data: dict) -> object:
    if args.command == "schema":
        return summarize_schema(data)
    if args.command in ("queries", "mutations"):
        operation = "query" if args.command == "queries" else "mutation"
        return filter_root_fields(data, operation, search=args.search, detailed=args.detailed)
    if args.command == "types":
        return filter_types(data, search=args.search, kind=args.kind, detailed=args.detailed)
    if args.command == "type":
        return type_details(data, args.type_name)
    return field_details(data, args.field_name, args.operation_type)


def cli(argv: Iterable[str] | None = None) -> int:
    config = load_introspection_config()
    parser = argparse.ArgumentParser(description="Inspect a GraphQL endpoint via introspection.")
    parser.add_argument("--endpoint", default=config.default_endpoint, help="GraphQL endpoint URL")
    parser.add_argument("--username", default=None, help="Username for basic authentication")
    parser.add_argument("--password", default=None, help="Password for basic authentication")
    parser.add_argument("--bearer-token", default=None, help="Bearer token for authentication")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")
    subparsers.add_parser("schema", help="Print the SDL and flattened schema listings")
    for name in ("queries", "mutations"):
        sub = subparsers.add_parser(name, help=f"List root {name}")
        sub.add_argument("--search", default=None, help="Case-insensitive substring filter")
        sub.add_argument("--detailed", action="store_true", help="Include arguments and return types")
    types_parser = subparsers.add_parser("types", help="List declared types")
    types_parser.add_argument("--search", default=None, help="Case-insensitive substring filter")
    types_parser.add_argument("--kind", choices=TYPE_KINDS, default=None, help="Filter by type kind")
    types_parser.add_argument("--detailed", action="store_true", help="Include fields and other facets")
    type_parser = subparsers.add_parser("type", help="Show a single type")
    type_parser.add_argument("type_name", help="Exact type name")
    field_parser = subparsers.add_parser("field", help="Show a single root field")
    field_parser.add_argument("field_name", help="Exact field name")
    field_parser.add_argument(
        "--operation-type", choices=["query", "mutation"], default="query", help="Root operation"
    )

    args = parser.parse_args(argv)

    client = IntrospectionClient(config=config)
    auth = AuthOptions(username=args.username, password=args.password, bearer_token=args.bearer_token)
    try:
        data = client.fetch(args.endpoint, auth)
        result = _run_command(args, data)
    except IntrospectionError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())
