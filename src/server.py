"""
GraphQL MCP server exposing schema introspection as six tools.

What it does:
- Fetches the introspection document of a GraphQL endpoint (explicit `endpoint` argument,
  else GRAPHQL_ENDPOINT_URL / BASE_URL, else http://localhost:5555/graphql).
- Caches documents in memory per endpoint and auth identity for GRAPHQL_CACHE_DURATION_S seconds.
- Reshapes the document into compact, search-filtered listings for an agent.

Tools:
- `get_graphql_schema`: SDL plus flattened types and root fields.
- `filter_queries` / `filter_mutations`: root fields by substring, optionally with args/return types.
- `filter_types`: declared types by kind and substring.
- `get_type_details` / `get_field_details`: a single type or root field in full.

Every tool returns `{"success": true, "endpoint": ..., ...}` or `{"success": false, "error": ...}`;
failures never escape to the host.

Startup notes:
- Supports stdio/SSE/HTTP transports configured via env or CLI flags.
"""

import os
import logging
from pathlib import Path
from typing import Callable, Literal

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from config import IntrospectionConfig, load_introspection_config
from errors import IntrospectionError
from introspection_client import AuthOptions, IntrospectionCache, IntrospectionClient
from schema_formatter import (
    field_details,
    filter_root_fields,
    filter_types as filter_schema_types,
    summarize_schema,
    type_details,
)

APP_NAME = "graphql-introspection"
_REPO_ROOT = Path(__file__).resolve().parent.parent
_ENV_PATHS = [Path.cwd() / ".env", _REPO_ROOT / ".env"]
for _path in _ENV_PATHS:
    if _path.exists():
        load_dotenv(_path, override=True)

DEFAULT_TRANSPORT = os.environ.get("MCP_TRANSPORT", os.environ.get("FASTMCP_TRANSPORT", "stdio"))
DEFAULT_INSTRUCTIONS = (
    "You are a GraphQL schema guide. Use filter_queries or filter_mutations with a focused search "
    "to discover operations, filter_types to browse types by kind, and get_type_details or "
    "get_field_details before writing a query. Reach for get_graphql_schema only when the full SDL "
    "is needed, since it is large."
)
MCP_INSTRUCTIONS = os.environ.get("MCP_INSTRUCTIONS", DEFAULT_INSTRUCTIONS)

CONFIG: IntrospectionConfig = load_introspection_config()
client = IntrospectionClient(config=CONFIG)

TypeKind = Literal["OBJECT", "SCALAR", "ENUM", "INTERFACE", "UNION", "INPUT_OBJECT"]

mcp = FastMCP(APP_NAME, instructions=MCP_INSTRUCTIONS)
mcp.dependencies = ["graphql-core", "aiohttp", "python-dotenv"]
logger = logging.getLogger(APP_NAME)


def _run_with_default_transport(
    self,
    transport: Literal["stdio", "sse", "streamable-http"] | None = None,
    mount_path: str | None = None,
):
    chosen = transport or DEFAULT_TRANSPORT
    return FastMCP.run(self, transport=chosen, mount_path=mount_path)


mcp.run = _run_with_default_transport.__get__(mcp, FastMCP)


def configure_runtime(
    *,
    default_endpoint: str | None = None,
    cache_duration_s: float | None = None,
    timeout_s: float | None = None,
) -> None:
    global CONFIG, client
    CONFIG = IntrospectionConfig(
        default_endpoint=default_endpoint or CONFIG.default_endpoint,
        cache_duration_s=CONFIG.cache_duration_s if cache_duration_s is None else cache_duration_s,
        timeout_s=CONFIG.timeout_s if timeout_s is None else timeout_s,
    )
    client = IntrospectionClient(config=CONFIG, cache=IntrospectionCache(CONFIG.cache_duration_s))


async def _call_tool(
    tool_name: str,
    endpoint: str | None,
    auth: AuthOptions,
    build: Callable[[dict], dict],
) -> dict:
    resolved = client.resolve_endpoint(endpoint)
    try:
        data = await client.fetch_async(resolved, auth)
        payload = build(data)
    except IntrospectionError as exc:
        logger.warning("%s failed for %s: %s", tool_name, resolved, exc)
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        logger.exception("%s failed unexpectedly for %s", tool_name, resolved)
        return {"success": False, "error": str(exc) or "Unknown error"}
    return {"success": True, "endpoint": resolved, **payload}


@mcp.tool(name="get_graphql_schema")
async def get_schema(
    endpoint: str | None = None,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """
    Get complete GraphQL schema introspection.
    Returns the printed SDL, the raw introspection, all non-internal types and the
    query/mutation/subscription root fields with arguments and return types.
    """
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)
    return await _call_tool(
        "get_graphql_schema",
        endpoint,
        auth,
        lambda data: {"schema": summarize_schema(data)},
    )


def _root_listing(key: str, operation: Literal["query", "mutation"], search, detailed):
    def build(data: dict) -> dict:
        items = filter_root_fields(data, operation, search=search, detailed=detailed)
        return {"search_term": search, key: items, "total": len(items)}

    return build


@mcp.tool()
async def filter_queries(
    endpoint: str | None = None,
    search: str | None = None,
    detailed: bool = False,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """
    Filter and list available GraphQL queries.
    `search` is a case-insensitive substring matched against field names and descriptions;
    `detailed` adds arguments and return types.
    """
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)
    return await _call_tool(
        "filter_queries", endpoint, auth, _root_listing("queries", "query", search, detailed)
    )


@mcp.tool()
async def filter_mutations(
    endpoint: str | None = None,
    search: str | None = None,
    detailed: bool = False,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """
    Filter and list available GraphQL mutations.
    `search` is a case-insensitive substring matched against field names and descriptions;
    `detailed` adds arguments and return types.
    """
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)
    return await _call_tool(
        "filter_mutations", endpoint, auth, _root_listing("mutations", "mutation", search, detailed)
    )


@mcp.tool()
async def filter_types(
    endpoint: str | None = None,
    search: str | None = None,
    kind: TypeKind | None = None,
    detailed: bool = False,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """
    Filter and list available GraphQL types.
    `kind` must match exactly; `search` is a case-insensitive substring on name or description.
    Both filters apply together. `detailed` adds fields, enum values, input fields,
    interfaces and possible types.
    """
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)

    def build(data: dict) -> dict:
        types = filter_schema_types(data, search=search, kind=kind, detailed=detailed)
        return {"search_term": search, "kind_filter": kind, "types": types, "total": len(types)}

    return await _call_tool("filter_types", endpoint, auth, build)


@mcp.tool()
async def get_type_details(
    type_name: str,
    endpoint: str | None = None,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """Get detailed information about a specific GraphQL type."""
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)
    return await _call_tool(
        "get_type_details",
        endpoint,
        auth,
        lambda data: {"type": type_details(data, type_name)},
    )


@mcp.tool()
async def get_field_details(
    field_name: str,
    operation_type: Literal["query", "mutation"] = "query",
    endpoint: str | None = None,
    username: str | None = None,
    password: str | None = None,
    bearer_token: str | None = None,
) -> dict:
    """Get detailed information about a specific query or mutation field."""
    auth = AuthOptions(username=username, password=password, bearer_token=bearer_token)
    operation = operation_type or "query"
    return await _call_tool(
        "get_field_details",
        endpoint,
        auth,
        lambda data: {
            "operation_type": operation,
            "field": field_details(data, field_name, operation),
        },
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Run the GraphQL introspection MCP server."
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default=DEFAULT_TRANSPORT,
        help="MCP transport to run (default: stdio; override with --transport or MCP_TRANSPORT env).",
    )
    parser.add_argument(
        "--endpoint",
        default=CONFIG.default_endpoint,
        help="Default GraphQL endpoint URL used when a tool call omits `endpoint`.",
    )
    parser.add_argument(
        "--cache-duration",
        type=float,
        default=CONFIG.cache_duration_s,
        help="Seconds an introspection result stays cached (default: 300).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=CONFIG.timeout_s,
        help="Total HTTP timeout (seconds) for introspection requests (default: aiohttp's).",
    )
    parser.add_argument(
        "--host",
        default=mcp.settings.host,
        help="Host for SSE/HTTP transports (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=mcp.settings.port,
        help="Port for SSE/HTTP transports (default: 8000).",
    )
    parser.add_argument(
        "--log-level",
        default=mcp.settings.log_level,
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--mount-path",
        default=mcp.settings.mount_path,
        help="Mount path for SSE transport (default: /).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    if args.cache_duration < 0:
        raise SystemExit("--cache-duration must not be negative")
    configure_runtime(
        default_endpoint=args.endpoint.strip() if args.endpoint else None,
        cache_duration_s=args.cache_duration,
        timeout_s=args.timeout,
    )

    mcp.settings.host = args.host
    mcp.settings.port = args.port
    mcp.settings.log_level = args.log_level
    mcp.settings.mount_path = args.mount_path

    logger.info(
        "Starting %s with transport=%s, host=%s, port=%s, default endpoint=%s",
        APP_NAME,
        args.transport,
        mcp.settings.host,
        mcp.settings.port,
        CONFIG.default_endpoint,
    )
    mcp.run(transport=args.transport, mount_path=args.mount_path)
