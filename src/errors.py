"""Failures raised while fetching or presenting a GraphQL introspection document.

Every tool converts these into ``{"success": False, "error": str(exc)}``.
"""
from __future__ import annotations

import json


class IntrospectionError(Exception):
    pass


class FetchError(IntrospectionError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Failed to fetch GraphQL schema: {detail}")


class TransportError(FetchError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status: int, reason: str | None):
        self.status = status
        self.reason = reason or ""
        super().__init__(f"HTTP {status}: {self.reason}")


class GraphQLError(FetchError):
    """The introspection query came back with an ``errors`` list."""

    def __init__(self, errors: object):
        self.errors = errors
        super().__init__(f"GraphQL errors: {json.dumps(errors, default=str)}")


class FetchFailure(FetchError):
    pass


class SchemaBuildError(IntrospectionError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Failed to build schema: {detail}")


class NotFoundError(IntrospectionError):
    pass
