"""Shared pytest fixtures for the GraphQL introspection server test-suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from graphql import build_schema, introspection_from_schema

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import IntrospectionConfig
from introspection_client import IntrospectionCache, IntrospectionClient

TEST_ENDPOINT = "http://graphql.test/graphql"

LIBRARY_SDL = '''
"""Anything addressable by a global id."""
interface Node {
  id: ID!
}

"""A person who writes books."""
type Author implements Node {
  id: ID!
  name: String!
  books: [Book!]!
}

"""A published book."""
type Book implements Node {
  id: ID!
  title: String!
  author: Author
  rating: Int @deprecated(reason: "Use score")
  score: Float
  publishedOn: Date
}

enum Genre {
  FICTION
  HISTORY @deprecated(reason: "Merged into NONFICTION")
  NONFICTION
}

input BookInput {
  title: String!
  authorId: ID!
  genre: Genre = FICTION
}

union SearchResult = Author | Book

scalar Date

type Query {
  "Fetch a single book by id."
  book(id: ID!): Book
  "List every book."
  books(limit: Int = 10, genre: Genre): [Book!]!
  "Look up an author."
  author(id: ID!): Author
  search(term: String!): [SearchResult!]!
  legacyBooks: [Book] @deprecated(reason: "Use books")
  node(id: ID!): Node
}

type Mutation {
  "Add a new book to the catalog."
  addBook(input: BookInput!): Book!
  removeBook(id: ID!): Boolean!
}
'''

QUERY_ONLY_SDL = '''
type Query {
  "Health check."
  ping: String
}
'''


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubIntrospectionClient(IntrospectionClient):
    """Client whose HTTP round trip is replaced by canned response bodies per endpoint."""

    def __init__(self, responses: dict[str, object], *, cache: IntrospectionCache | None = None) -> None:
        super().__init__(
            config=IntrospectionConfig(
                default_endpoint=TEST_ENDPOINT,
                cache_duration_s=300.0,
                timeout_s=None,
            ),
            cache=cache,
        )
        self.responses = responses
        self.requests: list[dict] = []

    async def _post_json(self, endpoint: str, payload: dict, headers: dict[str, str]) -> dict:
        self.requests.append({"endpoint": endpoint, "payload": payload, "headers": headers})
        response = self.responses[endpoint]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def library_introspection() -> dict:
    """Return the introspection `data` payload of the library schema."""

    return introspection_from_schema(build_schema(LIBRARY_SDL))


@pytest.fixture
def query_only_introspection() -> dict:
    """Return the introspection payload of a schema without a mutation root."""

    return introspection_from_schema(build_schema(QUERY_ONLY_SDL))


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
