"""Shared test fixtures for gqlload tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from graphql import GraphQLSchema, build_schema
import pytest

from gqlload.commands.load.schema import SchemaReflector

SDL = """
scalar Date
scalar DateTime
scalar Time

enum Role {
  ADMIN
  USER
}

"A person in the directory"
type Person {
  id: ID!
  name: String
  age: Int
  score: Float
  active: Boolean
  born: Date
  updatedAt: DateTime
  wakeUp: Time
  role: Role
  tags: [String]
  friends: [Person]
  employer: Company
}

type Company {
  id: ID!
  name: String
}

type Label {
  name: String
}

type PersonConnection {
  edges: [Person]
}

type Team {
  id: ID!
  members: PersonConnection
}

input AddressInput {
  street: String
  city: String
}

input PersonInput {
  id: ID
  name: String
  age: Int
  born: Date
  role: Role
  tags: [String]
  address: AddressInput
}

input CompanyInput {
  name: String
}

type Query {
  person(id: ID!): Person
}

type Mutation {
  "Add several people at once"
  addPersons(input: [PersonInput!]!): [Person]
  addCompanys(input: CompanyInput!): Company
  addLabels(name: String): Label
  setFlag(input: Boolean): Boolean
}
"""


@pytest.fixture
def schema() -> GraphQLSchema:
    return build_schema(SDL)


@pytest.fixture
def reflector(schema: GraphQLSchema) -> SchemaReflector:
    return SchemaReflector(schema)


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "schema.graphql"
    path.write_text(SDL, encoding="utf-8")
    return path


class FakeClient:
    """Records every document sent and replies from a queue of responses.

    A response that is an exception instance is raised instead of returned.
    When the queue runs out, each call gets a successful response.
    """

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses or [])
        self.calls: list[str] = []

    async def request(self, query: str) -> dict[str, Any]:
        self.calls.append(query)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {"data": {"ok": {"id": "1"}}}


def people(count: int, start: int = 0) -> list[dict[str, Any]]:
    return [{"id": f"p{i}", "name": f"Person {i}"} for i in range(start, start + count)]
