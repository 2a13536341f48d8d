"""Pydantic models and loader for ``.graphqlconfig`` project files.

Supports the graphql-config layout::

    schemaPath: schema.graphql
    extensions:
      endpoints:
        default: http://localhost:4466
        prod:
          url: https://api.example.com/graphql
          headers:
            Authorization: Bearer ${env:API_TOKEN}
    projects:
      other:
        schemaPath: other.graphql

YAML and JSON are both accepted.
"""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import yaml

CONFIG_FILENAMES = (
    ".graphqlconfig",
    ".graphqlconfig.yml",
    ".graphqlconfig.yaml",
    ".graphqlconfig.json",
)

_ENV_RE = re.compile(r"\$\{env:([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigError(Exception):
    """The project configuration is missing, invalid, or incomplete."""


class EndpointConfig(BaseModel):
    url: str
    headers: dict[str, str] = Field(default_factory=dict)


class ProjectConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_path: str | None = Field(default=None, alias="schemaPath")
    extensions: dict[str, Any] = Field(default_factory=dict)

    @property
    def endpoints(self) -> dict[str, EndpointConfig]:
        raw = self.extensions.get("endpoints") or {}
        endpoints: dict[str, EndpointConfig] = {}
        for name, value in raw.items():
            if isinstance(value, str):
                endpoints[name] = EndpointConfig(url=value)
            else:
                endpoints[name] = EndpointConfig.model_validate(value)
        return endpoints


class GraphQLConfig(ProjectConfig):
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)
    base_dir: Path = Field(default_factory=Path.cwd, exclude=True)

    def project(self, name: str | None = None) -> ProjectConfig:
        """Select a named project, or the top-level one."""
        if name:
            if name not in self.projects:
                raise ConfigError(
                    f"No project '{name}' in config. Available: {sorted(self.projects)}"
                )
            return self.projects[name]
        if self.schema_path is None and len(self.projects) == 1:
            return next(iter(self.projects.values()))
        return self

    def schema_file(self, project: ProjectConfig) -> Path | None:
        if project.schema_path is None:
            return None
        return self.base_dir / project.schema_path


def find_config(start: str | Path | None = None) -> Path | None:
    """Look for a config file in *start* and its parents."""
    directory = Path(start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILENAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def load_config(path: str | Path) -> GraphQLConfig:
    """Parse and validate a config file."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}")
    try:
        config = GraphQLConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
    config.base_dir = path.resolve().parent
    return config


def resolve_endpoint(
    project: ProjectConfig,
    name_or_url: str | None = None,
    env: Mapping[str, str] | None = None,
) -> EndpointConfig:
    """Pick an endpoint by name (first one when unnamed) or use a literal URL.

    ``${env:VAR}`` references in the URL and headers are expanded.
    """
    env = os.environ if env is None else env

    if name_or_url and re.match(r"^https?://", name_or_url):
        endpoint = EndpointConfig(url=name_or_url)
    else:
        endpoints = project.endpoints
        key = name_or_url or next(iter(endpoints), None)
        if key is None:
            raise ConfigError("No endpoint found.")
        if key not in endpoints:
            raise ConfigError(f"No endpoint {key} found.")
        endpoint = endpoints[key]

    return EndpointConfig(
        url=interpolate_env(endpoint.url, env),
        headers={k: interpolate_env(v, env) for k, v in endpoint.headers.items()},
    )


def interpolate_env(value: str, env: Mapping[str, str]) -> str:
    """Replace ``${env:VAR}`` with the variable's value."""

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in env:
            raise ConfigError(f"Environment variable {name} is not set")
        return env[name]

    return _ENV_RE.sub(replace, value)
