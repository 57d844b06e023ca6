"""Settings file loading and validation for winiotctl connection profiles."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from winiotctl.core.errors import ConfigError
from winiotctl.core.model import (
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_SIDELOAD_TIMEOUT_MS,
    ClientConfig,
)

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


# Passwords such as "no" or "off" must stay strings.
UniqueKeyLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in mappings if tag != "tag:yaml.org,2002:bool"]
    for first_char, mappings in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in settings file")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class Settings:
    """Connection defaults read from a settings file; unset keys are ``None``."""

    address: str | None = None
    username: str | None = None
    password: str | None = None
    sideload_timeout_ms: int | None = None
    poll_interval_ms: int | None = None
    request_timeout_s: float | None = None
    source: Path | None = None

    def client_config(
        self,
        *,
        address: str | None = None,
        username: str | None = None,
        password: str | None = None,
        sideload_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> ClientConfig:
        """Build a ``ClientConfig``, explicit arguments taking precedence."""
        resolved_address = address or self.address
        resolved_username = username or self.username
        resolved_password = password if password is not None else self.password
        missing = [
            flag
            for flag, value in (
                ("--address", resolved_address),
                ("--username", resolved_username),
                ("--password", resolved_password),
            )
            if value is None
        ]
        if missing:
            raise ConfigError(f"Missing connection setting(s): {', '.join(missing)}")

        config = ClientConfig(
            address=resolved_address,
            username=resolved_username,
            password=resolved_password,
            sideload_timeout_ms=self.sideload_timeout_ms or DEFAULT_SIDELOAD_TIMEOUT_MS,
            poll_interval_ms=self.poll_interval_ms or DEFAULT_POLL_INTERVAL_MS,
            request_timeout_s=self.request_timeout_s or DEFAULT_REQUEST_TIMEOUT_S,
        )
        return config.with_timing(
            sideload_timeout_ms=sideload_timeout_ms,
            poll_interval_ms=poll_interval_ms,
        )


def default_settings_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "winiotctl/config.yaml"


def _load_schema_validator() -> Any:
    schema_text = resources.files("winiotctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read settings file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping at root")
    return loaded


def load_settings(path: Path | None = None) -> Settings:
    """Read connection defaults from *path* or the default settings file.

    A missing default file yields empty settings; a missing explicit path is
    an error.
    """
    explicit = path is not None
    settings_path = path if path is not None else default_settings_path()
    if not explicit and not settings_path.is_file():
        return Settings()

    doc = _read_yaml(settings_path)
    try:
        _load_schema_validator().validate(doc)
    except ValidationError as exc:
        where = ".".join(str(p) for p in exc.path)
        where = f" ({where})" if where else ""
        raise ConfigError(f"Schema validation failed for {settings_path}{where}: {exc.message}") from exc

    LOGGER.debug("Loaded settings from %s", settings_path)
    return Settings(
        address=doc.get("address"),
        username=doc.get("username"),
        password=doc.get("password"),
        sideload_timeout_ms=doc.get("sideload_timeout_ms"),
        poll_interval_ms=doc.get("poll_interval_ms"),
        request_timeout_s=doc.get("request_timeout_s"),
        source=settings_path,
    )
