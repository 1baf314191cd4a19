"""Configuration utilities for FOLIO.

Settings are resolved from layered sources, lowest to highest precedence:

1. ``{base_path}/appsettings.json`` (optional)
2. ``{base_path}/appsettings.{environment}.json`` (optional)
3. process environment variables (``__`` maps to the ``:`` key separator)
4. in-process overrides (used by tests and tools)

Each layer may be partial: it overrides only the keys it defines. Keys are
``:``-separated paths (e.g. ``ConnectionStrings:DefaultConnection``) and are
matched case-insensitively.

This module also keeps the small Alembic helpers used by the migrator and the
``folio db`` commands.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator, Mapping
from importlib.resources import files
from pathlib import Path
from types import MappingProxyType
from typing import Any, TextIO

from alembic.config import Config

from folio.errors import ConfigurationLoadError, MissingConfiguration

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"
ENV_KEY_DELIMITER = "__"
BASE_SETTINGS_FILE = "appsettings.json"
ENVIRONMENT_SETTINGS_FILE = "appsettings.{environment}.json"

ENVIRONMENT_VARIABLE = "FOLIO_ENVIRONMENT"
DEFAULT_ENVIRONMENT = "Production"
DEFAULT_CONNECTION_NAME = "DefaultConnection"

ALEMBIC_URL_KEY = "sqlalchemy.url"  # pragma: no mutate
ALEMBIC_SCRIPT_LOCATION_KEY = "script_location"  # pragma: no mutate

_MISSING: Any = object()


class Settings(Mapping[str, str]):
    """Immutable, case-insensitive view over layered configuration values.

    Iteration yields keys in the order they were first defined, using the
    spelling of the source that defined them first.
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        spelled: dict[str, str] = {}
        folded: dict[str, str] = {}
        for key, value in (values or {}).items():
            norm = key.casefold()
            spelled.setdefault(norm, key)
            folded[norm] = value
        self._keys = MappingProxyType(spelled)
        self._values = MappingProxyType(folded)

    def __getitem__(self, key: str) -> str:
        return self._values[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._values

    def __repr__(self) -> str:
        return f"Settings({len(self)} keys)"

    def get(self, key: str, default: Any = _MISSING) -> Any:  # type: ignore[override]
        """Look up a key, failing loudly unless a default is supplied.

        Args:
            key: ``:``-separated key path.
            default: Value returned when no source defines ``key``.

        Returns:
            The value from the highest-precedence source that defines ``key``,
            or ``default``.

        Raises:
            MissingConfiguration: If ``key`` is undefined and no default given.
        """
        try:
            return self[key]
        except KeyError:
            if default is _MISSING:
                raise MissingConfiguration(key) from None
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool:
        """Look up a key and interpret it as a boolean."""
        raw = self.get(key, _MISSING if default is None else None)
        if raw is None:
            return bool(default)
        return raw.strip().lower() in {"1", "true", "yes", "on"}

    def get_int(self, key: str, default: int | None = None) -> int:
        """Look up a key and interpret it as an integer."""
        raw = self.get(key, _MISSING if default is None else None)
        if raw is None:
            return int(default)  # type: ignore[arg-type]
        return int(raw)

    def get_connection_string(self, name: str = DEFAULT_CONNECTION_NAME) -> str:
        """Return ``ConnectionStrings:{name}``.

        Raises:
            MissingConfiguration: If the connection string is not configured.
        """
        return self.get(f"ConnectionStrings{KEY_DELIMITER}{name}")

    def section(self, prefix: str) -> Settings:
        """Return the keys under ``prefix`` with the prefix stripped."""
        head = prefix.casefold() + KEY_DELIMITER
        return Settings(
            {
                key[len(head) :]: self[key]
                for key in self
                if key.casefold().startswith(head)
            }
        )

    def as_dict(self) -> dict[str, str]:
        """Return a plain ``dict`` copy of the settings."""
        return {key: self[key] for key in self}


# ----------------------------------------------------------------------------
# Source loading
# ----------------------------------------------------------------------------


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Mapping[str, Any] | list[Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings/lists into ``:``-separated key paths.

    Example:
        ``{"A": {"B": 1, "C": [True, None]}}`` becomes
        ``{"A:B": "1", "A:C:0": "true", "A:C:1": ""}``.
    """
    items = data.items() if isinstance(data, Mapping) else enumerate(data)
    flat: dict[str, str] = {}
    for key, value in items:
        path = f"{prefix}{KEY_DELIMITER}{key}" if prefix else str(key)
        if isinstance(value, (Mapping, list)):
            flat.update(flatten(value, path))
        else:
            flat[path] = _scalar(value)
    return flat


def load_json_file(path: Path) -> dict[str, str]:
    """Load an optional JSON settings file.

    Args:
        path: File to read.

    Returns:
        Flattened key/value pairs, or an empty dict if the file is absent.

    Raises:
        ConfigurationLoadError: If the file exists but is unreadable, is not
            valid UTF-8 or JSON, or does not contain a JSON object.
    """
    if not path.is_file():
        logger.debug("Optional settings file %s not found, skipping", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except OSError as e:
        raise ConfigurationLoadError(str(path), str(e)) from e
    except UnicodeDecodeError as e:
        raise ConfigurationLoadError(str(path), f"not valid UTF-8 ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigurationLoadError(str(path), f"invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigurationLoadError(str(path), "top-level value must be an object")
    logger.debug("Loaded settings file %s", path)
    return flatten(data)


def load_environment(environ: Mapping[str, str]) -> dict[str, str]:
    """Translate environment variables into key paths (``A__B`` → ``A:B``)."""
    return {
        name.replace(ENV_KEY_DELIMITER, KEY_DELIMITER): value
        for name, value in environ.items()
    }


def load_overrides(overrides: Mapping[str, Any]) -> dict[str, str]:
    """Accept overrides as nested mappings and/or flat ``a:b`` keys."""
    return flatten(overrides)


def resolve(
    base_path: Path | str,
    environment_name: str,
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve layered settings for ``environment_name`` rooted at ``base_path``.

    Args:
        base_path: Directory holding the ``appsettings*.json`` files.
        environment_name: Name used for the environment-specific file.
        overrides: In-process values with the highest precedence.
        environ: Environment variables; defaults to ``os.environ``.

    Returns:
        An immutable :class:`Settings`.

    Raises:
        ConfigurationLoadError: If a present settings file is malformed.
    """
    base = Path(base_path)
    layers = [
        load_json_file(base / BASE_SETTINGS_FILE),
        load_json_file(
            base / ENVIRONMENT_SETTINGS_FILE.format(environment=environment_name)
        ),
        load_environment(os.environ if environ is None else environ),
        load_overrides(overrides or {}),
    ]

    merged: dict[str, str] = {}
    spelling: dict[str, str] = {}
    for layer in layers:
        for key, value in layer.items():
            norm = key.casefold()
            spelling.setdefault(norm, key)
            merged[norm] = value

    return Settings({spelling[norm]: value for norm, value in merged.items()})


def get_environment_name(environ: Mapping[str, str] | None = None) -> str:
    """Return the runtime environment name (``FOLIO_ENVIRONMENT``)."""
    environ = os.environ if environ is None else environ
    return environ.get(ENVIRONMENT_VARIABLE) or DEFAULT_ENVIRONMENT


# ----------------------------------------------------------------------------
# Alembic
# ----------------------------------------------------------------------------


def build_alembic_config(
    db_url: str | None = None, stdout: TextIO = sys.stdout
) -> Config:
    """Build an Alembic `Config` object for FOLIO's migrations.

    Sets only Alembic "main" options:
    - `sqlalchemy.url` → the database URL you pass
    - `script_location` → FOLIO's packaged Alembic scripts

    Args:
        db_url: SQLAlchemy database URL. Can be `None` (default) when Alembic
            won't need to connect, or when a connection is supplied through
            ``cfg.attributes["connection"]``.
        stdout: Text stream Alembic will write status lines to.

    Returns:
        An `alembic.config.Config` pointing to FOLIO's migration scripts.
    """
    cfg = Config(stdout=stdout)
    if db_url is not None:
        # ConfigParser interpolation treats "%" specially
        cfg.set_main_option(ALEMBIC_URL_KEY, db_url.replace("%", "%%"))
    cfg.set_main_option(
        ALEMBIC_SCRIPT_LOCATION_KEY,
        str(files("folio.adapters.db.alembic")),
    )
    return cfg
