"""YAML configuration with ``${VAR}`` expansion.

A config file ``configs/config_<name>.yaml`` is paired with
``configs/.env_<name>`` (any other file name pairs with ``.env`` beside it).
Values from that file are used for placeholder expansion only; ``os.environ``
is never modified. The process environment is the fallback.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("sparkproxy")

CONFIG_ENV_VAR = "SPARKPROXY_CONFIG"
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ${NAME} or $NAME
_PLACEHOLDER = re.compile(r"\$\{(?P<braced>[^}]+)\}|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_path(path: str) -> Path:
    """Relative paths are taken from the project root, not the CWD."""
    candidate = Path(path)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_env_path(config_path: Path, env_path: Optional[str] = None) -> Path:
    """Return the env file that belongs to ``config_path``."""
    if env_path:
        return resolve_config_path(env_path)
    prefix, _, name = config_path.stem.partition("config_")
    if not prefix and name:
        return config_path.with_name(f".env_{name}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Read a dotenv file into a plain dict, dropping value-less keys."""
    if not env_path.is_file():
        return {}
    return {
        key: value
        for key, value in dotenv_values(env_path).items()
        if value is not None
    }


class _Expander:
    """Expands placeholders in nested config values, warning once per name."""

    def __init__(self, env_values: Mapping[str, str]) -> None:
        self._env_values = env_values
        self._missing: set[str] = set()

    def lookup(self, name: str) -> Optional[str]:
        if name in self._env_values:
            return self._env_values[name]
        return os.environ.get(name)

    def _replace(self, match: "re.Match[str]") -> str:
        name = match.group("braced") or match.group("bare")
        value = self.lookup(name)
        if value is not None:
            return value
        if name not in self._missing:
            self._missing.add(name)
            logger.warning(
                f"CONFIG ERROR: variable '${name}' is not set in the env file or "
                f"the environment; keeping the literal placeholder "
                f"(upstream calls using it will likely fail)."
            )
        return match.group(0)

    def expand(self, value: Any) -> Any:
        if isinstance(value, str):
            return _PLACEHOLDER.sub(self._replace, value)
        if isinstance(value, dict):
            return {key: self.expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.expand(item) for item in value]
        return value


def _substitute_env_vars(obj: Any, env_values: Optional[Mapping[str, str]] = None) -> Any:
    """Expand ``${VAR}``/``$VAR`` throughout ``obj``; env file values win."""
    return _Expander(env_values or {}).expand(obj)


def load_config(
    path: Optional[str] = None,
    env_path: Optional[str] = None,
    substitute_env: bool = True,
) -> dict:
    """Load and expand a configuration file.

    Args:
        path: Config file. Defaults to $SPARKPROXY_CONFIG, then
            configs/config_default.yaml under the project root.
        env_path: Explicit env file instead of the paired one.
        substitute_env: Set to False to keep placeholders verbatim.

    Raises:
        RuntimeError: the file is missing, is not valid YAML, or its top
            level is not a mapping.
    """
    config_path = resolve_config_path(
        path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    )
    logger.info(f"Loading configuration from {config_path}")
    if not config_path.is_file():
        logger.error(f"Config file not found: {config_path}")
        raise RuntimeError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Config file is not valid YAML: {config_path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file must contain a mapping: {config_path}")

    if not substitute_env:
        return data

    env_file = resolve_env_path(config_path, env_path)
    env_values = load_env_values(env_file)
    if env_values:
        logger.info(f"Expanding placeholders with values from {env_file}")
    config = _Expander(env_values).expand(data)
    logger.info(f"Configuration loaded from {config_path}")
    return config
