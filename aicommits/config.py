"""Configuration management for aicommits.

Values come from an ordered list of sources (CLI overrides, environment,
the persisted ``~/.aicommits`` file) and every key runs through its own
validator before the run starts.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".aicommits"
CONFIG_PATH_ENV = "AICOMMITS_CONFIG_PATH"
ENV_PREFIX = "AICOMMITS_"

DEFAULT_MODEL = "gpt-3.5-turbo"
COMMIT_TYPES = ("", "conventional")

TRUTHY_TOKENS = {"true", "1", "yes", "y", "on"}
FALSY_TOKENS = {"false", "0", "no", "n", "off"}


class ConfigKey(str, Enum):
    """Persisted configuration keys, in resolution order."""

    OPENAI_KEY = "OPENAI_KEY"
    MODEL = "model"
    LOCALE = "locale"
    GENERATE = "generate"
    TIMEOUT = "timeout"
    MAX_LENGTH = "max-length"
    TYPE = "type"
    USE_BRANCH_PREFIX = "use-branch-prefix"
    PROXY = "proxy"

    @property
    def env_var(self) -> str:
        return ENV_PREFIX + self.value.upper().replace("-", "_")


@dataclass(frozen=True)
class Configuration:
    """Validated runtime configuration for a single run."""

    api_key: str
    model: str = DEFAULT_MODEL
    locale: str = "en"
    generate: int = 1
    timeout: int = 10000
    max_length: int = 50
    commit_type: str = ""
    use_branch_prefix: bool = False
    proxy: Optional[str] = None

    def to_debug_dict(self) -> Dict[str, Any]:
        """Return the configuration with the API key masked."""
        data = asdict(self)
        key = data["api_key"]
        data["api_key"] = f"{key[:5]}…" if key else ""
        return data


def _assert(key: ConfigKey, condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(f"Invalid config property {key.value}: {message}")


def _parse_api_key(value: Optional[str]) -> str:
    if not value:
        raise ConfigError(
            "Please set your OpenAI API key via "
            "`aicommits config set OPENAI_KEY=<your token>`"
        )
    _assert(ConfigKey.OPENAI_KEY, value.startswith("sk-"), 'Must start with "sk-"')
    return value


def _parse_model(value: Optional[str]) -> str:
    if not value:
        return DEFAULT_MODEL
    return value


def _parse_locale(value: Optional[str]) -> str:
    if not value:
        return "en"
    _assert(
        ConfigKey.LOCALE,
        bool(re.match(r"^[a-z-]+$", value, re.IGNORECASE)),
        "Must be a valid locale (letters and dashes/underscores). "
        "See: https://wikipedia.org/wiki/List_of_ISO_639-1_codes",
    )
    return value


def _parse_int(
    key: ConfigKey, value: Optional[str], default: int
) -> Tuple[bool, int]:
    if not value:
        return False, default
    _assert(key, bool(re.match(r"^\d+$", value)), "Must be an integer")
    return True, int(value)


def _parse_generate(value: Optional[str]) -> int:
    supplied, count = _parse_int(ConfigKey.GENERATE, value, 1)
    if supplied:
        _assert(ConfigKey.GENERATE, count > 0, "Must be greater than 0")
        _assert(ConfigKey.GENERATE, count <= 5, "Must be less or equal to 5")
    return count


def _parse_timeout(value: Optional[str]) -> int:
    supplied, timeout = _parse_int(ConfigKey.TIMEOUT, value, 10000)
    if supplied:
        _assert(ConfigKey.TIMEOUT, timeout >= 500, "Must be greater than 500ms")
    return timeout


def _parse_max_length(value: Optional[str]) -> int:
    supplied, length = _parse_int(ConfigKey.MAX_LENGTH, value, 50)
    if supplied:
        _assert(
            ConfigKey.MAX_LENGTH, length >= 20, "Must be greater than 20 characters"
        )
    return length


def _parse_type(value: Optional[str]) -> str:
    if not value:
        return ""
    _assert(ConfigKey.TYPE, value in COMMIT_TYPES, "Invalid commit type")
    return value


def _parse_use_branch_prefix(value: Optional[str]) -> bool:
    if value is None or not str(value).strip():
        return False
    token = str(value).strip().lower()
    if token in TRUTHY_TOKENS:
        return True
    _assert(
        ConfigKey.USE_BRANCH_PREFIX,
        token in FALSY_TOKENS,
        "Must be either 'true' or 'false'",
    )
    return False


def _parse_proxy(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    _assert(ConfigKey.PROXY, bool(re.match(r"^https?://", value)), "Must be a valid URL")
    return value


@dataclass(frozen=True)
class FieldSpec:
    """Binds a config key to its dataclass field, validator and default."""

    field: str
    parse: Callable[[Optional[str]], Any]
    default: Any


FIELD_SPECS: Dict[ConfigKey, FieldSpec] = {
    ConfigKey.OPENAI_KEY: FieldSpec("api_key", _parse_api_key, None),
    ConfigKey.MODEL: FieldSpec("model", _parse_model, DEFAULT_MODEL),
    ConfigKey.LOCALE: FieldSpec("locale", _parse_locale, "en"),
    ConfigKey.GENERATE: FieldSpec("generate", _parse_generate, 1),
    ConfigKey.TIMEOUT: FieldSpec("timeout", _parse_timeout, 10000),
    ConfigKey.MAX_LENGTH: FieldSpec("max_length", _parse_max_length, 50),
    ConfigKey.TYPE: FieldSpec("commit_type", _parse_type, ""),
    ConfigKey.USE_BRANCH_PREFIX: FieldSpec(
        "use_branch_prefix", _parse_use_branch_prefix, False
    ),
    ConfigKey.PROXY: FieldSpec("proxy", _parse_proxy, None),
}

_missing = set(ConfigKey) - set(FIELD_SPECS)
if _missing:  # pragma: no cover - guarded by tests
    raise RuntimeError(f"Config keys without validator: {sorted(_missing)}")

# Extra environment variables honoured besides AICOMMITS_<KEY>.
_ENV_ALIASES: Dict[ConfigKey, Tuple[str, ...]] = {
    ConfigKey.OPENAI_KEY: ("OPENAI_KEY", "OPENAI_API_KEY"),
    ConfigKey.PROXY: ("https_proxy", "HTTPS_PROXY", "http_proxy", "HTTP_PROXY"),
}


@dataclass(frozen=True)
class ConfigSource:
    """A named layer of raw string values keyed by ``ConfigKey`` value.

    A blank value is an explicit empty choice and still wins over lower
    layers, unless ``blank_is_unset`` is set (environment variables).
    """

    name: str
    values: Mapping[str, Any]
    blank_is_unset: bool = False

    def get(self, key: ConfigKey) -> Optional[str]:
        value = self.values.get(key.value)
        if value is None:
            return None
        text = str(value)
        if text.strip():
            return text
        return None if self.blank_is_unset else ""


def cli_source(overrides: Optional[Mapping[str, Any]] = None) -> ConfigSource:
    values = {k: v for k, v in (overrides or {}).items() if v is not None}
    return ConfigSource("cli", values)


def environment_source(env: Optional[Mapping[str, str]] = None) -> ConfigSource:
    env_map = os.environ if env is None else env
    values: Dict[str, str] = {}
    for key in ConfigKey:
        for name in (key.env_var, *_ENV_ALIASES.get(key, ())):
            if env_map.get(name):
                values[key.value] = env_map[name]
                break
    return ConfigSource("environment", values, blank_is_unset=True)


def file_source(path: Optional[Path] = None) -> ConfigSource:
    return ConfigSource("file", read_config_file(path))


def resolve(sources: Sequence[ConfigSource], strict: bool = True) -> Configuration:
    """Merge ``sources`` (highest precedence first) into a Configuration.

    In strict mode the first invalid value raises ``ConfigError``. In
    suppressed mode invalid values fall back to their defaults, except the
    API key, which has no usable default and always raises.
    """
    fields: Dict[str, Any] = {}
    for key in ConfigKey:
        field_spec = FIELD_SPECS[key]
        raw = None
        origin = "default"
        for source in sources:
            raw = source.get(key)
            if raw is not None:
                origin = source.name
                break
        try:
            fields[field_spec.field] = field_spec.parse(raw)
        except ConfigError:
            if strict or key is ConfigKey.OPENAI_KEY:
                raise
            logger.debug("Invalid %s from %s ignored; using default", key.value, origin)
            fields[field_spec.field] = field_spec.default
    return Configuration(**fields)


def load_config(
    cli_overrides: Optional[Mapping[str, Any]] = None,
    *,
    strict: bool = True,
    env: Optional[Mapping[str, str]] = None,
    path: Optional[Path] = None,
) -> Configuration:
    """Build configuration from CLI overrides, environment and config file."""
    sources = [cli_source(cli_overrides), environment_source(env), file_source(path)]
    config = resolve(sources, strict=strict)
    logger.debug("Resolved configuration: %s", config.to_debug_dict())
    return config


# ---------------------------------------------------------------------------
# Persisted key-value store
# ---------------------------------------------------------------------------
def config_file_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_FILE_NAME


def read_config_file(path: Optional[Path] = None) -> Dict[str, str]:
    """Parse the flat ``key=value`` config file; missing file means empty."""
    cfg_path = path or config_file_path()
    if not cfg_path.exists():
        return {}
    try:
        content = cfg_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Error reading config file %s: %s", cfg_path, exc)
        return {}
    data: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")) or "=" not in line:
            continue
        key, _, value = line.partition("=")
        data[key.strip()] = value.strip()
    return data


def write_config_file(data: Mapping[str, str], path: Optional[Path] = None) -> None:
    cfg_path = path or config_file_path()
    body = "".join(f"{key}={value}\n" for key, value in data.items())
    try:
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.write_text(body, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to save config: {exc}") from exc


def _lookup_key(name: str) -> ConfigKey:
    try:
        return ConfigKey(name)
    except ValueError:
        raise ConfigError(f"Invalid config property: {name}") from None


def _serialise(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return None
    return str(value)


def set_configs(
    pairs: Iterable[Tuple[str, str]], path: Optional[Path] = None
) -> Dict[str, str]:
    """Validate ``pairs`` and merge them into the persisted file.

    Booleans are written as the literal tokens ``true``/``false``; a value
    that validates to "unset" (e.g. an empty proxy) removes the key.
    """
    data = read_config_file(path)
    for name, value in pairs:
        key = _lookup_key(name)
        parsed = FIELD_SPECS[key].parse(value)
        serialised = _serialise(parsed)
        if serialised is None:
            data.pop(key.value, None)
        else:
            data[key.value] = serialised
    write_config_file(data, path)
    return data


def get_configs(
    keys: Sequence[str], path: Optional[Path] = None
) -> List[Tuple[str, str]]:
    """Return display values for ``keys`` from the persisted file.

    Values are resolved in suppressed mode so a bad entry shows its default.
    The API key is reported as stored, so introspection works before one
    has been configured.
    """
    persisted = read_config_file(path)
    source = ConfigSource("file", persisted)
    results: List[Tuple[str, str]] = []
    for name in keys:
        key = _lookup_key(name)
        raw = source.get(key)
        if key is ConfigKey.OPENAI_KEY:
            results.append((key.value, raw or ""))
            continue
        field_spec = FIELD_SPECS[key]
        try:
            value = field_spec.parse(raw)
        except ConfigError:
            value = field_spec.default
        results.append((key.value, _serialise(value) or ""))
    return results


def parse_assignments(items: Sequence[str]) -> List[Tuple[str, str]]:
    """Split ``KEY=VALUE`` command-line items."""
    pairs: List[Tuple[str, str]] = []
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ConfigError(f"Invalid config assignment: {item!r} (expected key=value)")
        pairs.append((key, value))
    return pairs
