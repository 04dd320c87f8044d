import os
import re

from dotenv import find_dotenv, load_dotenv

from household_categorizer.logger import get_logger

logger = get_logger(__name__)


CONFIG_FILENAME = "config.yaml"

DEFAULT_LEARNING_CACHE_LIMIT = 200
DEFAULT_BANK_FORMAT_NAME = "standard"
DEFAULT_FORMAT_DETECTION_THRESHOLD = 80.0

# Keys a config.yaml may provide. The process environment always wins.
CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DATA_DIR",
    "LEDGER_API_URL",
    "LEDGER_API_TOKEN",
    "LEARNING_CACHE_LIMIT",
    "DEFAULT_BANK_FORMAT",
    "FORMAT_DETECTION_THRESHOLD",
    "HOST",
    "PORT",
)

_config_path: str | None = None
_config_values: dict[str, str] = {}
_external_env_keys: frozenset[str] = frozenset()

_CONFIG_LINE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*:(.*)$")
_SECRET_NAME_MARKERS = ("KEY", "TOKEN", "SECRET", "PASSWORD", "PASS", "AUTH", "BEARER", "PRIVATE")
_SECRET_VALUE = re.compile(r"^(?:[sr]k-|[Bb]earer |eyJ[^.]*\.[^.]*\.[^.]*$)")


def _config_dir_candidate(filename: str) -> str | None:
    config_dir = os.getenv("CONFIG_DIR")
    if not config_dir:
        return None
    return os.path.join(config_dir, filename)


def _resolve_dotenv_path() -> str | None:
    candidate = _config_dir_candidate(".env")
    if candidate and os.path.exists(candidate):
        return candidate
    return find_dotenv(usecwd=True) or None


def _resolve_config_path() -> str:
    candidate = _config_dir_candidate(CONFIG_FILENAME)
    if candidate:
        return candidate
    nested = os.path.join(os.getcwd(), "config", CONFIG_FILENAME)
    if os.path.exists(nested):
        return nested
    return os.path.join(os.getcwd(), CONFIG_FILENAME)


def _parse_config_value(raw: str) -> str:
    """Scalar value of a ``KEY: value`` line.

    Quoted values may contain ``#`` and backslash escapes; unquoted values
    end at the first ``#``.
    """
    value = raw.strip()
    if value[:1] not in {'"', "'"}:
        return value.split("#", 1)[0].rstrip()

    quote = value[0]
    chars: list[str] = []
    index = 1
    while index < len(value):
        char = value[index]
        if char == "\\" and index + 1 < len(value):
            chars.append(value[index + 1])
            index += 2
            continue
        if char == quote:
            return "".join(chars)
        chars.append(char)
        index += 1
    # No closing quote: keep the text as written
    return value.split("#", 1)[0].rstrip()


def read_config_file(path: str | None) -> dict[str, str]:
    """Flat ``KEY: value`` pairs from a config.yaml. Nesting is not supported."""
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            match = _CONFIG_LINE.match(line.strip())
            if not match:
                continue
            key, raw_value = match.groups()
            value = _parse_config_value(raw_value)
            if value:
                values[key] = value
    return values


def load_environment() -> None:
    global _config_path
    global _config_values
    global _external_env_keys

    dotenv_path = _resolve_dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    _external_env_keys = frozenset(os.environ)

    _config_path = _resolve_config_path()
    _config_values = read_config_file(_config_path)
    for key in CONFIG_KEYS:
        if key not in os.environ and key in _config_values:
            os.environ[key] = _config_values[key]


def get_config_path() -> str | None:
    return _config_path


def is_env_override(name: str) -> bool:
    return name in _external_env_keys


def ensure_dirs(*paths: str | None) -> None:
    for path in paths:
        if path and path not in {".", "./"}:
            os.makedirs(path, exist_ok=True)


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("[ENV] %s='%s' below minimum %s, using default %s.", name, raw, min_value, default)
        return default
    return value


def get_env_float(name: str, default: float = 0.0) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default


def get_env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _mask_env_value(name: str, value: str) -> str:
    sanitized = value.replace("\r", "\\r").replace("\n", "\\n")
    secret = any(marker in name.upper() for marker in _SECRET_NAME_MARKERS) or _SECRET_VALUE.match(sanitized)
    if not secret:
        return sanitized
    if len(sanitized) <= 4:
        return "****"
    return f"{sanitized[:2]}...{sanitized[-2:]}"


def log_environment() -> None:
    logger.info("[ENV] Configuration (config file: %s, secrets masked).", _config_path or "<none>")
    for key in CONFIG_KEYS:
        raw_value = os.getenv(key)
        value = "<unset>" if raw_value is None else _mask_env_value(key, raw_value)
        source = "env" if is_env_override(key) else "config"
        logger.info("[ENV] %s=%s%s", key, value, f" ({source})" if raw_value is not None else "")


load_environment()

DATA_DIR = os.getenv("DATA_DIR", ".")
LOG_DIR = os.getenv("LOG_DIR")
CONFIG_DIR = os.getenv("CONFIG_DIR")

ensure_dirs(DATA_DIR, LOG_DIR, CONFIG_DIR)

LEARNING_CACHE_LIMIT = get_env_int("LEARNING_CACHE_LIMIT", DEFAULT_LEARNING_CACHE_LIMIT, min_value=1)
DEFAULT_BANK_FORMAT = get_env_str("DEFAULT_BANK_FORMAT", DEFAULT_BANK_FORMAT_NAME).lower()
FORMAT_DETECTION_THRESHOLD = get_env_float("FORMAT_DETECTION_THRESHOLD", DEFAULT_FORMAT_DETECTION_THRESHOLD)
