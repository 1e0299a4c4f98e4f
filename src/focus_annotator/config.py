"""Configuration constants for focus-annotator."""

import os
from dataclasses import dataclass
from pathlib import Path

VERSION = "0.1.0"

PLATFORMS: tuple[str, ...] = ("web", "native")

# Legacy platform tags still sent by older plugin builds.
PLATFORM_ALIASES: dict[str, str] = {"rn": "native", "react-native": "native"}

# Serializer bounds. Traversal truncates instead of failing once either is hit.
DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_NODE_COUNT = 500

# Two nodes whose top edges differ by at most this much sit on the same row.
ROW_TOLERANCE = 6.0

# Consecutive items jumping up by more than this are reported as suspicious.
BACKWARD_JUMP_THRESHOLD = 50.0

# Requests with at most this many focusable nodes never reach the model.
TRIVIAL_FOCUSABLE_LIMIT = 2

EMPTY_STATE_MESSAGE = "No focusable elements in this selection."

# Per-node storage keys on the host document.
TAG_FOCUSABLE = "a11y-focusable"
TAG_ROLE = "a11y-role"
TAG_FOCUS_ORDER = "a11y-focus-order"

# Server-side limits.
DEFAULT_NODE_BUDGET = 1500
MAX_REQUEST_NODES = 5000
MAX_REQUEST_DEPTH = 100
MAX_IMAGE_BYTES = 8 * 1024 * 1024
DEFAULT_CACHE_TTL = 15 * 60
DEFAULT_CACHE_SIZE = 512

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MODEL_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL_TIMEOUT = 45.0

DEFAULT_SERVICE_URL = "http://localhost:8787"
DEFAULT_SERVICE_TIMEOUT = 60.0
DEFAULT_PORT = 8787

# Directory for the local spec archive. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/focus-annotator").expanduser(),
    Path("~/.focus-annotator").expanduser(),
]


def resolve_data_directory() -> Path:
    """Return the first existing data directory, or the preferred default."""
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"Environment variable {name} must be a number, got {raw!r}"
        raise ValueError(msg) from None


@dataclass(frozen=True)
class ServiceSettings:
    """Settings for the annotation service, usually read from the environment."""

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    model_url: str = DEFAULT_MODEL_URL
    model_timeout: float = DEFAULT_MODEL_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    node_budget: int = DEFAULT_NODE_BUDGET

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY") or None,
            model=os.environ.get("FOCUS_MODEL", DEFAULT_MODEL),
            model_url=os.environ.get("OPENAI_URL", DEFAULT_MODEL_URL),
            model_timeout=_env_float("FOCUS_MODEL_TIMEOUT", DEFAULT_MODEL_TIMEOUT),
            cache_ttl=_env_float("FOCUS_CACHE_TTL", DEFAULT_CACHE_TTL),
            node_budget=int(_env_float("FOCUS_NODE_BUDGET", DEFAULT_NODE_BUDGET)),
        )


@dataclass(frozen=True)
class ClientSettings:
    """Settings for talking to the annotation service."""

    service_url: str = DEFAULT_SERVICE_URL
    timeout: float = DEFAULT_SERVICE_TIMEOUT

    @classmethod
    def from_env(cls) -> "ClientSettings":
        return cls(
            service_url=os.environ.get("FOCUS_SERVICE_URL", DEFAULT_SERVICE_URL).rstrip("/"),
            timeout=_env_float("FOCUS_SERVICE_TIMEOUT", DEFAULT_SERVICE_TIMEOUT),
        )
