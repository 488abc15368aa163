"""
Pattern Monitor Configuration System
====================================
Centralized, validated configuration with environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from pattern_monitor.core.exceptions import ConfigurationError

DEFAULT_BUCKET = "pattern-monitor-vectors"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
REDIS_URL_SCHEMES = ("redis://", "rediss://", "unix://")


@dataclass(frozen=True)
class EncodingConfig:
    """Fixed, versioned parameters for turning bytes into hypervectors."""
    dimension: int = 8192
    block_size: int = 64
    version: str = "v1"

    @property
    def tag(self) -> bytes:
        """Seed namespace shared by every vector encoded under this config."""
        return f"pmv:{self.version}:{self.dimension}:{self.block_size}".encode()


@dataclass(frozen=True)
class StoreConfig:
    bucket: str = DEFAULT_BUCKET
    buckets: Dict[str, str] = field(
        default_factory=lambda: {DEFAULT_BUCKET: DEFAULT_REDIS_URL}
    )
    socket_timeout: int = 5
    password: Optional[str] = None


@dataclass(frozen=True)
class MessagingConfig:
    url: str = DEFAULT_REDIS_URL
    subject_pattern: str = "pattern.monitor.*"


@dataclass(frozen=True)
class RetrievalConfig:
    top_k: int = 5
    candidate_k: int = 50
    min_fields: int = 2  # the self-check needs at least two fields


@dataclass(frozen=True)
class ObservabilityConfig:
    log_level: str = "INFO"
    json_logs: bool = False
    component: str = "pattern-monitor"


@dataclass(frozen=True)
class PatternMonitorConfig:
    """Root configuration for the pattern monitor."""

    version: str = "1.0"
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def _env_override(key: str, default):
    """Check for PATMON_<KEY> environment variable override."""
    env_key = f"PATMON_{key.upper()}"
    val = os.environ.get(env_key)
    if val is None:
        return default
    # Type coercion based on the default's type
    if isinstance(default, bool):
        return val.lower() in ("true", "1", "yes")
    try:
        if isinstance(default, int):
            return int(val)
        if isinstance(default, float):
            return float(val)
    except ValueError:
        raise ConfigurationError(
            config_key=key.lower(),
            reason=f"cannot parse {env_key}={val!r} as {type(default).__name__}",
        )
    return val


def _require_positive(key: str, value: int) -> int:
    if not isinstance(value, int) or value <= 0:
        raise ConfigurationError(config_key=key, reason=f"must be a positive integer, got {value!r}")
    return value


def _require_redis_url(key: str, url) -> str:
    if not isinstance(url, str) or not url:
        raise ConfigurationError(config_key=key, reason="URL must be a non-empty string")
    if not url.startswith(REDIS_URL_SCHEMES):
        raise ConfigurationError(
            config_key=key,
            reason=f"URL must start with one of {', '.join(REDIS_URL_SCHEMES)}, got {url!r}",
        )
    return url


def _build_encoding(raw: dict) -> EncodingConfig:
    dimension = _env_override("DIMENSION", raw.get("dimension", 8192))
    _require_positive("encoding.dimension", dimension)
    if dimension % 64 != 0:
        raise ConfigurationError(
            config_key="encoding.dimension",
            reason=f"Dimension must be a multiple of 64 for efficient bit packing, got {dimension}",
        )
    block_size = _env_override("BLOCK_SIZE", raw.get("block_size", 64))
    _require_positive("encoding.block_size", block_size)
    version = str(_env_override("ENCODING_VERSION", raw.get("version", "v1")))
    return EncodingConfig(dimension=dimension, block_size=block_size, version=version)


def _build_store(raw: dict, redis_url: str) -> StoreConfig:
    bucket = _env_override("BUCKET", raw.get("bucket", DEFAULT_BUCKET))
    buckets = dict(raw.get("buckets") or {bucket: redis_url})
    # PATMON_REDIS_URL always points the active bucket somewhere
    if os.environ.get("PATMON_REDIS_URL"):
        buckets[bucket] = os.environ["PATMON_REDIS_URL"]
    for name, url in buckets.items():
        _require_redis_url(f"store.buckets.{name}", url)
    return StoreConfig(
        bucket=bucket,
        buckets=buckets,
        socket_timeout=_env_override("SOCKET_TIMEOUT", raw.get("socket_timeout", 5)),
        password=_env_override("REDIS_PASSWORD", raw.get("password")),
    )


def load_config(path: Optional[Path] = None) -> PatternMonitorConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Priority: ENV > YAML > defaults.

    Args:
        path: Path to config.yaml. If None, searches ./config.yaml and the repo root.

    Returns:
        Validated PatternMonitorConfig instance.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    if path is None:
        candidates = [
            Path("config.yaml"),
            Path(__file__).parent.parent.parent.parent / "config.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    raw = {}
    if path is not None and Path(path).exists():
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
            raw = loaded.get("pattern_monitor") or {}

    redis_url = _env_override("REDIS_URL", DEFAULT_REDIS_URL)

    encoding = _build_encoding(raw.get("encoding") or {})
    store = _build_store(raw.get("store") or {}, redis_url)

    msg_raw = raw.get("messaging") or {}
    messaging = MessagingConfig(
        url=_require_redis_url(
            "messaging.url", _env_override("MESSAGING_URL", msg_raw.get("url", redis_url))
        ),
        subject_pattern=_env_override("SUBJECT_PATTERN", msg_raw.get("subject_pattern", "pattern.monitor.*")),
    )

    ret_raw = raw.get("retrieval") or {}
    retrieval = RetrievalConfig(
        top_k=_require_positive("retrieval.top_k", _env_override("RETRIEVAL_TOP_K", ret_raw.get("top_k", 5))),
        candidate_k=_require_positive(
            "retrieval.candidate_k", _env_override("RETRIEVAL_CANDIDATE_K", ret_raw.get("candidate_k", 50))
        ),
        min_fields=_require_positive(
            "retrieval.min_fields", _env_override("RETRIEVAL_MIN_FIELDS", ret_raw.get("min_fields", 2))
        ),
    )

    obs_raw = raw.get("observability") or {}
    observability = ObservabilityConfig(
        log_level=_env_override("LOG_LEVEL", obs_raw.get("log_level", "INFO")),
        json_logs=_env_override("JSON_LOGS", obs_raw.get("json_logs", False)),
        component=obs_raw.get("component", "pattern-monitor"),
    )

    return PatternMonitorConfig(
        version=str(raw.get("version", "1.0")),
        encoding=encoding,
        store=store,
        messaging=messaging,
        retrieval=retrieval,
        observability=observability,
    )


# Module-level singleton (lazy-loaded)
_CONFIG: Optional[PatternMonitorConfig] = None


def get_config() -> PatternMonitorConfig:
    """Get or initialize the global config singleton."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reset_config():
    """Reset the global config singleton (useful for testing)."""
    global _CONFIG
    _CONFIG = None
