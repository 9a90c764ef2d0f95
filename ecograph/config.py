"""Runtime settings read from ``ECOGRAPH_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from ecograph.exceptions import ConfigError

DEFAULT_REPOSITORIES = ("fez", "cpan", "p6c")


def _env_str(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key)
    return value if value not in (None, "") else default


def _env_int(env: Mapping[str, str], key: str, default: int, minimum: int = 1) -> int:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")


def _env_list(env: Mapping[str, str], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///ecograph.db"
    repositories: tuple[str, ...] = DEFAULT_REPOSITORIES
    list_command: str = "zef list --{repository}"
    depends_command: str = "zef info {identity}"
    key_prefix: str = "module:"
    index_key: str = "module:names"
    order_key: str = "build:order"
    batch_size: int = 50
    store_retries: int = 3
    store_retry_delay: float = 1.0
    deep_scan: bool = True
    extra_noise: frozenset[str] = field(default_factory=frozenset)
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        defaults = cls()
        repositories = _env_list(env, "ECOGRAPH_REPOSITORIES", defaults.repositories)
        if not repositories:
            raise ConfigError("ECOGRAPH_REPOSITORIES must name at least one repository")
        return cls(
            database_url=_env_str(env, "ECOGRAPH_DATABASE_URL", defaults.database_url),
            repositories=repositories,
            list_command=_env_str(env, "ECOGRAPH_LIST_COMMAND", defaults.list_command),
            depends_command=_env_str(env, "ECOGRAPH_DEPENDS_COMMAND", defaults.depends_command),
            key_prefix=_env_str(env, "ECOGRAPH_KEY_PREFIX", defaults.key_prefix),
            index_key=_env_str(env, "ECOGRAPH_INDEX_KEY", defaults.index_key),
            order_key=_env_str(env, "ECOGRAPH_ORDER_KEY", defaults.order_key),
            batch_size=_env_int(env, "ECOGRAPH_BATCH_SIZE", defaults.batch_size),
            store_retries=_env_int(env, "ECOGRAPH_STORE_RETRIES", defaults.store_retries),
            store_retry_delay=_env_float(
                env, "ECOGRAPH_STORE_RETRY_DELAY", defaults.store_retry_delay
            ),
            deep_scan=_env_bool(env, "ECOGRAPH_DEEP_SCAN", defaults.deep_scan),
            extra_noise=frozenset(_env_list(env, "ECOGRAPH_EXTRA_NOISE", ())),
            log_level=_env_str(env, "ECOGRAPH_LOG_LEVEL", defaults.log_level).upper(),
            log_format=_env_str(env, "ECOGRAPH_LOG_FORMAT", defaults.log_format).lower(),
        )

    def with_overrides(self, **overrides) -> Settings:
        """Return a copy with every non-None override applied (CLI flags)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
