"""Runtime configuration loader (config-first, flag-overrides)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.toml"
DEFAULT_LOCAL_OVERRIDE_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.local.toml"

_VALID_VERSIONS: tuple[str, ...] = ("draft", "published")


@dataclass(frozen=True)
class RuntimeConfig:
    """Materialized runtime configuration."""

    config_path: Path
    fixtures_dir: Path | None
    api_base_url: str
    timeout_s: float
    version: Literal["draft", "published"]
    settings_slug: str
    fallback_slug: str
    token_files: tuple[str, ...]

    def with_overrides(
        self,
        *,
        fixtures_dir: Path | None = None,
        version: str | None = None,
    ) -> RuntimeConfig:
        """Return copy with explicit CLI overrides applied."""
        resolved_version = self.version
        if version is not None:
            resolved_version = _as_version(version, default=self.version)
        return replace(
            self,
            fixtures_dir=fixtures_dir or self.fixtures_dir,
            version=resolved_version,
        )


_CURRENT_RUNTIME_CONFIG: RuntimeConfig | None = None


def set_current_runtime_config(config: RuntimeConfig | None) -> None:
    global _CURRENT_RUNTIME_CONFIG
    _CURRENT_RUNTIME_CONFIG = config


def current_runtime_config() -> RuntimeConfig:
    config = _CURRENT_RUNTIME_CONFIG
    if config is not None:
        return config
    loaded = load_runtime_config()
    set_current_runtime_config(loaded)
    return loaded


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = _deep_merge(existing, value)
        else:
            out[key] = value
    return out


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"failed reading runtime config: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"invalid runtime config TOML: {path}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f"runtime config root must be a table: {path}")
    return payload


def _as_table(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"runtime config section [{key}] must be a table")
    return value


def _as_str(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return default


def _as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _as_version(value: Any, *, default: str) -> Literal["draft", "published"]:
    cleaned = _as_str(value, default=default).lower()
    if cleaned not in _VALID_VERSIONS:
        raise RuntimeError(f"invalid content version: {value}")
    return cleaned  # type: ignore[return-value]


def _as_csv_list(values: Any, *, default: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(values, list):
        cleaned = [str(value).strip() for value in values if str(value).strip()]
        return tuple(cleaned) if cleaned else default
    if isinstance(values, str):
        cleaned = [part.strip() for part in values.split(",") if part.strip()]
        return tuple(cleaned) if cleaned else default
    return default


def _resolve_optional_path(raw: Any, *, base_dir: Path) -> Path | None:
    value = _as_str(raw, default="")
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """Load runtime config from `config/runtime.toml` plus optional local override.

    An explicit path must exist. When the default file is absent (for example in
    an installed wheel) the built-in defaults are used.
    """
    source = (config_path or DEFAULT_CONFIG_PATH).expanduser().resolve()
    if source.exists():
        payload = _read_toml(source)
    elif config_path is None:
        payload = {}
    else:
        raise RuntimeError(f"runtime config file not found: {source}")

    if source == DEFAULT_CONFIG_PATH and DEFAULT_LOCAL_OVERRIDE_PATH.exists():
        payload = _deep_merge(payload, _read_toml(DEFAULT_LOCAL_OVERRIDE_PATH))

    paths = _as_table(payload, "paths")
    storyblok = _as_table(payload, "storyblok")
    base_dir = source.parent

    return RuntimeConfig(
        config_path=source,
        fixtures_dir=_resolve_optional_path(paths.get("fixtures_dir"), base_dir=base_dir),
        api_base_url=_as_str(
            storyblok.get("base_url"),
            default="https://api.storyblok.com/v2",
        ),
        timeout_s=_as_float(storyblok.get("timeout_s"), default=10.0),
        version=_as_version(storyblok.get("version"), default="published"),
        settings_slug=_as_str(storyblok.get("settings_slug"), default="config/global-settings"),
        fallback_slug=_as_str(storyblok.get("fallback_slug"), default="home"),
        token_files=_as_csv_list(
            storyblok.get("token_files"),
            default=("STORYBLOK_TOKEN.ignore", "STORYBLOK_TOKEN"),
        ),
    )
