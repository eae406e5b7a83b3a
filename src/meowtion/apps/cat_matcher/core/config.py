"""Configuration helpers for the cat matcher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

import tomllib

from .errors import ConfigurationError
from .roster import ReferenceRoster, builtin_roster, load_roster

_CONFIG_ENV_PREFIX = "MEOWTION_CAT_MATCHER__"
_API_KEY_ENV_VARS = ("MEOWTION_ORACLE_API_KEY", "GEMINI_API_KEY")
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}


def _find_pyproject(start: Optional[Path] = None) -> Optional[Path]:
    """Locate the closest ``pyproject.toml`` relative to *start*."""

    current = (start or Path.cwd()).resolve()
    for candidate in [current, *current.parents]:
        pyproject = candidate / "pyproject.toml"
        if pyproject.exists():
            return pyproject
    return None


def _coerce_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def _coerce_int(value: object, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_float(value: object, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_optional_float(value: object) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if numeric > 0 else None


def _as_path(value: object) -> Optional[Path]:
    if isinstance(value, Path):
        return value
    if isinstance(value, str) and value.strip():
        return Path(value).expanduser()
    return None


def _clean_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class MatcherSettings:
    """Default configuration values sourced from project metadata."""

    default_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    default_model: str = "gemini-2.5-flash"
    default_api_key: str = ""
    default_timeout: int = 120
    default_temperature: float = 0.0
    # Decision policy; see DESIGN.md before changing.
    default_match_threshold: float = 0.75
    default_max_conflicts: int = 1
    default_concurrent: bool = True
    default_match_timeout: Optional[float] = None
    default_cache_references: bool = True
    default_roster_path: Optional[Path] = None
    default_assets_dir: Path = Path("assets/known-cats")
    default_max_image_bytes: int = 6_000_000


@dataclass(frozen=True)
class MatcherConfig:
    """Fully resolved runtime configuration."""

    base_url: str
    model: str
    api_key: str
    timeout: int
    temperature: float
    match_threshold: float
    max_conflicts: int
    concurrent: bool
    match_timeout: Optional[float]
    cache_references: bool
    roster_path: Optional[Path]
    assets_dir: Path
    max_image_bytes: int

    def load_roster(self) -> ReferenceRoster:
        if self.roster_path is not None:
            return load_roster(self.roster_path)
        return builtin_roster(self.assets_dir)


def _load_pyproject_settings(start: Optional[Path]) -> Dict[str, object]:
    pyproject = _find_pyproject(start)
    if not pyproject:
        return {}

    try:
        with pyproject.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError):
        return {}

    tool_cfg = data.get("tool", {}).get("meowtion", {})
    if not isinstance(tool_cfg, dict):
        return {}

    matcher_cfg = tool_cfg.get("cat_matcher")
    return dict(matcher_cfg) if isinstance(matcher_cfg, dict) else {}


def _load_env_settings() -> Dict[str, object]:
    values: Dict[str, object] = {}
    for env_key, env_value in os.environ.items():
        if not env_key.startswith(_CONFIG_ENV_PREFIX):
            continue
        key = env_key[len(_CONFIG_ENV_PREFIX) :].lower()
        if not key.startswith("default_"):
            key = f"default_{key}"
        values[key] = env_value
    return values


def _api_key_from_env() -> Optional[str]:
    for name in _API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def load_settings(start: Optional[Path] = None) -> MatcherSettings:
    """Load project defaults, applying environment overrides when present."""

    raw = _load_pyproject_settings(start)
    raw.update(_load_env_settings())
    defaults = MatcherSettings()

    return MatcherSettings(
        default_base_url=_clean_str(raw.get("default_base_url")) or defaults.default_base_url,
        default_model=_clean_str(raw.get("default_model")) or defaults.default_model,
        default_api_key=(
            _clean_str(raw.get("default_api_key"))
            or _api_key_from_env()
            or defaults.default_api_key
        ),
        default_timeout=_coerce_int(raw.get("default_timeout"), defaults.default_timeout),
        default_temperature=_coerce_float(
            raw.get("default_temperature"), defaults.default_temperature
        ),
        default_match_threshold=_coerce_float(
            raw.get("default_match_threshold"), defaults.default_match_threshold
        ),
        default_max_conflicts=_coerce_int(
            raw.get("default_max_conflicts"), defaults.default_max_conflicts
        ),
        default_concurrent=_coerce_bool(
            raw.get("default_concurrent"), defaults.default_concurrent
        ),
        default_match_timeout=_coerce_optional_float(raw.get("default_match_timeout")),
        default_cache_references=_coerce_bool(
            raw.get("default_cache_references"), defaults.default_cache_references
        ),
        default_roster_path=_as_path(raw.get("default_roster_path")),
        default_assets_dir=_as_path(raw.get("default_assets_dir")) or defaults.default_assets_dir,
        default_max_image_bytes=_coerce_int(
            raw.get("default_max_image_bytes"), defaults.default_max_image_bytes
        ),
    )


def _is_local_endpoint(base_url: str) -> bool:
    host = urlparse(base_url).hostname or ""
    return host in _LOCAL_HOSTS


def build_runtime_config(
    *,
    settings: MatcherSettings,
    base_url: Optional[str] = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: Optional[int] = None,
    temperature: Optional[float] = None,
    match_threshold: Optional[float] = None,
    max_conflicts: Optional[int] = None,
    concurrent: Optional[bool] = None,
    match_timeout: Optional[float] = None,
    cache_references: Optional[bool] = None,
    roster_path: Optional[Path] = None,
    assets_dir: Optional[Path] = None,
    max_image_bytes: Optional[int] = None,
    require_api_key: bool = True,
) -> MatcherConfig:
    """Merge explicit overrides with defaults to produce a runtime config."""

    resolved_base_url = (base_url or settings.default_base_url).strip()
    if not resolved_base_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"Oracle base URL must be http(s): {resolved_base_url!r}")
    resolved_model = (model or settings.default_model).strip()
    if not resolved_model:
        raise ConfigurationError("An oracle model identifier is required")
    resolved_api_key = (api_key if api_key is not None else settings.default_api_key).strip()
    if require_api_key and not resolved_api_key and not _is_local_endpoint(resolved_base_url):
        raise ConfigurationError(
            "Oracle API key is not configured. Set GEMINI_API_KEY or "
            "MEOWTION_ORACLE_API_KEY."
        )

    resolved_threshold = (
        settings.default_match_threshold if match_threshold is None else float(match_threshold)
    )
    if not 0.0 <= resolved_threshold <= 1.0:
        raise ConfigurationError("Match threshold must be in the range [0, 1]")
    resolved_conflicts = (
        settings.default_max_conflicts if max_conflicts is None else int(max_conflicts)
    )
    if resolved_conflicts < 0:
        raise ConfigurationError("Maximum conflicts must not be negative")

    resolved_timeout = int(timeout or settings.default_timeout)
    if resolved_timeout <= 0:
        raise ConfigurationError("Oracle timeout must be positive")
    resolved_match_timeout = (
        settings.default_match_timeout if match_timeout is None else match_timeout
    )
    if resolved_match_timeout is not None and resolved_match_timeout <= 0:
        raise ConfigurationError("Match timeout must be positive when set")

    return MatcherConfig(
        base_url=resolved_base_url,
        model=resolved_model,
        api_key=resolved_api_key,
        timeout=resolved_timeout,
        temperature=(
            settings.default_temperature if temperature is None else float(temperature)
        ),
        match_threshold=resolved_threshold,
        max_conflicts=resolved_conflicts,
        concurrent=settings.default_concurrent if concurrent is None else bool(concurrent),
        match_timeout=resolved_match_timeout,
        cache_references=(
            settings.default_cache_references
            if cache_references is None
            else bool(cache_references)
        ),
        roster_path=(roster_path or settings.default_roster_path),
        assets_dir=(assets_dir or settings.default_assets_dir).expanduser(),
        max_image_bytes=int(max_image_bytes or settings.default_max_image_bytes),
    )


def load_config(start: Optional[Path] = None, **overrides: object) -> MatcherConfig:
    """Convenience wrapper used by the CLI and the API."""

    settings = load_settings(start)
    return build_runtime_config(settings=settings, **overrides)  # type: ignore[arg-type]
