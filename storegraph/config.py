"""Configuration loading for storegraph (.storegraph.yml) and module registries."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".storegraph.yml"

DEFAULT_CACHE_TTL_MS = 30_000

DEFAULT_BASE_MODULES = ("nanostores", "@nanostores/core")
DEFAULT_PERSISTENT_MODULES = ("@nanostores/persistent", "nanostores/persistent")
DEFAULT_HOOK_MODULES = (
    "nanostores/react",
    "@nanostores/react",
    "@nanostores/preact",
    "@nanostores/solid",
    "@nanostores/vue",
)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


class ModuleRegistry:
    """Accepted module specifiers for store factories and subscription hooks.

    The three sets only grow. A scan reads the registry it is handed and never
    mutates it, so sharing one instance across scans needs no locking.
    """

    def __init__(
        self,
        base: Iterable[str] = (),
        persistent: Iterable[str] = (),
        hooks: Iterable[str] = (),
    ) -> None:
        self._base = set(base)
        self._persistent = set(persistent)
        self._hooks = set(hooks)

    @classmethod
    def with_defaults(cls) -> "ModuleRegistry":
        return cls(DEFAULT_BASE_MODULES, DEFAULT_PERSISTENT_MODULES, DEFAULT_HOOK_MODULES)

    @property
    def base_modules(self) -> frozenset[str]:
        return frozenset(self._base)

    @property
    def persistent_modules(self) -> frozenset[str]:
        return frozenset(self._persistent)

    @property
    def hook_modules(self) -> frozenset[str]:
        return frozenset(self._hooks)

    def add_base_module(self, specifier: str) -> None:
        self._base.add(specifier)

    def add_persistent_module(self, specifier: str) -> None:
        self._persistent.add(specifier)

    def add_hook_module(self, specifier: str) -> None:
        self._hooks.add(specifier)

    def extended(self, modules: "ModuleConfig") -> "ModuleRegistry":
        """Return a copy with the extra specifiers from ``modules`` added."""
        return ModuleRegistry(
            self._base | set(modules.base),
            self._persistent | set(modules.persistent),
            self._hooks | set(modules.hooks),
        )


_DEFAULT_REGISTRY = ModuleRegistry.with_defaults()


def default_registry() -> ModuleRegistry:
    """Return the process-wide registry used when a scan is given none."""
    return _DEFAULT_REGISTRY


def register_base_module(specifier: str) -> None:
    _DEFAULT_REGISTRY.add_base_module(specifier)


def register_persistent_module(specifier: str) -> None:
    _DEFAULT_REGISTRY.add_persistent_module(specifier)


def register_hook_module(specifier: str) -> None:
    _DEFAULT_REGISTRY.add_hook_module(specifier)


@dataclass
class ModuleConfig:
    """Extra module specifiers declared in .storegraph.yml."""

    base: List[str] = field(default_factory=list)
    persistent: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.base or self.persistent or self.hooks)


@dataclass
class StoreGraphConfig:
    """Represents the settings defined in .storegraph.yml."""

    root: Path
    exclude_paths: List[str] = field(default_factory=list)
    modules: ModuleConfig = field(default_factory=ModuleConfig)
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS


def load_config(config_path: Path) -> StoreGraphConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return StoreGraphConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    modules_data = _as_dict(data.get("modules"))
    modules = ModuleConfig(
        base=_as_str_list(modules_data.get("base")),
        persistent=_as_str_list(modules_data.get("persistent")),
        hooks=_as_str_list(modules_data.get("hooks")),
    )

    cache_data = _as_dict(data.get("cache"))
    ttl = _as_int(cache_data.get("ttl_ms"))
    if ttl is not None and ttl < 0:
        raise ConfigError("cache.ttl_ms must be a non-negative integer")

    return StoreGraphConfig(
        root=root,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        modules=modules,
        cache_ttl_ms=DEFAULT_CACHE_TTL_MS if ttl is None else ttl,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_CACHE_TTL_MS",
    "ModuleConfig",
    "ModuleRegistry",
    "StoreGraphConfig",
    "default_registry",
    "load_config",
    "register_base_module",
    "register_hook_module",
    "register_persistent_module",
]
