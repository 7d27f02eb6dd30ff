"""Configuration models and loaders for vcsq."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILE_NAMES: tuple[str, ...] = ("vcsq.toml", "vcsq.yaml", "vcsq.yml", "pyproject.toml")
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class BinaryConfig:
    """Which executable to invoke for each brand of VCS."""

    git: str = "git"
    hg: str = "hg"
    jj: str = "jj"

    def for_brand(self, name: str) -> str:
        """Return the binary for a brand, by brand value ("Git") or binary key ("git").

        Raises:
            ValueError: If `name` matches no known brand.
        """

        key = _BRAND_KEYS.get(name.lower())
        if key is None:
            raise ValueError(f"Unknown VCS brand: {name}")
        return getattr(self, key)


_BRAND_KEYS: dict[str, str] = {
    "git": "git",
    "hg": "hg",
    "mercurial": "hg",
    "jj": "jj",
    "jujutsu": "jj",
}


@dataclass(frozen=True)
class VcsqConfig:
    """Top-level configuration.

    Attributes:
        binaries: Executables invoked for each brand.
        env: Extra environment variables passed to every VCS invocation.
        log_level: Default logging level for the CLI.
    """

    binaries: BinaryConfig = field(default_factory=lambda: BinaryConfig())
    env: dict[str, str] = field(default_factory=dict)
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(path: Path | None = None) -> VcsqConfig:
    """Load configuration from disk.

    Args:
        path: Optional path to a configuration file or a directory to search.

    Returns:
        Parsed VcsqConfig, with defaults when no config file exists.

    Raises:
        ValueError: If the file type is unsupported or its data is not a mapping.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return VcsqConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ValueError(f"Unsupported config file type: {config_path}")

    return _parse_config(raw_data)


def config_to_dict(config: VcsqConfig) -> dict[str, Any]:
    """Serialize a VcsqConfig into a JSON-compatible dictionary."""

    return {
        "binaries": {
            "git": config.binaries.git,
            "hg": config.binaries.hg,
            "jj": config.binaries.jj,
        },
        "env": dict(config.env),
        "log_level": config.log_level,
    }


def _resolve_config_path(path: Path | None) -> Path | None:
    if path is None:
        candidate_paths = [Path(name) for name in CONFIG_FILE_NAMES]
    elif path.is_dir():
        candidate_paths = [path / name for name in CONFIG_FILE_NAMES]
    else:
        candidate_paths = [path]

    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("vcsq", {})
        if not isinstance(tool_config, dict):
            raise ValueError("tool.vcsq must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if data is not None:
        if not isinstance(data, dict):
            raise ValueError("YAML configuration must be a mapping.")
        return data
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as exc:
        raise RuntimeError(
            "PyYAML is required to parse non-JSON YAML configuration files."
        ) from exc
    parsed = yaml.safe_load(text)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError("YAML configuration must be a mapping.")
    return parsed


def _parse_config(raw_data: dict[str, Any]) -> VcsqConfig:
    env = raw_data.get("env", {})
    if not isinstance(env, dict):
        raise ValueError("env must be a mapping of variable names to values.")
    return VcsqConfig(
        binaries=_parse_binary_config(raw_data.get("binaries", {})),
        env={str(key): str(value) for key, value in env.items()},
        log_level=str(raw_data.get("log_level", DEFAULT_LOG_LEVEL)),
    )


def _parse_binary_config(raw: Any) -> BinaryConfig:
    if not isinstance(raw, dict):
        return BinaryConfig()
    defaults = BinaryConfig()
    return BinaryConfig(
        git=_binary(raw.get("git"), defaults.git),
        hg=_binary(raw.get("hg"), defaults.hg),
        jj=_binary(raw.get("jj"), defaults.jj),
    )


def _binary(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default
