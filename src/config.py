"""Engine configuration.

Every component receives its settings from an :class:`EngineConfig`; only the
CLI layer looks at the working directory and the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional

import yaml

from constants import Constants
from versioning.models import DuplicatePrecedence
from versioning.semver import SemVer, try_parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """Settings for one run of the engine."""

    project_root: str
    registry_endpoint: str = Constants.REGISTRY_URL_PUB
    # Overrides the runtime derived from the recommended SDK when filtering candidates.
    active_runtime_version: Optional[SemVer] = None
    resolution_command: List[str] = field(default_factory=lambda: list(Constants.RESOLUTION_COMMAND))
    deps_command: List[str] = field(default_factory=lambda: list(Constants.DEPS_COMMAND))
    request_timeout: float = Constants.REQUEST_TIMEOUT
    command_timeout: float = Constants.COMMAND_TIMEOUT_SEC
    duplicate_precedence: DuplicatePrecedence = DuplicatePrecedence.LAST
    include_prerelease: bool = False
    align_sdk_constraint: bool = True
    accept_upgrade: bool = False
    keep_backup: bool = False
    github_api_base: str = Constants.GITHUB_API_BASE

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.project_root, Constants.MANIFEST_FILE)

    def with_version_manager(self) -> "EngineConfig":
        """Prefix the external commands with the version manager."""
        prefix = list(Constants.FVM_PREFIX)
        return replace(
            self,
            resolution_command=prefix + [c for c in self.resolution_command if c not in prefix],
            deps_command=prefix + [c for c in self.deps_command if c not in prefix],
        )


def _coerce(name: str, value: Any) -> Any:
    if name == "active_runtime_version":
        if value is None or isinstance(value, SemVer):
            return value
        parsed = try_parse_version(str(value))
        if parsed is None:
            raise ValueError(f"active_runtime_version: not a version: {value!r}")
        return parsed
    if name == "duplicate_precedence":
        if isinstance(value, DuplicatePrecedence):
            return value
        return DuplicatePrecedence(str(value).lower())
    if name in ("resolution_command", "deps_command"):
        if isinstance(value, str):
            return value.split()
        return [str(part) for part in value]
    if name in ("request_timeout", "command_timeout"):
        return float(value)
    if name in ("include_prerelease", "align_sdk_constraint", "accept_upgrade", "keep_backup"):
        return bool(value)
    return value


def _read_config_file(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", path)
        return {}
    return data


def load_config(
    project_root: str,
    config_file: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> EngineConfig:
    """Merge defaults, the YAML config file and explicit overrides.

    The config file defaults to ``<project_root>/.flutterfix.yml``. Unknown
    keys are ignored with a warning; overrides whose value is None are skipped.

    Raises:
        ValueError: if a configured value has the wrong shape.
    """
    path = config_file or os.path.join(project_root, Constants.CONFIG_FILE)
    known = {f.name for f in fields(EngineConfig)} - {"project_root"}

    merged: Dict[str, Any] = {}
    for key, value in _read_config_file(path).items():
        if key not in known:
            logger.warning("Unknown config key %r in %s", key, path)
            continue
        merged[key] = value
    for key, value in (overrides or {}).items():
        if key in known and value is not None:
            merged[key] = value

    settings = {key: _coerce(key, value) for key, value in merged.items()}
    config = EngineConfig(project_root=os.path.abspath(project_root), **settings)
    logger.debug("Loaded config: %s", config)
    return config
