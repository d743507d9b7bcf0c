"""Collects the three version signals of a project."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import yaml

from constants import Constants
from errors import ManifestError, RegistryUnavailable
from project.manifest import Manifest, read_text
from registry.releases import SdkReleaseLookup
from versioning.models import VersionSignals
from versioning.semver import SemVer, try_parse_version

logger = logging.getLogger(__name__)


class SignalCollector:
    """Reads project files and turns them into :class:`VersionSignals`.

    - creation: the SDK revision recorded in ``.metadata``, resolved to a
      release version through the release lookup
    - manifest_min: lower bound of the manifest's SDK constraint
    - pinned: the version pinned with FVM (``.fvm/fvm_config.json`` or ``.fvmrc``)

    An unavailable or unparseable source yields None for that signal.
    """

    def __init__(self, project_root: str, release_lookup: Optional[SdkReleaseLookup] = None):
        self.project_root = project_root
        self.release_lookup = release_lookup or SdkReleaseLookup()

    def _path(self, relative: str) -> str:
        return os.path.join(self.project_root, relative)

    def collect(self, manifest: Optional[Manifest] = None) -> VersionSignals:
        signals = VersionSignals(
            creation=self.creation_version(),
            manifest_min=self.manifest_minimum(manifest),
            pinned=self.pinned_version(),
        )
        logger.info(
            "Version signals: creation=%s manifest_min=%s pinned=%s",
            signals.creation, signals.manifest_min, signals.pinned,
        )
        return signals

    def creation_version(self) -> Optional[SemVer]:
        metadata = _load_yaml(self._path(Constants.METADATA_FILE))
        version = metadata.get("version") if isinstance(metadata, dict) else None
        revision = version.get("revision") if isinstance(version, dict) else None
        if not revision:
            logger.debug("No SDK revision recorded in %s", Constants.METADATA_FILE)
            return None
        try:
            return self.release_lookup.version_for_revision(str(revision))
        except RegistryUnavailable as exc:
            logger.warning("Could not resolve project creation revision: %s", exc)
            return None

    def manifest_minimum(self, manifest: Optional[Manifest] = None) -> Optional[SemVer]:
        if manifest is None:
            try:
                manifest = Manifest.in_project(self.project_root)
            except ManifestError as exc:
                logger.warning("%s", exc)
                return None
        return manifest.minimum_runtime()

    def pinned_version(self) -> Optional[SemVer]:
        config = _load_json(self._path(Constants.FVM_CONFIG_FILE))
        pinned = config.get("flutterSdkVersion") if isinstance(config, dict) else None
        if pinned is None:
            rc = _load_json(self._path(Constants.FVMRC_FILE))
            pinned = rc.get("flutter") if isinstance(rc, dict) else None
        if pinned is None:
            return None
        # channel names such as "stable" carry no version
        version = try_parse_version(str(pinned))
        if version is None:
            logger.info("Pinned SDK %r is not a version; ignoring", pinned)
        return version

    def uses_version_manager(self) -> bool:
        return os.path.isdir(self._path(Constants.FVM_DIR)) or os.path.isfile(self._path(Constants.FVMRC_FILE))


def _load_yaml(path: str) -> Any:
    if not os.path.isfile(path):
        return None
    try:
        return yaml.safe_load(read_text(path))
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


def _load_json(path: str) -> Any:
    if not os.path.isfile(path):
        return None
    try:
        return json.loads(read_text(path))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
