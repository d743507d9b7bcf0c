"""Newest installable version of a package for the active toolchain."""

from __future__ import annotations

import logging
from typing import Optional

from common.logging_utils import extra_context, is_debug_enabled
from registry.pub import PubRegistryClient
from versioning.models import PublishedVersion
from versioning.semver import SemVer, compare
from versioning.toolchain import ActiveToolchain, is_bundled_library

logger = logging.getLogger(__name__)


class CompatibleVersionFinder:
    """Picks the newest registry candidate that actually resolves.

    A candidate must accept the active runtime through its own SDK constraint
    and must not require a toolchain-bundled library newer than the one the
    active SDK line ships. The second check catches candidates whose own
    constraint is fine yet which still fail against the pinned transitive
    libraries.
    """

    def __init__(self, registry: PubRegistryClient, include_prerelease: bool = False):
        self.registry = registry
        self.include_prerelease = include_prerelease

    def find(self, package: str, active: ActiveToolchain) -> Optional[SemVer]:
        """Return the newest compatible version of ``package`` or None.

        Raises:
            RegistryUnavailable: propagated unchanged from the registry client.
        """
        candidates = self.registry.fetch_versions(package)
        for candidate in candidates:
            reason = self.rejection_reason(candidate, active)
            if reason is None:
                logger.info("%s: %s is compatible with SDK %s", package, candidate.version, active.sdk_version)
                return candidate.version
            if is_debug_enabled(logger):
                logger.debug(
                    "Candidate rejected",
                    extra=extra_context(
                        event="candidate",
                        component="finder",
                        action="find",
                        outcome="rejected",
                        package=package,
                        version=str(candidate.version),
                        reason=reason
                    )
                )
        logger.info("%s: no compatible version among %d candidate(s)", package, len(candidates))
        return None

    def rejection_reason(self, candidate: PublishedVersion, active: ActiveToolchain) -> Optional[str]:
        """Why ``candidate`` cannot be used with ``active``, or None if it can."""
        if candidate.version.is_prerelease and not self.include_prerelease:
            return "prerelease"
        if candidate.sdk_constraint is None:
            return "no SDK constraint"
        if not candidate.sdk_constraint.satisfies(active.runtime_version):
            return f"SDK constraint {candidate.sdk_constraint} excludes {active.runtime_version}"

        for library, constraint in candidate.dependencies.items():
            if not is_bundled_library(library):
                continue
            provided = active.max_provided_version(library)
            if provided is None or constraint.lower is None:
                continue
            low = compare(constraint.lower, provided)
            if low > 0 or (low == 0 and not constraint.lower_inclusive):
                return f"needs {library} {constraint}, SDK ships {provided}"
        return None
