"""Reconciles disagreeing version signals into one SDK recommendation."""

from __future__ import annotations

import logging
from typing import Optional

from versioning.models import ReconcileDecision, VersionAnalysis, VersionSignals
from versioning.semver import SemVer, compare
from versioning.toolchain import newest_sdk_line, runtime_for_sdk, sdk_for_runtime

logger = logging.getLogger(__name__)


def sdk_for_manifest_minimum(manifest_min: SemVer) -> SemVer:
    """Oldest SDK line able to run ``manifest_min``; the newest line if none is known yet."""
    return sdk_for_runtime(manifest_min) or newest_sdk_line()


class VersionReconciler:
    """Ordered decision table over (creation, manifest minimum, pinned).

    ``creation`` and ``pinned`` are SDK versions; ``manifest_min`` is a runtime
    version. Creation and manifest agree when the runtime shipped by the
    creation SDK line is at least the manifest minimum. Otherwise the manifest
    minimum is mapped to the oldest SDK line that ships it and the two SDK
    versions are compared. Every recommendation is an SDK version. The
    function is pure: the same signals always give the same analysis.
    """

    def reconcile(
        self,
        creation: Optional[SemVer],
        manifest_min: Optional[SemVer],
        pinned: Optional[SemVer],
    ) -> VersionAnalysis:
        if creation is not None and manifest_min is not None:
            shipped = runtime_for_sdk(creation)
            manifest_sdk = sdk_for_manifest_minimum(manifest_min)
            if compare(shipped, manifest_min) >= 0:
                analysis = VersionAnalysis(
                    recommended=creation,
                    reason=(f"Project created with SDK {creation} (runtime {shipped}) "
                            f"satisfies manifest minimum {manifest_min}"),
                    strategy="use creation version",
                    decision=ReconcileDecision.CREATION_AGREES,
                    original_version=creation,
                )
            elif compare(creation, manifest_sdk) <= 0:
                analysis = VersionAnalysis(
                    recommended=creation,
                    conflict=True,
                    reason=(f"Creation version {creation} and manifest minimum {manifest_min} "
                            f"(SDK {manifest_sdk}) disagree; keeping the lower one ({creation})"),
                    strategy="preserve original environment",
                    decision=ReconcileDecision.CREATION_LOWER,
                    original_version=creation,
                )
            else:
                analysis = VersionAnalysis(
                    recommended=manifest_sdk,
                    conflict=True,
                    reason=(f"Creation version {creation} and manifest minimum {manifest_min} "
                            f"(SDK {manifest_sdk}) disagree; keeping the lower one ({manifest_sdk})"),
                    strategy="preserve original environment",
                    decision=ReconcileDecision.MANIFEST_LOWER,
                    original_version=creation,
                    runtime_floor=manifest_min,
                )
        elif creation is not None:
            analysis = VersionAnalysis(
                recommended=creation,
                reason=f"Project created with SDK {creation}; manifest states no minimum",
                strategy="use creation version",
                decision=ReconcileDecision.CREATION_ONLY,
                original_version=creation,
            )
        elif manifest_min is not None:
            manifest_sdk = sdk_for_manifest_minimum(manifest_min)
            analysis = VersionAnalysis(
                recommended=manifest_sdk,
                conflict=True,
                reason=(f"No creation version recorded; using SDK {manifest_sdk} "
                        f"for manifest minimum {manifest_min}"),
                strategy="use manifest minimum",
                decision=ReconcileDecision.MANIFEST_ONLY,
                runtime_floor=manifest_min,
            )
        elif pinned is not None:
            analysis = VersionAnalysis(
                recommended=pinned,
                conflict=True,
                reason=f"Only a locally pinned version ({pinned}) is available; least reliable signal",
                strategy="use pinned version",
                decision=ReconcileDecision.PINNED_ONLY,
            )
        else:
            analysis = VersionAnalysis(
                recommended=None,
                conflict=False,
                reason="No version signal available",
                strategy="none",
                decision=ReconcileDecision.NO_SIGNAL,
            )

        logger.debug("Reconciled %s -> %s (%s)", (creation, manifest_min, pinned),
                     analysis.recommended, analysis.decision.value)
        return analysis

    def reconcile_signals(self, signals: VersionSignals) -> VersionAnalysis:
        return self.reconcile(signals.creation, signals.manifest_min, signals.pinned)
