"""Tests for the version signal decision table."""

import pytest

from resolution.reconciler import VersionReconciler
from versioning.models import ReconcileDecision, VersionSignals
from versioning.semver import SemVer

CREATION = SemVer(1, 22, 0)


class TestDecisionTable:
    """One test per table row."""

    def test_creation_agrees(self):
        analysis = VersionReconciler().reconcile(SemVer(3, 24, 0), SemVer(3, 5, 0), None)
        assert analysis.decision is ReconcileDecision.CREATION_AGREES
        assert analysis.recommended == SemVer(3, 24, 0)
        assert not analysis.conflict

    def test_creation_lower(self):
        analysis = VersionReconciler().reconcile(CREATION, SemVer(3, 0, 0), None)
        assert analysis.decision is ReconcileDecision.CREATION_LOWER
        assert analysis.recommended == CREATION
        assert analysis.conflict
        assert analysis.strategy == "preserve original environment"
        assert analysis.original_version == CREATION

    def test_manifest_lower(self):
        # Creation is newer than every known line, the manifest maps to the newest one.
        analysis = VersionReconciler().reconcile(SemVer(4, 0, 0), SemVer(3, 7, 0), None)
        assert analysis.decision is ReconcileDecision.MANIFEST_LOWER
        assert analysis.recommended == SemVer(3, 27, 0)
        assert analysis.runtime_floor == SemVer(3, 7, 0)
        assert analysis.conflict
        assert analysis.original_version == SemVer(4, 0, 0)

    def test_disagreement_compared_as_sdk_versions(self):
        # Runtime 3.0.0 is first shipped by SDK 3.10, which is newer than creation 3.3.
        analysis = VersionReconciler().reconcile(SemVer(3, 3, 0), SemVer(3, 0, 0), None)
        assert analysis.decision is ReconcileDecision.CREATION_LOWER
        assert analysis.recommended == SemVer(3, 3, 0)
        assert analysis.runtime_floor is None

    def test_creation_only(self):
        analysis = VersionReconciler().reconcile(CREATION, None, SemVer(3, 24, 0))
        assert analysis.decision is ReconcileDecision.CREATION_ONLY
        assert analysis.recommended == CREATION
        assert not analysis.conflict

    def test_manifest_only(self):
        analysis = VersionReconciler().reconcile(None, SemVer(2, 18, 0), SemVer(3, 24, 0))
        assert analysis.decision is ReconcileDecision.MANIFEST_ONLY
        assert analysis.recommended == SemVer(3, 3, 0)
        assert analysis.runtime_floor == SemVer(2, 18, 0)
        assert analysis.conflict
        assert analysis.original_version is None

    def test_manifest_only_dart_3(self):
        analysis = VersionReconciler().reconcile(None, SemVer(3, 0, 0), None)
        assert analysis.recommended == SemVer(3, 10, 0)
        assert analysis.runtime_floor == SemVer(3, 0, 0)

    def test_pinned_only(self):
        analysis = VersionReconciler().reconcile(None, None, SemVer(3, 24, 0))
        assert analysis.decision is ReconcileDecision.PINNED_ONLY
        assert analysis.recommended == SemVer(3, 24, 0)
        assert analysis.conflict

    def test_no_signal(self):
        analysis = VersionReconciler().reconcile(None, None, None)
        assert analysis.decision is ReconcileDecision.NO_SIGNAL
        assert not analysis.has_recommendation
        assert not analysis.conflict


class TestDeterminism:
    """Pure function of its inputs."""

    @pytest.mark.parametrize("signals", [
        VersionSignals(CREATION, SemVer(3, 0, 0), None),
        VersionSignals(None, SemVer(2, 18, 0), SemVer(3, 24, 0)),
        VersionSignals(),
    ])
    def test_same_signals_same_analysis(self, signals):
        reconciler = VersionReconciler()
        assert reconciler.reconcile_signals(signals) == reconciler.reconcile_signals(signals)

    def test_prerelease_ignored_when_comparing(self):
        analysis = VersionReconciler().reconcile(SemVer(3, 24, 0), SemVer(3, 5, 0, "beta"), None)
        assert analysis.decision is ReconcileDecision.CREATION_AGREES
