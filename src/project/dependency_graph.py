"""Dependency graph from ``pub deps --json`` output."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set

from versioning.models import DependencyConflict

logger = logging.getLogger(__name__)

_DIRECT_KINDS = {"direct", "dev"}


class DependencyGraph:
    """Who depends on whom, and which packages the project declares itself."""

    def __init__(self, kinds: Dict[str, str], edges: Dict[str, List[str]]):
        self.kinds = kinds
        self.edges = edges

    @classmethod
    def from_json(cls, text: str) -> Optional["DependencyGraph"]:
        """Parse the JSON document, ignoring any non-JSON preamble.

        Returns None if no usable document is found.
        """
        start = (text or "").find("{")
        if start < 0:
            return None
        try:
            data = json.loads(text[start:])
        except ValueError as exc:
            logger.debug("Unparseable dependency graph output: %s", exc)
            return None
        packages = data.get("packages") if isinstance(data, dict) else None
        if not isinstance(packages, list):
            return None

        kinds: Dict[str, str] = {}
        edges: Dict[str, List[str]] = {}
        for package in packages:
            if not isinstance(package, dict) or "name" not in package:
                continue
            name = package["name"]
            kinds[name] = str(package.get("kind", ""))
            edges[name] = [d for d in package.get("dependencies", []) if isinstance(d, str)]
        return cls(kinds, edges)

    def is_direct(self, package: str) -> bool:
        return self.kinds.get(package) in _DIRECT_KINDS

    def dependents_of(self, package: str) -> List[str]:
        """Non-root packages that list ``package`` as a dependency, sorted."""
        found: Set[str] = {
            name for name, deps in self.edges.items()
            if package in deps and self.kinds.get(name) != "root"
        }
        return sorted(found)

    def annotate(self, conflict: DependencyConflict) -> DependencyConflict:
        return replace(
            conflict,
            is_direct_dependency=self.is_direct(conflict.package),
            dependents=tuple(self.dependents_of(conflict.package)),
        )
