"""pub.dev registry client: published versions with their own constraints."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from constants import Constants
from errors import RegistryUnavailable
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled
from versioning.constraints import BareVersion, VersionConstraint, try_parse_constraint
from versioning.models import PublishedVersion
from versioning.semver import try_parse_version

logger = logging.getLogger(__name__)

_CacheEntry = Union[List[PublishedVersion], RegistryUnavailable]


class PubRegistryClient:
    """Queries ``GET {endpoint}{package}`` and normalizes the version list.

    Answers are cached for the lifetime of the instance, which the
    orchestrator scopes to one run. Failures are cached too, so a package whose
    query failed is not retried within the run.
    """

    def __init__(
        self,
        endpoint: str = Constants.REGISTRY_URL_PUB,
        timeout: Optional[float] = None,
        max_workers: int = Constants.REGISTRY_MAX_WORKERS,
    ):
        self.endpoint = endpoint if endpoint.endswith('/') else endpoint + '/'
        self.timeout = timeout
        self.max_workers = max_workers
        self._cache: Dict[str, _CacheEntry] = {}

    def fetch_versions(self, package: str) -> List[PublishedVersion]:
        """Return every published version of ``package``, newest first.

        Raises:
            RegistryUnavailable: network failure, non-2xx status or malformed payload.
        """
        cached = self._cache.get(package)
        if cached is None:
            try:
                cached = self._fetch(package)
            except RegistryUnavailable as exc:
                cached = exc
            self._cache[package] = cached
        if isinstance(cached, RegistryUnavailable):
            raise cached
        return list(cached)

    def prefetch(self, packages: Iterable[str]) -> None:
        """Warm the cache for several packages concurrently.

        Per-package ordering is unaffected; failures are cached and raised by
        the next :meth:`fetch_versions` call for that package.
        """
        pending = sorted({p for p in packages if p not in self._cache})
        if not pending:
            return
        logger.debug("Prefetching %d package(s) from registry", len(pending))
        with ThreadPoolExecutor(max_workers=max(1, self.max_workers)) as pool:
            results = list(pool.map(self._fetch_or_error, pending))
        for package, result in zip(pending, results):
            self._cache[package] = result

    def _fetch_or_error(self, package: str) -> _CacheEntry:
        try:
            return self._fetch(package)
        except RegistryUnavailable as exc:
            return exc

    def _fetch(self, package: str) -> List[PublishedVersion]:
        url = self.endpoint + quote(package)
        data = get_json(
            url,
            context=package,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        if not isinstance(data, dict) or not isinstance(data.get("versions"), list):
            raise RegistryUnavailable(package, "malformed payload: missing 'versions' list")

        versions = [v for v in (self._parse_entry(package, e) for e in data["versions"]) if v]
        versions.sort(key=lambda pv: pv.version, reverse=True)

        if is_debug_enabled(logger):
            logger.debug(
                "Registry versions loaded",
                extra=extra_context(
                    event="registry_versions",
                    component="pub_client",
                    action="fetch_versions",
                    outcome="success",
                    package=package,
                    count=len(versions)
                )
            )
        return versions

    @staticmethod
    def _parse_entry(package: str, entry: Any) -> Optional[PublishedVersion]:
        if not isinstance(entry, dict):
            return None
        version = try_parse_version(entry.get("version"))
        if version is None:
            logger.debug("%s: skipping entry with unparseable version %r", package, entry.get("version"))
            return None

        pubspec = entry.get("pubspec") if isinstance(entry.get("pubspec"), dict) else {}
        environment = pubspec.get("environment") if isinstance(pubspec.get("environment"), dict) else {}
        sdk_text = environment.get("sdk")
        sdk_constraint = None
        if isinstance(sdk_text, str):
            sdk_constraint = try_parse_constraint(sdk_text, bare=BareVersion.EXACT)

        dependencies: Dict[str, VersionConstraint] = {}
        raw_deps = pubspec.get("dependencies") if isinstance(pubspec.get("dependencies"), dict) else {}
        for name, spec in raw_deps.items():
            # sdk/git/path dependencies are maps; only hosted string constraints matter
            if spec is None:
                dependencies[name] = VersionConstraint.any_version()
            elif isinstance(spec, str):
                constraint = try_parse_constraint(spec, bare=BareVersion.EXACT)
                if constraint is not None:
                    dependencies[name] = constraint

        return PublishedVersion(
            version=version,
            sdk_constraint=sdk_constraint,
            dependencies=dependencies,
            published=entry.get("published"),
        )
