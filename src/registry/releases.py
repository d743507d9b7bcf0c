"""SDK release lookup: maps a framework commit revision to its release version."""

from __future__ import annotations

import logging
import re
from typing import Optional

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled
from versioning.semver import SemVer, parse_version

logger = logging.getLogger(__name__)

_TAG_VERSION_RE = re.compile(r'(\d+\.\d+\.\d+)')
_UNSTABLE_MARKERS = ('beta', 'dev', 'pre')


class SdkReleaseLookup:
    """Find the stable release tag that points at a given commit.

    The tags endpoint is paged; at most ``max_pages`` pages are scanned.
    """

    def __init__(
        self,
        api_base: str = Constants.GITHUB_API_BASE,
        repository: str = Constants.SDK_REPOSITORY,
        timeout: Optional[float] = None,
        max_pages: int = Constants.SDK_TAG_PAGES,
    ):
        self.api_base = api_base.rstrip('/')
        self.repository = repository
        self.timeout = timeout
        self.max_pages = max_pages

    def version_for_revision(self, revision: str) -> Optional[SemVer]:
        """Return the release version tagged at ``revision``, or None when untagged.

        Raises:
            RegistryUnavailable: if the tags endpoint cannot be queried.
        """
        if not revision or len(revision) < 7:
            return None
        short = revision[:7]

        for page in range(1, self.max_pages + 1):
            url = (f"{self.api_base}/repos/{self.repository}/tags"
                   f"?per_page={Constants.REPO_API_PER_PAGE}&page={page}")
            tags = get_json(
                url,
                context=self.repository,
                headers={"Accept": "application/vnd.github.v3+json"},
                timeout=self.timeout,
            )
            if not isinstance(tags, list) or not tags:
                break
            for tag in tags:
                version = self._match(tag, short)
                if version is not None:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "Revision resolved to release",
                            extra=extra_context(
                                event="release_lookup",
                                component="sdk_releases",
                                action="version_for_revision",
                                outcome="found",
                                revision=short,
                                version=str(version),
                                page=page
                            )
                        )
                    return version

        logger.info("No stable release tag found for revision %s", short)
        return None

    @staticmethod
    def _match(tag, short_revision: str) -> Optional[SemVer]:
        if not isinstance(tag, dict):
            return None
        name = tag.get("name")
        commit = tag.get("commit") if isinstance(tag.get("commit"), dict) else {}
        sha = commit.get("sha")
        if not isinstance(name, str) or not isinstance(sha, str):
            return None
        if not sha.startswith(short_revision):
            return None
        if any(marker in name for marker in _UNSTABLE_MARKERS):
            return None
        match = _TAG_VERSION_RE.search(name)
        return parse_version(match.group(1)) if match else None
