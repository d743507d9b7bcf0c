"""Reading and patching of the project manifest (``pubspec.yaml``).

Reads go through PyYAML. Writes are line-based so that comments, ordering
and line endings of every untouched line survive byte-for-byte.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from constants import Constants
from errors import MalformedConstraint, ManifestError
from versioning.constraints import BareVersion, VersionConstraint, parse_constraint, try_parse_constraint
from versioning.semver import SemVer

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = ("dependencies", "dev_dependencies")

# "  key: value   # comment" with the line ending kept apart
_ENTRY_RE = re.compile(
    r'^(?P<indent>[ \t]*)(?P<key>[^\s:#][^:#]*?)\s*:(?P<gap>[ \t]*)'
    r'(?P<value>[^#\r\n]*?)(?P<comment>[ \t]+#[^\r\n]*)?(?P<eol>\r?\n)?$'
)


def read_text(path: str) -> str:
    """Read a file without newline translation."""
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return handle.read()


def write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


@dataclass
class Manifest:
    """Parsed view of a manifest file."""

    path: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str) -> "Manifest":
        """Load and validate the manifest at ``path``.

        Raises:
            ManifestError: if the file is missing, unreadable or not a mapping.
        """
        if not os.path.isfile(path):
            raise ManifestError(path, "file not found")
        try:
            data = yaml.safe_load(read_text(path))
        except (OSError, yaml.YAMLError) as exc:
            raise ManifestError(path, str(exc)) from exc
        if not isinstance(data, dict):
            raise ManifestError(path, "top level is not a mapping")
        return cls(path=path, data=data)

    @classmethod
    def in_project(cls, project_root: str) -> "Manifest":
        return cls.load(os.path.join(project_root, Constants.MANIFEST_FILE))

    @property
    def name(self) -> Optional[str]:
        return self.data.get("name")

    @property
    def sdk_constraint_text(self) -> Optional[str]:
        environment = self.data.get("environment")
        if isinstance(environment, dict) and environment.get("sdk") is not None:
            return str(environment["sdk"])
        return None

    @property
    def sdk_constraint(self) -> Optional[VersionConstraint]:
        """The runtime constraint; a bare version means "at least"."""
        return try_parse_constraint(self.sdk_constraint_text, bare=BareVersion.AT_LEAST)

    def minimum_runtime(self) -> Optional[SemVer]:
        """Lower bound of the SDK constraint, or None when absent or unparseable."""
        text = self.sdk_constraint_text
        if text is None:
            return None
        try:
            constraint = parse_constraint(text, bare=BareVersion.AT_LEAST)
        except MalformedConstraint:
            logger.warning("Ignoring unparseable SDK constraint %r in %s", text, self.path)
            return None
        return constraint.lower

    def declared(self) -> Dict[str, Any]:
        """Every entry of the dependency sections, later sections winning."""
        entries: Dict[str, Any] = {}
        for section in DEPENDENCY_SECTIONS:
            block = self.data.get(section)
            if isinstance(block, dict):
                entries.update(block)
        return entries

    def hosted_dependencies(self) -> Dict[str, VersionConstraint]:
        """Hosted dependencies with their constraints.

        SDK, git and path dependencies are skipped; a missing constraint means
        ``any``. Entries whose constraint cannot be parsed are skipped too.
        """
        hosted: Dict[str, VersionConstraint] = {}
        for name, spec in self.declared().items():
            if spec is None:
                hosted[name] = VersionConstraint.any_version()
                continue
            if isinstance(spec, dict):
                if "sdk" in spec or "git" in spec or "path" in spec:
                    continue
                spec = spec.get("version")
                if spec is None:
                    hosted[name] = VersionConstraint.any_version()
                    continue
            constraint = try_parse_constraint(str(spec), bare=BareVersion.EXACT)
            if constraint is None:
                logger.debug("Skipping %s: unparseable constraint %r", name, spec)
                continue
            hosted[name] = constraint
        return hosted


def _split_lines(content: str) -> List[str]:
    return content.splitlines(keepends=True)


def _is_top_level(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#") and line[0] not in " \t"


def _section_span(lines: List[str], section: str) -> Optional[Tuple[int, int]]:
    """Return (header index, end index) of a top-level mapping section."""
    for index, line in enumerate(lines):
        if _is_top_level(line) and re.match(rf'^{re.escape(section)}\s*:', line):
            end = index + 1
            while end < len(lines) and not _is_top_level(lines[end]):
                end += 1
            return index, end
    return None


def _quote(value: str, previous: str) -> str:
    quote = previous[0] if previous[:1] in ("'", '"') else '"'
    return f"{quote}{value}{quote}"


def _replace_value(line: str, value: str) -> str:
    match = _ENTRY_RE.match(line)
    if match is None:
        return line
    gap = match.group("gap") or " "
    return (f"{match.group('indent')}{match.group('key')}:{gap}{value}"
            f"{match.group('comment') or ''}{match.group('eol') or ''}")


def _newline(lines: List[str]) -> str:
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
    return "\n"


# "{sdk: '>=2.12.0 <3.0.0', flutter: 2.0.0}" style environment value
_FLOW_SDK_RE = re.compile(r'(?P<head>[{,][ \t]*sdk[ \t]*:[ \t]*)(?P<value>"[^"]*"|\'[^\']*\'|[^,}]*?)[ \t]*(?=[,}])')


def _set_inline_sdk(path: str, line: str, constraint: str) -> str:
    """Rewrite the sdk entry of an ``environment: {...}`` flow mapping."""
    header = _ENTRY_RE.match(line)
    value = header.group("value") if header else ""
    match = _FLOW_SDK_RE.search(value) if value.lstrip().startswith("{") else None
    if match is None:
        raise ManifestError(path, f"cannot update sdk in environment value {value.strip()!r}")
    inline = (value[:match.start("value")] + _quote(constraint, match.group("value"))
              + value[match.end("value"):])
    return _replace_value(line, inline)


def set_sdk_constraint(path: str, constraint: str) -> bool:
    """Point ``environment.sdk`` at ``constraint``.

    Missing ``environment``/``sdk`` entries are added. Returns True when the
    file content changed.

    Raises:
        ManifestError: if ``environment`` holds an inline value without an
            sdk entry; the file is left untouched.
    """
    original = read_text(path)
    lines = _split_lines(original)
    newline = _newline(lines)

    span = _section_span(lines, "environment")
    if span is None:
        if lines and not lines[-1].endswith(("\n", "\r")):
            lines[-1] += newline
        lines.append(f"environment:{newline}")
        lines.append(f'  sdk: "{constraint}"{newline}')
    else:
        start, end = span
        header = _ENTRY_RE.match(lines[start])
        if header and header.group("value").strip():
            lines[start] = _set_inline_sdk(path, lines[start], constraint)
        else:
            for index in range(start + 1, end):
                match = _ENTRY_RE.match(lines[index])
                if match and match.group("key") == "sdk" and match.group("indent"):
                    lines[index] = _replace_value(lines[index], _quote(constraint, match.group("value")))
                    break
            else:
                lines.insert(start + 1, f'  sdk: "{constraint}"{newline}')

    updated = "".join(lines)
    if updated == original:
        return False
    write_text(path, updated)
    logger.info("Set SDK constraint to %s in %s", constraint, os.path.basename(path))
    return True


def _dependency_line(lines: List[str], package: str) -> Optional[int]:
    """Index of the line holding ``package``'s version, or None."""
    for section in DEPENDENCY_SECTIONS:
        span = _section_span(lines, section)
        if span is None:
            continue
        start, end = span
        entry_indent = None
        for index in range(start + 1, end):
            match = _ENTRY_RE.match(lines[index])
            if match is None:
                continue
            indent = match.group("indent")
            if entry_indent is None:
                entry_indent = indent
            if indent != entry_indent or match.group("key").strip("'\"") != package:
                continue
            if match.group("value").strip():
                return index
            # "pkg:\n    version: ^1.0.0" (hosted map form)
            for inner in range(index + 1, end):
                inner_match = _ENTRY_RE.match(lines[inner])
                if inner_match is None:
                    continue
                if len(inner_match.group("indent")) <= len(indent):
                    break
                if inner_match.group("key") == "version":
                    return inner
            return None
    return None


def set_dependency_version(path: str, package: str, version: SemVer) -> bool:
    """Rewrite ``package``'s declaration to ``^version``.

    Returns True when the manifest now declares the package with that
    constraint (also when it already did), False when no hosted declaration
    of the package exists.
    """
    original = read_text(path)
    lines = _split_lines(original)
    index = _dependency_line(lines, package)
    if index is None:
        logger.warning("Package %s not declared in %s", package, os.path.basename(path))
        return False

    current = _ENTRY_RE.match(lines[index]).group("value").strip()
    replacement = f"^{version}"
    if current[:1] in ("'", '"'):
        replacement = _quote(replacement, current)
    lines[index] = _replace_value(lines[index], replacement)

    updated = "".join(lines)
    if updated != original:
        write_text(path, updated)
        logger.info("Updated %s to ^%s in %s", package, version, os.path.basename(path))
    return True
