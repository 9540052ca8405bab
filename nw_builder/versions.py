"""Runtime version resolution.

- ``latest`` is resolved by scraping the download index for release folders.
- Versions must follow Semantic Versioning 2.0.0 (a leading ``v`` is allowed).
- Each selected platform picks the first of its version ranges that contains
  the version; the winning range yields both the runtime file list and the
  download archive name.
"""

from collections.abc import Mapping
from dataclasses import dataclass
import re
import types
import urllib.parse

import requests

from nw_builder.errors import DownloadError, InvalidVersionError, UnsupportedPlatformVersionError
from nw_builder.platforms import FileRange, PlatformCatalog, PlatformDescriptor


# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
_SEMVER_RE: re.Pattern[str] = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<buildmetadata>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

_INDEX_ENTRY_RE: re.Pattern[str] = re.compile(r"v(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)/")

_RANGE_CLAUSE_RE: re.Pattern[str] = re.compile(r"^(<=|>=|<|>|==|=)?\s*v?(\d+\.\d+\.\d+)$")

_NWJS_RENAME: tuple[int, int, int] = (0, 12, 0)


@dataclass(frozen=True, slots=True)
class ResolvedVersion:
    """A concrete runtime version and its per-platform download paths.

    :ivar version: Semantic version string (no leading ``v``).
    :ivar platforms: Download path relative to the base URL, per platform.
    """

    version: str
    platforms: Mapping[str, str]

    def url_for(self, name: str, base_url: str) -> str:
        """Absolute download URL for ``name`` under ``base_url``."""

        return urllib.parse.urljoin(base_url, self.platforms[name])


def normalize_version(version: str) -> str:
    """Strip a leading ``v`` and validate semantic-version syntax.

    :param version: Requested version.
    :returns: Version without the ``v`` prefix.
    :raises InvalidVersionError: If the version is not a semantic version.
    """

    candidate: str = version.strip()
    if candidate.startswith("v") is True:
        candidate = candidate[1:]
    if _SEMVER_RE.match(candidate) is None:
        raise InvalidVersionError(version)
    return candidate


def version_key(version: str) -> tuple[int, int, int]:
    """``(major, minor, patch)`` of a semantic version.

    Pre-release and build tags are ignored, so ``0.12.0-alpha2`` compares
    equal to ``0.12.0``.

    :param version: Semantic version.
    :returns: Comparable tuple.
    :raises InvalidVersionError: If the version is not a semantic version.
    """

    m = _SEMVER_RE.match(version)
    if m is None:
        raise InvalidVersionError(version)
    return int(m.group("major")), int(m.group("minor")), int(m.group("patch"))


def version_in_range(version: str, spec: str) -> bool:
    """Check ``version`` against a comma-separated range such as ``>0.9.2,<0.12.0``.

    An empty range matches every version.

    :param version: Semantic version.
    :param spec: Range clauses (``<``, ``<=``, ``>``, ``>=`` or ``=``).
    :returns: ``True`` if every clause holds.
    :raises ValueError: If a clause can't be parsed.
    """

    key: tuple[int, int, int] = version_key(version)
    for clause in spec.split(","):
        clause = clause.strip()
        if len(clause) == 0:
            continue
        m = _RANGE_CLAUSE_RE.match(clause)
        if m is None:
            raise ValueError(f"Invalid version range clause: {clause!r}")
        op: str = m.group(1) or "="
        bound: tuple[int, int, int] = version_key(m.group(2))
        if op == "<" and (key < bound) is False:
            return False
        if op == "<=" and (key <= bound) is False:
            return False
        if op == ">" and (key > bound) is False:
            return False
        if op == ">=" and (key >= bound) is False:
            return False
        if op in ("=", "==") and key != bound:
            return False
    return True


def select_file_range(descriptor: PlatformDescriptor, version: str) -> FileRange | None:
    """Return the first range of ``descriptor`` containing ``version``.

    :param descriptor: Platform descriptor.
    :param version: Validated semantic version.
    :returns: Matching range, or ``None``.
    """

    for file_range in descriptor.file_ranges:
        if version_in_range(version, file_range.spec) is True:
            return file_range
    return None


def resolve_platform_ranges(catalog: PlatformCatalog, version: str) -> dict[str, FileRange]:
    """Pick a file range for every platform of ``catalog``.

    :param catalog: Selected platforms.
    :param version: Validated semantic version.
    :returns: Mapping of platform name to its matching range.
    :raises UnsupportedPlatformVersionError: Naming every platform without a match.
    """

    ranges: dict[str, FileRange] = {}
    unsupported: list[str] = []
    for name, descriptor in catalog.items():
        file_range: FileRange | None = select_file_range(descriptor, version)
        if file_range is None:
            unsupported.append(name)
            continue
        ranges[name] = file_range

    if len(unsupported) > 0:
        raise UnsupportedPlatformVersionError(version, unsupported)
    return ranges


def download_path(version: str, archive: str) -> str:
    """Relative download path of a runtime archive.

    Releases before 0.12.0 were published as ``node-webkit``, later ones as ``nwjs``.

    :param version: Semantic version.
    :param archive: Archive suffix (e.g. ``win-ia32.zip``).
    :returns: Path relative to the download base URL.
    """

    prefix: str = "nwjs" if version_key(version) >= _NWJS_RENAME else "node-webkit"
    return f"v{version}/{prefix}-v{version}-{archive}"


def resolve_version(version: str, catalog: PlatformCatalog) -> tuple[ResolvedVersion, dict[str, FileRange]]:
    """Validate ``version`` and resolve it against every selected platform.

    :param version: Requested version (``latest`` must be resolved beforehand).
    :param catalog: Selected platforms.
    :returns: ``(resolved_version, ranges)``.
    :raises InvalidVersionError: If the version is not a semantic version.
    :raises UnsupportedPlatformVersionError: If a platform has no matching range.
    """

    normalized: str = normalize_version(version)
    ranges: dict[str, FileRange] = resolve_platform_ranges(catalog, normalized)
    paths: dict[str, str] = {
        name: download_path(normalized, file_range.archive) for name, file_range in ranges.items()
    }
    return ResolvedVersion(version=normalized, platforms=types.MappingProxyType(paths)), ranges


class VersionIndex:
    """Discover published runtime versions from the download index page."""

    def __init__(self, session: requests.Session | None = None, *, timeout: float = 30.0) -> None:
        self._session: requests.Session = session if session is not None else requests.Session()
        self._timeout: float = timeout

    def versions(self, base_url: str) -> list[str]:
        """List every release version linked from the index.

        :param base_url: Download base URL.
        :returns: Distinct versions, in page order.
        :raises DownloadError: If the index cannot be fetched.
        """

        try:
            response: requests.Response = self._session.get(base_url, timeout=self._timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status: int | None = e.response.status_code if e.response is not None else None
            raise DownloadError(
                f"Unable to read the version index at {base_url} (HTTP {status})",
                url=base_url,
                status_code=status,
            ) from e
        except requests.RequestException as e:
            raise DownloadError(f"Unable to read the version index at {base_url}: {e}", url=base_url) from e

        seen: list[str] = []
        for m in _INDEX_ENTRY_RE.finditer(response.text):
            found: str = m.group(1)
            if found not in seen:
                seen.append(found)
        return seen

    def latest_version(self, base_url: str) -> str:
        """Return the newest stable version listed at ``base_url``.

        :param base_url: Download base URL.
        :returns: Version string (no leading ``v``).
        :raises DownloadError: If the index lists no usable version.
        """

        stable: list[str] = []
        for found in self.versions(base_url):
            m = _SEMVER_RE.match(found)
            if m is None or m.group("prerelease") is not None:
                continue
            stable.append(found)

        if len(stable) == 0:
            raise DownloadError(f"No released versions found at {base_url}", url=base_url)
        return max(stable, key=version_key)
