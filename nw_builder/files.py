"""Application file collection and low-level file operations.

:class:`FileLister` expands the user's glob spec into ``(src, dest)`` pairs and
reads the application's ``package.json``; the helpers below copy, append and
write files, turning :class:`OSError` into :class:`FileSystemError`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
import logging
import os
import pathlib
import re
import shutil
from typing import Any

from nw_builder.errors import FileSystemError, ManifestError


MANIFEST_NAME: str = "package.json"

_GLOB_CHARS: re.Pattern[str] = re.compile(r"[*?\[]")
_GLOB_TAIL: re.Pattern[str] = re.compile(r"\*[/*]*")


@dataclass(frozen=True, slots=True)
class AppFile:
    """One application file.

    :ivar src: Source path on disk.
    :ivar dest: Destination path relative to the app root (POSIX).
    """

    src: pathlib.Path
    dest: str


@dataclass(frozen=True, slots=True)
class AppManifest:
    """The application's ``package.json``.

    :ivar name: Application name.
    :ivar version: Application version.
    :ivar copyright: Optional copyright notice (used in Info.plist).
    :ivar platform_overrides: Per-platform partial manifests.
    :ivar data: Complete parsed manifest.
    """

    name: str
    version: str
    copyright: str | None = None
    platform_overrides: Mapping[str, Any] = field(default_factory=dict)
    data: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: str = MANIFEST_NAME) -> "AppManifest":
        """Build a manifest from parsed JSON.

        :param data: Parsed ``package.json``.
        :param source: Where the data came from (for error messages).
        :returns: Manifest.
        :raises ManifestError: If ``name`` or ``version`` is missing.
        """

        if isinstance(data, Mapping) is False:
            raise ManifestError(f"{source} must contain a JSON object")

        name: Any = data.get("name")
        version: Any = data.get("version")
        if isinstance(name, str) is False or len(name) == 0:
            raise ManifestError(f"{source} has no 'name' field")
        if isinstance(version, str) is False or len(version) == 0:
            raise ManifestError(f"{source} has no 'version' field")

        overrides: Any = data.get("platformOverrides")
        if overrides is None:
            overrides = {}
        if isinstance(overrides, Mapping) is False:
            raise ManifestError(f"{source}: 'platformOverrides' must be an object")

        copyright_: Any = data.get("copyright")
        return cls(
            name=name,
            version=version,
            copyright=copyright_ if isinstance(copyright_, str) is True else None,
            platform_overrides=overrides,
            data=data,
        )


@dataclass(frozen=True, slots=True)
class AppFiles:
    """Result of listing the application's files.

    :ivar manifest: Parsed ``package.json``.
    :ivar files: Every application file, ``package.json`` included.
    """

    manifest: AppManifest
    files: tuple[AppFile, ...]


def split_glob(spec: str) -> tuple[pathlib.Path, str]:
    """Split a glob spec into its literal base directory and pattern.

    ``./app/**/*`` becomes ``(Path("app"), "**/*")``. A spec without glob
    characters naming a directory, or one ending in ``**``, matches every file
    below it.

    :param spec: Glob spec.
    :returns: ``(base_dir, pattern)``.
    """

    parts: list[str] = spec.replace("\\", "/").split("/")
    base_parts: list[str] = []
    i: int = 0
    while i < len(parts) and _GLOB_CHARS.search(parts[i]) is None:
        base_parts.append(parts[i])
        i += 1

    pattern: str = "/".join(p for p in parts[i:] if len(p) > 0)
    base_str: str = "/".join(base_parts)
    if base_str == "" and spec.startswith("/") is True:
        base_str = "/"
    base: pathlib.Path = pathlib.Path(base_str) if len(base_str) > 0 else pathlib.Path(".")
    if len(pattern) == 0:
        pattern = "**/*"
    elif pattern == "**" or pattern.endswith("/**") is True:
        pattern = f"{pattern}/*"
    return base, pattern


def app_root_arg(spec: str) -> str:
    """Strip the glob tail from ``spec`` (``./app/**/*`` becomes ``./app/``)."""

    return _GLOB_TAIL.sub("", spec, count=1)


class FileLister:
    """Collect application files from a glob spec."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        if logger is None:
            logger = logging.getLogger("nw_builder")
        self._logger: logging.Logger = logger

    def get_file_list(self, spec: str) -> AppFiles:
        """Expand ``spec`` and read the application manifest.

        :param spec: Glob spec (e.g. ``./app/**/*``).
        :returns: Manifest and file list.
        :raises ManifestError: If no usable ``package.json`` is found at the app root.
        """

        base, pattern = split_glob(spec)
        if base.is_dir() is False:
            raise ManifestError(f"Application directory does not exist: {base}")

        found: list[AppFile] = []
        for p in sorted(base.glob(pattern)):
            if p.is_file() is False:
                continue
            dest: str = p.relative_to(base).as_posix()
            found.append(AppFile(src=p, dest=dest))

        manifest_file: AppFile | None = None
        for f in found:
            if f.dest == MANIFEST_NAME:
                manifest_file = f
                break
        if manifest_file is None:
            raise ManifestError(f"Could not find a {MANIFEST_NAME} in your src folder ({base})")

        if self._logger.isEnabledFor(logging.DEBUG) is True:
            self._logger.debug(f"nw-builder: {len(found)} app files under {base}")

        manifest: AppManifest = read_manifest(manifest_file.src)
        return AppFiles(manifest=manifest, files=tuple(found))


def read_manifest(path: pathlib.Path) -> AppManifest:
    """Read and validate a ``package.json``.

    :param path: Manifest path.
    :returns: Parsed manifest.
    :raises ManifestError: If the file is missing, not JSON, or incomplete.
    """

    try:
        text: str = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Unable to read {path}: {e}") from e
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"{path} is not valid JSON: {e}") from e
    return AppManifest.from_mapping(data, source=str(path))


def copy_file(src: pathlib.Path, dst: pathlib.Path) -> None:
    """Copy a file or directory tree, creating parent directories.

    Symlinks inside directory trees are preserved (macOS frameworks rely on them).

    :param src: Source file or directory.
    :param dst: Destination path.
    :raises FileSystemError: If the copy fails.
    """

    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        if src.is_dir() is True:
            shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
            return
        shutil.copy2(src, dst)
    except OSError as e:
        raise FileSystemError(f"Unable to copy {src} ({e.strerror or e})", path=dst) from e


def merge_files(target: pathlib.Path, payload: pathlib.Path, chmod: int | None = None) -> None:
    """Append ``payload`` to the end of ``target`` (binary-safe).

    :param target: File to extend (e.g. the runtime executable).
    :param payload: File appended to it (e.g. the app archive).
    :param chmod: Optional mode applied to ``target`` afterwards.
    :raises FileSystemError: If reading, writing or chmod fails.
    """

    try:
        with open(target, "ab") as out, open(payload, "rb") as src:
            shutil.copyfileobj(src, out, 1024 * 1024)
        if chmod is not None:
            os.chmod(target, chmod)
    except OSError as e:
        raise FileSystemError(f"Unable to append {payload} ({e.strerror or e})", path=target) from e


def write_json(path: pathlib.Path, data: Mapping[str, Any]) -> None:
    """Write ``data`` as compact JSON, creating parent directories.

    :param path: Output path.
    :param data: JSON object.
    :raises FileSystemError: If the write fails.
    """

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Unable to write manifest ({e.strerror or e})", path=path) from e


def remove_tree(path: pathlib.Path) -> None:
    """Delete ``path`` (file or directory) if it exists.

    :raises FileSystemError: If deletion fails.
    """

    try:
        if path.is_dir() is True and path.is_symlink() is False:
            shutil.rmtree(path)
        elif path.exists() is True or path.is_symlink() is True:
            path.unlink()
    except OSError as e:
        raise FileSystemError(f"Unable to remove ({e.strerror or e})", path=path) from e


def make_dirs(path: pathlib.Path) -> None:
    """Create ``path`` and its parents (idempotent).

    :raises FileSystemError: If creation fails.
    """

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Unable to create directory ({e.strerror or e})", path=path) from e
