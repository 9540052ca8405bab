"""Supported runtime platforms.

The catalog is a static, read-only description of every platform nw-builder
knows how to package:

- which runtime files make up a distribution, per version range;
- which download archive carries those files;
- where the runnable executable lives inside the distribution;
- whether the application must always be archived for that platform.

A build never mutates the catalog. It asks for a filtered view with
:meth:`PlatformCatalog.select` and keeps its own per-build state elsewhere.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
import enum
import pathlib
import platform
import sys
import types

from nw_builder.errors import ConfigurationError


class PlatformShape(enum.Enum):
    """Native packaging shape of a platform."""

    BUNDLE = "bundle"
    FLAT = "flat"


@dataclass(frozen=True, slots=True)
class FileRange:
    """Runtime files valid for a range of versions.

    :ivar spec: Comma-separated version range (e.g. ``>0.9.2,<0.12.0``); empty matches all.
    :ivar files: Relative runtime paths; the first one is the primary executable.
    :ivar archive: Download archive suffix (e.g. ``win-ia32.zip``).
    """

    spec: str
    files: tuple[str, ...]
    archive: str


@dataclass(frozen=True, slots=True)
class PlatformDescriptor:
    """Immutable description of one target platform.

    :ivar name: Platform name (e.g. ``win``).
    :ivar shape: Native packaging shape.
    :ivar file_ranges: Ordered version ranges; the first match wins.
    :ivar runnable: Runnable path pattern, expanded with ``{executable}``
        (first runtime file) and ``{stem}`` (its name without extension).
    :ivar needs_zip: Whether the app is always archived for this platform.
    :ivar chmod: Mode applied to the executable after a payload is appended.
    """

    name: str
    shape: PlatformShape
    file_ranges: tuple[FileRange, ...]
    runnable: str
    needs_zip: bool = False
    chmod: int | None = None

    def runnable_path(self, files: list[str]) -> str:
        """Expand the runnable pattern against a resolved runtime file list.

        :param files: Resolved runtime files (first entry is the executable).
        :returns: Relative path of the file to launch.
        """

        executable: str = files[0]
        stem: str = pathlib.PurePosixPath(executable).stem
        return self.runnable.format(executable=executable, stem=stem)


_WIN_FILES_OLD: tuple[str, ...] = ("nw.exe", "ffmpegsumo.dll", "icudt.dll", "libEGL.dll", "libGLESv2.dll", "nw.pak")
_WIN_FILES_MID: tuple[str, ...] = ("nw.exe", "ffmpegsumo.dll", "icudtl.dat", "libEGL.dll", "libGLESv2.dll", "nw.pak")
_WIN_FILES_NEW: tuple[str, ...] = _WIN_FILES_MID + ("d3dcompiler_47.dll", "pdf.dll", "locales")

_LINUX_FILES_OLD: tuple[str, ...] = ("nw", "nw.pak", "libffmpegsumo.so")
_LINUX_FILES_MID: tuple[str, ...] = ("nw", "nw.pak", "libffmpegsumo.so", "icudtl.dat")
_LINUX_FILES_NEW: tuple[str, ...] = ("nw", "nw.pak", "lib/libffmpegsumo.so", "icudtl.dat", "locales")


def _linux_descriptor(name: str, arch: str) -> PlatformDescriptor:
    archive: str = f"linux-{arch}.tar.gz"
    return PlatformDescriptor(
        name=name,
        shape=PlatformShape.FLAT,
        file_ranges=(
            FileRange(spec="<=0.9.2", files=_LINUX_FILES_OLD, archive=archive),
            FileRange(spec=">0.9.2,<0.12.0", files=_LINUX_FILES_MID, archive=archive),
            FileRange(spec=">=0.12.0", files=_LINUX_FILES_NEW, archive=archive),
        ),
        runnable="{executable}",
        needs_zip=True,
        chmod=0o755,
    )


_DESCRIPTORS: tuple[PlatformDescriptor, ...] = (
    PlatformDescriptor(
        name="win",
        shape=PlatformShape.FLAT,
        file_ranges=(
            FileRange(spec="<=0.9.2", files=_WIN_FILES_OLD, archive="win-ia32.zip"),
            FileRange(spec=">0.9.2,<0.12.0", files=_WIN_FILES_MID, archive="win-ia32.zip"),
            FileRange(spec=">=0.12.0", files=_WIN_FILES_NEW, archive="win-ia32.zip"),
        ),
        runnable="{executable}",
        needs_zip=True,
    ),
    PlatformDescriptor(
        name="osx",
        shape=PlatformShape.BUNDLE,
        file_ranges=(
            FileRange(spec="<0.12.0", files=("node-webkit.app",), archive="osx-ia32.zip"),
            FileRange(spec=">=0.12.0", files=("nwjs.app",), archive="osx-x64.zip"),
        ),
        runnable="{executable}/Contents/MacOS/{stem}",
    ),
    _linux_descriptor("linux32", "ia32"),
    _linux_descriptor("linux64", "x64"),
)


class PlatformCatalog(Mapping[str, PlatformDescriptor]):
    """Read-only, ordered registry of platform descriptors."""

    def __init__(self, descriptors: tuple[PlatformDescriptor, ...]) -> None:
        self._by_name: Mapping[str, PlatformDescriptor] = types.MappingProxyType(
            {d.name: d for d in descriptors}
        )

    def __getitem__(self, name: str) -> PlatformDescriptor:
        return self._by_name[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def select(self, names: list[str] | tuple[str, ...]) -> "PlatformCatalog":
        """Return a new catalog restricted to ``names`` (in the given order).

        :param names: Platform names to keep.
        :returns: Filtered catalog.
        :raises ConfigurationError: If a name is unknown.
        """

        picked: list[PlatformDescriptor] = []
        for name in names:
            if name not in self._by_name:
                raise ConfigurationError(f"unknown platform {name}")
            picked.append(self._by_name[name])
        return PlatformCatalog(tuple(picked))


DEFAULT_CATALOG: PlatformCatalog = PlatformCatalog(_DESCRIPTORS)


def detect_current_platform() -> str | None:
    """Map the host OS/arch to a catalog platform name.

    :returns: Platform name, or ``None`` for unsupported hosts.
    """

    if sys.platform == "darwin":
        return "osx"
    if sys.platform == "win32":
        return "win"
    if sys.platform.startswith("linux") is True:
        machine: str = platform.machine().lower()
        if machine in {"x86_64", "amd64", "aarch64", "arm64"}:
            return "linux64"
        return "linux32"
    return None
