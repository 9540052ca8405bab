"""Build configuration.

:func:`resolve_build_config` turns user-supplied options into an immutable
:class:`BuildConfig`, rejecting anything the pipeline cannot act on before a
single file is touched.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import enum
import pathlib
from typing import Any

from nw_builder.errors import ConfigurationError
from nw_builder.platforms import DEFAULT_CATALOG, PlatformCatalog, detect_current_platform


DEFAULT_DOWNLOAD_URL: str = "https://dl.nwjs.io/"


class BuildTypeKind(enum.Enum):
    """How the release folder is named."""

    FIXED = "default"
    TIMESTAMPED = "timestamped"
    VERSIONED = "versioned"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class BuildType:
    """Release folder naming strategy.

    :ivar kind: Strategy tag.
    :ivar namer: Callable receiving the resolved :class:`BuildConfig` (CUSTOM only).
    """

    kind: BuildTypeKind
    namer: Callable[["BuildConfig"], str] | None = None

    def folder_name(self, config: "BuildConfig", *, now: float) -> str:
        """Compute the release folder name.

        :param config: Config with ``app_name``/``app_version`` resolved.
        :param now: Current time in seconds since the epoch.
        :returns: Folder name.
        """

        if self.kind is BuildTypeKind.CUSTOM:
            if self.namer is None:
                raise ConfigurationError("custom build type requires a naming function")
            return str(self.namer(config))
        if self.kind is BuildTypeKind.TIMESTAMPED:
            return f"{config.app_name} - {round(now)}"
        if self.kind is BuildTypeKind.VERSIONED:
            return f"{config.app_name} - v{config.app_version}"
        return str(config.app_name)


def parse_build_type(value: "str | Callable[[BuildConfig], str] | BuildType") -> BuildType:
    """Map a build type option to a :class:`BuildType`.

    Unknown strings fall back to the fixed strategy.

    :param value: ``default``/``timestamped``/``versioned``, a callable, or a ``BuildType``.
    :returns: Parsed build type.
    """

    if isinstance(value, BuildType):
        return value
    if callable(value):
        return BuildType(kind=BuildTypeKind.CUSTOM, namer=value)
    if value == BuildTypeKind.TIMESTAMPED.value:
        return BuildType(kind=BuildTypeKind.TIMESTAMPED)
    if value == BuildTypeKind.VERSIONED.value:
        return BuildType(kind=BuildTypeKind.VERSIONED)
    return BuildType(kind=BuildTypeKind.FIXED)


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Immutable build options.

    ``app_name`` and ``app_version`` may be ``None`` until the application
    manifest has been read; the builder then derives a resolved copy with
    :func:`dataclasses.replace`.
    """

    files: str
    platforms: tuple[str, ...]
    app_name: str | None = None
    app_version: str | None = None
    current_platform: str | None = None
    version: str = "latest"
    build_dir: pathlib.Path = pathlib.Path("./build")
    cache_dir: pathlib.Path = pathlib.Path("./cache")
    download_url: str = DEFAULT_DOWNLOAD_URL
    build_type: BuildType = BuildType(kind=BuildTypeKind.FIXED)
    force_download: bool = False
    mac_credits: pathlib.Path | None = None
    mac_icns: pathlib.Path | None = None
    mac_zip: bool = False
    mac_plist: pathlib.Path | Mapping[str, Any] | None = None
    win_ico: pathlib.Path | None = None
    win_exe: bool = True
    argv: tuple[str, ...] = field(default_factory=tuple)


def _optional_path(value: str | pathlib.Path | None) -> pathlib.Path | None:
    if value is None:
        return None
    return pathlib.Path(value)


def resolve_build_config(
    *,
    files: str | None,
    platforms: list[str] | tuple[str, ...] = ("win", "osx"),
    app_name: str | None = None,
    app_version: str | None = None,
    current_platform: str | None = None,
    version: str = "latest",
    build_dir: str | pathlib.Path = "./build",
    cache_dir: str | pathlib.Path = "./cache",
    download_url: str = DEFAULT_DOWNLOAD_URL,
    build_type: "str | Callable[[BuildConfig], str] | BuildType" = "default",
    force_download: bool = False,
    mac_credits: str | pathlib.Path | None = None,
    mac_icns: str | pathlib.Path | None = None,
    mac_zip: bool = False,
    mac_plist: str | pathlib.Path | Mapping[str, Any] | None = None,
    win_ico: str | pathlib.Path | None = None,
    win_exe: bool = True,
    argv: list[str] | tuple[str, ...] = (),
    catalog: PlatformCatalog = DEFAULT_CATALOG,
) -> BuildConfig:
    """Validate user options and build a :class:`BuildConfig`.

    :param files: Glob spec of the application files (required).
    :param platforms: Target platform names; must be non-empty and known.
    :param app_name: Optional app name (defaults to the manifest's ``name``).
    :param app_version: Optional app version (defaults to the manifest's ``version``).
    :param current_platform: Platform used by ``run`` (defaults to the host).
    :param version: Runtime version or ``latest``.
    :param build_dir: Output root for release folders.
    :param cache_dir: Root of the runtime cache.
    :param download_url: Base URL of the runtime downloads.
    :param build_type: Release folder naming strategy.
    :param force_download: Drop cached runtimes before checking them.
    :param mac_credits: Optional ``Credits.html`` for the bundle.
    :param mac_icns: Optional ``.icns`` icon for the bundle.
    :param mac_zip: Archive the app inside the bundle instead of copying files.
    :param mac_plist: Info.plist file to copy, or a mapping of extra plist keys.
    :param win_ico: Optional ``.ico`` embedded into the Windows executable.
    :param win_exe: Ship ``package.nw`` next to the executable instead of appending it.
    :param argv: Extra arguments passed to the app by ``run``.
    :param catalog: Platform catalog to validate against.
    :returns: Resolved config.
    :raises ConfigurationError: If the options are unusable.
    """

    if files is None or len(files) == 0:
        raise ConfigurationError("Please specify some files")

    if len(platforms) == 0:
        raise ConfigurationError("No platform to build!")

    selected: list[str] = []
    for name in platforms:
        if name not in catalog:
            raise ConfigurationError(f"unknown platform {name}")
        if name not in selected:
            selected.append(name)

    if current_platform is None:
        current_platform = detect_current_platform()
    elif current_platform not in catalog:
        raise ConfigurationError(f"unknown platform {current_platform}")

    plist: pathlib.Path | Mapping[str, Any] | None
    if isinstance(mac_plist, (str, pathlib.Path)):
        plist = pathlib.Path(mac_plist)
    else:
        plist = mac_plist

    return BuildConfig(
        files=files,
        platforms=tuple(selected),
        app_name=app_name,
        app_version=app_version,
        current_platform=current_platform,
        version=version,
        build_dir=pathlib.Path(build_dir),
        cache_dir=pathlib.Path(cache_dir),
        download_url=download_url,
        build_type=parse_build_type(build_type),
        force_download=force_download,
        mac_credits=_optional_path(mac_credits),
        mac_icns=_optional_path(mac_icns),
        mac_zip=mac_zip,
        mac_plist=plist,
        win_ico=_optional_path(win_ico),
        win_exe=win_exe,
        argv=tuple(argv),
    )
