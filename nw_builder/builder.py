"""Build orchestration.

:class:`NwBuilder` runs the packaging pipeline:

- read the application's files and ``package.json``;
- resolve the runtime version and each platform's runtime file list;
- make sure every platform's runtime is cached, downloading what is missing;
- compute platform-specific manifests;
- create release folders and copy the runtime into them;
- finish macOS bundles (icon, credits, Info.plist) and Windows executables (icon);
- build the minimum number of app archives;
- merge the app into every release folder.

Each stage fans out one task per platform and waits for all of them before the
next stage starts. The first failure aborts the build; release folders created
up to that point are left in place.
"""

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
import logging
import pathlib
import tempfile
import time
import types
from typing import Any

from nw_builder.archive import ZipEngine
from nw_builder.bundler import ZipBundler
from nw_builder.cache import CacheManager
from nw_builder.config import BuildConfig
from nw_builder.downloader import Downloader
from nw_builder.errors import ConfigurationError, ExternalToolError
from nw_builder.files import AppFiles, FileLister, app_root_arg
from nw_builder.finisher import PlatformFinisher
from nw_builder.icons import IconEmbedder
from nw_builder.manifest import prepare_platform_manifests
from nw_builder.observer import BuildObserver, LoggingObserver
from nw_builder.platforms import DEFAULT_CATALOG, FileRange, PlatformCatalog
from nw_builder.release import ReleaseAssembler
from nw_builder.state import ArchiveRecord, PlatformBuildState
from nw_builder.versions import ResolvedVersion, VersionIndex, resolve_version


Callback = Callable[[BaseException | None, Any], None]


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of a successful build.

    :ivar version: Runtime version the apps were built with.
    :ivar release_dirs: Release folder per platform.
    :ivar archives: Archive assigned to each archiving platform. The archive
        files live in the build's scratch directory, which is deleted once the
        build finishes; the records only tell which platforms shared one.
    """

    version: str
    release_dirs: Mapping[str, pathlib.Path]
    archives: Mapping[str, ArchiveRecord]


class NwBuilder:
    """Package an NW.js application for one or more platforms.

    :param config: Build options (see :func:`nw_builder.config.resolve_build_config`).
    :param observer: Receiver for progress events (defaults to logging).
    :param downloader: Runtime downloader.
    :param file_lister: Application file collector.
    :param version_index: Source of the latest runtime version.
    :param zip_engine_factory: Creates the archive engine for a build's work directory.
    :param icon_embedder: Windows icon tool wrapper.
    :param catalog: Platform catalog.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        observer: BuildObserver | None = None,
        downloader: Downloader | None = None,
        file_lister: FileLister | None = None,
        version_index: VersionIndex | None = None,
        zip_engine_factory: Callable[[pathlib.Path], ZipEngine] | None = None,
        icon_embedder: IconEmbedder | None = None,
        catalog: PlatformCatalog = DEFAULT_CATALOG,
    ) -> None:
        if len(config.platforms) == 0:
            raise ConfigurationError("No platform to build!")

        self._config: BuildConfig = config
        self._observer: BuildObserver = observer if observer is not None else LoggingObserver()
        self._downloader: Downloader = downloader if downloader is not None else Downloader()
        self._file_lister: FileLister = file_lister if file_lister is not None else FileLister()
        self._version_index: VersionIndex = version_index if version_index is not None else VersionIndex()
        self._zip_engine_factory: Callable[[pathlib.Path], ZipEngine] = (
            zip_engine_factory if zip_engine_factory is not None else ZipEngine
        )
        self._icon_embedder: IconEmbedder = icon_embedder if icon_embedder is not None else IconEmbedder()
        self._catalog: PlatformCatalog = catalog
        self._platforms: PlatformCatalog = catalog.select(config.platforms)

    @property
    def config(self) -> BuildConfig:
        return self._config

    @property
    def platforms(self) -> PlatformCatalog:
        """The selected platforms."""

        return self._platforms

    async def build(self, callback: Callback | None = None) -> BuildResult | bool:
        """Run the full pipeline.

        :param callback: Optional ``callback(error, result)``; when given, errors are
            reported through it and ``True`` is returned.
        :returns: The build result (or ``True`` when a callback is used).
        :raises NwBuilderError: On failure, when no callback is given.
        """

        return await _complete(self._build(), callback)

    async def run(self, callback: Callback | None = None) -> int | bool:
        """Launch the app with the cached runtime of the current platform.

        :param callback: Optional ``callback(error, exit_code)``.
        :returns: The app's exit code (or ``True`` when a callback is used).
        :raises NwBuilderError: On failure, when no callback is given.
        """

        return await _complete(self._run(), callback)

    async def _build(self) -> BuildResult:
        t0: float = time.perf_counter()
        app, config = await self.check_files()
        version: str = await self.resolve_latest_version()
        resolved, states = self.resolve_platforms(version, self._platforms)
        await self._cache_manager().ensure(resolved, states)

        overridden: list[str] = prepare_platform_manifests(app.manifest, states)
        if len(overridden) > 0:
            self._observer.log(f"Platform-specific manifests for: {', '.join(overridden)}")

        release: ReleaseAssembler = ReleaseAssembler(config=config, observer=self._observer)
        finisher: PlatformFinisher = PlatformFinisher(
            config=config,
            manifest=app.manifest,
            observer=self._observer,
            icon_embedder=self._icon_embedder,
        )

        with tempfile.TemporaryDirectory(prefix="nw_builder_build_") as td:
            engine: ZipEngine = self._zip_engine_factory(pathlib.Path(td))
            bundler: ZipBundler = ZipBundler(engine=engine, config=config, observer=self._observer)

            release.create_release_folders(states)
            await release.copy_runtime(states)
            await finisher.handle_mac_app(states)
            await finisher.handle_win_app(states)
            archives: Mapping[str, ArchiveRecord] = await bundler.bundle(app.files, states)
            await finisher.merge_app_files(app.files, states)

        release_dirs: dict[str, pathlib.Path] = {}
        for name, state in states.items():
            if state.release_dir is not None:
                release_dirs[name] = state.release_dir

        t1: float = time.perf_counter()
        self._observer.log(f"Build done in {t1 - t0:.2f}s")
        return BuildResult(
            version=resolved.version,
            release_dirs=types.MappingProxyType(release_dirs),
            archives=archives,
        )

    async def _run(self) -> int:
        current: str | None = self._config.current_platform
        if current is None:
            raise ConfigurationError("Unable to detect the current platform; pass current_platform explicitly")

        await self.check_files()
        version: str = await self.resolve_latest_version()
        resolved, states = self.resolve_platforms(version, self._catalog.select([current]))
        await self._cache_manager().ensure(resolved, states)
        return await self.run_app(states[current])

    async def check_files(self) -> tuple[AppFiles, BuildConfig]:
        """Read the application files and fill in the app name and version.

        :returns: ``(app_files, resolved_config)``.
        :raises ManifestError: If ``package.json`` is missing or incomplete.
        """

        app: AppFiles = await asyncio.to_thread(self._file_lister.get_file_list, self._config.files)
        config: BuildConfig = replace(
            self._config,
            app_name=self._config.app_name or app.manifest.name,
            app_version=self._config.app_version or app.manifest.version,
        )
        return app, config

    async def resolve_latest_version(self) -> str:
        """Return the configured version, querying the index for ``latest``."""

        if self._config.version != "latest":
            return self._config.version

        latest: str = await asyncio.to_thread(self._version_index.latest_version, self._config.download_url)
        self._observer.log(f"Latest Version: v{latest}")
        return latest

    def resolve_platforms(
        self,
        version: str,
        platforms: PlatformCatalog,
    ) -> tuple[ResolvedVersion, dict[str, PlatformBuildState]]:
        """Validate ``version`` and create fresh build states for ``platforms``.

        :raises InvalidVersionError: If the version is not a semantic version.
        :raises UnsupportedPlatformVersionError: If some platform has no runtime for it.
        """

        resolved, ranges = resolve_version(version, platforms)
        self._observer.log(f"Using v{resolved.version}")

        states: dict[str, PlatformBuildState] = {}
        for name, descriptor in platforms.items():
            file_range: FileRange = ranges[name]
            states[name] = PlatformBuildState(descriptor=descriptor, files=list(file_range.files))
        return resolved, states

    def _cache_manager(self) -> CacheManager:
        return CacheManager(
            cache_dir=self._config.cache_dir,
            download_url=self._config.download_url,
            downloader=self._downloader,
            observer=self._observer,
            force_download=self._config.force_download,
        )

    async def run_app(self, state: PlatformBuildState) -> int:
        """Launch the cached runtime with the app folder and stream its output.

        :param state: Build state of the current platform (cache populated).
        :returns: Exit code.
        :raises ExternalToolError: If the runtime cannot be started.
        """

        if state.cache_dir is None:
            raise RuntimeError(f"Internal error: runtime for {state.name} is not cached.")

        executable: pathlib.Path = state.cache_dir / state.descriptor.runnable_path(state.files)
        args: list[str] = ["--enable-logging", app_root_arg(self._config.files), *self._config.argv]
        self._observer.log("Launching App")

        try:
            proc = await asyncio.create_subprocess_exec(
                str(executable),
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExternalToolError(f"Unable to launch {executable}: {e}") from e

        await asyncio.gather(
            pump_lines(proc.stdout, self._observer.stdout),
            pump_lines(proc.stderr, self._observer.stderr),
        )
        code: int = await proc.wait()
        self._observer.log(f"App exited with code {code}")
        return code


async def _complete(work: Any, callback: Callback | None) -> Any:
    """Await ``work`` and report through ``callback`` when one is given."""

    if callback is None:
        return await work

    try:
        result: Any = await work
    except Exception as e:
        logging.getLogger("nw_builder").debug("nw-builder: build failed", exc_info=True)
        callback(e, None)
        return True
    callback(None, result)
    return True


async def pump_lines(stream: asyncio.StreamReader | None, emit: Callable[[bytes], None]) -> None:
    """Forward ``stream`` to ``emit`` in whole lines.

    Reads are chunked, so a line split across two reads is held back until its
    newline arrives. Whatever is left at EOF is emitted as the last line.

    :param stream: Subprocess pipe (``None`` when not captured).
    :param emit: Receiver of one or more complete lines.
    """

    if stream is None:
        return

    pending: bytes = b""
    while True:
        chunk: bytes = await stream.read(64 * 1024)
        if len(chunk) == 0:
            if len(pending) > 0:
                emit(pending)
            return
        pending += chunk
        cut: int = pending.rfind(b"\n")
        if cut >= 0:
            emit(pending[: cut + 1])
            pending = pending[cut + 1 :]
