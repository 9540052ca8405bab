"""Archive planning.

Building an archive costs the same for every platform, and archives built
without a platform-specific manifest are byte-identical. The bundler therefore
builds one shared archive whenever two or more archiving platforms have no
manifest override, and a dedicated archive for every platform that has one.
"""

import asyncio
from collections.abc import Mapping
import json
import pathlib
import types

from nw_builder.archive import ZipEngine
from nw_builder.config import BuildConfig
from nw_builder.files import AppFile
from nw_builder.observer import BuildObserver
from nw_builder.state import ArchiveRecord, PlatformBuildState, gather_settled


class ZipBundler:
    """Decide how many archives to build and hand one to each archiving platform."""

    def __init__(self, *, engine: ZipEngine, config: BuildConfig, observer: BuildObserver) -> None:
        self._engine: ZipEngine = engine
        self._config: BuildConfig = config
        self._observer: BuildObserver = observer

    def needs_zip(self, state: PlatformBuildState) -> bool:
        """Whether ``state``'s platform ships the app as an archive."""

        if state.is_bundle is True and self._config.mac_zip is True:
            return True
        return state.descriptor.needs_zip

    async def bundle(
        self,
        app_files: tuple[AppFile, ...],
        states: dict[str, PlatformBuildState],
    ) -> Mapping[str, ArchiveRecord]:
        """Build the archives and assign one to every archiving platform.

        Sets ``archive`` on each archiving platform's state.

        :param app_files: Application files.
        :param states: Per-platform build states.
        :returns: Read-only mapping of platform name to its archive record.
        :raises FileSystemError: If an archive cannot be written.
        """

        zipping: list[PlatformBuildState] = [s for s in states.values() if self.needs_zip(s) is True]
        if len(zipping) == 0:
            return types.MappingProxyType({})

        agnostic: list[PlatformBuildState] = [s for s in zipping if s.platform_manifest is None]
        dedicated: list[PlatformBuildState] = [s for s in zipping if s.platform_manifest is not None]

        shared: pathlib.Path | None = None
        if len(agnostic) > 1:
            shared = await asyncio.to_thread(self._engine.create_archive, app_files)
            self._observer.log(
                f"Built shared app archive for {', '.join(s.name for s in agnostic)}"
            )
        else:
            dedicated = agnostic + dedicated

        async def build_own(state: PlatformBuildState) -> pathlib.Path:
            override: str | None = None
            if state.platform_manifest is not None:
                override = json.dumps(state.platform_manifest)
            return await asyncio.to_thread(self._engine.create_archive, app_files, manifest_override=override)

        own: list[pathlib.Path] = await gather_settled(build_own(s) for s in dedicated)

        records: dict[str, ArchiveRecord] = {}
        if shared is not None:
            for state in agnostic:
                records[state.name] = ArchiveRecord(platform=state.name, archive=shared, platform_specific=False)
        for state, path in zip(dedicated, own):
            records[state.name] = ArchiveRecord(
                platform=state.name,
                archive=path,
                platform_specific=state.platform_manifest is not None,
            )
            if state.platform_manifest is not None:
                self._observer.log(f"Built platform-specific app archive for {state.name}")

        ordered: dict[str, ArchiveRecord] = {}
        for state in zipping:
            state.archive = records[state.name].archive
            ordered[state.name] = records[state.name]
        return types.MappingProxyType(ordered)
