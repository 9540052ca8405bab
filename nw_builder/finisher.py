"""Platform finishing.

Turns a release folder holding a bare runtime into a runnable application:

- bundle shape (``<app>.app``): icon, credits and Info.plist are set, then the
  app files (or the app archive) go to ``Contents/Resources/app.nw``;
- flat shape: the icon is embedded into the executable, then the archive is
  either appended to the executable or placed next to it as ``package.nw``.
"""

import asyncio
from collections.abc import Mapping
import pathlib
from typing import Any

from nw_builder.config import BuildConfig
from nw_builder.files import MANIFEST_NAME, AppFile, AppManifest, copy_file, merge_files, write_json
from nw_builder.icons import IconEmbedder
from nw_builder.observer import BuildObserver
from nw_builder.plist import edit_plist
from nw_builder.state import PlatformBuildState, fan_out, gather_settled


RESOURCES_DIR: str = "Contents/Resources"
APP_DIR: str = "app.nw"
ICNS_NAME: str = "nw.icns"
CREDITS_NAME: str = "Credits.html"
PLIST_PATH: str = "Contents/Info.plist"
PACKAGE_NW: str = "package.nw"


def bundle_resources(state: PlatformBuildState) -> pathlib.Path:
    """``Contents/Resources`` of the platform's ``.app`` bundle."""

    return state.executable_path() / RESOURCES_DIR


class PlatformFinisher:
    """Finish every platform's release folder in its native shape."""

    def __init__(
        self,
        *,
        config: BuildConfig,
        manifest: AppManifest,
        observer: BuildObserver,
        icon_embedder: IconEmbedder,
    ) -> None:
        self._config: BuildConfig = config
        self._manifest: AppManifest = manifest
        self._observer: BuildObserver = observer
        self._icon_embedder: IconEmbedder = icon_embedder

    async def handle_mac_app(self, states: dict[str, PlatformBuildState]) -> None:
        """Set icon, credits and Info.plist on every bundle-shaped platform."""

        bundles: list[PlatformBuildState] = [s for s in states.values() if s.is_bundle is True]
        await fan_out(bundles, self._finish_bundle_metadata)

    async def _finish_bundle_metadata(self, state: PlatformBuildState) -> None:
        resources: pathlib.Path = bundle_resources(state)
        jobs: list[Any] = []

        if self._config.mac_icns is not None:
            jobs.append(asyncio.to_thread(copy_file, self._config.mac_icns, resources / ICNS_NAME))

        if self._config.mac_credits is not None:
            jobs.append(asyncio.to_thread(copy_file, self._config.mac_credits, resources / CREDITS_NAME))

        plist_path: pathlib.Path = state.executable_path() / PLIST_PATH
        mac_plist: pathlib.Path | Mapping[str, Any] | None = self._config.mac_plist
        if isinstance(mac_plist, pathlib.Path):
            jobs.append(asyncio.to_thread(copy_file, mac_plist, plist_path))
        else:
            options: dict[str, Any] = {
                "appName": self._config.app_name,
                "appVersion": self._config.app_version,
                "copyright": self._manifest.copyright,
            }
            if mac_plist is not None:
                options.update(mac_plist)
            jobs.append(asyncio.to_thread(edit_plist, plist_path, plist_path, options))

        await gather_settled(jobs)

    async def handle_win_app(self, states: dict[str, PlatformBuildState]) -> None:
        """Embed the configured icon into every Windows executable.

        Runs before the app payload is attached to the executable.
        """

        icon: pathlib.Path | None = self._config.win_ico
        if icon is None:
            return

        targets: list[PlatformBuildState] = [
            s for s in states.values() if s.is_bundle is False and s.executable_path().suffix == ".exe"
        ]
        if len(targets) == 0:
            return

        async def embed(state: PlatformBuildState) -> None:
            self._observer.log("Update executable icon")
            await asyncio.to_thread(self._icon_embedder.embed, state.executable_path(), icon)

        await fan_out(targets, embed)

    async def merge_app_files(self, app_files: tuple[AppFile, ...], states: dict[str, PlatformBuildState]) -> None:
        """Put the application into every platform's release folder."""

        async def merge(state: PlatformBuildState) -> None:
            if state.is_bundle is True:
                await self._merge_bundle(app_files, state)
            else:
                await self._merge_flat(state)

        await fan_out(states, merge)

    async def _merge_bundle(self, app_files: tuple[AppFile, ...], state: PlatformBuildState) -> None:
        app_dir: pathlib.Path = bundle_resources(state) / APP_DIR

        if state.archive is not None:
            await asyncio.to_thread(copy_file, state.archive, app_dir)
            return

        jobs: list[Any] = []
        for f in app_files:
            dest: pathlib.Path = app_dir / f.dest
            if f.dest == MANIFEST_NAME and state.platform_manifest is not None:
                jobs.append(asyncio.to_thread(write_json, dest, state.platform_manifest))
            else:
                jobs.append(asyncio.to_thread(copy_file, f.src, dest))
        await gather_settled(jobs)

    async def _merge_flat(self, state: PlatformBuildState) -> None:
        if state.archive is None:
            raise RuntimeError(f"Internal error: no app archive was built for {state.name}.")

        if self._config.win_exe is False:
            await asyncio.to_thread(merge_files, state.executable_path(), state.archive, state.descriptor.chmod)
            return

        await asyncio.to_thread(copy_file, state.archive, state.executable_path().parent / PACKAGE_NW)
