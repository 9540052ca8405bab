"""Runtime cache.

Runtimes are cached per version and platform under
``<cache_dir>/<version>/<platform>``. A platform is downloaded only when one
of its required files is missing from that directory.
"""

import asyncio
import pathlib
import time

from nw_builder.downloader import Downloader
from nw_builder.errors import DownloadError
from nw_builder.files import make_dirs, remove_tree
from nw_builder.observer import BuildObserver
from nw_builder.state import PlatformBuildState, fan_out
from nw_builder.versions import ResolvedVersion


class CacheManager:
    """Make sure every selected platform has a complete runtime on disk."""

    def __init__(
        self,
        *,
        cache_dir: pathlib.Path,
        download_url: str,
        downloader: Downloader,
        observer: BuildObserver,
        force_download: bool = False,
    ) -> None:
        self._cache_root: pathlib.Path = cache_dir.resolve()
        self._download_url: str = download_url
        self._downloader: Downloader = downloader
        self._observer: BuildObserver = observer
        self._force_download: bool = force_download

    def cache_path(self, version: str, platform: str) -> pathlib.Path:
        """Cache directory for ``(version, platform)``."""

        return self._cache_root / version / platform

    async def ensure(self, resolved: ResolvedVersion, states: dict[str, PlatformBuildState]) -> None:
        """Populate every platform's cache, downloading what is missing.

        Sets ``cache_dir`` and ``url`` on each state.

        :param resolved: Resolved runtime version.
        :param states: Per-platform build states (files already resolved).
        :raises DownloadError: If any platform's download fails.
        """

        t0: float = time.perf_counter()
        self._observer.log(f"Create cache folder in {self._cache_root / resolved.version}")

        async def prepare(state: PlatformBuildState) -> bool:
            cache_dir: pathlib.Path = self.cache_path(resolved.version, state.name)
            url: str = resolved.url_for(state.name, self._download_url)
            state.cache_dir = cache_dir
            state.url = url

            if self._force_download is True:
                await asyncio.to_thread(remove_tree, cache_dir)
            await asyncio.to_thread(make_dirs, cache_dir)

            cached: bool = await asyncio.to_thread(self._downloader.check_cache, cache_dir, state.files)
            if cached is True:
                self._observer.log(f"Using cache for: {state.name}")
                return False

            self._observer.log(f"Downloading: {url}")
            try:
                await asyncio.to_thread(self._downloader.download_and_unpack, cache_dir, url)
            except DownloadError as e:
                raise self._explain(e, version=resolved.version, platform=state.name) from e
            return True

        downloaded: list[bool] = await fan_out(states, prepare)
        count: int = sum(1 for d in downloaded if d is True)
        if count > 0:
            t1: float = time.perf_counter()
            self._observer.log(f"Downloaded {count} runtime(s) in {t1 - t0:.2f}s")

    def _explain(self, error: DownloadError, *, version: str, platform: str) -> DownloadError:
        """Rewrite a downloader failure into a user-facing message."""

        if error.not_found is True:
            message: str = (
                f"The version {version} does not have a corresponding build for platform "
                f"'{platform}' posted at {self._download_url} ({error.url}). "
                "Please choose a version from that list."
            )
        else:
            message = f"Unable to download nodewebkit for platform '{platform}': {error}"
        self._observer.log(f"ERROR: {message}")
        return DownloadError(message, url=error.url, status_code=error.status_code)
