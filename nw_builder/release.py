"""Release folders and runtime copies."""

import asyncio
import pathlib
import time

from nw_builder.config import BuildConfig
from nw_builder.files import copy_file, make_dirs, remove_tree
from nw_builder.observer import BuildObserver
from nw_builder.state import PlatformBuildState, gather_settled


class ReleaseAssembler:
    """Create per-platform release folders and fill them with the runtime."""

    def __init__(self, *, config: BuildConfig, observer: BuildObserver) -> None:
        if config.app_name is None:
            raise RuntimeError("Internal error: app name must be resolved before assembling a release.")
        self._config: BuildConfig = config
        self._observer: BuildObserver = observer

    def release_root(self, *, now: float | None = None) -> pathlib.Path:
        """Absolute release folder shared by every platform of this build.

        :param now: Seconds since the epoch (defaults to the current time).
        """

        if now is None:
            now = time.time()
        name: str = self._config.build_type.folder_name(self._config, now=now)
        return self._config.build_dir.resolve() / name

    def create_release_folders(self, states: dict[str, PlatformBuildState], *, now: float | None = None) -> None:
        """Delete and recreate ``<build_dir>/<release name>/<platform>`` for every platform.

        Anything already in those folders is lost.
        """

        root: pathlib.Path = self.release_root(now=now)
        for name, state in states.items():
            state.release_dir = root / name
            remove_tree(state.release_dir)
            make_dirs(state.release_dir)
            self._observer.log(f"Create release folder in {state.release_dir}")

    async def copy_runtime(self, states: dict[str, PlatformBuildState]) -> None:
        """Copy each platform's runtime files from the cache into its release folder.

        The first runtime file is renamed to ``<app name><its extension>`` and the
        state's file list is updated to match.

        :raises FileSystemError: If any copy fails.
        """

        copies: list[tuple[pathlib.Path, pathlib.Path]] = []
        for state in states.values():
            if state.cache_dir is None or state.release_dir is None:
                raise RuntimeError(f"Internal error: {state.name} has no cache or release folder.")
            for i, rel in enumerate(list(state.files)):
                dest_rel: str = rel
                if i == 0:
                    dest_rel = f"{self._config.app_name}{pathlib.PurePosixPath(rel).suffix}"
                    state.files[0] = dest_rel
                copies.append((state.cache_dir / rel, state.release_dir / dest_rel))

        await gather_settled(asyncio.to_thread(copy_file, src, dst) for src, dst in copies)

