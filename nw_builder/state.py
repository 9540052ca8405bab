"""Per-build mutable state and the per-stage fan-out helper."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
import pathlib
from typing import Any, TypeVar

from nw_builder.platforms import PlatformDescriptor, PlatformShape


T = TypeVar("T")


@dataclass(slots=True)
class PlatformBuildState:
    """Everything one build knows about one selected platform.

    Created when the build starts and filled in stage by stage. Only the
    orchestrator's current stage touches it.

    :ivar descriptor: Immutable platform description.
    :ivar files: Resolved runtime files; entry 0 is renamed once copied.
    :ivar cache_dir: Runtime cache directory.
    :ivar url: Runtime download URL.
    :ivar release_dir: Release directory for this platform.
    :ivar platform_manifest: Merged platform-specific manifest, if any.
    :ivar archive: Application archive assigned to this platform, if any.
    """

    descriptor: PlatformDescriptor
    files: list[str] = field(default_factory=list)
    cache_dir: pathlib.Path | None = None
    url: str | None = None
    release_dir: pathlib.Path | None = None
    platform_manifest: dict[str, Any] | None = None
    archive: pathlib.Path | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def is_bundle(self) -> bool:
        return self.descriptor.shape is PlatformShape.BUNDLE

    def executable_path(self) -> pathlib.Path:
        """Release path of the primary executable (after renaming)."""

        if self.release_dir is None or len(self.files) == 0:
            raise RuntimeError(f"release folder for {self.name} has not been prepared")
        return self.release_dir / self.files[0]


@dataclass(frozen=True, slots=True)
class ArchiveRecord:
    """The archive a platform receives.

    :ivar platform: Platform name.
    :ivar archive: Archive file.
    :ivar platform_specific: ``True`` if built with the platform's own manifest.
    """

    platform: str
    archive: pathlib.Path
    platform_specific: bool


async def gather_settled(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Await every awaitable concurrently, then raise the first failure.

    Unlike a bare :func:`asyncio.gather`, nothing is left running once this
    returns or raises.

    :param aws: Awaitables to run.
    :returns: Results in input order.
    """

    results: list[Any] = await asyncio.gather(*aws, return_exceptions=True)
    for r in results:
        if isinstance(r, BaseException):
            raise r
    return results


async def fan_out(
    states: Iterable[PlatformBuildState] | Mapping[str, PlatformBuildState],
    task: Callable[[PlatformBuildState], Awaitable[T]],
) -> list[T]:
    """Run ``task`` for every platform concurrently and wait for all of them.

    This is the barrier between pipeline stages: the next stage only starts
    once every platform task of this one has settled.

    :param states: Platform states (a mapping is iterated by value).
    :param task: Coroutine function applied to each state.
    :returns: Results in platform order.
    :raises Exception: The first failure (in platform order), if any task failed.
    """

    items: list[PlatformBuildState]
    if isinstance(states, Mapping):
        items = list(states.values())
    else:
        items = list(states)

    return await gather_settled(task(s) for s in items)
