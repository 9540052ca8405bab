"""Platform-specific manifests.

A ``package.json`` may carry a ``platformOverrides`` object keyed by platform
name. The manifest shipped for that platform is the base manifest with the
override deep-merged on top and the ``platformOverrides`` key removed.
"""

from collections.abc import Mapping
import copy
from typing import Any

from nw_builder.files import AppManifest
from nw_builder.state import PlatformBuildState


OVERRIDES_KEY: str = "platformOverrides"


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` onto ``base``.

    Nested objects are merged key by key; any other value (lists included)
    replaces the base value. Neither input is modified.

    :param base: Base mapping.
    :param override: Mapping laid over ``base``.
    :returns: New merged mapping.
    """

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current: Any = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def platform_manifest(manifest: AppManifest, platform: str) -> dict[str, Any] | None:
    """Compute the merged manifest for ``platform``.

    :param manifest: Application manifest.
    :param platform: Platform name.
    :returns: Merged manifest, or ``None`` when the platform has no (or an empty) override.
    """

    override: Any = manifest.platform_overrides.get(platform)
    if isinstance(override, Mapping) is False or len(override) == 0:
        return None

    merged: dict[str, Any] = deep_merge(manifest.data, override)
    merged.pop(OVERRIDES_KEY, None)
    return merged


def prepare_platform_manifests(manifest: AppManifest, states: dict[str, PlatformBuildState]) -> list[str]:
    """Attach merged manifests to the platforms that override the base manifest.

    :param manifest: Application manifest.
    :param states: Per-platform build states.
    :returns: Names of the platforms that received a platform-specific manifest.
    """

    if len(manifest.platform_overrides) == 0:
        return []

    overridden: list[str] = []
    for name, state in states.items():
        merged: dict[str, Any] | None = platform_manifest(manifest, name)
        if merged is None:
            continue
        state.platform_manifest = merged
        overridden.append(name)
    return overridden
