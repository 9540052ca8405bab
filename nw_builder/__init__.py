"""nw-builder.

A build utility that packages an NW.js application together with the NW.js
runtime into ready-to-run bundles for Windows, macOS and Linux.
"""

from nw_builder.builder import BuildResult, NwBuilder
from nw_builder.config import BuildConfig, resolve_build_config
from nw_builder.errors import NwBuilderError

__all__: list[str] = [
    "BuildConfig",
    "BuildResult",
    "NwBuilder",
    "NwBuilderError",
    "__version__",
    "resolve_build_config",
]

__version__: str = "0.1.0"
