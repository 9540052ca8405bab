"""Exception types raised by nw-builder.

Every failure surfaces as a subclass of :class:`NwBuilderError` so callers can
catch a single type; the subclasses carry enough context (platform, version,
URL or path) to diagnose a failed build without a traceback.
"""

import pathlib


class NwBuilderError(RuntimeError):
    """Base class for every nw-builder failure."""


class ConfigurationError(NwBuilderError):
    """Raised when build options are missing or inconsistent."""


class ManifestError(NwBuilderError):
    """Raised when the application's ``package.json`` is unusable."""


class InvalidVersionError(NwBuilderError):
    """Raised when a runtime version is not a valid semantic version."""

    def __init__(self, version: str) -> None:
        super().__init__(f"The version {version} is not valid.")
        self.version: str = version


class UnsupportedPlatformVersionError(NwBuilderError):
    """Raised when no runtime file list of a platform matches the version.

    :ivar version: The resolved version.
    :ivar platforms: Every selected platform lacking support, in selection order.
    """

    def __init__(self, version: str, platforms: list[str]) -> None:
        joined: str = ", ".join(f"'{p}'" for p in platforms)
        super().__init__(f"Unsupported node-webkit version '{version}' for platform(s) {joined}")
        self.version: str = version
        self.platforms: tuple[str, ...] = tuple(platforms)


class DownloadError(NwBuilderError):
    """Raised when a runtime archive cannot be fetched or unpacked.

    :ivar url: The URL that failed.
    :ivar status_code: HTTP status code, or ``None`` for transport failures.
    """

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url: str = url
        self.status_code: int | None = status_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class FileSystemError(NwBuilderError):
    """Raised when copying, merging or writing a file fails."""

    def __init__(self, message: str, *, path: pathlib.Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path: pathlib.Path = path


class ExternalToolError(NwBuilderError):
    """Raised when an external helper (icon editor, runtime) fails."""
