"""Info.plist editing for macOS bundles."""

from collections.abc import Mapping
import pathlib
import plistlib
from typing import Any
import xml.parsers.expat

from nw_builder.errors import FileSystemError


_OPTION_KEYS: frozenset[str] = frozenset({"appName", "appVersion", "copyright"})


def plist_values(options: Mapping[str, Any]) -> dict[str, Any]:
    """Translate plist options into Info.plist keys.

    ``appName``, ``appVersion`` and ``copyright`` map onto the bundle name,
    version and copyright keys; every other option is copied as-is.

    :param options: Plist options.
    :returns: Info.plist keys to set.
    """

    values: dict[str, Any] = {}
    app_name: Any = options.get("appName")
    if app_name:
        values["CFBundleDisplayName"] = app_name
        values["CFBundleName"] = app_name
    app_version: Any = options.get("appVersion")
    if app_version:
        values["CFBundleVersion"] = app_version
        values["CFBundleShortVersionString"] = app_version
    copyright_: Any = options.get("copyright")
    if copyright_:
        values["NSHumanReadableCopyright"] = copyright_

    for key, value in options.items():
        if key in _OPTION_KEYS:
            continue
        values[key] = value
    return values


def edit_plist(source: pathlib.Path, dest: pathlib.Path, options: Mapping[str, Any]) -> dict[str, Any]:
    """Apply ``options`` to the plist at ``source`` and write it to ``dest``.

    A missing ``source`` starts from an empty dictionary.

    :param source: Plist to read.
    :param dest: Plist to write (may equal ``source``).
    :param options: Plist options (see :func:`plist_values`).
    :returns: The written plist.
    :raises FileSystemError: If the plist can't be read or written.
    """

    info: dict[str, Any] = {}
    if source.is_file() is True:
        try:
            with open(source, "rb") as f:
                info = plistlib.load(f)
        except (OSError, plistlib.InvalidFileException, xml.parsers.expat.ExpatError) as e:
            raise FileSystemError(f"Unable to read plist ({e})", path=source) from e

    info.update(plist_values(options))

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as f:
            plistlib.dump(info, f)
    except (OSError, TypeError) as e:
        raise FileSystemError(f"Unable to write plist ({e})", path=dest) from e
    return info
