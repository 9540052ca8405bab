"""Tests for the platform catalog."""

from __future__ import annotations

import pytest

from nw_builder import platforms as platforms_mod
from nw_builder.errors import ConfigurationError
from nw_builder.platforms import DEFAULT_CATALOG, PlatformShape, detect_current_platform


def test_catalog_contents():
    assert list(DEFAULT_CATALOG) == ["win", "osx", "linux32", "linux64"]
    assert DEFAULT_CATALOG["osx"].shape is PlatformShape.BUNDLE
    assert DEFAULT_CATALOG["win"].needs_zip is True
    assert DEFAULT_CATALOG["osx"].needs_zip is False
    assert DEFAULT_CATALOG["linux64"].chmod == 0o755


def test_select_filters_without_touching_the_template():
    selected = DEFAULT_CATALOG.select(["osx", "win"])

    assert list(selected) == ["osx", "win"]
    assert "linux64" not in selected
    assert len(DEFAULT_CATALOG) == 4


def test_select_cannot_add_back_dropped_platforms():
    selected = DEFAULT_CATALOG.select(["win"])

    with pytest.raises(ConfigurationError):
        selected.select(["win", "osx"])
    with pytest.raises(TypeError):
        selected["osx"] = DEFAULT_CATALOG["osx"]  # type: ignore[index]


def test_runnable_path():
    assert DEFAULT_CATALOG["osx"].runnable_path(["nwjs.app"]) == "nwjs.app/Contents/MacOS/nwjs"
    assert DEFAULT_CATALOG["osx"].runnable_path(["node-webkit.app"]) == "node-webkit.app/Contents/MacOS/node-webkit"
    assert DEFAULT_CATALOG["win"].runnable_path(["nw.exe", "nw.pak"]) == "nw.exe"


@pytest.mark.parametrize(
    ("sys_platform", "machine", "expected"),
    [
        ("darwin", "arm64", "osx"),
        ("win32", "AMD64", "win"),
        ("linux", "x86_64", "linux64"),
        ("linux", "i686", "linux32"),
        ("sunos5", "sparc", None),
    ],
)
def test_detect_current_platform(monkeypatch: pytest.MonkeyPatch, sys_platform: str, machine: str, expected):
    monkeypatch.setattr(platforms_mod.sys, "platform", sys_platform)
    monkeypatch.setattr(platforms_mod.platform, "machine", lambda: machine)

    assert detect_current_platform() == expected
