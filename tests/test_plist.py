"""Tests for Info.plist editing."""

from __future__ import annotations

import pathlib
import plistlib

import pytest

from fakes import RUNTIME_PLIST
from nw_builder.errors import FileSystemError
from nw_builder.plist import edit_plist, plist_values


def test_plist_values_maps_app_options():
    values = plist_values({"appName": "Hello", "appVersion": "1.2.3", "copyright": "(c) Hello", "LSUIElement": True})

    assert values == {
        "CFBundleDisplayName": "Hello",
        "CFBundleName": "Hello",
        "CFBundleVersion": "1.2.3",
        "CFBundleShortVersionString": "1.2.3",
        "NSHumanReadableCopyright": "(c) Hello",
        "LSUIElement": True,
    }


def test_empty_options_leave_keys_alone():
    assert plist_values({"appName": None, "copyright": ""}) == {}


def test_edit_plist_keeps_existing_keys(tmp_path: pathlib.Path):
    source = tmp_path / "Info.plist"
    with open(source, "wb") as f:
        plistlib.dump(RUNTIME_PLIST, f)

    edit_plist(source, source, {"appName": "Hello", "appVersion": "1.2.3"})

    with open(source, "rb") as f:
        info = plistlib.load(f)
    assert info["CFBundleName"] == "Hello"
    assert info["CFBundleShortVersionString"] == "1.2.3"
    assert info["CFBundleIdentifier"] == "io.nwjs.nw"


def test_missing_source_starts_empty(tmp_path: pathlib.Path):
    dest = tmp_path / "out" / "Info.plist"

    info = edit_plist(tmp_path / "missing.plist", dest, {"appName": "Hello"})

    assert info == {"CFBundleDisplayName": "Hello", "CFBundleName": "Hello"}
    assert dest.is_file()


def test_corrupt_plist(tmp_path: pathlib.Path):
    source = tmp_path / "Info.plist"
    source.write_bytes(b"<?xml version='1.0'?><plist><dict><key>oops")

    with pytest.raises(FileSystemError, match="Unable to read plist"):
        edit_plist(source, source, {"appName": "Hello"})
