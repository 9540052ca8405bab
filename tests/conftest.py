"""Shared fixtures: a sample app and recording fakes."""

from __future__ import annotations

import pathlib
from typing import Any

import pytest

from fakes import FakeDownloader, RecordingObserver, write_app
from nw_builder.files import AppFile


@pytest.fixture
def app_manifest() -> dict[str, Any]:
    return {"name": "hello", "version": "1.2.3", "main": "index.html", "copyright": "(c) Hello"}


@pytest.fixture
def app_dir(tmp_path: pathlib.Path, app_manifest: dict[str, Any]) -> pathlib.Path:
    return write_app(tmp_path / "app", app_manifest)


@pytest.fixture
def app_files(app_dir: pathlib.Path) -> tuple[AppFile, ...]:
    return (
        AppFile(src=app_dir / "index.html", dest="index.html"),
        AppFile(src=app_dir / "js" / "main.js", dest="js/main.js"),
        AppFile(src=app_dir / "package.json", dest="package.json"),
    )


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()
