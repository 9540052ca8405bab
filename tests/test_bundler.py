"""Tests for archive planning and the zip engine."""

from __future__ import annotations

import dataclasses
import json
import pathlib
import zipfile

import pytest

from fakes import CountingZipEngine
from nw_builder.archive import ZipEngine
from nw_builder.bundler import ZipBundler
from nw_builder.config import resolve_build_config
from nw_builder.platforms import DEFAULT_CATALOG
from nw_builder.state import PlatformBuildState


OSX_MANIFEST = {"name": "hello", "version": "1.2.3", "window": {"title": "Mac"}}


def _states(*names: str, overrides: dict | None = None) -> dict[str, PlatformBuildState]:
    overrides = overrides or {}
    return {n: PlatformBuildState(descriptor=DEFAULT_CATALOG[n], platform_manifest=overrides.get(n)) for n in names}


def _bundler(tmp_path: pathlib.Path, observer, **options) -> tuple[ZipBundler, CountingZipEngine]:
    engine = CountingZipEngine(tmp_path / "work")
    config = resolve_build_config(files="app/**/*", platforms=["win", "osx"], current_platform="win")
    config = dataclasses.replace(config, **options)
    return ZipBundler(engine=engine, config=config, observer=observer), engine


@pytest.mark.asyncio
async def test_agnostic_platforms_share_one_archive(tmp_path, observer, app_files):
    bundler, engine = _bundler(tmp_path, observer)
    states = _states("win", "linux32", "linux64", "osx")

    records = await bundler.bundle(app_files, states)

    assert engine.calls == [None]
    assert list(records) == ["win", "linux32", "linux64"]
    assert len({r.archive for r in records.values()}) == 1
    assert all(r.platform_specific is False for r in records.values())
    assert states["osx"].archive is None
    assert states["win"].archive == records["win"].archive


@pytest.mark.asyncio
async def test_overridden_platform_gets_its_own_archive(tmp_path, observer, app_files):
    bundler, engine = _bundler(tmp_path, observer, mac_zip=True)
    states = _states("win", "linux64", "osx", overrides={"osx": OSX_MANIFEST})

    records = await bundler.bundle(app_files, states)

    assert len(engine.calls) == 2
    assert engine.calls.count(None) == 1
    assert records["osx"].platform_specific is True
    assert records["osx"].archive != records["win"].archive
    assert records["win"].archive == records["linux64"].archive
    with zipfile.ZipFile(records["osx"].archive) as zf:
        assert json.loads(zf.read("package.json")) == OSX_MANIFEST
    with zipfile.ZipFile(records["win"].archive) as zf:
        assert json.loads(zf.read("package.json"))["name"] == "hello"
    assert "Built platform-specific app archive for osx" in observer.logs


@pytest.mark.asyncio
async def test_single_agnostic_platform_is_not_shared(tmp_path, observer, app_files):
    bundler, engine = _bundler(tmp_path, observer)
    states = _states("win", "linux64", overrides={"linux64": {"name": "hello", "version": "1.2.3"}})

    records = await bundler.bundle(app_files, states)

    assert len(engine.calls) == 2
    assert None in engine.calls
    assert '{"name": "hello", "version": "1.2.3"}' in engine.calls
    assert records["win"].platform_specific is False
    assert records["linux64"].platform_specific is True
    assert records["win"].archive != records["linux64"].archive


@pytest.mark.asyncio
async def test_every_platform_overridden(tmp_path, observer, app_files):
    bundler, engine = _bundler(tmp_path, observer)
    states = _states("win", "linux64", overrides={"win": {"a": 1}, "linux64": {"b": 2}})

    records = await bundler.bundle(app_files, states)

    assert sorted(engine.calls) == ['{"a": 1}', '{"b": 2}']
    assert all(r.platform_specific is True for r in records.values())


@pytest.mark.asyncio
async def test_nothing_to_archive(tmp_path, observer, app_files):
    bundler, engine = _bundler(tmp_path, observer)

    records = await bundler.bundle(app_files, _states("osx"))

    assert engine.calls == []
    assert dict(records) == {}


def test_zip_engine_orders_members_and_replaces_manifest(tmp_path, app_files):
    engine = ZipEngine(tmp_path / "work")

    plain = engine.create_archive(reversed(app_files))
    custom = engine.create_archive(app_files, manifest_override='{"name": "x"}')

    assert plain != custom
    with zipfile.ZipFile(plain) as zf:
        assert zf.namelist() == ["index.html", "js/main.js", "package.json"]
        assert zf.read("js/main.js") == b"console.log('hi');"
    with zipfile.ZipFile(custom) as zf:
        assert zf.read("package.json") == b'{"name": "x"}'


def test_zip_engine_rejects_bad_level(tmp_path):
    with pytest.raises(ValueError):
        ZipEngine(tmp_path, compresslevel=11)
