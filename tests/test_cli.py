"""Tests for the command line interface."""

from __future__ import annotations

import pathlib

import pytest

from nw_builder import cli
from nw_builder.builder import BuildResult
from nw_builder.errors import DownloadError


class StubBuilder:
    instances: list["StubBuilder"] = []
    outcome: object = None

    def __init__(self, config, *, observer=None) -> None:
        self.config = config
        StubBuilder.instances.append(self)

    async def build(self):
        if isinstance(StubBuilder.outcome, BaseException):
            raise StubBuilder.outcome
        return StubBuilder.outcome

    async def run(self):
        return StubBuilder.outcome


@pytest.fixture
def stub_builder(monkeypatch: pytest.MonkeyPatch):
    StubBuilder.instances = []
    StubBuilder.outcome = None
    monkeypatch.setattr(cli, "NwBuilder", StubBuilder)
    return StubBuilder


def test_build_passes_options(stub_builder, tmp_path: pathlib.Path):
    stub_builder.outcome = BuildResult(version="0.12.0", release_dirs={"win": tmp_path / "win"}, archives={})

    code = cli.main(
        [
            "build",
            "./app/**/*",
            "-p",
            "win, linux64",
            "--version",
            "0.12.0",
            "-o",
            str(tmp_path / "out"),
            "--build-type",
            "versioned",
            "--mac-zip",
            "--no-win-exe",
            "-q",
        ]
    )

    assert code == 0
    config = stub_builder.instances[0].config
    assert config.files == "./app/**/*"
    assert config.platforms == ("win", "linux64")
    assert config.version == "0.12.0"
    assert config.build_dir == tmp_path / "out"
    assert config.build_type.kind.value == "versioned"
    assert config.mac_zip is True
    assert config.win_exe is False


def test_configuration_error_exits_with_1(stub_builder):
    assert cli.main(["build", "./app/**/*", "-p", "amiga", "-q"]) == 1
    assert stub_builder.instances == []


def test_build_failure_exits_with_1(stub_builder):
    stub_builder.outcome = DownloadError("HTTP 404", url="https://dl.nwjs.io/x.zip", status_code=404)

    assert cli.main(["build", "./app/**/*", "-qq"]) == 1


def test_run_forwards_app_arguments(stub_builder):
    stub_builder.outcome = 7

    code = cli.main(["run", "./app/**/*", "--current-platform", "linux64", "-q", "--", "--debug", "x"])

    assert code == 7
    config = stub_builder.instances[0].config
    assert config.current_platform == "linux64"
    assert config.argv == ("--debug", "x")


def test_run_parses_options_after_files(stub_builder):
    stub_builder.outcome = 0

    code = cli.main(
        ["run", "./app/**/*", "--current-platform", "osx", "--version", "0.12.0", "--force-download", "-q", "--", "--debug"]
    )

    assert code == 0
    config = stub_builder.instances[0].config
    assert config.current_platform == "osx"
    assert config.version == "0.12.0"
    assert config.force_download is True
    assert config.argv == ("--debug",)


def test_run_without_app_arguments(stub_builder):
    stub_builder.outcome = 0

    cli.main(["run", "./app/**/*", "--current-platform", "win", "-q"])

    assert stub_builder.instances[0].config.argv == ()


def test_app_arguments_rejected_for_build(stub_builder):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["build", "./app/**/*", "-q", "--", "--debug"])

    assert exc_info.value.code == 2
    assert stub_builder.instances == []
