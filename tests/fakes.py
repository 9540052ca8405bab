"""Test doubles: a fake runtime downloader, recording observer and zip engine."""

from __future__ import annotations

import json
import pathlib
import plistlib
from typing import Any

from nw_builder.archive import ZipEngine
from nw_builder.errors import DownloadError
from nw_builder.platforms import DEFAULT_CATALOG
from nw_builder.versions import select_file_range


RUNTIME_PLIST: dict[str, Any] = {
    "CFBundleName": "nwjs",
    "CFBundleDisplayName": "nwjs",
    "CFBundleVersion": "0.12.0",
    "CFBundleIdentifier": "io.nwjs.nw",
}


def write_runtime(cache_dir: pathlib.Path, files: list[str] | tuple[str, ...]) -> None:
    """Lay out a fake runtime distribution under ``cache_dir``."""

    for rel in files:
        target = cache_dir / rel
        if rel.endswith(".app"):
            stem = pathlib.PurePosixPath(rel).stem
            (target / "Contents" / "MacOS").mkdir(parents=True, exist_ok=True)
            (target / "Contents" / "MacOS" / stem).write_bytes(b"#!runtime\n")
            (target / "Contents" / "Resources").mkdir(parents=True, exist_ok=True)
            with open(target / "Contents" / "Info.plist", "wb") as f:
                plistlib.dump(RUNTIME_PLIST, f)
        elif rel == "locales":
            target.mkdir(parents=True, exist_ok=True)
            (target / "en-US.pak").write_bytes(b"locale")
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(f"runtime:{rel}".encode("utf-8"))


class FakeDownloader:
    """Downloader that materializes a fake runtime instead of using the network."""

    def __init__(self, *, fail_status: int | None = None, fail_message: str | None = None) -> None:
        self.fail_status: int | None = fail_status
        self.fail_message: str | None = fail_message
        self.downloads: list[tuple[pathlib.Path, str]] = []
        self.cache_checks: list[pathlib.Path] = []

    def check_cache(self, cache_dir: pathlib.Path, files: list[str]) -> bool:
        self.cache_checks.append(cache_dir)
        return all((cache_dir / f).exists() for f in files)

    def download_and_unpack(self, cache_dir: pathlib.Path, url: str) -> list[pathlib.Path]:
        self.downloads.append((cache_dir, url))
        if self.fail_status is not None:
            raise DownloadError(f"HTTP {self.fail_status}", url=url, status_code=self.fail_status)
        if self.fail_message is not None:
            raise DownloadError(self.fail_message, url=url)
        version = cache_dir.parent.name
        file_range = select_file_range(DEFAULT_CATALOG[cache_dir.name], version)
        assert file_range is not None
        write_runtime(cache_dir, file_range.files)
        return sorted(cache_dir.iterdir())


class FakeVersionIndex:
    def __init__(self, latest: str = "0.12.3") -> None:
        self.latest: str = latest
        self.calls: list[str] = []

    def latest_version(self, base_url: str) -> str:
        self.calls.append(base_url)
        return self.latest


class RecordingObserver:
    def __init__(self) -> None:
        self.logs: list[str] = []
        self.out: list[bytes] = []
        self.err: list[bytes] = []

    def log(self, message: str) -> None:
        self.logs.append(message)

    def stdout(self, data: bytes) -> None:
        self.out.append(data)

    def stderr(self, data: bytes) -> None:
        self.err.append(data)


class CountingZipEngine(ZipEngine):
    """Real zip engine that records every archive it builds."""

    def __init__(self, work_dir: pathlib.Path) -> None:
        super().__init__(work_dir, compresslevel=1)
        self.calls: list[str | None] = []

    def create_archive(self, files, *, manifest_override: str | None = None) -> pathlib.Path:
        self.calls.append(manifest_override)
        return super().create_archive(files, manifest_override=manifest_override)


class FakeIconEmbedder:
    def __init__(self) -> None:
        self.embedded: list[tuple[pathlib.Path, pathlib.Path]] = []

    def embed(self, executable: pathlib.Path, icon: pathlib.Path) -> None:
        self.embedded.append((executable, icon))


def write_app(root: pathlib.Path, manifest: dict[str, Any]) -> pathlib.Path:
    """Create a small NW.js app under ``root``."""

    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    (root / "index.html").write_text("<h1>hello</h1>", encoding="utf-8")
    (root / "js").mkdir(exist_ok=True)
    (root / "js" / "main.js").write_text("console.log('hi');", encoding="utf-8")
    return root
