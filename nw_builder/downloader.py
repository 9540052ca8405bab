"""Runtime download and unpacking.

Runtime archives are published as ``.zip`` (Windows, macOS) or ``.tar.gz``
(Linux) files holding a single top-level folder. :class:`Downloader` streams an
archive into the cache directory and unpacks it with that folder stripped, so
the runtime files land directly in the cache directory.
"""

import logging
import os
import pathlib
import stat
import tarfile
import tempfile
import time
import zipfile

import requests

from nw_builder.errors import DownloadError


class Downloader:
    """Fetch and unpack runtime archives over HTTP."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 60.0,
        logger: logging.Logger | None = None,
    ) -> None:
        if logger is None:
            logger = logging.getLogger("nw_builder")
        self._session: requests.Session = session if session is not None else requests.Session()
        self._timeout: float = timeout
        self._logger: logging.Logger = logger

    def check_cache(self, cache_dir: pathlib.Path, files: list[str]) -> bool:
        """Check that every required runtime file exists under ``cache_dir``.

        :param cache_dir: Platform cache directory.
        :param files: Required relative paths.
        :returns: ``True`` if nothing needs downloading.
        """

        for rel in files:
            if (cache_dir / rel).exists() is False:
                return False
        return True

    def download_and_unpack(self, cache_dir: pathlib.Path, url: str) -> list[pathlib.Path]:
        """Download ``url`` and unpack it into ``cache_dir``.

        :param cache_dir: Destination directory (must exist).
        :param url: Archive URL.
        :returns: Top-level paths created in ``cache_dir``.
        :raises DownloadError: On HTTP errors, transport failures or bad archives.
        """

        t0: float = time.perf_counter()
        fd, tmp_name = tempfile.mkstemp(prefix=".download_", suffix=_archive_suffix(url), dir=cache_dir)
        os.close(fd)
        tmp_path: pathlib.Path = pathlib.Path(tmp_name)
        try:
            size: int = self._fetch(url, tmp_path)
            t1: float = time.perf_counter()
            self._logger.info(
                f"nw-builder: downloaded {url} ({size / (1024 * 1024):.1f} MiB) in {t1 - t0:.2f}s"
            )
            return unpack_archive(tmp_path, cache_dir, url=url)
        finally:
            tmp_path.unlink(missing_ok=True)

    def _fetch(self, url: str, out_path: pathlib.Path) -> int:
        """Stream ``url`` into ``out_path``.

        :returns: Number of bytes written.
        :raises DownloadError: On HTTP or transport failures.
        """

        written: int = 0
        try:
            with self._session.get(url, stream=True, timeout=self._timeout) as response:
                if response.status_code >= 400:
                    raise DownloadError(
                        f"Download of {url} failed with HTTP {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )
                with open(out_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=1024 * 1024):
                        if len(chunk) == 0:
                            continue
                        f.write(chunk)
                        written += len(chunk)
        except requests.RequestException as e:
            raise DownloadError(f"Download of {url} failed: {e}", url=url) from e
        except OSError as e:
            raise DownloadError(f"Unable to store {url} in {out_path}: {e}", url=url) from e
        return written


def _archive_suffix(url: str) -> str:
    lowered: str = url.lower()
    if lowered.endswith(".tar.gz") is True:
        return ".tar.gz"
    if lowered.endswith(".tgz") is True:
        return ".tgz"
    return ".zip"


def _strip_first(name: str) -> str | None:
    """Drop the archive's top-level folder from a member name.

    :returns: Remaining relative path, or ``None`` for the folder itself.
    """

    parts: list[str] = [p for p in name.replace("\\", "/").split("/") if len(p) > 0 and p != "."]
    if len(parts) <= 1:
        return None
    if ".." in parts:
        return None
    return "/".join(parts[1:])


def unpack_archive(archive: pathlib.Path, dest: pathlib.Path, *, url: str) -> list[pathlib.Path]:
    """Unpack a runtime archive into ``dest`` without its top-level folder.

    :param archive: Local ``.zip`` or ``.tar.gz`` file.
    :param dest: Destination directory.
    :param url: Source URL (error context only).
    :returns: Top-level paths created in ``dest``.
    :raises DownloadError: If the archive is corrupt.
    """

    try:
        if zipfile.is_zipfile(archive) is True:
            _unpack_zip(archive, dest)
        elif tarfile.is_tarfile(archive) is True:
            _unpack_tar(archive, dest)
        else:
            raise DownloadError(f"Unrecognized archive format for {url}", url=url)
    except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
        raise DownloadError(f"Unable to unpack {url}: {e}", url=url) from e

    return sorted(p for p in dest.iterdir() if p.name.startswith(".download_") is False)


def _unpack_zip(archive: pathlib.Path, dest: pathlib.Path) -> None:
    with zipfile.ZipFile(archive, "r") as zf:
        for info in zf.infolist():
            rel: str | None = _strip_first(info.filename)
            if rel is None:
                continue
            target: pathlib.Path = dest / rel
            mode: int = (info.external_attr >> 16) & 0xFFFF

            if info.is_dir() is True:
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            if stat.S_ISLNK(mode) is True:
                link_to: str = zf.read(info).decode("utf-8")
                if target.is_symlink() is True or target.exists() is True:
                    target.unlink()
                os.symlink(link_to, target)
                continue

            with zf.open(info, "r") as src, open(target, "wb") as out:
                while True:
                    chunk: bytes = src.read(1024 * 1024)
                    if len(chunk) == 0:
                        break
                    out.write(chunk)
            if mode & 0o777 != 0:
                os.chmod(target, mode & 0o777)


def _unpack_tar(archive: pathlib.Path, dest: pathlib.Path) -> None:
    with tarfile.open(archive, "r:*") as tf:
        members: list[tarfile.TarInfo] = []
        for member in tf.getmembers():
            rel: str | None = _strip_first(member.name)
            if rel is None:
                continue
            member.name = rel
            if member.islnk() is True:
                member.linkname = _strip_first(member.linkname) or member.linkname
            members.append(member)
        if hasattr(tarfile, "data_filter") is True:
            tf.extractall(dest, members=members, filter="data")
        else:
            tf.extractall(dest, members=members)
