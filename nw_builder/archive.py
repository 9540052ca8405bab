"""Application archives (``.nw`` files)."""

from collections.abc import Iterable
import logging
import os
import pathlib
import tempfile
import time
import zipfile

from nw_builder.errors import FileSystemError
from nw_builder.files import MANIFEST_NAME, AppFile


class ZipEngine:
    """Write application files into zip archives under a work directory."""

    def __init__(
        self,
        work_dir: pathlib.Path,
        *,
        compresslevel: int = 6,
        logger: logging.Logger | None = None,
    ) -> None:
        if compresslevel < 0 or compresslevel > 9:
            raise ValueError(f"Invalid compresslevel={compresslevel}; expected 0-9.")
        if logger is None:
            logger = logging.getLogger("nw_builder")
        self._work_dir: pathlib.Path = work_dir
        self._compresslevel: int = compresslevel
        self._logger: logging.Logger = logger

    def create_archive(self, files: Iterable[AppFile], *, manifest_override: str | None = None) -> pathlib.Path:
        """Zip the application files.

        :param files: Application files; ``dest`` becomes the archive member name.
        :param manifest_override: JSON text stored as ``package.json`` instead of the file on disk.
        :returns: Path of the new archive.
        :raises FileSystemError: If a file cannot be read or the archive cannot be written.
        """

        self._work_dir.mkdir(parents=True, exist_ok=True)
        fd, out_name = tempfile.mkstemp(prefix="app_", suffix=".nw", dir=self._work_dir)
        os.close(fd)
        out_path: pathlib.Path = pathlib.Path(out_name)

        t0: float = time.perf_counter()
        count: int = 0
        try:
            with zipfile.ZipFile(
                out_path,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self._compresslevel,
            ) as zf:
                for f in sorted(files, key=lambda f: f.dest):
                    if f.dest == MANIFEST_NAME and manifest_override is not None:
                        zf.writestr(MANIFEST_NAME, manifest_override)
                    else:
                        zf.write(f.src, arcname=f.dest)
                    count += 1
        except OSError as e:
            raise FileSystemError(f"Unable to create archive ({e.strerror or e})", path=out_path) from e
        t1: float = time.perf_counter()

        if self._logger.isEnabledFor(logging.DEBUG) is True:
            size: int = out_path.stat().st_size
            self._logger.debug(
                f"nw-builder: archived {count} files into {out_path} "
                f"({size / (1024 * 1024):.1f} MiB) in {t1 - t0:.2f}s"
            )
        return out_path
