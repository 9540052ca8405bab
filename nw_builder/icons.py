"""Windows executable icon embedding.

Icons are written with the external ``rcedit`` tool. On non-Windows hosts the
tool runs under Wine.
"""

import logging
import pathlib
import subprocess
import sys

from nw_builder.errors import ExternalToolError


_WINE_HINT: str = " Wine (winehq.org) must be installed to add custom icons from Mac and Linux."


class IconEmbedder:
    """Replace the main icon group of a Windows executable."""

    def __init__(
        self,
        *,
        tool: str = "rcedit.exe",
        wine: str = "wine",
        host_platform: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if logger is None:
            logger = logging.getLogger("nw_builder")
        self._tool: str = tool
        self._wine: str = wine
        self._host_platform: str = host_platform if host_platform is not None else sys.platform
        self._logger: logging.Logger = logger

    @property
    def needs_wine(self) -> bool:
        return self._host_platform != "win32"

    def command(self, executable: pathlib.Path, icon: pathlib.Path) -> list[str]:
        """Command line that embeds ``icon`` into ``executable``."""

        cmd: list[str] = [self._tool, str(executable), "--set-icon", str(icon.resolve())]
        if self.needs_wine is True:
            cmd.insert(0, self._wine)
        return cmd

    def embed(self, executable: pathlib.Path, icon: pathlib.Path) -> None:
        """Embed ``icon`` into ``executable``.

        :param executable: Windows executable to modify in place.
        :param icon: ``.ico`` file.
        :raises ExternalToolError: If the tool is missing or fails.
        """

        hint: str = _WINE_HINT if self.needs_wine is True else ""
        cmd: list[str] = self.command(executable, icon)
        if self._logger.isEnabledFor(logging.DEBUG) is True:
            self._logger.debug(f"nw-builder: running icon tool: {' '.join(cmd)}")

        try:
            proc = subprocess.run(cmd, check=False, capture_output=True)
        except OSError as e:
            raise ExternalToolError(f"Error while updating the Windows icon ({e}).{hint}") from e

        if proc.returncode != 0:
            detail: str = proc.stderr.decode("utf-8", errors="replace").strip()
            message: str = f"Error while updating the Windows icon (exit={proc.returncode})."
            if len(detail) > 0:
                message = f"{message} {detail}"
            raise ExternalToolError(f"{message}{hint}")
