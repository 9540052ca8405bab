"""Progress reporting for builds and runs.

The pipeline never prints. It reports through a :class:`BuildObserver` passed
in by the caller; :class:`LoggingObserver` is the default and forwards every
event to the ``nw_builder`` logger.
"""

import logging
from typing import Protocol


class BuildObserver(Protocol):
    """Receiver for ``log``, ``stdout`` and ``stderr`` events."""

    def log(self, message: str) -> None: ...

    def stdout(self, data: bytes) -> None: ...

    def stderr(self, data: bytes) -> None: ...


class LoggingObserver:
    """Forward build events to a :mod:`logging` logger.

    ``log`` events are logged at INFO. Output captured from a launched app
    arrives in whole lines and is decoded leniently and logged line by line
    (stdout at INFO, stderr at WARNING).
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        if logger is None:
            logger = logging.getLogger("nw_builder")
        self._logger: logging.Logger = logger

    def log(self, message: str) -> None:
        self._logger.info(f"nw-builder: {message}")

    def stdout(self, data: bytes) -> None:
        for line in data.decode("utf-8", errors="replace").splitlines():
            self._logger.info(line)

    def stderr(self, data: bytes) -> None:
        for line in data.decode("utf-8", errors="replace").splitlines():
            self._logger.warning(line)
