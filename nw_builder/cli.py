"""Command line interface for nw-builder."""

import argparse
import asyncio
import logging
import pathlib
import sys

from nw_builder.builder import BuildResult, NwBuilder
from nw_builder.config import BuildConfig, resolve_build_config
from nw_builder.errors import NwBuilderError
from nw_builder.observer import LoggingObserver


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the nw-builder logger.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Configured logger.
    """

    level: int = logging.INFO
    if quiet >= 2:
        level = logging.ERROR
    elif quiet >= 1:
        level = logging.WARNING
    elif verbose >= 1:
        level = logging.DEBUG

    logger: logging.Logger = logging.getLogger("nw_builder")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def _split_platforms(value: str) -> list[str]:
    return [p.strip() for p in value.split(",") if len(p.strip()) > 0]


def _split_passthrough(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split ``argv`` at the first ``--`` into CLI arguments and app arguments."""

    if "--" not in argv:
        return list(argv), []
    cut: int = argv.index("--")
    return list(argv[:cut]), list(argv[cut + 1 :])


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "files",
        type=str,
        help="Glob of the application files, e.g. './app/**/*'. Must include package.json.",
    )
    p.add_argument(
        "-p",
        "--platforms",
        type=_split_platforms,
        default=["win", "osx"],
        help="Comma-separated target platforms (win, osx, linux32, linux64).",
    )
    p.add_argument(
        "--version",
        dest="nw_version",
        type=str,
        default="latest",
        help="NW.js runtime version, or 'latest'.",
    )
    p.add_argument(
        "--cache-dir",
        type=pathlib.Path,
        default=pathlib.Path("./cache"),
        help="Runtime cache directory.",
    )
    p.add_argument(
        "--download-url",
        type=str,
        default=None,
        help="Base URL of the runtime downloads.",
    )
    p.add_argument(
        "--force-download",
        action="store_true",
        help="Drop cached runtimes and download them again.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging. Pass multiple times for more detail.",
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="nw-builder",
        description="Package an NW.js app for Windows, macOS and Linux.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser("build", help="Build release folders for the selected platforms.")
    _add_common_arguments(p_build)
    p_build.add_argument(
        "-o",
        "--build-dir",
        type=pathlib.Path,
        default=pathlib.Path("./build"),
        help="Output directory for release folders.",
    )
    p_build.add_argument("--app-name", type=str, default=None, help="Defaults to package.json 'name'.")
    p_build.add_argument("--app-version", type=str, default=None, help="Defaults to package.json 'version'.")
    p_build.add_argument(
        "--build-type",
        choices=["default", "timestamped", "versioned"],
        default="default",
        help="Release folder naming: '<name>', '<name> - <timestamp>' or '<name> - v<version>'.",
    )
    p_build.add_argument("--mac-icns", type=pathlib.Path, default=None, help="Icon (.icns) for the macOS bundle.")
    p_build.add_argument("--mac-credits", type=pathlib.Path, default=None, help="Credits.html for the macOS bundle.")
    p_build.add_argument("--mac-plist", type=pathlib.Path, default=None, help="Info.plist copied into the bundle.")
    p_build.add_argument(
        "--mac-zip",
        action="store_true",
        help="Ship the app as a single archive inside the macOS bundle.",
    )
    p_build.add_argument("--win-ico", type=pathlib.Path, default=None, help="Icon (.ico) embedded into nw.exe.")
    p_build.add_argument(
        "--no-win-exe",
        dest="win_exe",
        action="store_false",
        help="Append the app archive to the executable instead of shipping package.nw next to it.",
    )

    p_run = subparsers.add_parser("run", help="Run the app with the cached runtime of this machine.")
    _add_common_arguments(p_run)
    p_run.add_argument(
        "--current-platform",
        type=str,
        default=None,
        help="Platform whose runtime launches the app (defaults to the host).",
    )
    p_run.epilog = "Arguments after '--' are passed to the app."
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the nw-builder CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    if argv is None:
        argv = sys.argv[1:]
    args, passthrough = _split_passthrough(argv)

    parser: argparse.ArgumentParser = _build_parser()
    ns = parser.parse_args(args)
    if len(passthrough) > 0 and ns.command != "run":
        parser.error("arguments after '--' are only accepted by 'run'")
    logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)

    common: dict[str, object] = {
        "files": ns.files,
        "platforms": ns.platforms,
        "version": ns.nw_version,
        "cache_dir": ns.cache_dir,
        "force_download": ns.force_download,
    }
    if ns.download_url is not None:
        common["download_url"] = ns.download_url

    try:
        if ns.command == "build":
            config: BuildConfig = resolve_build_config(
                build_dir=ns.build_dir,
                app_name=ns.app_name,
                app_version=ns.app_version,
                build_type=ns.build_type,
                mac_icns=ns.mac_icns,
                mac_credits=ns.mac_credits,
                mac_plist=ns.mac_plist,
                mac_zip=ns.mac_zip,
                win_ico=ns.win_ico,
                win_exe=ns.win_exe,
                **common,
            )
            builder: NwBuilder = NwBuilder(config, observer=LoggingObserver(logger))
            result = asyncio.run(builder.build())
            if isinstance(result, BuildResult):
                for name, path in result.release_dirs.items():
                    logger.info(f"nw-builder: {name}: {path}")
            return 0

        if ns.command == "run":
            config = resolve_build_config(
                current_platform=ns.current_platform,
                argv=passthrough,
                **common,
            )
            builder = NwBuilder(config, observer=LoggingObserver(logger))
            code = asyncio.run(builder.run())
            return int(code)
    except NwBuilderError as e:
        logger.error(f"nw-builder: error: {e}")
        return 1

    raise AssertionError(f"Unhandled command: {ns.command}")
