"""
cmake-fileapi - configure a CMake build tree and dump what the File API reports

Usage:
    cmake-fileapi <source_dir> [-B build] [-G Ninja] [--clean] [--json] [-- <cmake args>]

Examples:
    cmake-fileapi . -B build -G Ninja
    cmake-fileapi . -B build --json -- -DCMAKE_BUILD_TYPE=Release
    cmake-fileapi . -B build --no-configure --json
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from cmake_driver.common.exceptions import ConfigureProcessError, DriverError
from cmake_driver.common.logging import setup_logging
from cmake_driver.core.settings import get_settings
from cmake_driver.drivers.base import CMakeDriver
from cmake_driver.drivers.factory import create_driver
from cmake_driver.models.codemodel import GeneratorInfo
from cmake_driver.models.kit import Kit
from cmake_driver.services.reporter import CollectingReporter


class _PrintingConsumer:
    """Forwards CMake output to stderr so stdout stays parseable."""

    def output(self, line: str) -> None:
        print(line, file=sys.stderr)

    def error(self, line: str) -> None:
        print(line, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmake-fileapi",
        description="Configure a CMake project and report cache entries and targets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("source_dir", help="CMake source directory (containing CMakeLists.txt)")
    parser.add_argument("-B", "--build-dir", default=None, help="Build directory (default: <source_dir>/build)")
    parser.add_argument("-G", "--generator", default=None, help="Generator for a fresh build tree")
    parser.add_argument("-T", "--toolset", default=None, help="Generator toolset")
    parser.add_argument("-A", "--platform", default=None, help="Generator platform")
    parser.add_argument("--cmake", default=None, help="cmake executable (default: from settings)")
    parser.add_argument("--clean", action="store_true", help="Remove prior configuration before configuring")
    parser.add_argument("--no-configure", action="store_true", help="Only load the existing reply")
    parser.add_argument("--json", action="store_true", help="Print a JSON report on stdout")
    parser.add_argument("--advanced", action="store_true", help="Include advanced cache entries")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse options; everything after ``--`` is passed to CMake untouched."""
    argv = list(sys.argv[1:] if argv is None else argv)
    cmake_args: List[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, cmake_args = argv[:split], argv[split + 1:]
    args = build_parser().parse_args(argv)
    args.cmake_args = cmake_args
    return args


def build_report(driver: CMakeDriver, include_advanced: bool = False) -> Dict[str, Any]:
    cache = {
        key: {"type": entry.type.value, "value": entry.value}
        for key, entry in sorted(driver.cache_entries.items())
        if include_advanced or not entry.advanced
    }
    return {
        "generator": driver.generator_name,
        "all_target": driver.all_target_name,
        "needs_reconfigure": driver.needs_reconfigure,
        "status": driver.status.value,
        "targets": [target.model_dump(mode="json") for target in driver.targets],
        "executables": [target.model_dump(mode="json") for target in driver.executable_targets],
        "cache": cache,
    }


def _print_human(report: Dict[str, Any]) -> None:
    print("=" * 60)
    print(f"Generator: {report['generator'] or '(unknown)'}")
    print(f"Status:    {report['status']} (needs reconfigure: {report['needs_reconfigure']})")
    print("=" * 60)
    print(f"Targets ({len(report['targets'])}):")
    for target in report["targets"]:
        kind = target.get("type") or "META"
        path = target.get("filepath") or ""
        print(f"  {target['name']:<32} {kind:<18} {path}")
    print(f"Cache entries: {len(report['cache'])}")


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    cmake_path = args.cmake or settings.cmake_path
    build_dir = args.build_dir or f"{args.source_dir.rstrip('/')}/build"
    extra_args: List[str] = list(args.cmake_args)

    kit: Optional[Kit] = None
    if args.generator:
        kit = Kit(
            name="command-line",
            preferred_generator=GeneratorInfo(name=args.generator, toolset=args.toolset, platform=args.platform),
        )

    reporter = CollectingReporter()
    driver = await create_driver(
        cmake_path,
        args.source_dir,
        build_dir,
        kit=kit,
        preferred_generators=settings.preferred_generators,
        reporter=reporter,
        client_id=settings.client_id,
    )
    try:
        if not args.no_configure:
            consumer = _PrintingConsumer()
            if args.clean:
                retc = await driver.clean_configure(extra_args, consumer)
            else:
                retc = await driver.configure(extra_args, consumer)
            if retc != 0:
                raise ConfigureProcessError(retc)
        else:
            await driver.post_build()

        report = build_report(driver, include_advanced=args.advanced)
        if args.json:
            print(json.dumps(report, ensure_ascii=False, indent=2))
        else:
            _print_human(report)
    finally:
        driver.dispose()

    return 1 if reporter.reports else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    try:
        return asyncio.run(_run(args))
    except ConfigureProcessError as e:
        print(f"❌ {e}", file=sys.stderr)
        return e.retc if e.retc > 0 else 1
    except DriverError as e:
        logger.opt(exception=True).debug("Driver error")
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
