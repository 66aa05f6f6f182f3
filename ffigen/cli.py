"""Command line entry point"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .driver import TARGETS, Driver
from .errors import FfigenError

logger = logging.getLogger("ffigen")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ffigen",
        description="Generate Rust FFI, JNI/Java and C/Swift bindings from an API description",
    )
    parser.add_argument("description", help="Path to the API description (.idl, .yaml, .yml or .json)")
    parser.add_argument("--output-dir", "-o", default="generated", help="Output directory")
    parser.add_argument("--target", "-t", action="append", choices=TARGETS, dest="targets",
                        help="Target to generate (repeatable, default: all)")
    parser.add_argument("--library-name", default="", help="Native library name (C header, JNI library)")
    parser.add_argument("--java-package", default="", help="Base Java package")
    parser.add_argument("--jni-library", default="", help="Library passed to System.loadLibrary")
    parser.add_argument("--check", action="store_true", help="Validate the description and write nothing")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")

    overrides = {
        "library_name": args.library_name,
        "java_package": args.java_package,
        "jni_library": args.jni_library,
    }
    try:
        driver = Driver(args.description, args.output_dir, targets=args.targets,
                        option_overrides=overrides)
        if args.check:
            model = driver.load()
            logger.info("%s is valid: %d types, %d modules",
                        args.description, len(model.types), len(model.modules))
        else:
            driver.run()
    except FfigenError as exc:
        logger.error("error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
