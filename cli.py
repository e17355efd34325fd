# WiReD v1.0.0
#!/usr/bin/env python3
"""
WiReD Registry Difference CLI

Command-line interface for diffing registry patch files and building
the WiReD dataset from the resulting difference documents.
"""
import argparse
import logging
import sys
import time

from config import settings
from core.errors import DatasetWriteError, InvalidConfiguration

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

MALFORMED_VALUE_WARNING = "Ignoring badly formatted value found in %s: %s"


def configure_logging(verbose: bool = False):
    if settings.DEBUG:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format=settings.LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def diff_files(options) -> int:
    """Diff two registry patch files and write the difference document."""
    from core import collect_metadata, compare_patch_files, DiffDocument, write_document

    try:
        metadata = collect_metadata(
            options.baseline, options.delta,
            options.app_name, options.nsrl_id, options.action,
        )
        result = compare_patch_files(
            options.baseline, options.delta,
            encoding=options.encoding, errors=settings.INPUT_ERRORS,
        )
    except OSError as e:
        logger.error(f"Couldn't read registry patch file: {e}")
        return EXIT_FATAL

    document = DiffDocument(metadata=metadata, diff=result.diff)

    try:
        if options.output is None:
            write_document(document, sys.stdout.buffer)
            sys.stdout.buffer.flush()
        else:
            with open(options.output, 'wb') as f:
                write_document(document, f)
    except OSError as e:
        logger.error(f"Couldn't write difference document: {e}")
        return EXIT_FATAL

    for line in result.baseline_malformed:
        logger.warning(MALFORMED_VALUE_WARNING, options.baseline, line)
    for line in result.delta_malformed:
        logger.warning(MALFORMED_VALUE_WARNING, options.delta, line)

    logger.info(f"{result.change_count} difference(s) written")
    return EXIT_OK


def make_dataset(options, files: list[str]) -> int:
    """Flatten difference documents into the dataset output."""
    from services.dataset_builder import DatasetWriter, build_dataset

    try:
        with DatasetWriter.open(
            options.output,
            mode=options.mode,
            separator=options.separator,
            debug=options.debug,
            headers=options.headers,
        ) as writer:
            stats = build_dataset(files, writer, workers=options.workers)
    except DatasetWriteError as e:
        logger.error(f"Fatal Error: {e}")
        return EXIT_FATAL

    logger.info(
        f"Processed {stats['processed']} file(s), skipped {stats['skipped']}, "
        f"wrote {stats['records']} record(s)"
    )
    return EXIT_OK


def watch_directory(options, path: str) -> int:
    """Watch a directory and flatten each new difference document."""
    from services.dataset_builder import DatasetWriter
    from services.watcher import DatasetWatcherService

    try:
        writer = DatasetWriter.open(
            options.output,
            mode=options.mode,
            separator=options.separator,
            debug=options.debug,
            headers=options.headers,
        )
    except DatasetWriteError as e:
        logger.error(f"Fatal Error: {e}")
        return EXIT_FATAL

    service = DatasetWatcherService(writer)
    print(f"Watching directory: {path}", file=sys.stderr)
    print("Press Ctrl+C to stop\n", file=sys.stderr)

    try:
        service.start(path)
        while service.fatal_error is None:
            time.sleep(1)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_FATAL
    except KeyboardInterrupt:
        print("\nStopping watcher...", file=sys.stderr)
    finally:
        service.stop()
        writer.close()

    return EXIT_FATAL if service.fatal_error is not None else EXIT_OK


def _add_dataset_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS,
                        help="Verbose mode")
    parser.add_argument("--mode", "-x", default=settings.DATASET_MODE,
                        help="Action relative to output - A (add/append) or O (overwrite)")
    parser.add_argument("--output", "-o", help="Dataset file, stdout is default")
    parser.add_argument("--debug", "-d", action="store_true", default=settings.DATASET_DEBUG,
                        help="Generate extra columns in output file for debugging purposes")
    parser.add_argument("--no-headers", "-n", dest="headers", action="store_false",
                        default=settings.DATASET_HEADERS,
                        help="Don't put column headers at top of output file")
    parser.add_argument("--separator", "-s", default=settings.DATASET_SEPARATOR,
                        help="Field separator (single character, TAB by default)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wired",
        description=f"{settings.APP_NAME} Windows Registry difference tools",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose mode")
    parser.add_argument("--version", action="version",
                        version=f"{settings.APP_NAME} {settings.APP_VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # diff
    diff_parser = subparsers.add_parser("diff", help="Diff two registry patch files")
    diff_parser.add_argument("--baseline", "-b", required=True,
                             help="Baseline registry patch file")
    diff_parser.add_argument("--delta", "-d", required=True,
                             help="Registry patch file with changes")
    diff_parser.add_argument("--appname", "-a", dest="app_name", required=True,
                             help="Application name (quote names with spaces)")
    diff_parser.add_argument("--action", "-x", required=True,
                             help="I/D/E/O - Install, Deinstall, Execute, Other")
    diff_parser.add_argument("--nsrl", "-n", dest="nsrl_id",
                             help="NSRL Application ID - if application is part of the NSRL")
    diff_parser.add_argument("--output", "-o", help="Output file, stdout is default")
    diff_parser.add_argument("--encoding", default=settings.INPUT_ENCODING,
                             help="Text encoding of the patch files")

    # dataset
    dataset_parser = subparsers.add_parser("dataset", help="Build the dataset from difference documents")
    dataset_parser.add_argument("files", nargs="+", help="Difference documents")
    _add_dataset_arguments(dataset_parser)
    dataset_parser.add_argument("--workers", "-w", type=int, default=settings.DATASET_WORKERS,
                                help="Number of threads reading documents")

    # watch
    watch_parser = subparsers.add_parser("watch", help="Watch a directory for difference documents")
    watch_parser.add_argument("path", nargs="?", default=settings.WATCH_DIRECTORY,
                              help="Directory to watch")
    _add_dataset_arguments(watch_parser)

    return parser


def main(argv=None) -> int:
    from core.options import validate_dataset_options, validate_diff_options

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        if args.command == "diff":
            options = validate_diff_options(
                baseline=args.baseline,
                delta=args.delta,
                app_name=args.app_name,
                action=args.action,
                nsrl_id=args.nsrl_id,
                output=args.output,
                encoding=args.encoding,
            )
        else:
            options = validate_dataset_options(
                mode=args.mode,
                output=args.output,
                debug=args.debug,
                headers=args.headers,
                separator=args.separator,
                workers=getattr(args, "workers", 1),
                verbose=args.verbose,
            )
            if args.command == "watch" and not args.path:
                raise InvalidConfiguration("No watch directory given")
    except InvalidConfiguration as e:
        logger.error(f"Invalid parameter value: {e}")
        return EXIT_CONFIG

    if args.command == "diff":
        return diff_files(options)
    elif args.command == "dataset":
        return make_dataset(options, args.files)
    elif args.command == "watch":
        return watch_directory(options, args.path)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
