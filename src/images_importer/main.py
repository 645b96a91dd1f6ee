"""Main module for the images importer CLI."""

import sys
import argparse
from pathlib import Path

from pydantic import ValidationError

from .core import (
    ConfigurationError,
    EmptyUploadError,
    ImportConfig,
    MalformedInputError,
    get_logger,
    set_debug_logging,
)
from .core.factories import ImportPipelineFactory
from .core.storage import JsonFileRecordStore

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MALFORMED = 2
EXIT_EMPTY = 3


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the ``import`` and ``version`` commands."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="images-importer",
        description="Images Importer - bulk import of social media images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import a descriptor into ./public/uploads, recording into records.jsonl
  images-importer import export.json --upload-dir public/uploads --store records.jsonl

  # Serial processing with a global deadline
  images-importer import export.json --upload-dir public/uploads \\
                         --store records.jsonl --processor serial --batch-timeout 300

  # Show version
  images-importer version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    import_parser: argparse.ArgumentParser = subparsers.add_parser(
        "import", help="Download and record the images referenced by a descriptor"
    )
    import_parser.add_argument("descriptor", type=Path, help="Batch descriptor JSON file")
    import_parser.add_argument(
        "--upload-dir", type=Path, required=True, help="Directory downloaded images are written to"
    )
    import_parser.add_argument(
        "--store", type=Path, required=True, help="JSON-lines file holding import records"
    )
    import_parser.add_argument(
        "--resource-prefix", default="/uploads/", help="Prefix of the recorded resource path"
    )
    import_parser.add_argument(
        "--processor",
        type=str,
        default="multithread",
        choices=["serial", "multithread"],
        help="Processing strategy to use (default: multithread)",
    )
    import_parser.add_argument(
        "--max-workers", type=int, default=8, help="Size of the download worker pool"
    )
    import_parser.add_argument(
        "--request-timeout", type=float, default=30.0, help="Per-download timeout in seconds"
    )
    import_parser.add_argument(
        "--batch-timeout", type=float, default=None, help="Deadline for the whole batch in seconds"
    )
    import_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def run_import(args: argparse.Namespace) -> int:
    """Run the ``import`` command and return the process exit code."""
    logger = get_logger("cli")

    try:
        config = ImportConfig(
            upload_dir=args.upload_dir,
            resource_prefix=args.resource_prefix,
            processor=args.processor,
            max_workers=args.max_workers,
            request_timeout=args.request_timeout,
            batch_timeout=args.batch_timeout,
            debug=args.debug,
        )
        if config.debug:
            set_debug_logging("cli", "processor")

        if not args.descriptor.is_file():
            raise ConfigurationError(f"Descriptor file does not exist: {args.descriptor}")
        raw = args.descriptor.read_bytes()
        store = JsonFileRecordStore(args.store)
        pipeline = ImportPipelineFactory.create_pipeline(store, config)
        summary = pipeline.import_batch(raw)

    except EmptyUploadError as e:
        logger.error(f"Empty upload: {e}")
        return EXIT_EMPTY
    except MalformedInputError as e:
        logger.error(f"Malformed descriptor ({e.reason}): {e}")
        return EXIT_MALFORMED
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE

    print(f"Records created: {summary.records_created}")
    if summary.storage_unavailable:
        logger.error("Record store was unavailable for every candidate")
        return EXIT_FAILURE
    return EXIT_OK


def main() -> None:
    """
    Entry point for the command-line interface of the Images Importer.

    ``import`` reads a descriptor file and runs the import pipeline against
    a JSON-lines record store; ``version`` prints version information.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args()

    if args.command == "import":
        try:
            sys.exit(run_import(args))
        except KeyboardInterrupt:
            get_logger("cli").warning("Import interrupted by user.")
            sys.exit(EXIT_FAILURE)

    elif args.command == "version":
        print("Images Importer CLI")
        print("Version 0.1.0")
        print("Bulk social media image import with bounded concurrency")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
