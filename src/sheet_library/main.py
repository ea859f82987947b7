"""Main entry point for the sheet library command line."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from sheet_library.coordinators import LoadPipeline
from sheet_library.io import DirectoryScanner, MetadataMigrator
from sheet_library.services import CollectingErrorReporter, QtPdfPageCountProvider, SettingsManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheet-library",
        description="Scan, repair and migrate songbook metadata.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    load = subparsers.add_parser("load", help="load every book and save repaired metadata")
    load.add_argument("root", nargs="?", type=Path, help="library root (default: SHEET_LIBRARY_ROOT)")
    load.add_argument("--no-save", action="store_true", help="do not write dirty sidecars")
    load.add_argument("--prefer-legacy", action="store_true", help="read .bmk before .json")

    migrate = subparsers.add_parser("migrate", help="convert legacy .bmk sidecars to .json")
    migrate.add_argument("root", nargs="?", type=Path, help="library root (default: SHEET_LIBRARY_ROOT)")
    migrate.add_argument(
        "--delete-legacy", action="store_true", help="remove each .bmk after a verified conversion"
    )
    return parser


def run_load(args, settings, reporter: CollectingErrorReporter) -> int:
    if args.prefer_legacy:
        settings = replace(settings, prefer_legacy=True)

    pipeline = LoadPipeline(QtPdfPageCountProvider(), reporter, settings)
    result = pipeline.load(args.root, auto_save=not args.no_save)

    for doc in result.documents:
        print(f"{doc.book_name(args.root, settings.volume_markers)}  "
              f"({len(doc.volumes)} volume(s), {doc.total_pages} pages)")
    print(
        f"{len(result.documents)} books in {len(result.folders)} folders, "
        f"{result.saved_count} saved, {len(reporter)} errors"
    )
    return 1 if len(reporter) else 0


def run_migrate(args, settings, reporter: CollectingErrorReporter) -> int:
    scanner = DirectoryScanner(reporter, volume_markers=settings.volume_markers)
    migrator = MetadataMigrator(scanner)
    report = migrator.migrate_all(
        args.root,
        delete_legacy=args.delete_legacy,
        on_error=lambda path, message: print(f"{path}: {message}", file=sys.stderr),
    )
    print(
        f"{report.total} legacy sidecars: {report.converted} converted, "
        f"{report.skipped_existing} already converted, {report.parse_errors} parse errors, "
        f"{report.verification_errors} verification errors, {report.deleted} deleted"
    )
    return 1 if report.failed else 0


def main(argv=None):
    """
    Composition root: reads settings, wires the components and runs one command.
    """
    args = build_parser().parse_args(argv)

    settings = SettingsManager().load_library_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.root is None:
        args.root = settings.root_folder
    if args.root is None:
        print("No library root given and SHEET_LIBRARY_ROOT is not set", file=sys.stderr)
        return 1

    # QtPdf and the thread pool expect a Qt application object.
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("Sheet Library")

    reporter = CollectingErrorReporter()
    if args.command == "load":
        return run_load(args, settings, reporter)
    return run_migrate(args, settings, reporter)


if __name__ == "__main__":
    sys.exit(main())
