"""CLI interface with subcommand routing."""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from speak_docs.config import ConfigError, Settings, resolve_config
from speak_docs.constants import VERSION
from speak_docs.files import find_documents, load_ignore_patterns, read_document, write_document
from speak_docs.injector import remove_component
from speak_docs.models import FAILED
from speak_docs.pipeline import generate
from speak_docs.reconcile import reconcile
from speak_docs.storage import S3Storage, StorageError
from speak_docs.vcs import current_branch


def _check_directory(directory: str) -> str:
    """Verify the documentation directory exists."""
    if not os.path.isdir(directory):
        print(f"Error: Directory not found: {directory}", file=sys.stderr)
        raise SystemExit(1)
    return directory


def _resolve_settings(args, **kwargs) -> Settings:
    try:
        return resolve_config(args, args.directory, **kwargs)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


def _build_storage(settings: Settings, directory: str) -> S3Storage:
    branch = None
    if settings.branch_paths:
        branch = current_branch(directory)
        print(f"Detected git branch: {branch}")
    return S3Storage(
        bucket=settings.s3_bucket,
        public_url=settings.s3_public_url,
        path_prefix=settings.s3_path_prefix,
        region=settings.s3_region,
        endpoint=settings.s3_endpoint,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        branch=branch,
    )


def cmd_generate(args):
    """Generate narration for every changed document."""
    directory = _check_directory(args.directory)
    settings = _resolve_settings(args)
    storage = _build_storage(settings, directory)
    if settings.dry_run:
        print("[DRY RUN] No audio will be generated and no files written.")

    results = generate(directory, settings, storage, load_ignore_patterns(directory))
    failed = sum(1 for r in results if r.status == FAILED)
    if failed:
        print(f"{failed} document(s) failed; see messages above.", file=sys.stderr)


def cmd_cleanup(args):
    """Delete stored audio that no document references."""
    directory = _check_directory(args.directory)
    settings = _resolve_settings(args, require_voices=False)
    storage = _build_storage(settings, directory)

    try:
        report = reconcile(directory, settings, storage, load_ignore_patterns(directory))
    except (OSError, UnicodeDecodeError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    if not report.documents:
        print(f"No documents found matching pattern: {settings.pattern}")
    print(f"Found {len(report.referenced)} audio file(s) referenced in {report.documents} document(s)")
    print(f"Found {len(report.stored)} audio file(s) in storage")

    if not report.orphans:
        print("No orphaned files found.")
        return

    print(f"\nFound {len(report.orphans)} orphaned file(s):")
    for key in report.orphans:
        print(f"  - {key}")

    if settings.dry_run:
        print("\nDry run complete. Run without --dry-run to delete these files.")
    else:
        print(f"\nDeleted {report.deleted} orphaned file(s)")


def cmd_remove(args):
    """Strip narration blocks and their import from every document."""
    directory = _check_directory(args.directory)
    settings = _resolve_settings(args, require_voices=False, require_storage=False)

    documents = find_documents(directory, settings.pattern, load_ignore_patterns(directory))
    changed = 0
    for doc_path in documents:
        content = read_document(directory, doc_path)
        updated = remove_component(content, settings.component_name)
        if updated == content:
            continue
        changed += 1
        if settings.dry_run:
            print(f"  [dry run] would update {doc_path}")
        else:
            write_document(directory, doc_path, updated)
            print(f"  Removed narration from {doc_path}")

    verb = "would change" if settings.dry_run else "changed"
    print(f"{changed} of {len(documents)} document(s) {verb}")


def _add_storage_args(parser):
    parser.add_argument("--s3-bucket", help="Bucket name (env: S3_BUCKET)")
    parser.add_argument("--s3-region", help="Region (env: S3_REGION, default us-east-1)")
    parser.add_argument("--s3-endpoint", help="Custom endpoint for R2/MinIO (env: S3_ENDPOINT)")
    parser.add_argument("--s3-access-key-id", help="Access key (env: S3_ACCESS_KEY_ID)")
    parser.add_argument("--s3-secret-access-key", help="Secret key (env: S3_SECRET_ACCESS_KEY)")
    parser.add_argument("--s3-public-url", help="Public base URL of the bucket (env: S3_PUBLIC_URL)")
    parser.add_argument("--s3-path-prefix", help="Key prefix (default: audio)")
    parser.add_argument("--branch-paths", action="store_true", help="Namespace keys by current git branch")


def _add_common_args(parser):
    parser.add_argument("directory", nargs="?", default=".", help="Documentation directory")
    parser.add_argument("--component-name", help="Player component name (default: AudioTranscript)")
    parser.add_argument("--pattern", help="Glob for documents (default: **/*.mdx)")
    parser.add_argument("--dry-run", action="store_true", help="Preview changes without writing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speak-docs",
        description="Add voice narration to MDX documentation",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate
    generate_parser = subparsers.add_parser("generate", help="Generate narration for changed documents")
    _add_common_args(generate_parser)
    _add_storage_args(generate_parser)
    generate_parser.add_argument("--voices", help="Comma-separated voice IDs (env: SPEAK_VOICES)")
    generate_parser.add_argument("--voice-names", help="Comma-separated display names (env: SPEAK_VOICE_NAMES)")
    generate_parser.add_argument("--component-import", help="Import path of the player component")
    generate_parser.add_argument("--rate", help="Relative speech rate, e.g. -10%%")
    generate_parser.set_defaults(func=cmd_generate)

    # cleanup
    cleanup_parser = subparsers.add_parser("cleanup", help="Delete unreferenced audio from storage")
    _add_common_args(cleanup_parser)
    _add_storage_args(cleanup_parser)
    cleanup_parser.set_defaults(func=cmd_cleanup)

    # remove
    remove_parser = subparsers.add_parser("remove", help="Strip narration blocks from documents")
    _add_common_args(remove_parser)
    remove_parser.set_defaults(func=cmd_remove)

    return parser


def main(argv=None):
    """CLI entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
