"""
Command-line interface for JobTracker.

Usage:
    python -m jobtracker list
    python -m jobtracker add "Acme" "Backend Engineer" --location Remote
    python -m jobtracker watch
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from typing import List, Optional

from jobtracker.config import Settings, get_settings
from jobtracker.models import DatePostedFilter, Job, JobStatus, SearchCriteria
from jobtracker.search import JobSearchClient, JobSearchError
from jobtracker.storage.files import FileStorage
from jobtracker.store import JobStore
from jobtracker.sync.merge import ConflictResolution, SyncConflict


def parse_status(text: str) -> JobStatus:
    """Strict status parser for the command line."""
    for status in JobStatus:
        if text.strip().lower() in (status.value.lower(), status.name.lower()):
            return status
    names = ", ".join(s.value for s in JobStatus)
    raise argparse.ArgumentTypeError(f"unknown status {text!r} (choose from {names})")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="jobtracker",
        description="Track job applications on a Kanban board, synced across devices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the board
  python -m jobtracker list

  # Add and move an application (ids can be abbreviated)
  python -m jobtracker add "Acme" "Backend Engineer" --location Remote
  python -m jobtracker move 3f2a Applied

  # Keep running and merge changes made on other devices
  JOBTRACKER_CLOUD_DIR=~/Dropbox/JobTracker python -m jobtracker watch

  # Search JSearch and add the first two results (requires JOBTRACKER_RAPIDAPI_KEY)
  python -m jobtracker search "python developer" --remote-only --add 1 2
""",
    )
    parser.add_argument("--data-dir", help="Local data directory (default: ~/.jobtracker)")
    parser.add_argument("--cloud-dir", help="Synced folder shared with other devices")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print log messages")

    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="Show the board")
    p_list.add_argument("--status", type=parse_status, help="Only show one column")

    p_add = sub.add_parser("add", help="Add a job application")
    p_add.add_argument("company")
    p_add.add_argument("role")
    p_add.add_argument("--location", default="")
    p_add.add_argument("--salary", default="")
    p_add.add_argument("--url", default="")
    p_add.add_argument("--notes", default="")
    p_add.add_argument("--status", type=parse_status, default=JobStatus.WISHLIST)

    p_move = sub.add_parser("move", help="Move a job to another column")
    p_move.add_argument("job_id")
    p_move.add_argument("status", type=parse_status)

    p_delete = sub.add_parser("delete", help="Delete a job")
    p_delete.add_argument("job_id")

    p_import = sub.add_parser("import", help="Import jobs from a JSON export")
    p_import.add_argument("path")
    p_import.add_argument("--replace", action="store_true", help="Discard current jobs instead of merging")

    p_export = sub.add_parser("export", help="Export jobs to JSON (or CSV)")
    p_export.add_argument("path")
    p_export.add_argument("--csv", action="store_true", help="Write CSV instead of JSON")

    p_search = sub.add_parser("search", help="Search job postings (JSearch)")
    p_search.add_argument("query", nargs="?", default=None, help="Defaults to the saved search")
    p_search.add_argument("--location", "-l", default=None)
    p_search.add_argument("--remote-only", "-r", action="store_true", default=None)
    p_search.add_argument(
        "--date-posted",
        choices=[f.value for f in DatePostedFilter],
        default=None,
    )
    p_search.add_argument("--page", type=int, default=1)
    p_search.add_argument("--add", type=int, nargs="*", default=[], metavar="N",
                          help="Add results N (1-based) to the Wishlist")

    sub.add_parser("watch", help="Watch the synced folder and resolve conflicts interactively")

    return parser.parse_args(argv)


def build_store(args: argparse.Namespace, settings: Settings) -> JobStore:
    """Build the store from settings, with command line overrides."""
    storage = FileStorage(
        local_dir=args.data_dir or settings.data_dir,
        cloud_dir=args.cloud_dir or settings.cloud_dir,
        file_name=settings.file_name,
    )
    return JobStore(
        storage,
        debounce_s=settings.watch_debounce_ms / 1000,
        poll_interval_s=settings.watch_poll_interval_ms / 1000,
    )


def find_job(store: JobStore, prefix: str) -> Optional[Job]:
    """Find a job by id or unique id prefix."""
    matches = [job for job in store.jobs if job.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        print(f"No job matches {prefix!r}", file=sys.stderr)
    else:
        print(f"{prefix!r} is ambiguous ({len(matches)} jobs)", file=sys.stderr)
    return None


def format_job(job: Job) -> str:
    parts = [f"{job.id[:8]}  {job.company} - {job.role}"]
    if job.location:
        parts.append(job.location)
    if job.salary:
        parts.append(job.salary)
    return "  |  ".join(parts)


def print_board(store: JobStore, status: Optional[JobStatus] = None) -> None:
    counts = store.counts_by_status()
    for column in JobStatus.ordered():
        if status is not None and column != status:
            continue
        print(f"{column.emoji} {column.value} ({counts[column]})")
        for job in store.jobs_for(column):
            print(f"    {format_job(job)}")


def describe_conflict(conflict: SyncConflict) -> str:
    lines = [f"Conflict on {conflict.job_id[:8]} (both changed at {conflict.local.last_modified.isoformat()}):"]
    local, remote = conflict.local.to_dict(), conflict.remote.to_dict()
    for key in sorted(local):
        if local[key] != remote[key]:
            lines.append(f"  {key}: this device={local[key]!r}  other device={remote[key]!r}")
    return "\n".join(lines)


def prompt_resolution(conflict: SyncConflict) -> ConflictResolution:
    print(describe_conflict(conflict))
    choices = {"l": ConflictResolution.KEEP_LOCAL, "r": ConflictResolution.KEEP_REMOTE, "b": ConflictResolution.KEEP_BOTH}
    while True:
        answer = input("Keep [l]ocal, [r]emote or [b]oth? ").strip().lower()[:1]
        if answer in choices:
            return choices[answer]


def run_watch(store: JobStore) -> int:
    if not store.start_sync():
        print("Synced folder not available (set JOBTRACKER_CLOUD_DIR or --cloud-dir)", file=sys.stderr)
        return 1
    print(f"Watching {store.storage.active_file_path} (Ctrl+C to stop)")
    try:
        while True:
            for conflict in store.pending_conflicts:
                store.resolve_conflict(conflict, prompt_resolution(conflict))
            time.sleep(store.poll_interval_s)
    except (KeyboardInterrupt, EOFError):
        print("\nStopped")
        return 0
    finally:
        store.stop_sync()


async def run_search(args: argparse.Namespace, store: JobStore, settings: Settings) -> int:
    saved = store.storage.load_search_criteria()
    criteria = SearchCriteria(
        query=args.query if args.query is not None else saved.query,
        location=args.location if args.location is not None else saved.location,
        remote_only=args.remote_only if args.remote_only is not None else saved.remote_only,
        date_posted=DatePostedFilter(args.date_posted) if args.date_posted else saved.date_posted,
    )
    if not criteria.query:
        print("No query given and no saved search", file=sys.stderr)
        return 2
    store.storage.save_search_criteria(criteria)

    try:
        async with JobSearchClient(settings.rapidapi_key, timeout_s=settings.search_timeout_s) as client:
            results = await client.search(criteria, page=args.page)
    except JobSearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for n, result in enumerate(results, start=1):
        details = " | ".join(x for x in (result.location, result.salary_range, result.source.value) if x)
        print(f"{n:3d}. {result.title} @ {result.company}  {details}")

    for n in args.add:
        if 1 <= n <= len(results):
            job = store.add_job(results[n - 1].to_tracker_job())
            print(f"Added {format_job(job)}")
        else:
            print(f"No result #{n}", file=sys.stderr)
    return 0


def run(args: argparse.Namespace, settings: Settings) -> int:
    store = build_store(args, settings)

    if args.command == "list":
        print_board(store, args.status)
        return 0

    if args.command == "add":
        job = store.add_job(Job(
            company=args.company,
            role=args.role,
            location=args.location,
            salary=args.salary,
            url=args.url,
            notes=args.notes,
            status=args.status,
        ))
        print(f"Added {format_job(job)}")
        return 0

    if args.command in ("move", "delete"):
        job = find_job(store, args.job_id)
        if job is None:
            return 1
        if args.command == "move":
            store.move_job(job.id, args.status)
            print(f"Moved {job.company} - {job.role} to {args.status.value}")
        else:
            store.delete_job(job.id)
            print(f"Deleted {job.company} - {job.role}")
        return 0

    if args.command == "import":
        count = store.import_from(args.path, replace=args.replace)
        if count is None:
            print(f"Could not read jobs from {args.path}", file=sys.stderr)
            return 1
        print(f"Imported {count} jobs")
        return 0

    if args.command == "export":
        if args.csv:
            print(f"Exported {store.export_csv(args.path)} jobs to {args.path}")
            return 0
        if not store.export_to(args.path):
            print(f"Could not write {args.path}", file=sys.stderr)
            return 1
        print(f"Exported {len(store.jobs)} jobs to {args.path}")
        return 0

    if args.command == "search":
        return asyncio.run(run_search(args, store, settings))

    if args.command == "watch":
        return run_watch(store)

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=logging.INFO if args.verbose else getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
