from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

from redis import Redis
from rich.console import Console
from rich.table import Table
from rq import Queue, Worker

from .core.config import get_settings
from .core.db import create_all, create_engine, create_session_factory
from .core.jobs import get_job_queue
from .core.logging import configure_logging, level_from_name
from .db.catalog import SqlCatalog
from .domain import InvalidRequestError, NotFoundError
from .library.crawler import LibraryCrawler
from .services.library_service import LibraryService

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level), fmt="console")
    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="Librarian library reconciliation CLI")
    subparsers = parser.add_subparsers(dest="command")

    crawl_parser = subparsers.add_parser("crawl", help="List every supported media file under the given roots")
    crawl_parser.add_argument("paths", nargs="+", help="Root directories to crawl")
    crawl_parser.add_argument("--follow-symlinks", action="store_true", help="Descend into symlinked directories")
    crawl_parser.set_defaults(func=_cmd_crawl)

    refresh_parser = subparsers.add_parser("refresh", help="Reconcile a library against its import paths")
    refresh_parser.add_argument("--library-id", required=True, help="Library to refresh")
    refresh_parser.add_argument("--owner-id", required=True, help="Owner of the library")
    refresh_parser.add_argument("--force-refresh", action="store_true", help="Re-import files even if unchanged")
    refresh_parser.add_argument("--empty-trash", action="store_true", help="Delete missing assets instead of marking them offline")
    refresh_parser.set_defaults(func=_cmd_refresh)

    init_parser = subparsers.add_parser("init-db", help="Create catalog tables (development only)")
    init_parser.set_defaults(func=_cmd_init_db)

    worker_parser = subparsers.add_parser("worker", help="Run an RQ worker consuming library jobs")
    worker_parser.add_argument("--burst", action="store_true", help="Exit once the queue is empty")
    worker_parser.set_defaults(func=_cmd_worker)
    return parser


def _cmd_crawl(args: argparse.Namespace) -> None:
    """Print every media path the crawler finds.

    Args:
        args: The command-line arguments.
    """
    crawler = LibraryCrawler(follow_symlinks=args.follow_symlinks)
    count = 0
    for path in crawler.find_all_media(args.paths):
        console.print(path, highlight=False)
        count += 1
    console.print(f"[green]{count} media file(s) found[/]")


def _cmd_refresh(args: argparse.Namespace) -> None:
    """Run a single reconciliation pass and print the queued job counts.

    Args:
        args: The command-line arguments.
    """
    settings = get_settings()

    async def _run():
        engine = create_engine(settings)
        try:
            async with create_session_factory(engine)() as session:
                service = LibraryService(settings, SqlCatalog(session), get_job_queue())
                return await service.refresh(
                    owner_id=args.owner_id,
                    library_id=args.library_id,
                    force_refresh=args.force_refresh,
                    empty_trash=args.empty_trash,
                )
        finally:
            await engine.dispose()

    try:
        stats = asyncio.run(_run())
    except (NotFoundError, InvalidRequestError) as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(2)

    table = Table(title=f"Refresh {args.library_id}")
    table.add_column("crawled")
    table.add_column("refresh jobs")
    table.add_column("offline jobs")
    table.add_row(str(stats.crawled), str(stats.queued_refresh), str(stats.queued_offline))
    console.print(table)


def _cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()

    async def _run() -> None:
        engine = create_engine(settings)
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print(f"[green]Catalog tables ensured at {settings.database_url}[/]")


def _cmd_worker(args: argparse.Namespace) -> None:  # pragma: no cover - requires redis
    settings = get_settings()
    if settings.normalized_job_backend != "rq":
        console.print("[red]The worker command needs LIBRARIAN_JOB_BACKEND=rq.[/]")
        sys.exit(1)
    connection = Redis.from_url(settings.redis_url)
    worker = Worker([Queue(settings.job_queue_name, connection=connection)], connection=connection)
    worker.work(burst=args.burst)


if __name__ == "__main__":
    main()
