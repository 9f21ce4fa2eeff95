"""
Job scheduler core - command line entry point.

Serves the HTTP API and runs maintenance tasks against the scheduler
database: import / export of *.job documents, log inspection and log
retention sweeps.
"""

import argparse
import logging
import os
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.infra.logging_config import setup_logging
from src.scheduler import (
    FILE_EXTENSION_JOB,
    SchedulerConfig,
    SchedulerCoreService,
    SchedulerError,
)


logger = logging.getLogger("src.cli")

# Graceful shutdown support for sweep --watch
shutdown_requested = False


def signal_handler(signum, frame):
    """SIGINT / SIGTERM handler - stop the sweep loop after the current pass."""
    global shutdown_requested
    signal_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    logger.info(f"{signal_name} received - shutting down")
    shutdown_requested = True


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job scheduler core - job definitions, execution logs, notifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the HTTP API
  python main.py serve --port 8000

  # Import every *.job document of a directory
  python main.py import ./jobs

  # Show the latest logs of a job
  python main.py logs nightly-report --limit 20

  # Delete logs past the retention horizon, every 10 minutes until stopped
  python main.py sweep --watch --interval-seconds 600
        """
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="SQLite database path. Default: SCHEDULER_DB_PATH or ./data/scheduler.db"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    subparsers.add_parser("list", help="List job definitions")

    import_cmd = subparsers.add_parser("import", help=f"Import {FILE_EXTENSION_JOB} documents")
    import_cmd.add_argument("paths", nargs="+", help=f"{FILE_EXTENSION_JOB} files or directories")

    export_cmd = subparsers.add_parser("export", help="Export a job document")
    export_cmd.add_argument("name")
    export_cmd.add_argument("-o", "--output", default=None, help="Output file. Default: stdout")

    logs_cmd = subparsers.add_parser("logs", help="Show execution logs of a job, newest first")
    logs_cmd.add_argument("name")
    logs_cmd.add_argument("--limit", type=int, default=50)

    sweep = subparsers.add_parser("sweep", help="Delete logs older than the retention horizon")
    sweep.add_argument(
        "--watch",
        action="store_true",
        default=False,
        help="Keep sweeping until SIGINT/SIGTERM"
    )
    sweep.add_argument(
        "--interval-seconds",
        type=float,
        default=None,
        help="Sweep period with --watch. Default: SCHEDULER_SWEEP_INTERVAL_SECONDS"
    )

    clear = subparsers.add_parser("clear-logs", help="Delete every log of a job")
    clear.add_argument("name")

    return parser.parse_args(argv)


def collect_job_files(paths: list[str]) -> list[Path]:
    """Expand directories into the job documents they contain (recursively)."""
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(path.rglob(f"*{FILE_EXTENSION_JOB}")))
        else:
            files.append(path)
    return files


def import_jobs(service: SchedulerCoreService, paths: list[str]) -> int:
    """Import job documents; returns the number of failures."""
    failures = 0
    for path in collect_job_files(paths):
        try:
            job = service.parse_job(path.read_bytes())
            saved = service.create_or_update_job(job)
        except (OSError, SchedulerError) as e:
            logger.error(f"Import of {path} failed: {e}")
            failures += 1
            continue
        print(f"imported {saved.name} ({len(saved.parameters)} parameters) from {path}")
    return failures


def run_sweep(service: SchedulerCoreService, watch: bool, interval_seconds: Optional[float]) -> None:
    if not watch:
        deleted = service.delete_old_job_logs()
        print(f"deleted {deleted} log(s)")
        return

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    service.start(interval_seconds)
    try:
        while not shutdown_requested and service.is_running:
            time.sleep(1.0)
    finally:
        service.stop()


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "INFO").upper(), log_dir=os.getenv("LOG_DIR", "logs"))

    args = parse_args(argv)
    config = SchedulerConfig.from_env()
    db_path = args.db_path or config.db_path

    if args.command == "serve":
        import uvicorn

        os.environ["SCHEDULER_DB_PATH"] = db_path
        uvicorn.run("src.api.main:app", host=args.host, port=args.port)
        return 0

    try:
        service = SchedulerCoreService.create(db_path, config)

        if args.command == "list":
            for job in service.get_jobs():
                status = job.status.value if job.status else "-"
                enabled = "enabled" if job.enabled else "disabled"
                print(f"{job.name}\t{job.schedule_expression or '-'}\t{enabled}\t{status}")
            return 0

        if args.command == "import":
            return 1 if import_jobs(service, args.paths) else 0

        if args.command == "export":
            job = service.get_job(args.name)
            if job is None:
                logger.error(f"Job not found: {args.name}")
                return 1
            document = service.serialize_job(job)
            if args.output:
                Path(args.output).write_text(document + "\n", encoding="utf-8")
            else:
                print(document)
            return 0

        if args.command == "logs":
            for log in service.get_job_logs(args.name)[: args.limit]:
                correlation = f"<-{log.triggered_id}" if log.triggered_id else ""
                print(
                    f"{log.id}{correlation}\t{log.status.value}\t{log.triggered_at}\t"
                    f"{log.finished_at or '-'}\t{log.message or ''}"
                )
            return 0

        if args.command == "sweep":
            run_sweep(service, args.watch, args.interval_seconds)
            return 0

        if args.command == "clear-logs":
            deleted = service.clear_job_logs(args.name)
            print(f"deleted {deleted} log(s) of {args.name}")
            return 0

    except SchedulerError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
