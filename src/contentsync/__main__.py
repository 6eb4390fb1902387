"""
Main entrypoint: one-shot sync runs and the periodic sync daemon.

FastAPI runs separately under uvicorn (for the trigger/status endpoints).

Usage:
    python -m contentsync run                    # sync every job once
    python -m contentsync run products blogs     # sync selected jobs once
    python -m contentsync serve --interval 10    # sync now, then every 10 minutes
    uvicorn contentsync.api.main:app --host 0.0.0.0 --port 8000  # starts API
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)


async def _run_once(job_names: List[str]) -> bool:
    from contentsync.db.engine import get_engine
    from contentsync.sync.orchestrator import build_orchestrator

    orchestrator = build_orchestrator(get_engine())
    unknown = [name for name in job_names if name not in orchestrator.jobs]
    if unknown:
        logger.error(
            "Unknown job(s): %s. Known jobs: %s",
            ", ".join(unknown),
            ", ".join(orchestrator.job_names),
        )
        return False

    if len(job_names) == 1:
        report = await orchestrator.run_job(job_names[0], trigger="cli")
    elif job_names:
        # Several named jobs: run them one at a time and merge the outcomes
        reports = [await orchestrator.run_job(name, trigger="cli") for name in job_names]
        report = reports[0].model_copy(update={
            "success": all(r.success for r in reports),
            "finished_at": reports[-1].finished_at,
            "jobs": [outcome for r in reports for outcome in r.jobs],
        })
    else:
        report = await orchestrator.run_all(trigger="cli")

    print(report.model_dump_json(indent=2))
    return report.success


async def _serve(interval_minutes: Optional[int]) -> None:
    from contentsync.config import get_settings
    from contentsync.db.engine import get_engine
    from contentsync.sync.orchestrator import build_orchestrator

    settings = get_settings()
    orchestrator = build_orchestrator(get_engine(), settings)
    interval = interval_minutes or settings.sync_interval_minutes
    orchestrator.start_periodic(interval)
    logger.info("Periodic sync running every %d minutes. Press Ctrl+C to stop.", interval)

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    finally:
        orchestrator.shutdown()
        logger.info("Goodbye.")


def main(argv: Optional[List[str]] = None) -> None:
    from contentsync.config import get_settings

    parser = argparse.ArgumentParser(
        prog="contentsync",
        description="Sync Google Sheets / Drive content into the local store",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    run_p = sub.add_parser("run", help="Run sync jobs once and print the report")
    run_p.add_argument("jobs", nargs="*", help="Job names (default: all)")
    serve_p = sub.add_parser("serve", help="Run periodic sync until interrupted")
    serve_p.add_argument("--interval", type=int, default=None, help="Minutes between runs (1-60)")
    args = parser.parse_args(argv)
    if args.command == "serve" and args.interval is not None and not 1 <= args.interval <= 60:
        parser.error("--interval must be between 1 and 60 minutes")

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "run":
        ok = asyncio.run(_run_once(args.jobs))
        sys.exit(0 if ok else 1)
    else:
        try:
            asyncio.run(_serve(args.interval))
        except KeyboardInterrupt:
            pass


if __name__ == "__main__":
    main()
