from __future__ import annotations

import argparse
import asyncio
import json
import logging

from aquawatch.config import load_config, setup_logging
from aquawatch.domain.exceptions import AquaWatchError
from aquawatch.services.container import ServiceContainer

logger = logging.getLogger(__name__)


async def _serve(container: ServiceContainer) -> None:
    container.start()
    logger.info("Scheduler running (press Ctrl+C to stop)")
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await container.stop()


async def _run_once(container: ServiceContainer, job_id: str) -> dict | None:
    try:
        return await container.scheduler.run_job(job_id)
    finally:
        await container.stop()


def main(argv: list[str] | None = None) -> int:
    """Run the recompute scheduler, or a single job, without any other surface."""
    parser = argparse.ArgumentParser(prog="aquawatch-scheduler")
    parser.add_argument(
        "--run-job",
        metavar="JOB_ID",
        help="Run one background job immediately, print its result and exit",
    )
    parser.add_argument("--list-jobs", action="store_true", help="List registered jobs and exit")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(debug=config.DEBUG, log_path=config.log_path, level=config.log_level)
    container = ServiceContainer.build(config)

    if args.list_jobs:
        for job in container.scheduler.get_jobs():
            print(f"{job.job_id}\t{job.name}\tevery {job.interval_seconds}s")
        container.shutdown()
        return 0

    if args.run_job:
        try:
            result = asyncio.run(_run_once(container, args.run_job))
        except AquaWatchError as e:
            print(json.dumps(e.to_dict(), indent=2))
            return 2
        job = container.scheduler.get_job(args.run_job)
        print(json.dumps({"job": job.to_dict(), "result": result}, indent=2, default=str))
        return 0 if result and result.get("success") else 1

    try:
        asyncio.run(_serve(container))
    except KeyboardInterrupt:
        logger.info("Stopping scheduler...")
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
