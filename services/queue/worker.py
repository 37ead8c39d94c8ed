"""Entry point for the batch extraction worker.

Run with: python -m services.queue.worker
Or: arq services.queue.tasks.WorkerSettings (uses the class defaults)
"""

import logging

from arq import run_worker

from services.queue.tasks import WorkerSettings
from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    WorkerSettings.configure(settings)
    logger.info(
        f"Starting extraction worker on {settings.redis_url} "
        f"(max_jobs={settings.queue_max_jobs}, job_timeout={settings.queue_job_timeout}s)"
    )
    run_worker(WorkerSettings)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
