"""
Worker entry point.
Run with: python -m app.worker.runner
"""

from redis import Redis
from rq import Queue, Worker

from app.config import settings
from app.observability.logging import setup_logging
from app.worker.jobs import schedule_stale_sweep


def main():
    """Start the RQ worker with the scheduler enabled for the periodic sweep."""
    setup_logging()

    conn = Redis.from_url(settings.REDIS_URL)
    queue = Queue(settings.QUEUE_NAME, connection=conn)
    schedule_stale_sweep(queue)

    worker = Worker(
        queues=[queue],
        connection=conn,
        name=f"ingestion-worker-{settings.APP_VERSION}",
    )

    print(f"Starting worker on queue '{settings.QUEUE_NAME}'...")
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
