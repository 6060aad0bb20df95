import os

from src.intentflow.infrastructure.celery.app import celery_app
from src.setup.app_config import configure_di
from src.setup.celery_config import get_celery_settings


def main() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO")
    # A single signing account shares one nonce sequence, so bundles run one at a time.
    concurrency = os.getenv("CELERY_CONCURRENCY", "1")
    queues = os.getenv("CELERY_QUEUES", get_celery_settings().EXECUTION_QUEUE)
    configure_di()
    celery_app.worker_main(
        [
            "worker",
            "-l",
            log_level,
            "--concurrency",
            concurrency,
            "-Q",
            queues,
        ]
    )


if __name__ == "__main__":
    main()
