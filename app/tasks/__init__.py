"""
Celery configuration for background onboarding work.

Usage:
    celery -A app.tasks.celery_app worker -Q mail,maintenance --loglevel=INFO
    celery -A app.tasks.celery_app beat --loglevel=INFO
"""
from __future__ import annotations

import os

from celery import Celery
from dotenv import load_dotenv


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "") or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def make_celery() -> Celery:
    """
    Create and configure Celery app with Redis broker.

    Environment variables:
        REDIS_URL: Redis connection URL (default: redis://localhost:6379/0)
        CELERY_RESULT_BACKEND: Optional separate result backend
        CELERY_TASK_ALWAYS_EAGER: Run tasks inline (tests, local dev)
        ONBOARDING_SWEEP_MINUTES: Interval of the expiry sweep (default 15)
    """
    load_dotenv()
    redis_url = os.getenv("REDIS_URL", "") or "redis://localhost:6379/0"
    result_backend = os.getenv("CELERY_RESULT_BACKEND", redis_url)
    sweep_minutes = max(1, int(os.getenv("ONBOARDING_SWEEP_MINUTES", "15") or "15"))

    app = Celery(
        "onboarding",
        broker=redis_url,
        backend=result_backend,
        include=["app.tasks.onboarding_tasks"],
    )

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        result_expires=6 * 3600,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_always_eager=_env_flag("CELERY_TASK_ALWAYS_EAGER"),
        task_eager_propagates=False,
        worker_prefetch_multiplier=1,
        worker_concurrency=int(os.getenv("CELERY_CONCURRENCY", "4")),
        task_routes={
            "app.tasks.onboarding_tasks.send_onboarding_email_task": {"queue": "mail"},
            "app.tasks.onboarding_tasks.mark_expired_sessions_task": {"queue": "maintenance"},
        },
        task_annotations={
            "app.tasks.onboarding_tasks.send_onboarding_email_task": {"rate_limit": "60/m"},
        },
        beat_schedule={
            "mark-expired-onboarding-sessions": {
                "task": "app.tasks.onboarding_tasks.mark_expired_sessions_task",
                "schedule": sweep_minutes * 60.0,
            },
        },
    )

    return app


celery_app = make_celery()
