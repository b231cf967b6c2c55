"""
Onboarding background tasks: invitation email delivery and the expiry sweep.
"""
from __future__ import annotations

import logging

import requests

from actions.onboarding import build_onboarding_service
from app.tasks import celery_app
from config import Config
from db import SessionLocal, get_engine, init_engine
from services.mailer import send_onboarding_email


log = logging.getLogger("tasks")


@celery_app.task(
    bind=True,
    autoretry_for=(requests.RequestException,),
    retry_backoff=True,
    max_retries=5,
)
def send_onboarding_email_task(
    self,
    to_email: str,
    candidate_name: str,
    organization_name: str,
    token: str,
    base_url: str,
):
    """Deliver the onboarding invitation; transport errors are retried with backoff."""
    result = send_onboarding_email(
        Config(),
        to_email=to_email,
        candidate_name=candidate_name,
        organization_name=organization_name,
        token=token,
        base_url=base_url,
    )
    log.info("onboarding email task=%s to=%s delivered=%s", self.request.id, to_email, result.get("delivered"))
    return result


@celery_app.task(bind=True)
def mark_expired_sessions_task(self):
    """Flip overdue in_progress sessions to expired."""
    cfg = Config()
    if get_engine() is None:
        init_engine(cfg.DATABASE_URL, pool_size=cfg.DB_POOL_SIZE, max_overflow=cfg.DB_MAX_OVERFLOW)

    db = SessionLocal()
    try:
        count = build_onboarding_service(db, cfg).mark_expired_sessions()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    log.info("expiry sweep task=%s marked=%s", self.request.id, count)
    return {"expired": count}
