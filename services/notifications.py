from __future__ import annotations

import logging

from flask import current_app, has_app_context


log = logging.getLogger("notifications")


class CeleryNotifier:
    """Hands onboarding invitations to the Celery worker. Never waits for delivery."""

    def onboarding_invitation(
        self,
        *,
        to_email: str,
        candidate_name: str,
        organization_name: str,
        token: str,
        base_url: str,
    ) -> None:
        from app.tasks.onboarding_tasks import send_onboarding_email_task

        res = send_onboarding_email_task.apply_async(
            kwargs={
                "to_email": to_email,
                "candidate_name": candidate_name,
                "organization_name": organization_name,
                "token": token,
                "base_url": base_url,
            }
        )
        log.info("onboarding invitation queued to=%s task_id=%s", to_email, getattr(res, "id", ""))


def get_notifier():
    """Notifier registered on the running app, else the Celery one (worker/CLI context)."""
    if has_app_context():
        registered = current_app.extensions.get("onboarding_notifier")
        if registered is not None:
            return registered
    return CeleryNotifier()
