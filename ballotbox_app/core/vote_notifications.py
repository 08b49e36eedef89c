from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial

import post_office.mail
from django.conf import settings
from django.db import connection
from django.utils import timezone

from core.models import Vote

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def send_vote_confirmation_email(
    *,
    recipient_address: str,
    election_name: str,
    candidate_description: str,
    voted_at: str = "",
    confirmation_id: str = "",
) -> bool:
    """Queue the vote confirmation email via django-post-office.

    Returns True if an email was queued, False if there is no address to send to.
    """

    address = str(recipient_address or "").strip()
    if not address:
        return False

    post_office.mail.send(
        recipients=[address],
        sender=settings.DEFAULT_FROM_EMAIL,
        template=settings.ELECTION_VOTE_CONFIRMATION_EMAIL_TEMPLATE_NAME,
        context={
            "election_name": election_name,
            "candidate_description": candidate_description,
            "voted_at": voted_at,
            "confirmation_id": confirmation_id,
        },
        render_on_delivery=True,
    )
    return True


def _deliver_vote_confirmation(vote_id: int) -> bool:
    vote = (
        Vote.objects.select_related("election", "candidate__party", "voter__user")
        .filter(pk=vote_id)
        .first()
    )
    if vote is None:
        logger.warning("Vote confirmation skipped: vote_id=%s not found", vote_id)
        return False

    local = timezone.localtime(vote.created_at)
    return send_vote_confirmation_email(
        recipient_address=vote.voter.user.email,
        election_name=vote.election.name,
        candidate_description=vote.candidate.description,
        voted_at=f"{local.strftime('%b %d, %Y %H:%M')} ({local.tzname()})",
        confirmation_id=vote.vote_token,
    )


def _deliver_in_worker(vote_id: int) -> bool:
    try:
        return _deliver_vote_confirmation(vote_id)
    finally:
        # Worker threads own their connection; don't leak it between tasks.
        connection.close()


def _log_delivery_outcome(future: Future, *, vote_id: int) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Vote confirmation failed vote_id=%s", vote_id, exc_info=exc)
        return
    if future.result():
        logger.info("Vote confirmation queued vote_id=%s", vote_id)


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=settings.VOTE_NOTIFICATION_WORKERS,
                thread_name_prefix="vote-notify",
            )
        return _executor


def shutdown_notification_executor(*, wait: bool = True) -> None:
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)


def dispatch_vote_confirmation(*, vote_id: int) -> Future | None:
    """Send the confirmation for a committed vote without affecting its outcome.

    In async mode the work runs on a background thread pool and the returned
    future is observed only by a logging callback. Any failure is logged and
    absorbed.
    """

    if not settings.VOTE_NOTIFICATION_ASYNC:
        try:
            if _deliver_vote_confirmation(vote_id):
                logger.info("Vote confirmation queued vote_id=%s", vote_id)
        except Exception:
            logger.exception("Vote confirmation failed vote_id=%s", vote_id)
        return None

    try:
        future = _get_executor().submit(_deliver_in_worker, vote_id)
    except RuntimeError:
        # Executor is shutting down (process exit).
        logger.exception("Vote confirmation not dispatched vote_id=%s", vote_id)
        return None

    future.add_done_callback(partial(_log_delivery_outcome, vote_id=vote_id))
    return future
