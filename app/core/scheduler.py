import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.memory import MemoryJobStore

from app.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_CLEANUP_JOB_ID = "token_cleanup"

scheduler = BackgroundScheduler(
    jobstores={"default": MemoryJobStore()},
    job_defaults={"coalesce": True, "max_instances": 1},
)


def cleanup_expired_tokens() -> dict:
    """Delete refresh and reset tokens past their retention windows."""
    from app.core.database import SessionLocal
    from app.services.password_reset_service import PasswordResetLedger
    from app.services.refresh_token_service import RefreshTokenLedger
    from app.services.email_service import EmailService
    from app.services.user_service import UserStore

    db = SessionLocal()
    try:
        refresh_deleted = RefreshTokenLedger(db).cleanup(
            retention_days=settings.REFRESH_TOKEN_RETENTION_DAYS
        )
        reset_deleted = PasswordResetLedger(
            db,
            users=UserStore(db),
            email_service=EmailService.from_settings(settings),
        ).cleanup(retention_days=settings.RESET_TOKEN_RETENTION_DAYS)
    finally:
        db.close()

    logger.info(
        f"Token cleanup finished: refresh_tokens={refresh_deleted} "
        f"password_reset_tokens={reset_deleted}"
    )
    return {"refresh_tokens": refresh_deleted, "password_reset_tokens": reset_deleted}


def _run_cleanup_job() -> None:
    try:
        cleanup_expired_tokens()
    except Exception as e:
        logger.error(f"Token cleanup job failed: {e}", exc_info=True)


def start_scheduler():
    """Register the periodic token cleanup and start the scheduler."""
    if not settings.TOKEN_CLEANUP_ENABLED:
        logger.info("Token cleanup scheduler disabled")
        return

    scheduler.add_job(
        _run_cleanup_job,
        trigger="interval",
        hours=settings.TOKEN_CLEANUP_INTERVAL_HOURS,
        id=TOKEN_CLEANUP_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"APScheduler started: token cleanup every {settings.TOKEN_CLEANUP_INTERVAL_HOURS}h")


def shutdown_scheduler():
    """Gracefully shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler shut down")
