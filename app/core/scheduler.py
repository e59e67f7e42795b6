import logging
import os
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.exceptions import ExamPortalError
from app.crud.enrollment import enrollment as crud_enrollment
from app.services.exam_session import exam_session_service
from app.services.grading import grading_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def submit_expired_enrollments(db: Session, now: Optional[datetime] = None) -> int:
    """Force-submit every started exam whose deadline and grace period have passed.

    Each enrollment is committed on its own so one failure does not hold
    back the rest of the sweep.
    """
    now = now or datetime.utcnow()
    expired_ids = [
        e.id for e in crud_enrollment.get_started(db)
        if exam_session_service.is_past_grace(e, now)
    ]
    submitted = 0
    for enrollment_id in expired_ids:
        try:
            grading_service.submit(db, enrollment_id=enrollment_id, answers=[])
            db.commit()
            submitted += 1
        except ExamPortalError as e:
            # submitted by the student between the scan and this write
            db.rollback()
            logger.info(f"Skipped expired enrollment {enrollment_id}: {e.detail}")
        except Exception:
            db.rollback()
            logger.exception(f"Failed to auto-submit enrollment {enrollment_id}")
    return submitted


def sweep_expired_exams():
    db = SessionLocal()
    try:
        count = submit_expired_enrollments(db)
        if count:
            logger.info(f"Expiry sweep auto-submitted {count} exams")
    finally:
        db.close()


def start_scheduler():
    if os.getenv("TESTING") == "true" or not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled")
        return

    if not scheduler.running:
        scheduler.add_job(
            sweep_expired_exams,
            'interval',
            seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
            id='exam_expiry_sweep',
            name='Auto-submit expired exams',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        scheduler.start()
        logger.info("Scheduler started with exam expiry sweep")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
