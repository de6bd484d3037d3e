# app/background_tasks/collaboration_tasks.py
"""
Background tasks for content deadline reminders.
"""
import logging
from app.db.session import SessionLocal
from app.services.collaboration_engine import CollaborationService
from app.services.notifier import get_notifier

logger = logging.getLogger(__name__)


def warn_content_deadlines():
    """
    Background task: send the content deadline reminders due today.

    Each reminder stage is flagged in the same statement that claims it, so
    overlapping runs never send one twice.

    Returns: Number of reminders sent
    """
    db = SessionLocal()
    try:
        count = CollaborationService(db, notifier=get_notifier()).warn_content_deadlines()

        if count > 0:
            logger.info(f"Sent {count} content deadline reminders")

        return count

    except Exception as e:
        logger.error(f"Error in warn_content_deadlines task: {str(e)}", exc_info=True)
        return 0

    finally:
        db.close()
