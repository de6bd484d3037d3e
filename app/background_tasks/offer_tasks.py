# app/background_tasks/offer_tasks.py
"""
Background tasks for offer expiry.
"""
import logging
from app.db.session import SessionLocal
from app.services.notifier import get_notifier
from app.services.offer_engine import OfferService

logger = logging.getLogger(__name__)


def expire_offers():
    """
    Background task: expire open offers that have passed expires_at.

    Safe to run concurrently with user responses and with itself; offers
    that moved in the meantime are skipped.

    Returns: Number of offers expired
    """
    db = SessionLocal()
    try:
        count = OfferService(db, notifier=get_notifier()).expire_sweep()

        if count > 0:
            logger.info(f"Auto-expired {count} offers")

        return count

    except Exception as e:
        logger.error(f"Error in expire_offers task: {str(e)}", exc_info=True)
        return 0

    finally:
        db.close()


def warn_expiring_offers():
    """
    Background task: warn creators about offers expiring within the warning window.

    Returns: Number of warnings sent
    """
    db = SessionLocal()
    try:
        count = OfferService(db, notifier=get_notifier()).warn_expiring()

        if count > 0:
            logger.info(f"Sent {count} expiring-offer warnings")

        return count

    except Exception as e:
        logger.error(f"Error in warn_expiring_offers task: {str(e)}", exc_info=True)
        return 0

    finally:
        db.close()
