# app/crud/base.py
import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModification

logger = logging.getLogger(__name__)


def commit_versioned(db: Session, *, entity: str, entity_id: str) -> None:
    """
    Commit the pending unit of work under the row_version check.

    Every versioned row touched in this transaction is updated with
    ``WHERE row_version = <value read>``. If any of them changed since it was
    read, nothing is written and the caller gets ConcurrentModification.
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"Concurrent modification on {entity} {entity_id}")
        raise ConcurrentModification(
            f"{entity.capitalize()} {entity_id} was modified concurrently; re-read and retry",
            current_status=_fresh_status(db, entity, entity_id),
        )
    except Exception:
        db.rollback()
        raise


def _fresh_status(db: Session, entity: str, entity_id: str) -> Optional[str]:
    from app.models.offer import Offer
    from app.models.collaboration import Collaboration
    from app.models.agreement import Agreement

    model = {"offer": Offer, "collaboration": Collaboration, "agreement": Agreement}.get(entity)
    if model is None:
        return None
    row = db.get(model, entity_id)
    if row is None:
        return None
    if isinstance(row, Agreement):
        return "executed" if row.is_fully_executed else "awaiting-signatures"
    return row.status
