# app/models/__init__.py
# Import all models so SQLAlchemy can resolve relationships and
# Base.metadata knows every table.

from app.db.base_class import Base
from app.models.offer import Offer
from app.models.agreement import Agreement
from app.models.collaboration import Collaboration
from app.models.transition_log import TransitionLog
