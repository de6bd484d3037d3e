# app/db/base_class.py

from sqlalchemy.orm import declarative_base

# Declarative base shared by the offer, agreement, collaboration and log tables.
Base = declarative_base()
