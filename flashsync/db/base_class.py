# Fichier: flashsync/db/base_class.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Declarative base shared by every FlashSync model.
    ``Base.metadata.create_all`` runs at startup.
    """
