# models/sequences.py

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from models import Base

ENROLLMENT_CODE_SEQUENCE = "enrollment_code"


class EnrollmentSequence(Base):
    """
    Contatore esplicito per i codici umani (PL-<n>).
    last_value = ultimo numero assegnato; si incrementa solo con UPDATE atomico.
    """

    __tablename__ = "enrollment_sequences"

    name = Column(String(50), primary_key=True)

    last_value = Column(Integer, nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
