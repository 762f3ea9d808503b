# models/enrollments.py

from datetime import datetime, timezone
import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, Numeric, String, func, text
from sqlalchemy.orm import validates

from models import Base
from app.names import compute_full_name, name_key

# Numeric(12, 2): massimo valore rappresentabile per bonus/volumi
MAX_VOLUME = 9_999_999_999.99


class PackageName(str, enum.Enum):
    ENTRY = "Entry Pack"
    ELITE = "Elite Pack"
    PRO = "Pro Pack"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "Credit Card"
    BANK_TRANSFER = "Bank Transfer"


class EnrollmentStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    TERMINATED = "Terminated"


class EnrollmentRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


def _enum_values(enum_cls):
    # nel DB salviamo il valore leggibile ("Entry Pack"), non il nome python
    return [m.value for m in enum_cls]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True)

    # Codice umano sequenziale (es. PL-1000): unico, immutabile
    enrollment_id = Column(String(32), nullable=False, unique=True, index=True)

    # --- Dati personali ---
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # chiavi casefold per la ricerca sponsor, sincronizzate da _sync_name_key
    first_name_key = Column(String(255), nullable=False)
    last_name_key = Column(String(255), nullable=False)

    # salvata sempre lowercase → unique case-insensitive
    email = Column(String(255), nullable=False, unique=True, index=True)

    phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)

    # --- Sponsor ---
    sponsor_name = Column(String(200), nullable=False)

    # Codice PL-... dello sponsor risolto (nessuna FK: best-effort)
    sponsor_id = Column(String(32), nullable=True, index=True)

    # --- Commerciale ---
    package = Column(
        Enum(PackageName, name="enrollment_package", values_callable=_enum_values),
        nullable=False,
    )
    payment_method = Column(
        Enum(PaymentMethod, name="enrollment_payment_method", values_callable=_enum_values),
        nullable=True,
    )
    status = Column(
        Enum(EnrollmentStatus, name="enrollment_status", values_callable=_enum_values),
        nullable=False,
        default=EnrollmentStatus.PENDING,
        server_default=text("'Pending'"),
        index=True,
    )

    fast_start_bonus = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    personal_volume = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    team_volume = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    sales_volume = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    # --- Sicurezza ---
    role = Column(
        Enum(EnrollmentRole, name="enrollment_role", values_callable=_enum_values),
        nullable=False,
        default=EnrollmentRole.USER,
        server_default=text("'user'"),
    )
    password_hash = Column(String(255), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    # ricerca sponsor per nome (case-insensitive)
    __table_args__ = (
        Index("ix_enrollments_name_key", "first_name_key", "last_name_key"),
    )

    @validates("first_name", "last_name")
    def _sync_name_key(self, key, value):
        setattr(self, f"{key}_key", name_key(value))
        return value

    @property
    def full_name(self) -> str:
        return compute_full_name(self)
