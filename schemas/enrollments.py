# schemas/enrollments.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel

from models.enrollments import (
    MAX_VOLUME,
    EnrollmentRole,
    EnrollmentStatus,
    PackageName,
    PaymentMethod,
)


class CamelModel(BaseModel):
    # Il frontend parla camelCase (firstName, sponsorName, ...)
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# 🔓 INPUT PUBBLICO (form di iscrizione)
# max_length = dimensioni delle colonne in models/enrollments.py
class EnrollmentCreate(CamelModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: EmailStr
    sponsor_name: str = Field(max_length=200)
    package: PackageName
    payment_method: Optional[PaymentMethod] = None

    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)


# ✏️ Modifica profilo (utente o admin): tutti i campi opzionali
class EnrollmentUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    sponsor_name: Optional[str] = Field(default=None, max_length=200)
    package: Optional[PackageName] = None
    payment_method: Optional[PaymentMethod] = None

    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)

    # solo admin (ignorati per gli altri)
    status: Optional[EnrollmentStatus] = None
    role: Optional[EnrollmentRole] = None
    sponsor_id: Optional[str] = Field(default=None, max_length=32)


class StatusUpdate(CamelModel):
    status: EnrollmentStatus


class TeamVolumeUpdate(CamelModel):
    team_volume: float = Field(ge=0, le=MAX_VOLUME)


# 🔒 OUTPUT (mai password/hash)
class EnrollmentOut(CamelModel):
    id: int
    enrollment_id: str

    first_name: str
    last_name: str
    full_name: str
    email: str

    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    sponsor_name: str
    sponsor_id: Optional[str] = None

    package: PackageName
    payment_method: Optional[PaymentMethod] = None
    status: EnrollmentStatus

    fast_start_bonus: float
    personal_volume: float
    team_volume: float
    sales_volume: float

    role: EnrollmentRole

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EnrollmentCreatedOut(CamelModel):
    enrollment: EnrollmentOut
    token: str
    token_type: str = "bearer"
    # True se la password temporanea è partita via email
    password_sent: bool = False
