# routers/auth_enrollment.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app import registrar
from app.config import settings
from app.db import get_db
from app.deps import get_current_enrollment, require_admin
from app.email_service import send_password_reset_email
from app.errors import ValidationError
from app.names import normalize_email
from app.passwords import generate_temp_password, hash_password, verify_password
from app.security import create_enrollment_token
from models.enrollments import Enrollment
from schemas.auth import LoginRequest, LoginResponse, PasswordChange, PasswordResetOut
from schemas.enrollments import EnrollmentOut

router = APIRouter(prefix="/api/enrollments", tags=["Enrollment Auth"])

logger = logging.getLogger(__name__)


# ------------------------------
# POST /api/enrollments/login
# ------------------------------
@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.email == normalize_email(payload.email))
        .first()
    )

    # stesso messaggio per email e password: niente enumeration
    if not enrollment or not verify_password(payload.password, enrollment.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login credentials",
        )

    return LoginResponse(
        enrollment=EnrollmentOut.model_validate(enrollment),
        token=create_enrollment_token(enrollment),
    )


# ------------------------------
# GET /api/enrollments/me
# ------------------------------
@router.get("/me", response_model=EnrollmentOut)
def get_me(current: Enrollment = Depends(get_current_enrollment)):
    return current


# ------------------------------
# PUT /api/enrollments/me/password
# ------------------------------
@router.put("/me/password")
def change_my_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current: Enrollment = Depends(get_current_enrollment),
):
    if not verify_password(payload.current_password, current.password_hash):
        raise ValidationError.for_field("currentPassword", "Current password is incorrect")

    current.password_hash = hash_password(payload.new_password)
    db.commit()

    logger.info("Password changed for %s", current.enrollment_id)
    return {"message": "Password updated"}


# -------------------------------------------------
# POST /api/enrollments/{id}/reset-password (SOLO ADMIN)
# -------------------------------------------------
@router.post("/{enrollment_pk}/reset-password", response_model=PasswordResetOut)
def reset_password(
    enrollment_pk: int,
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    """
    Nuova password temporanea inviata via email all'iscritto.
    La password non compare mai nella risposta né nei log.
    """
    enrollment = registrar.get_enrollment(db, enrollment_pk)

    temp_password = generate_temp_password(settings.temp_password_length)
    enrollment.password_hash = hash_password(temp_password)
    db.commit()
    db.refresh(enrollment)

    sent = False
    try:
        sent = send_password_reset_email(
            to_email=enrollment.email,
            full_name=enrollment.full_name,
            enrollment_code=enrollment.enrollment_id,
            temp_password=temp_password,
        )
    except Exception as e:
        logger.warning("Password reset email failed for %s: %s", enrollment.enrollment_id, str(e))

    logger.info("Password reset for %s by %s (sent=%s)", enrollment.enrollment_id, admin.enrollment_id, sent)
    return PasswordResetOut(enrollment_id=enrollment.enrollment_id, password_sent=sent)
