# app/deps.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import AuthorizationError
from app.security import decode_access_token
from models.enrollments import Enrollment, EnrollmentRole

# Estrae il token dall'header Authorization: Bearer <token>
# auto_error=False: header mancante → 401 nostro, non il 403 di default
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_enrollment(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Enrollment:
    """
    Restituisce l'iscrizione corrente partendo dal token JWT.
    'sub' deve essere l'id numerico dell'iscrizione; altrimenti → 401.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please authenticate.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    enrollment_pk = decode_access_token(credentials.credentials)

    if enrollment_pk is None or not enrollment_pk.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please authenticate.",
        )

    enrollment = db.get(Enrollment, int(enrollment_pk))
    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please authenticate.",
        )

    return enrollment


def require_admin(current: Enrollment = Depends(get_current_enrollment)) -> Enrollment:
    # il ruolo si legge dal DB, non dal claim del token
    if current.role != EnrollmentRole.ADMIN:
        raise AuthorizationError("Access denied. Admin privileges required.")
    return current


def ensure_can_access(current: Enrollment, enrollment_pk: int) -> None:
    """Admin oppure la propria iscrizione."""
    if current.role == EnrollmentRole.ADMIN or current.id == enrollment_pk:
        return
    raise AuthorizationError("Access denied. You can only access your own enrollment.")
