# routers/enrollments.py

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app import registrar
from app.db import get_db
from app.deps import ensure_can_access, get_current_enrollment, require_admin
from app.email_service import send_welcome_email
from models.enrollments import Enrollment, EnrollmentRole, EnrollmentStatus, PackageName
from schemas.enrollments import (
    EnrollmentCreate,
    EnrollmentCreatedOut,
    EnrollmentOut,
    EnrollmentUpdate,
    StatusUpdate,
    TeamVolumeUpdate,
)

router = APIRouter(prefix="/api/enrollments", tags=["Enrollments"])

logger = logging.getLogger(__name__)


def deliver_temp_password(enrollment: Enrollment, temp_password: Optional[str]) -> bool:
    """
    Email con la password temporanea (non bloccante).
    Se l'invio fallisce l'iscrizione resta valida: l'admin può fare reset.
    """
    if not temp_password:
        return False
    try:
        return send_welcome_email(
            to_email=enrollment.email,
            full_name=enrollment.full_name,
            enrollment_code=enrollment.enrollment_id,
            package=enrollment.package.value,
            temp_password=temp_password,
        )
    except Exception as e:
        logger.warning("Welcome email failed for %s: %s", enrollment.enrollment_id, str(e))
        return False


# ---------------------------------------------------------
# 1️⃣ NUOVA ISCRIZIONE (PUBBLICA)
# ---------------------------------------------------------
@router.post("", response_model=EnrollmentCreatedOut, status_code=status.HTTP_201_CREATED)
def create_enrollment(payload: EnrollmentCreate, db: Session = Depends(get_db)):
    """
    Crea l'iscrizione e restituisce record + token.
    La password temporanea NON è nella risposta: parte via email.
    """
    created = registrar.create_enrollment(db, payload.model_dump())
    sent = deliver_temp_password(created.enrollment, created.temp_password)

    return EnrollmentCreatedOut(
        enrollment=EnrollmentOut.model_validate(created.enrollment),
        token=created.token,
        password_sent=sent,
    )


# ---------------------------------------------------------
# 2️⃣ LISTA ISCRIZIONI (SOLO ADMIN) + filtri
# ---------------------------------------------------------
@router.get("", response_model=List[EnrollmentOut])
def list_enrollments(
    status_filter: Optional[EnrollmentStatus] = Query(default=None, alias="status"),
    package: Optional[PackageName] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Cerca per nome, email o codice PL-..."),
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    query = db.query(Enrollment).order_by(Enrollment.created_at.desc(), Enrollment.id.desc())

    if status_filter is not None:
        query = query.filter(Enrollment.status == status_filter)
    if package is not None:
        query = query.filter(Enrollment.package == package)

    term = (q or "").strip().lower()
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(
                func.lower(Enrollment.first_name).like(like),
                func.lower(Enrollment.last_name).like(like),
                func.lower(Enrollment.email).like(like),
                func.lower(Enrollment.enrollment_id).like(like),
            )
        )

    return query.all()


# ---------------------------------------------------------
# 3️⃣ LOOKUP PER CODICE PL-... (SOLO ADMIN)
# ---------------------------------------------------------
@router.get("/code/{code}", response_model=EnrollmentOut)
def get_enrollment_by_code(
    code: str,
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    return registrar.get_enrollment_by_code(db, code)


# ---------------------------------------------------------
# 4️⃣ DETTAGLIO (ADMIN O SE STESSO)
# ---------------------------------------------------------
@router.get("/{enrollment_pk}", response_model=EnrollmentOut)
def get_enrollment(
    enrollment_pk: int,
    db: Session = Depends(get_db),
    current: Enrollment = Depends(get_current_enrollment),
):
    ensure_can_access(current, enrollment_pk)
    return registrar.get_enrollment(db, enrollment_pk)


# ---------------------------------------------------------
# 5️⃣ MODIFICA (ADMIN O SE STESSO)
# ---------------------------------------------------------
@router.put("/{enrollment_pk}", response_model=EnrollmentOut)
def update_enrollment(
    enrollment_pk: int,
    payload: EnrollmentUpdate,
    db: Session = Depends(get_db),
    current: Enrollment = Depends(get_current_enrollment),
):
    ensure_can_access(current, enrollment_pk)
    enrollment = registrar.get_enrollment(db, enrollment_pk)

    return registrar.update_enrollment(
        db,
        enrollment,
        payload.model_dump(exclude_unset=True),
        is_admin=current.role == EnrollmentRole.ADMIN,
    )


# ---------------------------------------------------------
# 6️⃣ CAMBIO STATO (SOLO ADMIN) — qualsiasi transizione
# ---------------------------------------------------------
@router.patch("/{enrollment_pk}/status", response_model=EnrollmentOut)
def update_enrollment_status(
    enrollment_pk: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    enrollment = registrar.get_enrollment(db, enrollment_pk)
    return registrar.set_status(db, enrollment, payload.status)


# ---------------------------------------------------------
# 7️⃣ TEAM VOLUME (SOLO ADMIN) → ricalcolo sales volume
# ---------------------------------------------------------
@router.patch("/{enrollment_pk}/team-volume", response_model=EnrollmentOut)
def update_team_volume(
    enrollment_pk: int,
    payload: TeamVolumeUpdate,
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    enrollment = registrar.get_enrollment(db, enrollment_pk)
    return registrar.update_team_volume(db, enrollment.enrollment_id, payload.team_volume)


# ---------------------------------------------------------
# 8️⃣ DOWNLINE DIRETTA (ADMIN O SE STESSO)
# ---------------------------------------------------------
@router.get("/{enrollment_pk}/downline", response_model=List[EnrollmentOut])
def get_downline(
    enrollment_pk: int,
    db: Session = Depends(get_db),
    current: Enrollment = Depends(get_current_enrollment),
):
    ensure_can_access(current, enrollment_pk)
    enrollment = registrar.get_enrollment(db, enrollment_pk)

    return (
        db.query(Enrollment)
        .filter(Enrollment.sponsor_id == enrollment.enrollment_id)
        .order_by(Enrollment.created_at.asc(), Enrollment.id.asc())
        .all()
    )


# ---------------------------------------------------------
# 9️⃣ DELETE (SOLO ADMIN) — definitivo, niente soft delete
# ---------------------------------------------------------
@router.delete("/{enrollment_pk}")
def delete_enrollment(
    enrollment_pk: int,
    db: Session = Depends(get_db),
    admin: Enrollment = Depends(require_admin),
):
    """
    Elimina definitivamente l'iscrizione.
    ⚠️ Gli sponsorId che puntano al suo codice restano (nessuna FK).
    """
    enrollment = registrar.get_enrollment(db, enrollment_pk)
    code = enrollment.enrollment_id

    db.delete(enrollment)
    db.commit()

    logger.info("Enrollment %s deleted by %s", code, admin.enrollment_id)
    return {"message": "Enrollment deleted"}
