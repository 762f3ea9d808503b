# app/registrar.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    DuplicateEmailError,
    EnrollmentCodeConflictError,
    NotFoundError,
    ValidationError,
)
from app.names import clean_str, compute_full_name, name_key, normalize_email, split_sponsor_name
from app.packages import package_defaults
from app.passwords import generate_temp_password, hash_password
from app.security import create_enrollment_token
from models.enrollments import (
    MAX_VOLUME,
    Enrollment,
    EnrollmentRole,
    EnrollmentStatus,
    PackageName,
    PaymentMethod,
)
from models.sequences import ENROLLMENT_CODE_SEQUENCE, EnrollmentSequence

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "email", "sponsor_name", "package")
CONTACT_FIELDS = ("phone", "address", "city", "state", "zip_code", "country")

# campi modificabili dall'utente sul proprio profilo
SELF_SERVICE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    *CONTACT_FIELDS,
    "sponsor_name",
    "package",
    "payment_method",
)
ADMIN_ONLY_FIELDS = ("status", "role", "sponsor_id")

__all__ = [
    "EnrollmentCreated",
    "compute_full_name",
    "create_enrollment",
    "format_code",
    "parse_code",
    "resolve_sponsor",
    "update_team_volume",
    "update_enrollment",
    "set_status",
]


@dataclass
class EnrollmentCreated:
    enrollment: Enrollment
    token: str
    # solo per la consegna out-of-band (email), mai nella risposta HTTP
    temp_password: Optional[str] = None


# -----------------------------
# CODICI PL-<n>
# -----------------------------
def format_code(number: int) -> str:
    return f"{settings.enrollment_code_prefix}-{number}"


def parse_code(code: Optional[str]) -> Optional[int]:
    """'PL-1042' -> 1042. Codici con prefisso diverso o malformati -> None."""
    if not code:
        return None
    prefix, sep, number = code.strip().rpartition("-")
    if not sep or prefix != settings.enrollment_code_prefix or not number.isdigit():
        return None
    return int(number)


def _max_existing_code_number(db: Session) -> Optional[int]:
    # ordinamento numerico, non lessicografico ("PL-999" < "PL-1000")
    numbers = [parse_code(c) for c in db.execute(select(Enrollment.enrollment_id)).scalars()]
    return max((n for n in numbers if n is not None), default=None)


def _next_code_number(db: Session) -> int:
    """
    Incremento atomico del contatore (UPDATE ... RETURNING): il lock di riga
    serializza le creazioni concorrenti fino al commit.
    """
    stmt = (
        update(EnrollmentSequence)
        .where(EnrollmentSequence.name == ENROLLMENT_CODE_SEQUENCE)
        .values(last_value=EnrollmentSequence.last_value + 1)
        .returning(EnrollmentSequence.last_value)
        .execution_options(synchronize_session=False)
    )
    value = db.execute(stmt).scalar_one_or_none()
    if value is not None:
        return value

    # Contatore assente (DB creato con create_all): seed dal massimo esistente.
    # Se un'altra richiesta fa il seed in parallelo → IntegrityError al flush → retry.
    highest = _max_existing_code_number(db)
    start = settings.enrollment_code_start
    value = start if highest is None else max(highest + 1, start)
    db.add(EnrollmentSequence(name=ENROLLMENT_CODE_SEQUENCE, last_value=value))
    db.flush()
    return value


def _resync_sequence(db: Session) -> None:
    """Porta il contatore almeno al codice più alto presente (es. dati importati)."""
    highest = _max_existing_code_number(db)
    if highest is None:
        return
    db.execute(
        update(EnrollmentSequence)
        .where(
            EnrollmentSequence.name == ENROLLMENT_CODE_SEQUENCE,
            EnrollmentSequence.last_value < highest,
        )
        .values(last_value=highest)
        .execution_options(synchronize_session=False)
    )
    db.commit()


# -----------------------------
# VALIDAZIONE
# -----------------------------
def _check_length(field: str, value: Optional[str], errors: list[dict]) -> None:
    # limite = lunghezza della colonna String(n)
    max_length = Enrollment.__table__.c[field].type.length
    if isinstance(value, str) and max_length is not None and len(value) > max_length:
        errors.append({"field": field, "message": f"Must be at most {max_length} characters"})


def _clean_email(value: Any, errors: list[dict]) -> Optional[str]:
    email = clean_str(value) if value is not None else None
    if not email:
        errors.append({"field": "email", "message": "Field required"})
        return None
    try:
        email = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        errors.append({"field": "email", "message": str(e)})
        return None
    email = normalize_email(email)
    _check_length("email", email, errors)
    return email


def _clean_enum(enum_cls, field: str, value: Any, errors: list[dict]):
    if value is None:
        return None
    try:
        return enum_cls(value.strip() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        errors.append({"field": field, "message": f"Must be one of: {allowed}"})
        return None


def validate_enrollment_fields(data: dict[str, Any]) -> dict[str, Any]:
    """
    Controlla e normalizza i campi di creazione. Nessun accesso al DB.
    Solleva ValidationError con il dettaglio per campo.
    """
    errors: list[dict] = []
    cleaned: dict[str, Any] = {}

    for field in ("first_name", "last_name", "sponsor_name"):
        value = data.get(field)
        value = clean_str(value) if isinstance(value, str) else value
        if not value:
            errors.append({"field": field, "message": "Field required"})
        else:
            _check_length(field, value, errors)
        cleaned[field] = value

    cleaned["email"] = _clean_email(data.get("email"), errors)

    if data.get("package") in (None, ""):
        errors.append({"field": "package", "message": "Field required"})
        cleaned["package"] = None
    else:
        cleaned["package"] = _clean_enum(PackageName, "package", data["package"], errors)

    cleaned["payment_method"] = _clean_enum(
        PaymentMethod, "payment_method", clean_str(data.get("payment_method")), errors
    )

    for field in CONTACT_FIELDS:
        cleaned[field] = clean_str(data.get(field))
        _check_length(field, cleaned[field], errors)

    if errors:
        raise ValidationError("Invalid enrollment data.", errors=errors)
    return cleaned


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Enrollment.id).filter(Enrollment.email == email)
    if exclude_id is not None:
        q = q.filter(Enrollment.id != exclude_id)
    return q.first() is not None


# -----------------------------
# SPONSOR
# -----------------------------
def resolve_sponsor(db: Session, sponsor_name: Optional[str]) -> Optional[str]:
    """
    Cerca lo sponsor per nome e cognome (case-insensitive, match esatto).
    Ritorna il codice PL-... solo se il match è unico; altrimenti None.
    Non solleva mai: un mancato match non blocca l'iscrizione.
    """
    parts = split_sponsor_name(sponsor_name)
    if parts is None:
        logger.info("Sponsor not resolved (single token): %r", sponsor_name)
        return None

    first, last = parts
    matches = (
        db.execute(
            select(Enrollment.enrollment_id)
            .where(
                Enrollment.first_name_key == name_key(first),
                Enrollment.last_name_key == name_key(last),
            )
            .limit(2)
        )
        .scalars()
        .all()
    )

    if len(matches) == 1:
        logger.info("Found sponsor %s for %r", matches[0], sponsor_name)
        return matches[0]

    if matches:
        logger.info("Sponsor not resolved (ambiguous name): %r", sponsor_name)
    else:
        logger.info("No sponsor found for %r", sponsor_name)
    return None


# -----------------------------
# CREAZIONE
# -----------------------------
def _build_enrollment(
    db: Session,
    fields: dict[str, Any],
    code: str,
    password_hash: str,
    role: EnrollmentRole,
) -> Enrollment:
    bonus, volume = package_defaults(fields["package"])
    sponsor_id = resolve_sponsor(db, fields["sponsor_name"])

    return Enrollment(
        enrollment_id=code,
        first_name=fields["first_name"],
        last_name=fields["last_name"],
        email=fields["email"],
        **{f: fields[f] for f in CONTACT_FIELDS},
        sponsor_name=fields["sponsor_name"],
        sponsor_id=sponsor_id,
        package=fields["package"],
        payment_method=fields["payment_method"],
        fast_start_bonus=bonus,
        personal_volume=volume,
        team_volume=0,
        sales_volume=volume,
        status=EnrollmentStatus.PENDING,
        role=role,
        password_hash=password_hash,
    )


def create_enrollment(
    db: Session,
    data: dict[str, Any],
    *,
    password: Optional[str] = None,
    role: EnrollmentRole = EnrollmentRole.USER,
) -> EnrollmentCreated:
    """
    Crea un'iscrizione completa (tutto o niente):
    validazione → codice PL-<n> → default pacchetto → sponsor → commit.

    Se `password` non è passata viene generata una password temporanea,
    restituita in EnrollmentCreated.temp_password per l'invio via email.
    """
    fields = validate_enrollment_fields(data)
    email = fields["email"]

    if _email_taken(db, email):
        logger.info("Enrollment rejected, email already registered: %s", email)
        raise DuplicateEmailError(email)

    temp_password = None
    if password is None:
        temp_password = generate_temp_password(settings.temp_password_length)
    # bcrypt fuori dalla transazione: il lock sul contatore dura il meno possibile
    password_hash = hash_password(password or temp_password)

    attempts = max(1, settings.enrollment_code_max_retries)
    for attempt in range(1, attempts + 1):
        try:
            code = format_code(_next_code_number(db))
            enrollment = _build_enrollment(db, fields, code, password_hash, role)
            db.add(enrollment)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _email_taken(db, email):
                logger.info("Enrollment rejected, email already registered: %s", email)
                raise DuplicateEmailError(email) from exc
            logger.warning(
                "Enrollment code conflict (attempt %s/%s): %s", attempt, attempts, exc.orig
            )
            _resync_sequence(db)
            continue
        except Exception:
            db.rollback()
            raise

        db.refresh(enrollment)
        logger.info(
            "Enrollment created %s (%s) package=%s sponsor_id=%s",
            enrollment.enrollment_id,
            enrollment.email,
            enrollment.package.value,
            enrollment.sponsor_id,
        )
        return EnrollmentCreated(
            enrollment=enrollment,
            token=create_enrollment_token(enrollment),
            temp_password=temp_password,
        )

    raise EnrollmentCodeConflictError(attempts)


# -----------------------------
# LETTURA
# -----------------------------
def get_enrollment(db: Session, enrollment_pk: int) -> Enrollment:
    enrollment = db.get(Enrollment, enrollment_pk)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    return enrollment


def get_enrollment_by_code(db: Session, code: str) -> Enrollment:
    enrollment = db.query(Enrollment).filter(Enrollment.enrollment_id == code.strip().upper()).first()
    if enrollment is None:
        raise NotFoundError(f"Enrollment {code} not found")
    return enrollment


# -----------------------------
# VOLUMI
# -----------------------------
def update_team_volume(db: Session, enrollment_code: str, new_team_volume: float) -> Enrollment:
    """
    team_volume = nuovo valore, sales_volume = personal_volume + team_volume
    in un solo UPDATE (calcolato dal DB sul valore corrente di personal_volume).
    """
    if isinstance(new_team_volume, bool) or not isinstance(new_team_volume, (int, float)):
        raise ValidationError.for_field("teamVolume", "Must be a number")
    try:
        # int enormi (10**400) → OverflowError
        new_team_volume = float(new_team_volume)
    except OverflowError:
        raise ValidationError.for_field("teamVolume", "Must be a finite number") from None
    if not math.isfinite(new_team_volume):
        raise ValidationError.for_field("teamVolume", "Must be a finite number")
    if abs(new_team_volume) > MAX_VOLUME:
        raise ValidationError.for_field("teamVolume", f"Must be at most {MAX_VOLUME}")

    enrollment = get_enrollment_by_code(db, enrollment_code)

    # anche sales_volume deve stare in Numeric(12, 2)
    if abs(enrollment.personal_volume + new_team_volume) > MAX_VOLUME:
        raise ValidationError.for_field("teamVolume", "Resulting sales volume is too large")

    db.execute(
        update(Enrollment)
        .where(Enrollment.id == enrollment.id)
        .values(
            team_volume=new_team_volume,
            sales_volume=Enrollment.personal_volume + new_team_volume,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(enrollment)

    logger.info(
        "Team volume updated %s team=%s sales=%s",
        enrollment.enrollment_id,
        enrollment.team_volume,
        enrollment.sales_volume,
    )
    return enrollment


# -----------------------------
# MODIFICHE PROFILO / ADMIN
# -----------------------------
def set_status(db: Session, enrollment: Enrollment, status: EnrollmentStatus | str) -> Enrollment:
    # nessun grafo di transizioni: qualsiasi stato è ammesso
    errors: list[dict] = []
    new_status = _clean_enum(EnrollmentStatus, "status", status, errors)
    if errors or new_status is None:
        raise ValidationError("Invalid status.", errors=errors or [{"field": "status", "message": "Field required"}])

    old_status = enrollment.status
    enrollment.status = new_status
    db.commit()
    db.refresh(enrollment)
    logger.info(
        "Status changed %s: %s -> %s",
        enrollment.enrollment_id,
        old_status.value if old_status else None,
        new_status.value,
    )
    return enrollment


def update_enrollment(
    db: Session,
    enrollment: Enrollment,
    changes: dict[str, Any],
    *,
    is_admin: bool,
) -> Enrollment:
    """
    Aggiornamento parziale. Gli utenti non admin non possono toccare
    status/role/sponsor_id (ignorati in silenzio, come il vecchio backend).
    Codice, volumi e bonus non passano mai da qui.
    """
    allowed = SELF_SERVICE_FIELDS + (ADMIN_ONLY_FIELDS if is_admin else ())
    changes = {k: v for k, v in changes.items() if k in allowed}

    errors: list[dict] = []

    for field in ("first_name", "last_name", "sponsor_name"):
        if field in changes:
            value = clean_str(changes[field])
            if not value:
                errors.append({"field": field, "message": "Field required"})
            else:
                _check_length(field, value, errors)
            changes[field] = value

    if "email" in changes:
        changes["email"] = _clean_email(changes["email"], errors)

    for field in CONTACT_FIELDS:
        if field in changes:
            changes[field] = clean_str(changes[field])
            _check_length(field, changes[field], errors)

    if "package" in changes:
        changes["package"] = _clean_enum(PackageName, "package", changes["package"], errors)
        if changes["package"] is None and not any(e["field"] == "package" for e in errors):
            errors.append({"field": "package", "message": "Field required"})
    if "payment_method" in changes:
        changes["payment_method"] = _clean_enum(
            PaymentMethod, "payment_method", clean_str(changes["payment_method"]), errors
        )
    if "status" in changes:
        changes["status"] = _clean_enum(EnrollmentStatus, "status", changes["status"], errors)
    if "role" in changes:
        changes["role"] = _clean_enum(EnrollmentRole, "role", changes["role"], errors)

    if "sponsor_id" in changes:
        sponsor_id = clean_str(changes["sponsor_id"])
        if sponsor_id is not None:
            sponsor_id = sponsor_id.upper()
            if sponsor_id == enrollment.enrollment_id:
                errors.append({"field": "sponsor_id", "message": "An enrollment cannot sponsor itself"})
            elif db.query(Enrollment.id).filter(Enrollment.enrollment_id == sponsor_id).first() is None:
                errors.append({"field": "sponsor_id", "message": f"{sponsor_id} does not exist"})
        changes["sponsor_id"] = sponsor_id

    if errors:
        raise ValidationError("Invalid enrollment data.", errors=errors)

    # status/role a None = campo non valorizzato → ignorato
    for field in ("status", "role", "package"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    if changes.get("email") and _email_taken(db, changes["email"], exclude_id=enrollment.id):
        raise DuplicateEmailError(changes["email"])

    # nuovo nome sponsor senza codice esplicito → nuova risoluzione
    if (
        "sponsor_name" in changes
        and "sponsor_id" not in changes
        and changes["sponsor_name"] != enrollment.sponsor_name
    ):
        sponsor_id = resolve_sponsor(db, changes["sponsor_name"])
        changes["sponsor_id"] = sponsor_id if sponsor_id != enrollment.enrollment_id else None

    for field, value in changes.items():
        setattr(enrollment, field, value)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmailError(changes.get("email") or enrollment.email) from exc

    db.refresh(enrollment)
    logger.info("Enrollment updated %s fields=%s", enrollment.enrollment_id, sorted(changes))
    return enrollment
