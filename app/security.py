from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from app.config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def create_enrollment_token(enrollment) -> str:
    """
    Token bearer legato all'iscrizione: sub = id interno (non il codice PL-...).
    Il ruolo nel token è solo informativo, i permessi si rileggono sempre dal DB.
    """
    return create_access_token({"sub": str(enrollment.id), "role": enrollment.role.value})


def decode_access_token(token: str) -> Optional[str]:
    """
    Ritorna l'id dell'iscrizione (sub) se il token è valido, altrimenti None.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        sub = payload.get("sub")
        if sub is None:
            return None
        return str(sub)
    except JWTError:
        return None
