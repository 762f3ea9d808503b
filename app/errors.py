# app/errors.py
"""
Errori di dominio dell'anagrafica iscrizioni.

Il registrar solleva queste eccezioni; app/main.py le traduce in risposte HTTP
(422 / 409 / 404 / 403). I router continuano a usare HTTPException per auth.
"""

from typing import Optional


class EnrollmentError(Exception):
    status_code = 400

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(EnrollmentError):
    status_code = 422

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class ConflictError(EnrollmentError):
    status_code = 409


class DuplicateEmailError(ConflictError):
    def __init__(self, email: str):
        super().__init__(
            "Email already registered.",
            errors=[{"field": "email", "message": f"{email} is already registered"}],
        )
        self.email = email


class EnrollmentCodeConflictError(ConflictError):
    """Allocazione codice PL-... fallita dopo i retry: conflitto transitorio."""

    def __init__(self, attempts: int):
        super().__init__("Could not allocate an enrollment code, please retry.")
        self.attempts = attempts


class NotFoundError(EnrollmentError):
    status_code = 404


class AuthorizationError(EnrollmentError):
    status_code = 403
