from pydantic import BaseModel, EmailStr, Field

from schemas.enrollments import CamelModel, EnrollmentOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(CamelModel):
    enrollment: EnrollmentOut
    token: str
    token_type: str = "bearer"


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(min_length=8)


class PasswordResetOut(CamelModel):
    enrollment_id: str
    password_sent: bool
