from sqlalchemy.orm import declarative_base

Base = declarative_base()

# --------------------------------------------------
# Iscrizioni (pre-launch) + contatori codici PL-<n>
# --------------------------------------------------
from .enrollments import Enrollment  # noqa: F401
from .sequences import EnrollmentSequence  # noqa: F401
