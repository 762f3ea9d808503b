# app/bootstrap_admin.py
"""
Crea (o promuove) un'iscrizione admin.

Usage:
    python -m app.bootstrap_admin --email admin@example.com \
        --first-name Admin --last-name User [--password ...] [--package "Pro Pack"]

Senza --password viene generata una password temporanea e inviata via email
(EMAIL_ENABLED=1). La password non viene mai stampata.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv(override=True)

from app import registrar  # noqa: E402
from app.db import SessionLocal  # noqa: E402
from app.email_service import send_welcome_email  # noqa: E402
from app.errors import EnrollmentError  # noqa: E402
from app.names import normalize_email  # noqa: E402
from app.passwords import hash_password  # noqa: E402
from models.enrollments import Enrollment, EnrollmentRole, PackageName  # noqa: E402

logger = logging.getLogger("bootstrap_admin")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an admin enrollment")
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument("--sponsor-name", default="Company")
    parser.add_argument(
        "--package",
        default=PackageName.PRO.value,
        choices=[p.value for p in PackageName],
    )
    parser.add_argument("--password", default=None)
    return parser.parse_args(argv)


def bootstrap_admin(db, args: argparse.Namespace) -> Enrollment:
    existing = db.query(Enrollment).filter(Enrollment.email == normalize_email(args.email)).first()
    if existing:
        if existing.role != EnrollmentRole.ADMIN:
            existing.role = EnrollmentRole.ADMIN
            logger.info("Promoted %s to admin", existing.enrollment_id)
        else:
            logger.info("%s is already admin", existing.enrollment_id)
        if args.password:
            existing.password_hash = hash_password(args.password)
            logger.info("Password updated for %s", existing.enrollment_id)
        db.commit()
        return existing

    created = registrar.create_enrollment(
        db,
        {
            "first_name": args.first_name,
            "last_name": args.last_name,
            "email": args.email,
            "sponsor_name": args.sponsor_name,
            "package": args.package,
        },
        password=args.password,
        role=EnrollmentRole.ADMIN,
    )
    enrollment = created.enrollment

    if created.temp_password:
        try:
            sent = send_welcome_email(
                to_email=enrollment.email,
                full_name=enrollment.full_name,
                enrollment_code=enrollment.enrollment_id,
                package=enrollment.package.value,
                temp_password=created.temp_password,
            )
        except Exception as e:
            logger.warning("Welcome email failed for %s: %s", enrollment.enrollment_id, str(e))
            sent = False
        if not sent:
            logger.warning(
                "Temporary password for %s was not delivered; rerun with --password or enable email",
                enrollment.enrollment_id,
            )

    logger.info("Admin enrollment created: %s", enrollment.enrollment_id)
    return enrollment


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    db = SessionLocal()
    try:
        enrollment = bootstrap_admin(db, args)
        print(enrollment.enrollment_id)
    except EnrollmentError as e:
        logger.error("Bootstrap failed: %s %s", e.message, e.errors)
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
