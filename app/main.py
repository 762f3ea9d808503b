from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from dotenv import load_dotenv

# ----------------------------------------------------
# 🔐 LOAD .ENV
# ----------------------------------------------------
load_dotenv(override=True)

from app.config import settings
from app.db import engine
from app.errors import EnrollmentError
from models import Base

# Routers
from routers import auth_enrollment, enrollments, packages

# ----------------------------------------------------
# 📝 LOGGING
# ----------------------------------------------------
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ----------------------------------------------------
# 🚀 FASTAPI APP
# ----------------------------------------------------
app = FastAPI(
    title="Pre-launch Enrollment Backend",
    version="1.0.0",
)

# ----------------------------------------------------
# 🌐 CORS CONFIG
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------------------------------
# 🟢 GLOBAL OPTIONS HANDLER
# ----------------------------------------------------
@app.options("/{path:path}")
async def options_handler(path: str, request: Request):
    return Response(status_code=204)


# ----------------------------------------------------
# ⚠️ ERRORI DI DOMINIO → HTTP
# ----------------------------------------------------
@app.exception_handler(EnrollmentError)
async def enrollment_error_handler(request: Request, exc: EnrollmentError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "errors": exc.errors},
    )


# ----------------------------------------------------
# 🗄️ DB INIT (SOLO DEV)
# ----------------------------------------------------
if settings.env == "dev" and settings.db_auto_create:
    Base.metadata.create_all(bind=engine)

# ----------------------------------------------------
# 🔌 ROUTERS
# ----------------------------------------------------
# auth prima: /me e /login non devono finire su /{enrollment_pk}
app.include_router(auth_enrollment.router)
app.include_router(enrollments.router)
app.include_router(packages.router)


# ----------------------------------------------------
# 🏠 BASE
# ----------------------------------------------------
@app.get("/")
def root():
    return {"message": "Pre-launch enrollment backend is running"}


@app.get("/health")
def health():
    return {"ok": True, "env": settings.env}
