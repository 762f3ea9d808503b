from fastapi import APIRouter

from app.packages import list_packages
from schemas.packages import PackageOut

router = APIRouter(prefix="/api/packages", tags=["Packages"])


@router.get("", response_model=list[PackageOut])
def get_packages():
    return list_packages()
