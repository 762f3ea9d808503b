from pydantic import BaseModel
from decimal import Decimal

from models.enrollments import PackageName


class PackageOut(BaseModel):
    name: PackageName
    price: Decimal
    description: str
    features: list[str]
    fast_start_bonus: int
    personal_volume: int
