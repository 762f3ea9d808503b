# app/packages.py

from decimal import Decimal

from models.enrollments import PackageName

# -----------------------------
# PACKAGE → FAST START BONUS / PERSONAL VOLUME
# -----------------------------
PACKAGE_DEFAULTS: dict[PackageName, tuple[int, int]] = {
    PackageName.ENTRY: (50, 100),
    PackageName.ELITE: (100, 200),
    PackageName.PRO: (200, 400),
}

# Catalogo mostrato nel form di iscrizione (prezzi in USD)
PACKAGE_CATALOG: list[dict] = [
    {
        "name": PackageName.ENTRY,
        "price": Decimal("175"),
        "description": "Perfect for getting started",
        "features": [
            "Basic business tools",
            "Essential training materials",
        ],
    },
    {
        "name": PackageName.ELITE,
        "price": Decimal("350"),
        "description": "Enhanced package for serious entrepreneurs",
        "features": [
            "Advanced business tools",
            "Premium training materials",
            "Priority support",
        ],
    },
    {
        "name": PackageName.PRO,
        "price": Decimal("700"),
        "description": "Complete package for professional success",
        "features": [
            "Full suite of business tools",
            "VIP training materials",
            "24/7 priority support",
            "Exclusive marketing resources",
        ],
    },
]


def package_defaults(package: PackageName) -> tuple[int, int]:
    """(fast_start_bonus, personal_volume) per il pacchetto scelto."""
    return PACKAGE_DEFAULTS[PackageName(package)]


def list_packages() -> list[dict]:
    items = []
    for entry in PACKAGE_CATALOG:
        bonus, volume = PACKAGE_DEFAULTS[entry["name"]]
        items.append(
            {
                **entry,
                "fast_start_bonus": bonus,
                "personal_volume": volume,
            }
        )
    return items
