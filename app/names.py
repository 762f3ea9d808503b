# app/names.py
"""
Funzioni pure su nomi ed email, senza accesso al DB.

split_sponsor_name è l'unico punto che decide come interpretare il testo libero
"sponsorName": per un matcher più rigido (es. codice sponsor esplicito) basta
sostituire questa funzione.
"""

from typing import Optional


def split_sponsor_name(sponsor_name: Optional[str]) -> Optional[tuple[str, str]]:
    """
    "Jane  van Doe" -> ("Jane", "van Doe").
    Primo token = nome, resto (unito con uno spazio) = cognome.
    Con meno di due token non si tenta il match → None.
    """
    if not sponsor_name:
        return None
    tokens = sponsor_name.split()
    if len(tokens) < 2:
        return None
    return tokens[0], " ".join(tokens[1:])


def name_key(value: Optional[str]) -> Optional[str]:
    """
    Chiave di confronto per nome/cognome: spazi compattati + casefold.
    Calcolata in Python: lower() di SQLite piega solo l'ASCII ("É" resta "É").
    """
    if value is None:
        return None
    return " ".join(value.split()).casefold()


def compute_full_name(enrollment) -> str:
    return f"{enrollment.first_name} {enrollment.last_name}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def clean_str(value: Optional[str]) -> Optional[str]:
    # trim; stringa vuota → None
    if value is None:
        return None
    value = value.strip()
    return value or None
