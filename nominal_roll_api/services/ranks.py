"""Standard rank list and normalisation of the free-text ranks found in staff records."""
from __future__ import annotations

import re

UNSPECIFIED = "Unspecified"

RANKS = (
    "Director-General",
    "Deputy Director-General",
    "Director I",
    "Director II",
    "Deputy Director",
    "Assistant Director I",
    "Assistant Director II",
    "Principal Superintendent",
    "Senior Superintendent I",
    "Senior Superintendent II",
    "Superintendent I",
    "Superintendent II",
    "Teacher",
    "Chief Administrative Officer",
    "Deputy Chief Administrative Officer",
    "Principal Administrative Officer",
    "Senior Administrative Officer",
    "Administrative Officer",
    "Assistant Administrative Officer",
    "Senior Administrative Assistant",
    "Administrative Assistant",
    "Junior Administrative Assistant",
    "Chief Accountant",
    "Deputy Chief Accountant",
    "Principal Accountant",
    "Senior Accountant",
    "Accountant",
    "Assistant Accountant",
    "Senior Accounts Assistant",
    "Accounts Assistant",
    "Junior Accounts Assistant",
    "Chief Internal Auditor",
    "Deputy Chief Internal Auditor",
    "Principal Internal Auditor",
    "Senior Internal Auditor",
    "Internal Auditor",
    "Assistant Internal Auditor",
    "Senior Audit Assistant",
    "Audit Assistant",
    "Junior Audit Assistant",
    "Chief Domestic Bursar",
    "Deputy Chief Domestic Bursar",
    "Principal Domestic Bursar",
    "Senior Domestic Bursar",
    "Domestic Bursar",
    "Assistant Domestic Bursar",
    "Senior Matron",
    "Matron",
    "Chief Cook",
    "Cook",
    "Assistant Cook",
    "Head Steward",
    "Steward",
    "Head Laundry Man",
    "Laundry Man",
    "Head Pantry Hand",
    "Pantry Hand",
    "Senior House Mother",
    "House Mother",
    "Chief Librarian",
    "Deputy Chief Librarian",
    "Principal Librarian",
    "Senior Librarian",
    "Librarian",
    "Assistant Librarian",
    "Senior Library Assistant",
    "Library Assistant",
    "Junior Library Assistant",
    "Chief Laboratory Technician",
    "Deputy Chief Lab Technician",
    "Principal Lab Technician",
    "Senior Lab Technician",
    "Laboratory Technician",
    "Assistant Lab Technician",
    "Senior Lab Assistant",
    "Laboratory Assistant Grade I",
    "Laboratory Assistant Grade II",
    "Principal Private Secretary",
    "Senior Private Secretary",
    "Private Secretary",
    "Stenographer Secretary",
    "Stenographer Grade I",
    "Stenographer Grade II",
    "Principal Typist",
    "Senior Typist",
    "Typist Grade I",
    "Typist Grade II",
    "Ungraded Typist",
    "Senior Rota Print Operator",
    "Rota Print Operator",
    "Chief Technical Officer",
    "Deputy Chief Technical Officer",
    "Principal Technical Officer",
    "Senior Technical Officer",
    "Technical Officer",
    "Assistant Technical Officer",
    "Senior Technical Assistant",
    "Workshop Supervisor",
    "Foreman",
    "Junior Foreman",
    "Artisan",
    "Supervisory Tradesman",
    "Tradesman Grade I",
    "Tradesman Grade II",
    "Chief Supply Officer",
    "Deputy Chief Supply Officer",
    "Principal Supply Officer",
    "Senior Supply Officer",
    "Supply Officer",
    "Principal Storekeeper",
    "Senior Storekeeper",
    "Storekeeper",
    "Assistant Storekeeper",
    "Store Assistant",
    "Chief Security Officer",
    "Deputy Chief Security Officer",
    "Principal Security Officer",
    "Senior Security Officer",
    "Security Officer",
    "Assistant Security Officer",
    "Head Porter",
    "Principal Porter",
    "Senior Porter",
    "Porter",
    "Assistant Porter",
    "Junior Porter",
    "Supervising Caretaker",
    "Senior Caretaker",
    "Caretaker",
    "Head Watchman/Gateman",
    "Senior Watchman/Gateman",
    "Night Watchman/Gateman",
    "Day Watchman/Gateman",
)

_STANDARD = frozenset(RANKS)
_ROMAN = {"i": "1", "ii": "2"}


def _variations() -> dict[str, str]:
    """lowercase variant -> standard rank; grade numerals may be written as digits."""
    out = {}
    for rank in RANKS:
        low = rank.lower()
        out[low] = rank
        m = re.match(r"^(.*) (i|ii)$", low)
        if m:
            out[f"{m.group(1)} {_ROMAN[m.group(2)]}"] = rank
    return out


RANK_VARIATIONS = _variations()


def standardize_rank(rank: str | None) -> str:
    """Map a stored rank onto the standard list; unknown values come back trimmed."""
    if not rank or not isinstance(rank, str) or not rank.strip():
        return UNSPECIFIED
    rank = rank.strip()
    if rank in _STANDARD:
        return rank
    return RANK_VARIATIONS.get(re.sub(r"\s+", " ", rank.lower()), rank)


def is_standard_rank(rank: str | None) -> bool:
    """Exact membership, used to flag records that need cleaning."""
    return bool(rank) and rank.strip() in _STANDARD
