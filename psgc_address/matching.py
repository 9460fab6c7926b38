from __future__ import annotations
from typing import Optional, Sequence

from .models import PSGCRecord
from .utils import normalize_name


def match_record(name: str, options: Sequence[PSGCRecord], mode: str = "substring") -> Optional[PSGCRecord]:
    """Find the option a persisted name refers to.

    Tried in order over the whole list: case-insensitive name equality, code equality,
    then (``mode="substring"``) the first option whose name contains the persisted name,
    so "Calamba" finds "City of Calamba".
    """
    if mode not in ("substring", "exact"):
        raise ValueError(f"Unknown match mode: {mode}")
    wanted = normalize_name(name)
    if not wanted or not options:
        return None

    for opt in options:
        if normalize_name(opt.name) == wanted:
            return opt
    raw = name.strip()
    for opt in options:
        if opt.code == raw:
            return opt
    if mode == "substring":
        for opt in options:
            if wanted in normalize_name(opt.name):
                return opt
    return None
