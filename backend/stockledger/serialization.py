# Overview: Small JSON helpers shared by model to_dict() methods.

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional


def id_str(value: Optional[uuid.UUID]) -> Optional[str]:
    """UUID -> canonical string; None passes through."""
    if value is None:
        return None
    return str(value)


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """Fixed-point amounts serialize as strings to avoid float drift."""
    if value is None:
        return None
    return format(Decimal(value).normalize(), "f")
