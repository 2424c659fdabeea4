"""
memstat.collectors.base
AUTHOR: carter-vin

Light result wrapper -> keep one failing collector from sinking the whole snapshot
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class CollectorOutcome:
    """
    Normalized collector result
    - ok: false=failure, error details in error fields
    - value: collector result object if ok=true
    """

    name: str
    ok: bool
    value: Optional[Any] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None


def run_collector(name: str, fn, *args, **kwargs) -> CollectorOutcome:
    """
    Run collector & capture failure as data
    """
    try:
        v = fn(*args, **kwargs)
        return CollectorOutcome(name=name, ok=True, value=v)
    except Exception as e:
        return CollectorOutcome(
            name=name,
            ok=False,
            value=None,
            error_type=type(e).__name__,
            error_message=str(e),
        )
