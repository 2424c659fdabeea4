"""
memstat.identity

AUTHOR: carter-vin

- instance id: 8 hex chars, generated once when the service starts
- lets observers tell restarts of the same service apart
- env override for demos and multi-instance simulation on one host

Design goals:
- Created explicitly at startup and passed to handlers (no hidden global)
- Stable for the lifetime of the running instance
"""

from __future__ import annotations

import os
import random
import re
from dataclasses import dataclass

INSTANCE_ID_ENV = "MEMSTAT_INSTANCE_ID"

INSTANCE_ID_BASE = 0x10000000
INSTANCE_ID_SPAN = 0x10000000

INSTANCE_ID_PATTERN = re.compile(r"[0-9a-f]{8}")


@dataclass(frozen=True)
class InstanceId:
    """
    Process lifetime identifier.

    source: "random" or "env"
    """

    value: str
    source: str = "random"

    def __str__(self) -> str:
        return self.value


def generate_instance_id() -> str:
    """
    Random id in [0x10000000, 0x20000000), always 8 lower-case hex chars
    """
    return f"{INSTANCE_ID_BASE + random.randrange(INSTANCE_ID_SPAN):08x}"


def is_valid_instance_id(value: str) -> bool:
    return INSTANCE_ID_PATTERN.fullmatch(value) is not None


def ensure_instance_id(value: str) -> str:
    """
    Return value unchanged, or a fresh id when it is empty
    """
    if value:
        return value
    return generate_instance_id()


def collect_instance_id() -> InstanceId:
    """
    Build the instance id for this service run.

    Precedence:
    1) MEMSTAT_INSTANCE_ID env var (must be 8 lower-case hex chars)
    2) random id
    """
    override = os.getenv(INSTANCE_ID_ENV, "").strip()
    if override:
        if not is_valid_instance_id(override):
            raise ValueError(f"{INSTANCE_ID_ENV} must match [0-9a-f]{{8}}, got {override!r}")
        return InstanceId(value=override, source="env")

    return InstanceId(value=generate_instance_id(), source="random")
