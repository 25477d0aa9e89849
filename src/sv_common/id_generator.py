"""Snowflake-style ID generator for business IDs and human-readable references.

Row IDs (orders, pricing rules, transactions) are the raw snowflake string.
Order and transaction numbers prefix it so support staff can tell them apart:
    ORD-20261019-7123456789012345
    TXN-7123456789012346
"""

import threading
import time

from src.sv_common.datetime_utils import utc_now


class SnowflakeIdGenerator:
    """Layout (64 bits): 41 bits ms timestamp | 10 bits machine_id | 12 bits sequence."""

    _EPOCH_MS = 1_700_000_000_000
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            value = (
                ((now_ms - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(value)


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    """Unique, monotonically increasing string ID from the module-level generator."""
    return _default_generator.next_id()


def generate_reference(prefix: str) -> str:
    """Unique transaction-style reference, e.g. ``REF-7123...``."""
    return f"{prefix}-{generate_id()}"


def generate_order_number() -> str:
    return f"ORD-{utc_now():%Y%m%d}-{generate_id()}"
