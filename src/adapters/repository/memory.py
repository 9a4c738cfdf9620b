"""
In-memory repository adapter - Implements RegistrarRepository protocol.

Keeps domains, custody records and registrar state in dictionaries.
atomic() snapshots all three on entry to the outermost unit and restores
them if the unit raises. Records are copied on the way in and out so
callers never alias stored state.
"""

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from src.domain.ports import CustodyRecord, Domain, RegistrarState


class InMemoryRegistrarRepository:
    """
    Implements RegistrarRepository protocol with plain dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._domains: dict[bytes, Domain] = {}
        self._custody: dict[bytes, CustodyRecord] = {}
        self._state = RegistrarState()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy((self._domains, self._custody, self._state))
            self._depth = 1
            try:
                yield
            except BaseException:
                self._domains, self._custody, self._state = snapshot
                raise
            finally:
                self._depth = 0

    def get_domain(self, label: bytes) -> Domain:
        return copy.copy(self._domains.get(label, Domain()))

    def save_domain(self, label: bytes, domain: Domain) -> None:
        self._domains[label] = copy.copy(domain)

    def get_custody(self, label: bytes) -> CustodyRecord:
        return copy.copy(self._custody.get(label, CustodyRecord()))

    def save_custody(self, label: bytes, record: CustodyRecord) -> None:
        self._custody[label] = copy.copy(record)

    def get_state(self) -> RegistrarState:
        return copy.copy(self._state)

    def save_state(self, state: RegistrarState) -> None:
        self._state = copy.copy(state)
