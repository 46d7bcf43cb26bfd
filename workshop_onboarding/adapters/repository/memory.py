"""
In-memory repository adapters - Implement OwnerRepository and StaffRepository.

Used for local development without PostgreSQL and by the state machine
tests. Semantics match the PostgreSQL adapters: a contact is unique among
accounts that do not release it, and `save` is an optimistic write keyed
on the account version.
"""

import threading
from copy import deepcopy
from typing import Generic, TypeVar

from workshop_onboarding.domain.models import OwnerAccount, StaffAccount
from workshop_onboarding.domain.ports import OwnerStatus, StaffStatus

A = TypeVar("A", OwnerAccount, StaffAccount)


class _InMemoryAccounts(Generic[A]):
    def __init__(self) -> None:
        self._rows: dict[int, A] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def add(self, account: A) -> A | None:
        with self._lock:
            for contact in (account.email, account.phone_number):
                if self._live_holder(contact) is not None:
                    return None
            stored = deepcopy(account)
            stored.id = self._next_id
            stored.version = 1
            self._next_id += 1
            self._rows[stored.id] = stored
            return deepcopy(stored)

    def get(self, account_id: int) -> A | None:
        with self._lock:
            row = self._rows.get(account_id)
            return deepcopy(row) if row is not None else None

    def find_by_contact(self, identifier: str) -> A | None:
        with self._lock:
            matches = [
                row
                for row in self._rows.values()
                if identifier and identifier in (row.email, row.phone_number)
            ]
            if not matches:
                return None
            # Live holder first, then the most recent released one
            matches.sort(key=lambda row: (not row.status.releases_contact, row.id), reverse=True)
            return deepcopy(matches[0])

    def save(self, account: A) -> bool:
        with self._lock:
            current = self._rows.get(account.id)
            if current is None or current.version != account.version:
                return False
            account.version += 1
            self._rows[account.id] = deepcopy(account)
            return True

    def _live_holder(self, contact: str) -> A | None:
        if not contact:
            return None
        for row in self._rows.values():
            if contact in (row.email, row.phone_number) and not row.status.releases_contact:
                return row
        return None


class InMemoryOwnerRepository(_InMemoryAccounts[OwnerAccount]):
    """Implements OwnerRepository protocol."""

    def list_by_status(self, status: OwnerStatus) -> list[OwnerAccount]:
        with self._lock:
            return [deepcopy(row) for row in self._rows.values() if row.status is status]

    def list_active_workshops(self, city: str | None = None) -> list[OwnerAccount]:
        wanted = city.strip().casefold() if city is not None else None
        with self._lock:
            return [
                deepcopy(row)
                for row in self._rows.values()
                if row.status is OwnerStatus.ACTIVE
                and (wanted is None or row.city.strip().casefold() == wanted)
            ]


class InMemoryStaffRepository(_InMemoryAccounts[StaffAccount]):
    """Implements StaffRepository protocol."""

    def list_by_owner(
        self, workshop_owner_id: int, status: StaffStatus | None = None
    ) -> list[StaffAccount]:
        with self._lock:
            return [
                deepcopy(row)
                for row in self._rows.values()
                if row.workshop_owner_id == workshop_owner_id
                and (status is None or row.status is status)
            ]
