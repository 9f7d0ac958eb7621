"""In-process write queue for the energy ledger.

Appends and bulk imports for the same company inside one process wait
their turn here. Serialization through commit and across worker
processes comes from the company row lock taken by
CompanyRepository.get_for_update. Different companies get different
locks and never wait on each other.
"""
from __future__ import annotations

import asyncio
import uuid


class CompanyLockRegistry:
    """Lazily created asyncio.Lock per company id."""

    def __init__(self) -> None:
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}

    def for_company(self, company_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(company_id)
        if lock is None:
            lock = self._locks.setdefault(company_id, asyncio.Lock())
        return lock

    def discard(self, company_id: uuid.UUID) -> None:
        """Forget a company's lock (after the company is deleted)."""
        lock = self._locks.get(company_id)
        if lock is not None and not lock.locked():
            del self._locks[company_id]


ledger_write_locks = CompanyLockRegistry()
