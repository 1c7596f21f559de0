"""
Approvable item boundary (``approval_kernel.domain.approvable``).

Responsibility
--------------
Types that cross the boundary between the approval engine and the business
records it governs (invoices, quotations, ...):

* Inbound: ``ApprovableItem`` / ``ApprovableUser`` -- what the resolver
  needs to evaluate trigger conditions.
* Outbound: ``StatusMapper`` -- the per-item-type strategy invoked when a
  request is finalized, and ``StatusMapperRegistry`` which dispatches to it.

The engine never knows concrete item types.  Callers register one mapper
per ``approvable_type``; an unregistered type is a no-op.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and protocols.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping, Protocol
from uuid import UUID


@dataclass(frozen=True)
class ApprovableUser:
    """The user associated with an approvable item (usually its author)."""

    user_id: UUID
    role: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class ApprovableItem:
    """Inbound view of a business record subject to approval."""

    approvable_type: str
    approvable_id: str
    total_amount: Decimal | None
    currency: str | None
    user: ApprovableUser | None = None

    @property
    def ref(self) -> ApprovableRef:
        return ApprovableRef(self.approvable_type, self.approvable_id)


@dataclass(frozen=True)
class ApprovableRef:
    """Polymorphic reference (type tag + id) stored on a request."""

    approvable_type: str
    approvable_id: str


class StatusMapper(Protocol):
    """Per-item-type hook invoked when a request is finalized.

    Implementations update the approvable item's own status.  They run
    inside the caller's transaction; raising aborts the whole operation.
    """

    def on_approved(self, ref: ApprovableRef) -> None:
        ...

    def on_rejected(self, ref: ApprovableRef) -> None:
        ...


class TableStatusMapper:
    """StatusMapper driven by a ``{outcome: new_status}`` lookup table.

    Example: invoices move to ``sent`` on approval and are left untouched
    on rejection::

        TableStatusMapper({"approved": "sent"}, updater=set_invoice_status)

    ``updater(ref, new_status)`` performs the actual write.
    """

    def __init__(
        self,
        statuses: Mapping[str, str | None],
        updater: Callable[[ApprovableRef, str], None],
    ) -> None:
        self._statuses = dict(statuses)
        self._updater = updater

    def on_approved(self, ref: ApprovableRef) -> None:
        self._apply(ref, "approved")

    def on_rejected(self, ref: ApprovableRef) -> None:
        self._apply(ref, "rejected")

    def _apply(self, ref: ApprovableRef, outcome: str) -> None:
        new_status = self._statuses.get(outcome)
        if new_status:
            self._updater(ref, new_status)


class StatusMapperRegistry:
    """Registry of StatusMappers keyed by lower-cased approvable type."""

    def __init__(self, mappers: Mapping[str, StatusMapper] | None = None) -> None:
        self._mappers: dict[str, StatusMapper] = {}
        for approvable_type, mapper in (mappers or {}).items():
            self.register(approvable_type, mapper)

    @classmethod
    def from_table(
        cls,
        table: Mapping[str, Mapping[str, str | None]],
        updater: Callable[[ApprovableRef, str], None],
    ) -> StatusMapperRegistry:
        """Build a registry from ``{item_type: {approved: s1, rejected: s2}}``."""
        return cls({
            approvable_type: TableStatusMapper(statuses, updater)
            for approvable_type, statuses in table.items()
        })

    def register(self, approvable_type: str, mapper: StatusMapper) -> None:
        self._mappers[approvable_type.lower()] = mapper

    def get(self, approvable_type: str) -> StatusMapper | None:
        return self._mappers.get(approvable_type.lower())

    def __contains__(self, approvable_type: str) -> bool:
        return approvable_type.lower() in self._mappers
