"""Abstract interface to the directory of partners and invoices.

Defines the DirectoryBackend Protocol that StatusEngine depends on.
``OdooClient`` is the production implementation.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Protocol, runtime_checkable

from standing.records import Invoice, InvoiceSummary, Partner


@runtime_checkable
class DirectoryBackend(Protocol):
    """Async source of partner and invoice records.

    Implementations raise ``RemoteCallError`` subclasses on failure.
    """

    async def find_partners_by_identity(
        self, identities: Collection[str], fields: Sequence[str] | None = None
    ) -> list[Partner]: ...

    async def find_invoices_by_partner_ids(
        self, partner_ids: Collection[int], fields: Sequence[str] | None = None
    ) -> list[Invoice]: ...

    async def find_invoice_summaries(self, partner_id: int) -> list[InvoiceSummary]: ...
