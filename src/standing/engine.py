"""StatusEngine: cached eligibility lookups, one identity or many at once.

The bulk path exists so that N cache misses cost one partner lookup and at
most one invoice lookup instead of N of each. It must agree with the
single-identity path decision for decision.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

from standing.constants import EXEMPT_CONTRACT_TYPES
from standing.decision_cache import DecisionCache
from standing.directory import DirectoryBackend
from standing.evaluator import EXEMPT, NO_CONTRACT_OR_USER, evaluate, is_exempt
from standing.records import Decision, Invoice, InvoiceSummary, Partner

logger = logging.getLogger(__name__)


class InvalidInput(ValueError):
    """Identity or identity list rejected before any remote call."""


def _check_identity(identity: Any) -> str:
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidInput(f"Identity must be a non-empty string, got {identity!r}")
    return identity


def _check_identities(identities: Any) -> list[str]:
    if isinstance(identities, (str, bytes)) or not isinstance(identities, Sequence):
        raise InvalidInput("Identities must be a list of document numbers.")
    if not identities:
        raise InvalidInput("Identities must not be empty.")
    return [_check_identity(i) for i in identities]


def _first_by_identity(partners: Sequence[Partner]) -> dict[str, Partner]:
    """Index partners by identity, keeping the first record seen for each."""
    by_identity: dict[str, Partner] = {}
    for partner in partners:
        if partner.identity in by_identity:
            logger.warning(
                "Duplicate partner records for %s (ids %d and %d); using the first.",
                partner.identity, by_identity[partner.identity].id, partner.id,
            )
            continue
        by_identity[partner.identity] = partner
    return by_identity


class StatusEngine:
    """Decides and caches whether identities are in good standing.

    Constructed once per process with the directory it reads from and the
    cache it owns. Every decision it computes is written to the cache
    before being returned.
    """

    def __init__(
        self,
        directory: DirectoryBackend,
        cache: DecisionCache | None = None,
        exempt_types: Collection[str] = EXEMPT_CONTRACT_TYPES,
    ) -> None:
        self._directory = directory
        self._cache = cache if cache is not None else DecisionCache()
        self._exempt_types = frozenset(exempt_types)

    @property
    def cache(self) -> DecisionCache:
        return self._cache

    async def status_of(
        self, identity: str, now: datetime | None = None
    ) -> Decision:
        """Decision for one identity, served from cache when fresh."""
        identity = _check_identity(identity)
        cached = self._cache.get(identity)
        if cached is not None:
            logger.debug("Serving cached decision for %s.", identity)
            return cached

        logger.info("Looking up standing for %s.", identity)
        partners = await self._directory.find_partners_by_identity([identity])
        partner = _first_by_identity(partners).get(identity)

        invoices: list[Invoice] = []
        if partner is not None and not is_exempt(partner, self._exempt_types):
            invoices = await self._directory.find_invoices_by_partner_ids([partner.id])

        decision = evaluate(partner, invoices, now, self._exempt_types)
        logger.info(
            "Access %s (%s) for %s.",
            "allowed" if decision.allowed else "denied", decision.reason.value, identity,
        )
        self._cache.set(identity, decision)
        return decision

    async def status_of_many(
        self, identities: Sequence[str], now: datetime | None = None
    ) -> dict[str, Decision]:
        """Decisions for many identities with at most two remote calls.

        Duplicate identities map to the same entry. If a remote lookup
        fails, the error propagates; decisions resolved before the failing
        call stay cached.
        """
        identities = _check_identities(identities)

        results: dict[str, Decision] = {}
        misses: list[str] = []
        seen: set[str] = set()
        for identity in identities:
            if identity in seen:
                continue
            seen.add(identity)
            cached = self._cache.get(identity)
            if cached is not None:
                results[identity] = cached
            else:
                misses.append(identity)

        if not misses:
            logger.debug("Serving all %d decisions from cache.", len(results))
            return results

        logger.info(
            "Looking up standing for %d identities (%d cached).",
            len(misses), len(results),
        )
        partners = await self._directory.find_partners_by_identity(misses)
        by_identity = _first_by_identity(partners)

        pending: dict[str, Partner] = {}
        for identity in misses:
            partner = by_identity.get(identity)
            if partner is None:
                results[identity] = NO_CONTRACT_OR_USER
                self._cache.set(identity, NO_CONTRACT_OR_USER)
            elif is_exempt(partner, self._exempt_types):
                results[identity] = EXEMPT
                self._cache.set(identity, EXEMPT)
            else:
                pending[identity] = partner

        if not pending:
            return results

        partner_ids = sorted({p.id for p in pending.values()})
        logger.info("Fetching invoices for %d partners.", len(partner_ids))
        invoices = await self._directory.find_invoices_by_partner_ids(partner_ids)

        by_partner: dict[int, list[Invoice]] = {}
        for invoice in invoices:
            by_partner.setdefault(invoice.partner_id, []).append(invoice)

        for identity, partner in pending.items():
            decision = evaluate(
                partner, by_partner.get(partner.id, []), now, self._exempt_types
            )
            results[identity] = decision
            self._cache.set(identity, decision)
        return results

    def invalidate(self, identity: str | None = None) -> dict[str, bool]:
        """Forget one identity's decision, or every decision if none is given."""
        if identity is None:
            count = self._cache.clear()
            logger.info("Cleared all %d cached decisions.", count)
            return {"invalidated": True}
        identity = _check_identity(identity)
        existed = self._cache.invalidate(identity)
        if existed:
            logger.info("Cleared cached decision for %s.", identity)
        return {"invalidated": existed}

    # -- read-through billing views (never cached) ----------------------------

    async def _partner_for(self, identity: str) -> Partner | None:
        identity = _check_identity(identity)
        partners = await self._directory.find_partners_by_identity([identity])
        return _first_by_identity(partners).get(identity)

    async def invoices_for(self, identity: str) -> list[InvoiceSummary]:
        """The identity's customer invoices; empty if the identity is unknown."""
        partner = await self._partner_for(identity)
        if partner is None:
            logger.info("No partner found for %s.", identity)
            return []
        summaries = await self._directory.find_invoice_summaries(partner.id)
        logger.info("Found %d invoices for %s.", len(summaries), identity)
        return summaries

    async def contract_type_of(self, identity: str) -> str | None:
        """The identity's special contract type, if it has one."""
        partner = await self._partner_for(identity)
        return partner.contract_type if partner is not None else None
