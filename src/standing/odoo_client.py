"""Async JSON-RPC client for the Odoo external API."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from standing.config import StandingConfig
from standing.constants import (
    CONTRACT_TYPE_FIELD,
    CUSTOMER_INVOICE,
    INVOICE_MODEL,
    PARTNER_MODEL,
    REQUEST_TIMEOUT_SECS,
)
from standing.records import Invoice, InvoiceSummary, Partner, RecordError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class RemoteCallError(Exception):
    """Base exception for Odoo operations."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteUnavailable(RemoteCallError):
    """Network/DNS failure, timeout, or 5xx from the server."""


class RemoteAuthFailure(RemoteCallError):
    """Credentials rejected by Odoo."""


class RemoteDataError(RemoteCallError):
    """Response or record did not have the expected shape."""


# ---------------------------------------------------------------------------
# Status code / fault → exception mapping
# ---------------------------------------------------------------------------

_STATUS_MAP: dict[int, type[RemoteCallError]] = {
    401: RemoteAuthFailure,
    403: RemoteAuthFailure,
}

_AUTH_FAULTS = (
    "odoo.exceptions.AccessDenied",
    "odoo.http.SessionExpiredException",
)

_PARTNER_FIELDS = ("id", "vat")
_INVOICE_FIELDS = ("partner_id", "state", "invoice_date_due", "amount_residual")
_SUMMARY_FIELDS = (
    "id",
    "name",
    "amount_total",
    "state",
    "invoice_date_due",
    "amount_residual",
    "access_url",
)
_INVOICE_ORDER = "invoice_date_due desc"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class OdooSession:
    """Credentials plus the uid Odoo granted for them.

    ``UNAUTHENTICATED → AUTHENTICATED`` on a successful ``authenticate``;
    back to ``UNAUTHENTICATED`` when a call is rejected for authentication.
    """

    db: str
    username: str
    api_key: str
    uid: int | None = None

    @property
    def state(self) -> SessionState:
        if self.uid is None:
            return SessionState.UNAUTHENTICATED
        return SessionState.AUTHENTICATED

    def establish(self, uid: int) -> None:
        self.uid = uid

    def reset(self) -> None:
        self.uid = None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OdooClient:
    """Async client for Odoo's ``/jsonrpc`` endpoint.

    Constructor accepts explicit params; use ``from_config()`` to build one
    from a StandingConfig. Authentication is lazy: the first call obtains a
    uid, which is reused until Odoo rejects it. A rejected call triggers
    exactly one re-authentication and retry.
    """

    def __init__(
        self,
        base_url: str,
        db: str,
        username: str,
        api_key: str,
        timeout: float = REQUEST_TIMEOUT_SECS,
        verify: bool = True,
        contract_type_field: str = CONTRACT_TYPE_FIELD,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = OdooSession(db=db, username=username, api_key=api_key)
        self._contract_type_field = contract_type_field
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            verify=verify,
        )

    @classmethod
    def from_config(cls, config: StandingConfig) -> OdooClient:
        if not config.has_credentials:
            raise ValueError("ODOO_USER and ODOO_APIKEY must both be configured.")
        return cls(
            base_url=config.odoo_url,
            db=config.odoo_db,
            username=config.odoo_user or "",
            api_key=config.odoo_api_key or "",
            timeout=config.request_timeout_secs,
            verify=config.verify_tls,
            contract_type_field=config.contract_type_field,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session(self) -> OdooSession:
        return self._session

    # -- internal request dispatcher -----------------------------------------

    async def _rpc(self, service: str, method: str, args: list[Any]) -> Any:
        """POST one JSON-RPC call and map errors to the exception hierarchy."""
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": next(self._ids),
        }
        try:
            response = await self._client.post("/jsonrpc", json=payload)
        except httpx.TimeoutException as exc:
            raise RemoteUnavailable(f"Odoo request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailable(f"Odoo unreachable: {exc}") from exc

        if response.status_code >= 400:
            body = response.text
            exc_cls = _STATUS_MAP.get(response.status_code)
            if exc_cls is not None:
                raise exc_cls(body, status_code=response.status_code)
            if response.status_code >= 500:
                raise RemoteUnavailable(body, status_code=response.status_code)
            raise RemoteCallError(body, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteDataError("Odoo returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise RemoteDataError("Odoo returned an unexpected JSON-RPC envelope")

        if data.get("error"):
            raise self._fault_to_error(data["error"])
        if "result" not in data:
            raise RemoteDataError("Odoo response has neither 'result' nor 'error'")
        return data["result"]

    @staticmethod
    def _fault_to_error(error: Any) -> RemoteCallError:
        if not isinstance(error, dict):
            return RemoteDataError(f"Malformed Odoo fault: {error!r}")
        detail = error.get("data")
        if not isinstance(detail, dict):
            detail = {}
        name = detail.get("name") or ""
        message = detail.get("message") or error.get("message") or "Odoo server error"
        if name in _AUTH_FAULTS:
            return RemoteAuthFailure(message)
        return RemoteCallError(f"{name or 'Odoo fault'}: {message}")

    # -- session --------------------------------------------------------------

    async def authenticate(self) -> int:
        """Exchange the configured credentials for a uid."""
        session = self._session
        logger.info(
            "Authenticating to Odoo db %s as %s.", session.db, session.username
        )
        uid = await self._rpc(
            "common",
            "authenticate",
            [session.db, session.username, session.api_key, {}],
        )
        if isinstance(uid, bool) or not isinstance(uid, int):
            session.reset()
            raise RemoteAuthFailure(
                f"Odoo rejected the credentials for {session.username}."
            )
        session.establish(uid)
        logger.info("Authenticated to Odoo (uid %d).", uid)
        return uid

    async def execute_kw(
        self,
        model: str,
        method: str,
        args: list[Any],
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Call ``model.method`` on behalf of the session's uid."""
        if self._session.state is SessionState.UNAUTHENTICATED:
            await self.authenticate()
        try:
            return await self._execute(model, method, args, kwargs or {})
        except RemoteAuthFailure:
            logger.warning(
                "Odoo rejected uid %s for %s.%s; re-authenticating once.",
                self._session.uid, model, method,
            )
            self._session.reset()
            await self.authenticate()
            return await self._execute(model, method, args, kwargs or {})

    async def _execute(
        self, model: str, method: str, args: list[Any], kwargs: dict[str, Any]
    ) -> Any:
        session = self._session
        logger.debug("Calling Odoo %s.%s.", model, method)
        return await self._rpc(
            "object",
            "execute_kw",
            [session.db, session.uid, session.api_key, model, method, args, kwargs],
        )

    async def search_read(
        self,
        model: str,
        domain: list[Any],
        fields: Sequence[str],
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """``search_read`` on ``model``; always returns a list of dict records."""
        kwargs: dict[str, Any] = {"fields": list(fields)}
        if order:
            kwargs["order"] = order
        records = await self.execute_kw(model, "search_read", [domain], kwargs)
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise RemoteDataError(f"{model}.search_read did not return a list of records")
        return records

    # -- directory lookups ----------------------------------------------------

    async def find_partners_by_identity(
        self,
        identities: Collection[str],
        fields: Sequence[str] | None = None,
    ) -> list[Partner]:
        """Partners whose document number (``vat``) is in ``identities``.

        Records come back in Odoo's order; duplicates are not collapsed.
        """
        if not identities:
            return []
        if fields is None:
            fields = (*_PARTNER_FIELDS, self._contract_type_field)
        records = await self.search_read(
            PARTNER_MODEL, [["vat", "in", list(identities)]], fields
        )
        try:
            return [
                Partner.from_record(r, contract_type_field=self._contract_type_field)
                for r in records
            ]
        except RecordError as exc:
            raise RemoteDataError(f"Bad {PARTNER_MODEL} record: {exc}") from exc

    async def find_invoices_by_partner_ids(
        self,
        partner_ids: Collection[int],
        fields: Sequence[str] | None = None,
    ) -> list[Invoice]:
        """Customer invoices of the given partners, latest due date first."""
        if not partner_ids:
            return []
        records = await self.search_read(
            INVOICE_MODEL,
            [
                ["partner_id", "in", list(partner_ids)],
                ["move_type", "=", CUSTOMER_INVOICE],
            ],
            fields or _INVOICE_FIELDS,
            order=_INVOICE_ORDER,
        )
        try:
            return [Invoice.from_record(r) for r in records]
        except RecordError as exc:
            raise RemoteDataError(f"Bad {INVOICE_MODEL} record: {exc}") from exc

    async def find_invoice_summaries(self, partner_id: int) -> list[InvoiceSummary]:
        """One partner's customer invoices with browser-ready payment links."""
        records = await self.search_read(
            INVOICE_MODEL,
            [
                ["partner_id", "=", partner_id],
                ["move_type", "=", CUSTOMER_INVOICE],
            ],
            _SUMMARY_FIELDS,
            order=_INVOICE_ORDER,
        )
        try:
            return [InvoiceSummary.from_record(r, self._base_url) for r in records]
        except RecordError as exc:
            raise RemoteDataError(f"Bad {INVOICE_MODEL} record: {exc}") from exc

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> OdooClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
