"""Partner, invoice and decision records.

Pure data model, no I/O. Odoo hands back loosely-typed records (``False``
for empty fields, many2one values as ``[id, name]`` pairs); the
``from_record()`` constructors normalise them and raise ``RecordError``
when a field the engine depends on is missing or unusable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from standing.constants import CONTRACT_TYPE_FIELD, ReasonCode

logger = logging.getLogger(__name__)


class RecordError(ValueError):
    """A remote record is missing a field or carries an unusable value."""


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------


def _require(record: dict[str, Any], key: str) -> Any:
    if key not in record:
        raise RecordError(f"record is missing field '{key}'")
    return record[key]


def _as_int(value: Any, key: str) -> int:
    # bool is an int subclass, and Odoo uses False for "empty"
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecordError(f"field '{key}' is not an integer: {value!r}")
    return value


def _as_optional_str(value: Any) -> str | None:
    if value is False or value is None or value == "":
        return None
    return str(value)


def _as_optional_date(value: Any, key: str) -> date | None:
    if value is False or value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise RecordError(f"field '{key}' is not a date: {value!r}") from exc


def _as_decimal(value: Any, key: str) -> Decimal:
    if value is False or value is None:
        return Decimal(0)
    if isinstance(value, bool):
        raise RecordError(f"field '{key}' is not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise RecordError(f"field '{key}' is not a number: {value!r}") from exc
    # JSON decoding lets NaN and Infinity through
    if not result.is_finite():
        raise RecordError(f"field '{key}' is not a finite number: {value!r}")
    return result


def _many2one_id(value: Any, key: str) -> int:
    """Odoo many2one fields arrive as ``[id, display_name]``."""
    if isinstance(value, (list, tuple)) and value:
        return _as_int(value[0], key)
    return _as_int(value, key)


# ---------------------------------------------------------------------------
# Partner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Partner:
    """A ``res.partner`` looked up by its document number (``vat``)."""

    id: int
    identity: str
    contract_type: str | None = None

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        contract_type_field: str = CONTRACT_TYPE_FIELD,
    ) -> Partner:
        identity = _as_optional_str(_require(record, "vat"))
        if identity is None:
            raise RecordError("partner record has an empty 'vat'")
        return cls(
            id=_as_int(_require(record, "id"), "id"),
            identity=identity,
            contract_type=_as_optional_str(record.get(contract_type_field)),
        )


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invoice:
    """The billing facts of one customer invoice (``account.move``)."""

    partner_id: int
    state: str
    due_date: date | None
    residual_amount: Decimal

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Invoice:
        state = _as_optional_str(_require(record, "state"))
        if state is None:
            raise RecordError("invoice record has an empty 'state'")
        return cls(
            partner_id=_many2one_id(_require(record, "partner_id"), "partner_id"),
            state=state,
            due_date=_as_optional_date(record.get("invoice_date_due"), "invoice_date_due"),
            residual_amount=_as_decimal(record.get("amount_residual"), "amount_residual"),
        )


@dataclass(frozen=True)
class InvoiceSummary:
    """What a student sees about one of their invoices, with a payment link."""

    id: int
    name: str | None
    amount_total: Decimal
    state: str
    due_date: date | None
    residual_amount: Decimal
    payment_link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount_total": str(self.amount_total),
            "state": self.state,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "residual_amount": str(self.residual_amount),
            "payment_link": self.payment_link,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any], base_url: str) -> InvoiceSummary:
        state = _as_optional_str(_require(record, "state"))
        if state is None:
            raise RecordError("invoice record has an empty 'state'")
        return cls(
            id=_as_int(_require(record, "id"), "id"),
            name=_as_optional_str(record.get("name")),
            amount_total=_as_decimal(record.get("amount_total"), "amount_total"),
            state=state,
            due_date=_as_optional_date(record.get("invoice_date_due"), "invoice_date_due"),
            residual_amount=_as_decimal(record.get("amount_residual"), "amount_residual"),
            payment_link=resolve_payment_link(
                _as_optional_str(record.get("access_url")), base_url
            ),
        )


def resolve_payment_link(link: str | None, base_url: str) -> str | None:
    """Turn an invoice ``access_url`` into a link a browser can open.

    Relative paths are joined onto the Odoo host without its port. Absolute
    URLs pointing at the Odoo host lose their port, since Odoo reports its
    internal one (8069). Anything else, including a link that does not
    parse, is returned as is.
    """
    if not link:
        return link
    try:
        base = urlsplit(base_url)
        if link.startswith("/"):
            return urlunsplit((base.scheme, _netloc_without_port(base.netloc), link, "", ""))
        if link.startswith("http"):
            parts = urlsplit(link)
            if parts.hostname and parts.hostname == base.hostname:
                return urlunsplit((
                    parts.scheme,
                    _netloc_without_port(parts.netloc),
                    parts.path,
                    parts.query,
                    parts.fragment,
                ))
    except ValueError:
        logger.warning("Keeping unparseable payment link %r.", link)
    return link


def _netloc_without_port(netloc: str) -> str:
    """Drop ``:port`` from a netloc, keeping userinfo and IPv6 brackets."""
    userinfo, at, hostport = netloc.rpartition("@")
    if hostport.startswith("["):
        host = hostport[: hostport.find("]") + 1] or hostport
    else:
        host = hostport.partition(":")[0]
    return f"{userinfo}{at}{host}"


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Decision:
    """Allow/deny outcome for one identity. Never mutated once produced."""

    allowed: bool
    reason: ReasonCode

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason.value}
