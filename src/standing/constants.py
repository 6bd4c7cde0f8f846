"""Constants for eligibility decisions against the Odoo billing records."""

from enum import Enum


CACHE_TTL_SECS = 24 * 60 * 60  # decisions are trusted for one day
REQUEST_TIMEOUT_SECS = 10.0

# Contract categories that grant access regardless of billing state
EXEMPT_CONTRACT_TYPES = frozenset({"Beca", "IFARHU"})

PARTNER_MODEL = "res.partner"
INVOICE_MODEL = "account.move"
CUSTOMER_INVOICE = "out_invoice"
PAID_STATE = "paid"

CONTRACT_TYPE_FIELD = "x_studio_tipo_contrato_especial"


class ReasonCode(str, Enum):
    """Why a decision allowed or denied access."""

    NO_CONTRACT_OR_USER = "no_contract_or_user"
    EXEMPT = "exempt"
    NO_INVOICES = "no_invoices"
    OVERDUE = "overdue"
    CURRENT = "current"
