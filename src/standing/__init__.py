"""Standing: is this student in good standing?

Cached, batched eligibility decisions over Odoo billing records.
"""

__version__ = "0.1.0"

from standing.config import StandingConfig
from standing.constants import ReasonCode, EXEMPT_CONTRACT_TYPES, CACHE_TTL_SECS
from standing.records import Decision, Invoice, InvoiceSummary, Partner
from standing.evaluator import evaluate
from standing.decision_cache import DecisionCache
from standing.directory import DirectoryBackend
from standing.odoo_client import (
    OdooClient,
    OdooSession,
    RemoteCallError,
    RemoteUnavailable,
    RemoteAuthFailure,
    RemoteDataError,
)
from standing.engine import StatusEngine, InvalidInput

__all__ = [
    "StandingConfig",
    "ReasonCode",
    "EXEMPT_CONTRACT_TYPES",
    "CACHE_TTL_SECS",
    "Decision",
    "Invoice",
    "InvoiceSummary",
    "Partner",
    "evaluate",
    "DecisionCache",
    "DirectoryBackend",
    "OdooClient",
    "OdooSession",
    "RemoteCallError",
    "RemoteUnavailable",
    "RemoteAuthFailure",
    "RemoteDataError",
    "StatusEngine",
    "InvalidInput",
]
