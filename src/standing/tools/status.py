"""Standing tools: check_status, check_status_bulk, clear_cache, partner_invoices,
contract_type, standing_status.

Each tool returns a plain dict ready to serialise. Engine errors never
escape: bad input comes back with its message, remote failures come back
with a generic message and the detail goes to the log.
"""

from __future__ import annotations

import importlib.metadata
import logging
import platform
from typing import Any

from standing.config import StandingConfig
from standing.engine import InvalidInput, StatusEngine
from standing.odoo_client import OdooClient, RemoteAuthFailure, RemoteCallError

logger = logging.getLogger(__name__)

REMOTE_ERROR_MESSAGE = "Billing system unavailable. Please try again later."


def _remote_failure(operation: str, exc: RemoteCallError) -> dict[str, Any]:
    logger.error("%s failed: %s: %s", operation, type(exc).__name__, exc)
    return {"success": False, "error": REMOTE_ERROR_MESSAGE}


async def check_status_tool(engine: StatusEngine, identity: str) -> dict[str, Any]:
    """Check whether one document number may access the service.

    Returns dict with:
        success: True when a decision was reached.
        identity: Echo of the input.
        allowed: Whether access is granted.
        reason: no_contract_or_user, exempt, no_invoices, overdue or current.

    Errors: success=False with a message for a blank identity or when the
    billing system cannot be reached.
    """
    try:
        decision = await engine.status_of(identity)
    except InvalidInput as e:
        return {"success": False, "error": str(e)}
    except RemoteCallError as e:
        return _remote_failure("check_status", e)
    return {"success": True, "identity": identity, **decision.to_dict()}


async def check_status_bulk_tool(
    engine: StatusEngine, identities: list[str]
) -> dict[str, Any]:
    """Check many document numbers at once.

    Returns dict with:
        success: True when every identity was decided.
        results: ``{identity: {"allowed": ..., "reason": ...}}``.
    """
    try:
        decisions = await engine.status_of_many(identities)
    except InvalidInput as e:
        return {"success": False, "error": str(e)}
    except RemoteCallError as e:
        return _remote_failure("check_status_bulk", e)
    return {
        "success": True,
        "results": {identity: d.to_dict() for identity, d in decisions.items()},
    }


def clear_cache_tool(engine: StatusEngine, identity: str | None = None) -> dict[str, Any]:
    """Forget cached decisions: one identity, or all of them when omitted."""
    try:
        outcome = engine.invalidate(identity)
    except InvalidInput as e:
        return {"success": False, "error": str(e)}

    if identity is None:
        message = "All cached decisions cleared."
    elif outcome["invalidated"]:
        message = f"Cached decision cleared for {identity}."
    else:
        message = f"No cached decision for {identity}."
    return {"success": True, **outcome, "message": message}


async def partner_invoices_tool(engine: StatusEngine, identity: str) -> dict[str, Any]:
    """List a document number's customer invoices with payment links.

    An unknown document number yields an empty list, not an error.
    """
    try:
        invoices = await engine.invoices_for(identity)
    except InvalidInput as e:
        return {"success": False, "error": str(e)}
    except RemoteCallError as e:
        return _remote_failure("partner_invoices", e)
    return {
        "success": True,
        "identity": identity,
        "invoices": [inv.to_dict() for inv in invoices],
    }


async def contract_type_tool(engine: StatusEngine, identity: str) -> dict[str, Any]:
    """Report a document number's special contract type (None if it has none)."""
    try:
        contract_type = await engine.contract_type_of(identity)
    except InvalidInput as e:
        return {"success": False, "error": str(e)}
    except RemoteCallError as e:
        return _remote_failure("contract_type", e)
    return {"success": True, "identity": identity, "contract_type": contract_type}


async def standing_status_tool(
    config: StandingConfig,
    client: OdooClient | None,
    engine: StatusEngine | None = None,
) -> dict[str, Any]:
    """Report configuration, Odoo connectivity and cache state for diagnostics.

    Admin/operator tool. Never raises.

    Returns dict with:
        odoo_url/odoo_db: Configured endpoint.
        odoo_credentials: 'present' or 'missing'.
        versions: Python and package versions in this process.
        exempt_contract_types: Contract types that bypass billing checks.
        server_reachable: True/False/None (None if not configured).
        authenticated: True/False/None, and 'auth_error' when rejected.
        cache: Cache counters when an engine is supplied.
    """
    result: dict[str, Any] = {
        "odoo_url": config.odoo_url,
        "odoo_db": config.odoo_db,
        "odoo_credentials": "present" if config.has_credentials else "missing",
        "exempt_contract_types": list(config.exempt_contract_types),
        "cache_ttl_secs": config.cache_ttl_secs,
    }

    versions: dict[str, str] = {"python": platform.python_version()}
    for pkg in ("standing", "httpx"):
        try:
            versions[pkg] = importlib.metadata.version(pkg)
        except importlib.metadata.PackageNotFoundError:
            versions[pkg] = "unknown"
    result["versions"] = versions

    if config.has_credentials and client is not None:
        try:
            await client.authenticate()
            result["server_reachable"] = True
            result["authenticated"] = True
        except RemoteAuthFailure as e:
            result["server_reachable"] = True
            result["authenticated"] = False
            result["auth_error"] = str(e)
        except RemoteCallError:
            result["server_reachable"] = False
            result["authenticated"] = None
    else:
        result["server_reachable"] = None
        result["authenticated"] = None

    if engine is not None:
        result["cache"] = engine.cache.health()

    return result
