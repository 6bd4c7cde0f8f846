"""Standing configuration: a plain frozen dataclass, no pydantic.

The host application constructs this from its own settings, or calls
``StandingConfig.from_env()`` to read the conventional ``ODOO_*`` variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from standing.constants import (
    CACHE_TTL_SECS,
    CONTRACT_TYPE_FIELD,
    EXEMPT_CONTRACT_TYPES,
    REQUEST_TIMEOUT_SECS,
)


@dataclass(frozen=True)
class StandingConfig:
    odoo_url: str = "https://odoo.isi.edu.pa"
    odoo_db: str = "odoo"
    odoo_user: str | None = None
    odoo_api_key: str | None = None
    request_timeout_secs: float = REQUEST_TIMEOUT_SECS
    cache_ttl_secs: int = CACHE_TTL_SECS
    exempt_contract_types: tuple[str, ...] = tuple(sorted(EXEMPT_CONTRACT_TYPES))
    contract_type_field: str = CONTRACT_TYPE_FIELD
    verify_tls: bool = True

    @property
    def has_credentials(self) -> bool:
        return bool(self.odoo_user and self.odoo_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StandingConfig:
        """Build a config from environment variables.

        Unset variables fall back to the dataclass defaults. Raises
        ValueError when a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        exempt = defaults.exempt_contract_types
        raw_exempt = env.get("STANDING_EXEMPT_CONTRACT_TYPES")
        if raw_exempt:
            exempt = tuple(t.strip() for t in raw_exempt.split(",") if t.strip())

        run_env = env.get("STANDING_ENV") or env.get("NODE_ENV") or ""

        return cls(
            odoo_url=env.get("ODOO_URL") or defaults.odoo_url,
            odoo_db=env.get("ODOO_DB") or defaults.odoo_db,
            odoo_user=env.get("ODOO_USER") or None,
            odoo_api_key=env.get("ODOO_APIKEY") or None,
            request_timeout_secs=float(
                env.get("STANDING_TIMEOUT_SECS") or defaults.request_timeout_secs
            ),
            cache_ttl_secs=int(env.get("STANDING_CACHE_TTL_SECS") or defaults.cache_ttl_secs),
            exempt_contract_types=exempt,
            contract_type_field=(
                env.get("STANDING_CONTRACT_TYPE_FIELD") or defaults.contract_type_field
            ),
            verify_tls=run_env.lower() != "development",
        )
