"""Reader identity from Supabase session tokens."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from cardinalnews.errors import ConfigurationError

logger = logging.getLogger(__name__)


def bearer_token(header: Optional[str]) -> Optional[str]:
    if not header or not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    return token or None


@dataclass
class SupabaseAuth:
    supabase_url: str
    service_role_key: str
    _client: Any = None

    def _get_client(self):
        if self._client is None:
            if not self.supabase_url or not self.service_role_key:
                raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
            from supabase import create_client

            self._client = create_client(self.supabase_url, self.service_role_key)
        return self._client

    def user_id(self, token: Optional[str]) -> Optional[str]:
        """Verify a session JWT with Supabase Auth; None when it is missing, expired or forged."""
        if not token:
            return None
        from supabase import AuthError

        try:
            resp = self._get_client().auth.get_user(token)
        except AuthError as e:
            logger.info(f"Rejected session token: {e}")
            return None
        user = getattr(resp, "user", None)
        return getattr(user, "id", None) if user else None
