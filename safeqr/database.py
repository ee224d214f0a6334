"""
Database Abstraction Layer.

The SafeQR admin backend keeps no local state: every record lives in the
hosted Supabase project (PostgREST tables, RPC functions and GoTrue auth).
This module only manages the *clients*; it contains no query logic.

Two clients are held:

- **data client** (``supabase``): built with the service-role key so that
  repositories and the auth admin API can act on any row.  Falls back to
  the anon key when no service-role key is configured.
- **session client** (``session_client``): built with the anon key and used
  for password sign-in, sign-out and password resets.  Signing in mutates
  the client's auth headers, so it is kept apart from the data client.

Data access is performed through the Repository pattern.

Usage (dependency injection at app startup)::

    from safeqr.database import DatabaseManager
    from safeqr.logger import StructuredLogger

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        anon_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        service_role_key=config.admin_key,
        logger=StructuredLogger(name="safeqr.database"),
    )
    # Inject `db` into repositories / services that need it.
"""

from __future__ import annotations

from typing import Callable, Optional

from supabase import Client as SupabaseClient
from supabase import create_client

from safeqr.logger import StructuredLogger

ClientFactory = Callable[[str, str], SupabaseClient]


class DatabaseManager:
    """Owns the Supabase clients used by repositories and auth services.

    Fully configured at construction time.  When ``supabase_url`` or a key
    is empty the matching client is **not** created and its property
    raises ``RuntimeError``; repositories translate that into their typed
    errors, so an unconfigured deployment fails loudly on first use
    instead of at import time.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    anon_key:
        The anonymous key, used for session-scoped auth calls.
    service_role_key:
        The service-role key, used for table access and the auth admin API.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    client_factory:
        Callable building a client from ``(url, key)``.  Defaults to
        :func:`supabase.create_client`; tests inject an in-memory fake.
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        service_role_key: str,
        logger: StructuredLogger,
        client_factory: ClientFactory = create_client,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._client_factory: ClientFactory = client_factory

        self._supabase: Optional[SupabaseClient] = self._build_client(
            supabase_url, service_role_key or anon_key, label="data",
        )
        self._session_client: Optional[SupabaseClient] = self._build_client(
            supabase_url, anon_key, label="session",
        )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the data client (service-role privileges).

        Raises
        ------
        RuntimeError
            If the client could not be created from the configuration.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase data client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        return self._supabase

    @property
    def session_client(self) -> SupabaseClient:
        """Return the anon-key client used for sign-in and sign-out.

        Raises
        ------
        RuntimeError
            If the client could not be created from the configuration.
        """
        if self._session_client is None:
            raise RuntimeError(
                "Supabase session client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._session_client

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_client(
        self, url: str, key: str, *, label: str,
    ) -> Optional[SupabaseClient]:
        if not url or not key:
            self._logger.warning(
                "Supabase %s client not configured (missing URL or key).", label,
            )
            return None
        try:
            client = self._client_factory(url, key)
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credential format error for %s client: %s", label, exc,
            )
            return None
        self._logger.info("Supabase %s client initialised.", label)
        return client
