from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from franchisehub.domain.identity import Principal


@runtime_checkable
class IdentityProviderPort(Protocol):
    """
    Resolves the authenticated caller of the current request.

    One instance per request (e.g. built from a session token); never shared across users.
    """

    def current_principal(self) -> Optional[Principal]:
        """Return the authenticated principal, or None for anonymous callers."""
