from __future__ import annotations

from typing import Dict, Optional

from franchisehub.application.ports.identity_port import IdentityProviderPort
from franchisehub.domain.identity import Principal


class StaticIdentityProvider(IdentityProviderPort):
    """Fixed principal for one request (tests, scripts, trusted gateways)."""

    def __init__(self, principal: Optional[Principal] = None) -> None:
        self._principal = principal

    def current_principal(self) -> Optional[Principal]:
        return self._principal


class TokenIdentityProvider(IdentityProviderPort):
    """
    Bearer token -> principal lookup over a pre-issued token table.

    每个请求用自己的 token 构造一个实例，不在用户之间共享。
    """

    def __init__(self, tokens: Dict[str, Principal], token: Optional[str]) -> None:
        self._tokens = tokens
        self._token = (token or "").strip()

    def current_principal(self) -> Optional[Principal]:
        if not self._token:
            return None
        if self._token.lower().startswith("bearer "):
            return self._tokens.get(self._token[7:].strip())
        return self._tokens.get(self._token)
