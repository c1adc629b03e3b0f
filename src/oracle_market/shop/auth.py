"""Capability-style authorization: holding the shop's AdminCredential is the only proof of authority."""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from oracle_market.shop.errors import Unauthorized


@dataclass(frozen=True)
class AdminCredential:
    """Opaque token bound to one shop. Compared by value; the id never appears in repr or events."""

    id: str = field(repr=False)
    shop_id: str


class AuthorizationModel:
    """
    Issues one credential per shop and checks it on every privileged call.
    There is no revocation: losing the credential means losing authority.
    """

    def __init__(self) -> None:
        self._issued: dict[str, str] = {}

    def issue(self, shop_id: str) -> AdminCredential:
        credential = AdminCredential(id=secrets.token_hex(16), shop_id=shop_id)
        self._issued[credential.id] = shop_id
        return credential

    def verify(self, credential: AdminCredential | None, shop_id: str) -> bool:
        if credential is None or credential.shop_id != shop_id:
            return False
        return self._issued.get(credential.id) == shop_id

    def require(self, credential: AdminCredential | None, shop_id: str) -> None:
        if not self.verify(credential, shop_id):
            raise Unauthorized()
