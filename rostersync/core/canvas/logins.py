"""Canvas login (pseudonym) operations."""
from __future__ import annotations
from typing import Optional, List, Dict
from urllib.parse import quote

from .client import CanvasClient


def _path_id(value) -> str:
    # SIS lookups such as "sis_login_id:1084726" keep their colon
    return quote(str(value), safe=":")


class LoginService:
    """Service for listing and updating Canvas user logins."""

    def __init__(self, client: CanvasClient, account_id: str = "1"):
        """Initialize login service.

        Args:
            client: Canvas client
            account_id: Root account used when a login does not report its own
        """
        self.client = client
        self.account_id = str(account_id)

    def user_logins(self, user_ref) -> List[Dict]:
        """List every login of a user.

        Args:
            user_ref: Canvas user id or SIS lookup key ("sis_login_id:...")

        Returns:
            Login representations (id, unique_id, sis_user_id, account_id, user_id)
        """
        return self.client.get_paginated(f"/api/v1/users/{_path_id(user_ref)}/logins")

    def change_sis_user_id(self, login_id, new_sis_user_id: str, account_id: Optional[str] = None) -> Dict:
        """Set the SIS user id on one login.

        Args:
            login_id: Canvas login object id
            new_sis_user_id: New SIS user id
            account_id: Account owning the login (defaults to the root account)

        Returns:
            Updated login representation
        """
        account = account_id or self.account_id
        resp = self.client.put(
            f"/api/v1/accounts/{_path_id(account)}/logins/{_path_id(login_id)}",
            json={"login": {"sis_user_id": new_sis_user_id}},
        )
        return resp.json() if resp.content else {}
