"""Directory facade consumed by the change applicator.

Any object with these four methods can stand in for Canvas (tests use
fakes). Every method raises ``CanvasError`` on failure.
"""
from __future__ import annotations
from typing import Optional, List, Dict

from .channels import CommunicationChannelService
from .client import CanvasClient
from .logins import LoginService


class CanvasDirectory:
    """Login and communication-channel operations against one Canvas instance."""

    def __init__(self, client: CanvasClient, account_id: str = "1"):
        self.client = client
        self.logins = LoginService(client, account_id)
        self.channels = CommunicationChannelService(client)

    def list_logins(self, user_ref) -> List[Dict]:
        return self.logins.user_logins(user_ref)

    def rename_identifier(self, login_id, new_sis_user_id: str, account_id: Optional[str] = None) -> Dict:
        return self.logins.change_sis_user_id(login_id, new_sis_user_id, account_id)

    def list_channels(self, canvas_user_id) -> List[Dict]:
        return self.channels.list(canvas_user_id)

    def delete_channel(self, canvas_user_id, channel_id) -> Dict:
        return self.channels.delete(canvas_user_id, channel_id)


def directory_from_settings(config=None) -> CanvasDirectory:
    """Build a CanvasDirectory from SyncConfig (URL, token, root account)."""
    if config is None:
        from rostersync.config.settings import settings as config
    client = CanvasClient(config.canvas_url or None, token=config.canvas_api_token_resolved)
    return CanvasDirectory(client, account_id=config.canvas_account_id)
