"""Canvas communication channel operations."""
from __future__ import annotations
from typing import List, Dict
from urllib.parse import quote

from .client import CanvasClient


class CommunicationChannelService:
    """Service for managing a user's communication channels (email, SMS, push)."""

    def __init__(self, client: CanvasClient):
        self.client = client

    def list(self, canvas_user_id) -> List[Dict]:
        """List every communication channel of a user."""
        return self.client.get_paginated(
            f"/api/v1/users/{quote(str(canvas_user_id), safe=':')}/communication_channels"
        )

    def delete(self, canvas_user_id, channel_id) -> Dict:
        """Delete one communication channel. Canvas answers with the retired channel."""
        resp = self.client.delete(
            f"/api/v1/users/{quote(str(canvas_user_id), safe=':')}/communication_channels/{channel_id}"
        )
        return resp.json() if resp.content else {}
