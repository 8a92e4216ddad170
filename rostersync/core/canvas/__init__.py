"""Canvas REST API client library.

Architecture:
- client.py: HTTP client with bearer auth and Link-header pagination
- logins.py: User login listing and SIS user id changes
- channels.py: Communication channel listing and deletion
- directory.py: Facade with the four operations the change applicator needs
- exceptions.py: Typed exceptions for error handling

Usage:
    from rostersync.core.canvas import CanvasClient, CanvasDirectory

    client = CanvasClient("https://canvas.example.edu", token="...")
    directory = CanvasDirectory(client, account_id="1")
    directory.list_logins("sis_login_id:1084726")
"""
from .client import CanvasClient, REQUEST_TIMEOUT
from .exceptions import CanvasError, CanvasAPIError, CanvasConnectionError
from .logins import LoginService
from .channels import CommunicationChannelService
from .directory import CanvasDirectory, directory_from_settings

__all__ = [
    "CanvasClient",
    "REQUEST_TIMEOUT",
    "CanvasError",
    "CanvasAPIError",
    "CanvasConnectionError",
    "LoginService",
    "CommunicationChannelService",
    "CanvasDirectory",
    "directory_from_settings",
]
