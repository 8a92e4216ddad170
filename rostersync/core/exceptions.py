"""Reconciliation exceptions for error handling."""


class RosterSyncError(Exception):
    """Base exception for all roster sync operations."""
    pass


class MalformedRowError(RosterSyncError):
    """Campus row lacks the fields needed to derive an identifier.

    Attributes:
        row: The raw row that failed to parse
    """

    def __init__(self, message: str, row=None):
        self.row = row
        super().__init__(message)


class LoginLookupError(RosterSyncError):
    """No Canvas login matches the active or inactive form of a campus login id."""

    def __init__(self, lookup_key: str, candidates: list[str]):
        self.lookup_key = lookup_key
        self.candidates = candidates
        super().__init__(f"No login found for {lookup_key} (checked unique_id in {candidates or 'any campus login'})")


class LedgerCorruptionError(RosterSyncError):
    """Shared ledger or instruction state violated an invariant.

    Never caught by the pass driver: continuing would produce an inconsistent ledger.
    """
    pass


class FallbackLookupError(RosterSyncError):
    """Secondary directory lookup failed for a UID missing from the roster.

    Attributes:
        ldap_uid: UID that was being looked up
    """

    def __init__(self, ldap_uid: int, cause: Exception):
        self.ldap_uid = ldap_uid
        super().__init__(f"Fallback lookup for UID {ldap_uid} failed: {cause}")
