"""Skip-update gate: does a provisioned Canvas account already match the roster?

Every sync pass would otherwise rewrite every account, so this check leans
towards declaring equivalence. Names are compared after dropping credential
and honorific tokens, which campus systems and Canvas format differently:

    Canvas full_name  "Emmanuel Tommaso, Ph.D., J.D."
    campus names      first="Emmanuel", last="Tommaso"

are the same person with the same name.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

DEFAULT_SUFFIX_TOKENS = (
    "Jr.", "Sr.", "II", "III", "IV",
    "Ph.D.", "J.D.", "M.D.", "Ed.D.", "D.D.S.", "D.V.M.",
    "M.A.", "M.S.", "M.B.A.", "M.F.A.", "B.A.", "B.S.",
    "Esq.", "CPA", "RN",
)
DEFAULT_PREFIX_TOKENS = (
    "Dr.", "Prof.", "Professor", "Rev.", "Hon.",
    "Mr.", "Mrs.", "Ms.", "Mx.",
)

_WHITESPACE = re.compile(r"\s+")


def _token_key(token: str) -> str:
    return token.replace(".", "").strip().lower()


@dataclass(frozen=True)
class NameTokens:
    """Credential suffixes and honorific prefixes ignored in name comparison."""
    suffixes: tuple[str, ...] = DEFAULT_SUFFIX_TOKENS
    prefixes: tuple[str, ...] = DEFAULT_PREFIX_TOKENS
    _suffix_keys: frozenset = field(init=False, repr=False, compare=False)
    _prefix_keys: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_suffix_keys", frozenset(_token_key(t) for t in self.suffixes))
        object.__setattr__(self, "_prefix_keys", frozenset(_token_key(t) for t in self.prefixes))

    def is_credential(self, part: str) -> bool:
        key = _token_key(part)
        return bool(key) and (key in self._suffix_keys or key in self._prefix_keys)

    def normalize(self, name: Optional[str]) -> str:
        """Drop comma-separated credentials and leading honorifics, collapse spaces."""
        if not name:
            return ""
        parts = [_WHITESPACE.sub(" ", part).strip() for part in str(name).split(",")]
        kept = [part for part in parts if part and not self.is_credential(part)]

        words = ", ".join(kept).split(" ")
        while len(words) > 1 and _token_key(words[0]) in self._prefix_keys:
            words = words[1:]
        return " ".join(words).strip()


DEFAULT_NAME_TOKENS = NameTokens()


def load_name_tokens(path: Optional[str | Path] = None) -> NameTokens:
    """Load credential token lists from a YAML file.

    Expected shape::

        suffixes: ["Jr.", "Ph.D."]
        prefixes: ["Dr."]

    Missing keys keep their defaults. No path means built-in defaults.
    """
    if not path:
        return DEFAULT_NAME_TOKENS
    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Name token file {path} must contain a mapping")
    return NameTokens(
        suffixes=_as_tokens(data.get("suffixes"), DEFAULT_SUFFIX_TOKENS),
        prefixes=_as_tokens(data.get("prefixes"), DEFAULT_PREFIX_TOKENS),
    )


def _as_tokens(value: Optional[Iterable[Any]], default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        raise ValueError("Name tokens must be a list, not a string")
    return tuple(str(token).strip() for token in value if str(token).strip())


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _full_name(account: Mapping[str, Any]) -> str:
    if not _blank(account.get("full_name")):
        return str(account["full_name"])
    return f"{account.get('first_name') or ''} {account.get('last_name') or ''}"


def _sortable_name(account: Mapping[str, Any]) -> str:
    if not _blank(account.get("sortable_name")):
        return str(account["sortable_name"])
    return f"{account.get('last_name') or ''}, {account.get('first_name') or ''}"


def names_equivalent(
    provisioned: Mapping[str, Any],
    sis: Mapping[str, Any],
    name_tokens: NameTokens = DEFAULT_NAME_TOKENS,
) -> bool:
    """Compare Canvas display names against roster first/last names.

    Either side's display names are derived from first/last when absent, so
    a roster record (first/last only) is checked against what Canvas shows.
    """
    normalize = name_tokens.normalize
    if normalize(_full_name(provisioned)) == normalize(_full_name(sis)):
        return True
    return normalize(_sortable_name(provisioned)) == normalize(_sortable_name(sis))


def provisioned_account_eq_sis_account(
    provisioned: Mapping[str, Any],
    sis: Mapping[str, Any],
    *,
    maintain_user_names: bool = True,
    name_tokens: Optional[NameTokens] = None,
) -> bool:
    """Return True when a provisioned account needs no update.

    Args:
        provisioned: Existing Canvas account record
        sis: Freshly derived target record
        maintain_user_names: Whether name differences count
        name_tokens: Credential tokens ignored in name comparison

    Returns:
        True if the accounts are equivalent
    """
    if str(provisioned.get("login_id") or "") != str(sis.get("login_id") or ""):
        return False

    # Accounts missing contact info are not churned over email
    provisioned_email = provisioned.get("email")
    sis_email = sis.get("email")
    if not _blank(provisioned_email) and not _blank(sis_email):
        if str(provisioned_email).strip() != str(sis_email).strip():
            return False

    if maintain_user_names:
        return names_equivalent(provisioned, sis, name_tokens or DEFAULT_NAME_TOKENS)
    return True
