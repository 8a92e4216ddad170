import pytest

from rostersync.core.account_equivalence import (
    DEFAULT_NAME_TOKENS,
    NameTokens,
    load_name_tokens,
    provisioned_account_eq_sis_account,
)

NON_NAME_FIELDS = {"login_id": "123", "email": "jrjr@example.com"}


@pytest.fixture
def provisioned_account():
    return {
        **NON_NAME_FIELDS,
        "first_name": "Emmanuel",
        "last_name": "Tommaso",
        "full_name": "Emmanuel V Tommaso",
        "sortable_name": "Tommaso, Emmanuel V",
    }


@pytest.fixture
def sis_account():
    return {**NON_NAME_FIELDS, "first_name": "Emmanuel V", "last_name": "Tommaso"}


def eq(provisioned, sis, maintain_user_names=True):
    return provisioned_account_eq_sis_account(provisioned, sis, maintain_user_names=maintain_user_names)


def test_identical_accounts(provisioned_account):
    assert eq(provisioned_account, dict(provisioned_account))


@pytest.mark.parametrize("maintain_user_names", [True, False])
def test_equivalence_is_reflexive(provisioned_account, sis_account, maintain_user_names):
    for record in (provisioned_account, sis_account, {"login_id": "9"}):
        assert eq(record, record, maintain_user_names)


def test_login_id_change_is_never_equivalent(provisioned_account):
    changed = {**provisioned_account, "login_id": "inactive-123"}
    assert not eq(provisioned_account, changed)
    assert not eq(provisioned_account, changed, maintain_user_names=False)


class TestWithUserNames:
    def test_full_names_match(self, provisioned_account, sis_account):
        assert eq(provisioned_account, sis_account)

    def test_user_dropped_the_ambiguous_initial(self, provisioned_account):
        sis = {**NON_NAME_FIELDS, "first_name": "Emmanuel", "last_name": "Tommaso"}
        assert not eq(provisioned_account, sis)

    def test_embedded_commas(self):
        provisioned = {
            **NON_NAME_FIELDS,
            "first_name": "Jr. Emmanuel",
            "last_name": "Tommaso",
            "full_name": "Emmanuel Tommaso, Jr.",
            "sortable_name": "Tommaso, Jr., Emmanuel",
        }
        sis = {**NON_NAME_FIELDS, "first_name": "Emmanuel", "last_name": "Tommaso, Jr."}
        assert eq(provisioned, sis)

    def test_really_determined_credentialing(self):
        provisioned = {
            **NON_NAME_FIELDS,
            "first_name": "Ph.D., J.D., Emmanuel",
            "last_name": "Tommaso",
            "full_name": "Emmanuel Tommaso, Ph.D., J.D.",
            "sortable_name": "Tommaso, Ph.D., J.D., Emmanuel",
        }
        sis = {**NON_NAME_FIELDS, "first_name": "Emmanuel", "last_name": "Tommaso, Ph.D., J.D."}
        assert eq(provisioned, sis)

    def test_credential_suffix_only_on_roster_side(self):
        provisioned = {
            **NON_NAME_FIELDS,
            "first_name": "Emmanuel",
            "last_name": "Tommaso",
            "full_name": "Emmanuel Tommaso",
            "sortable_name": "Tommaso, Emmanuel",
        }
        sis = {**NON_NAME_FIELDS, "first_name": "Emmanuel", "last_name": "Tommaso, Ph.D., J.D."}
        assert eq(provisioned, sis)

    def test_leading_honorific_ignored(self):
        provisioned = {**NON_NAME_FIELDS, "full_name": "Dr. Jane Doe", "sortable_name": "Doe, Jane"}
        sis = {**NON_NAME_FIELDS, "first_name": "Jane", "last_name": "Doe"}
        assert eq(provisioned, sis)

    def test_real_name_change(self, provisioned_account):
        sis = {**NON_NAME_FIELDS, "first_name": "Jake", "last_name": "Smythe"}
        assert not eq(provisioned_account, sis)

    def test_email_change(self, provisioned_account, sis_account):
        assert not eq(provisioned_account, {**sis_account, "email": "js@example.com"})


class TestWithoutUserNames:
    def test_only_name_differs(self, provisioned_account):
        sis = {**provisioned_account, "first_name": "Jake", "full_name": "Jake Smythe"}
        assert eq(provisioned_account, sis, maintain_user_names=False)

    def test_email_address_changes(self, provisioned_account):
        sis = {**provisioned_account, "email": "js@example.com"}
        assert not eq(provisioned_account, sis, maintain_user_names=False)

    def test_email_column_empty(self, provisioned_account):
        sis = {**provisioned_account, "email": None}
        assert eq(provisioned_account, sis, maintain_user_names=False)

    def test_provisioned_account_missing_email(self, provisioned_account):
        provisioned = {**provisioned_account, "email": ""}
        assert eq(provisioned, {**provisioned_account, "email": "new@example.com"}, maintain_user_names=False)


class TestNameTokens:
    def test_normalize_is_period_and_case_insensitive(self):
        assert DEFAULT_NAME_TOKENS.normalize("Ana Ruiz, PHD, jd") == "Ana Ruiz"

    def test_normalize_collapses_whitespace(self):
        assert DEFAULT_NAME_TOKENS.normalize("  Ana   Ruiz ") == "Ana Ruiz"

    def test_custom_tokens(self):
        tokens = NameTokens(suffixes=("OBE",), prefixes=())
        assert tokens.normalize("Ana Ruiz, OBE") == "Ana Ruiz"
        assert tokens.normalize("Ana Ruiz, Jr.") == "Ana Ruiz, Jr."

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        path.write_text("suffixes:\n  - OBE\n  - KBE\n")
        tokens = load_name_tokens(path)
        assert tokens.suffixes == ("OBE", "KBE")
        assert tokens.prefixes == DEFAULT_NAME_TOKENS.prefixes

    def test_load_without_path_returns_defaults(self):
        assert load_name_tokens(None) is DEFAULT_NAME_TOKENS

    def test_load_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        path.write_text("- OBE\n")
        with pytest.raises(ValueError):
            load_name_tokens(path)
