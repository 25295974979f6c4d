"""Tests for log sanitization helpers."""

from src.swrpg.shared.auth.principal import GUEST_PRINCIPAL, Principal, principal_or_guest
from src.swrpg.shared.logging_utils import (
    MAX_LOG_INPUT_LENGTH,
    get_safe_error_info,
    sanitize_for_log,
)


class TestSanitizeForLog:
    def test_strips_line_breaks(self) -> None:
        assert sanitize_for_log("ban\n[FAKE] role granted") == "ban [FAKE] role granted"

    def test_strips_control_chars(self) -> None:
        assert sanitize_for_log("a\x00b\x1bc") == "a b c"

    def test_truncates(self) -> None:
        result = sanitize_for_log("x" * 500)
        assert result == "x" * MAX_LOG_INPUT_LENGTH + "..."

    def test_non_string(self) -> None:
        assert sanitize_for_log(42) == "42"


class TestSafeErrorInfo:
    def test_type_only(self) -> None:
        assert get_safe_error_info(ValueError("secret detail")) == {
            "error_type": "ValueError"
        }


class TestPrincipal:
    def test_missing_principal_is_guest(self) -> None:
        assert principal_or_guest(None) is GUEST_PRINCIPAL
        assert GUEST_PRINCIPAL.is_guest
        assert GUEST_PRINCIPAL.roles == ("guest",)

    def test_present_principal_kept(self) -> None:
        principal = Principal(id="u-1", roles=("user",))
        assert principal_or_guest(principal) is principal
        assert not principal.is_guest
