"""Tests for playpub.core.errors module."""

from playpub.core.errors import ErrorCode


class TestErrorCodeValues:
    """Exit codes are part of the CLI contract and must stay stable."""

    def test_ok_is_zero(self) -> None:
        assert ErrorCode.OK == 0

    def test_config_error_is_one(self) -> None:
        assert ErrorCode.CONFIG_ERROR == 1

    def test_auth_error_is_two(self) -> None:
        assert ErrorCode.AUTH_ERROR == 2

    def test_backend_error_is_three(self) -> None:
        assert ErrorCode.BACKEND_ERROR == 3

    def test_network_error_is_four(self) -> None:
        assert ErrorCode.NETWORK_ERROR == 4

    def test_locked_is_five(self) -> None:
        assert ErrorCode.LOCKED == 5


class TestErrorCodeUsage:
    def test_can_use_as_int(self) -> None:
        code: int = ErrorCode.BACKEND_ERROR
        assert code == 3

    def test_is_success(self) -> None:
        assert ErrorCode.OK.is_success is True
        assert ErrorCode.CONFIG_ERROR.is_success is False

    def test_is_error(self) -> None:
        assert ErrorCode.OK.is_error is False
        assert all(code.is_error for code in ErrorCode if code != ErrorCode.OK)

    def test_str(self) -> None:
        assert str(ErrorCode.NETWORK_ERROR) == "network error"
        assert str(ErrorCode.LOCKED) == "locked"
