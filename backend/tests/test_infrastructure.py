"""
Tests for the shared helpers: error mapping, settings checks, ids,
correlation scopes and log masking.
"""

import logging
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from shared.config.logging import mask_email
from shared.config.settings import Settings
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    correlation_scope,
    get_correlation_id,
)
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    GENERIC_INTERNAL_DETAIL,
    DatabaseError,
    ErrorCode,
    ErrorKind,
    ForbiddenError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    to_http_exception,
    wrap_error,
)
from shared.utils.ids import (
    IDPrefix,
    OrderID,
    generate_id,
    id_prefix,
    is_valid,
    new_order_id,
    new_session_id,
    parse_id,
)


# =============================================================================
# Errors
# =============================================================================


class TestErrorMapping:
    @pytest.mark.parametrize("exc,expected", [
        (ValidationError("quantity must be positive", field="quantity"), 400),
        (NotFoundError("Order", "ord_1"), 404),
        (InvalidTransitionError("Order", "NEW", "READY"), 409),
        (UnauthorizedError(), 401),
        (ForbiddenError("kitchen", "delete"), 403),
        (InternalError(), 500),
    ])
    def test_status(self, exc, expected):
        http = to_http_exception(exc)
        assert isinstance(http, HTTPException)
        assert http.status_code == expected
        assert http.detail["code"] == exc.code

    def test_internal_detail_is_generic(self):
        http = to_http_exception(DatabaseError("order insert", order_id="ord_1"))
        assert http.detail == {"code": ErrorCode.DATABASE_ERROR, "message": GENERIC_INTERNAL_DETAIL}

    def test_forbidden_is_unauthorized_kind(self):
        exc = ForbiddenError("kitchen", "delete")
        assert exc.kind is ErrorKind.UNAUTHORIZED
        assert exc.detail == "Not authorized to delete kitchen"
        assert ForbiddenError().detail == "Access denied"

    def test_not_found_detail(self):
        assert NotFoundError("Menu").detail == "Menu not found"
        assert str(NotFoundError("Menu", "menu_1")) == "Menu with ID menu_1 not found"

    def test_wrap_keeps_app_errors(self):
        original = NotFoundError("Order", "ord_1")
        with pytest.raises(NotFoundError) as exc_info:
            wrap_error("update order status", original)
        assert exc_info.value is original
        assert str(exc_info.value) == "update order status: Order with ID ord_1 not found"

    def test_wrap_keeps_innermost_op(self):
        original = NotFoundError("Order", "ord_1")
        original.op = "load order"
        with pytest.raises(NotFoundError):
            wrap_error("update order status", original)
        assert original.op == "load order"

    def test_wrap_hides_foreign_errors(self):
        cause = KeyError("items")
        with pytest.raises(InternalError) as exc_info:
            wrap_error("decode order", cause)
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.op == "decode order"
        assert exc_info.value.detail == GENERIC_INTERNAL_DETAIL


def test_safe_commit_rolls_back():
    session = MagicMock()
    session.commit.side_effect = RuntimeError("disk full")

    with pytest.raises(RuntimeError):
        safe_commit(session)
    session.rollback.assert_called_once()


# =============================================================================
# Settings
# =============================================================================


class TestProductionSecrets:
    def test_development_is_lenient(self):
        assert Settings(environment="development").validate_production_secrets() == []

    def test_production_rejects_defaults(self):
        errors = Settings(
            environment="production", debug=True, jwt_secret="changeme"
        ).validate_production_secrets()
        assert len(errors) == 2
        assert "JWT_SECRET" in errors[0]

    def test_production_accepts_strong_secret(self):
        config = Settings(environment="production", debug=False, jwt_secret="k" * 40)
        assert config.validate_production_secrets() == []


# =============================================================================
# IDs
# =============================================================================


class TestIds:
    def test_format(self):
        order_id = new_order_id()
        assert id_prefix(order_id) == IDPrefix.ORDER
        assert id_prefix(new_session_id()) == "session"
        assert len(order_id.split("_")) == 3

    def test_unique_under_tight_loop(self):
        ids = {generate_id(IDPrefix.MOVEMENT) for _ in range(1000)}
        assert len(ids) == 1000

    @pytest.mark.parametrize("value", [None, "", "   ", "ord 1"])
    def test_parse_rejects(self, value):
        assert not is_valid(value)
        with pytest.raises(ValidationError):
            parse_id(value, OrderID)

    def test_parse_accepts(self):
        assert parse_id("ord_abc", OrderID) == "ord_abc"


# =============================================================================
# Correlation and logging
# =============================================================================


class TestCorrelation:
    def test_scope_binds_and_resets(self):
        assert get_correlation_id() == ""
        with correlation_scope("evt_1") as value:
            assert value == "evt_1"
            assert get_correlation_id() == "evt_1"
            with correlation_scope() as inner:
                assert inner != "evt_1"
                assert get_correlation_id() == inner
            assert get_correlation_id() == "evt_1"
        assert get_correlation_id() == ""

    def test_filter_stamps_records(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", (), None)
        log_filter = CorrelationIdFilter()

        assert log_filter.filter(record)
        assert record.correlation_id == "-"

        with correlation_scope("evt_9"):
            log_filter.filter(record)
        assert record.correlation_id == "evt_9"


@pytest.mark.parametrize("email,masked", [
    ("chef@example.com", "ch***@example.com"),
    ("a@example.com", "a***@example.com"),
    (None, "<no-email>"),
    ("no-at-sign", "***@invalid"),
])
def test_mask_email(email, masked):
    assert mask_email(email) == masked
