"""
Tests for structured logging (backoffice_kernel/logging_config.py).

Validates:
- One JSON object per line, with bound workflow context and ``extra``
- Back-office exceptions expose code, kind and their structured fields
- LogContext.bind nests and restores, and does not leak across threads
- configure_logging is idempotent and honours BACKOFFICE_LOG_LEVEL
"""

import json
import logging
import threading
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from backoffice_kernel.exceptions import InsufficientStockError, NotSubmittableError
from backoffice_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from backoffice_modules.purchase.models import PurchaseStatus


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured, then restore the suite configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def stream():
    """Configure logging into a StringIO and return it."""
    buffer = StringIO()
    configure_logging(stream=buffer, level=logging.DEBUG)
    return buffer


def _records(buffer: StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line]


class TestStructuredFormatter:

    def test_base_fields(self, stream):
        get_logger("modules.purchase").info("purchase_created")

        (record,) = _records(stream)
        assert record["message"] == "purchase_created"
        assert record["level"] == "INFO"
        assert record["logger"] == "backoffice.modules.purchase"
        assert record["ts"].endswith("+00:00")

    def test_context_and_extra_merged(self, stream):
        purchase_id = uuid4()
        with LogContext.bind(actor_id="emp-1", entity_type="purchase", entity_id=purchase_id):
            get_logger("modules.purchase").info(
                "purchase_submitted",
                extra={
                    "purchase_id": purchase_id,
                    "status": PurchaseStatus.PENDING_APPROVAL,
                    "total_amount": Decimal("2501.00"),
                    "purchase_date": date(2024, 1, 10),
                },
            )

        (record,) = _records(stream)
        assert record["actor_id"] == "emp-1"
        assert record["entity_id"] == str(purchase_id)
        assert record["purchase_id"] == str(purchase_id)
        assert record["status"] == "pending_approval"
        assert record["total_amount"] == "2501.00"
        assert record["purchase_date"] == "2024-01-10"

    def test_context_absent_when_unbound(self, stream):
        get_logger("test").info("bare")

        (record,) = _records(stream)
        assert not set(CONTEXT_FIELDS) & set(record)

    def test_extra_does_not_override_bound_context(self, stream):
        with LogContext.bind(entity_type="reimbursement"):
            get_logger("test").info("clash", extra={"entity_type": "purchase"})

        assert _records(stream)[0]["entity_type"] == "reimbursement"

    def test_unserializable_extra_falls_back_to_str(self, stream):
        get_logger("test").info("odd", extra={"payload": object()})

        assert _records(stream)[0]["payload"].startswith("<object object")

    def test_plain_exception(self, stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").exception("failed")

        record = _records(stream)[0]
        assert (record["exc_type"], record["exc_message"]) == ("ValueError", "boom")
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_transition_error_fields(self, stream):
        try:
            raise NotSubmittableError("purchase", "p-1", "approved")
        except NotSubmittableError:
            get_logger("test").error("transition_refused", exc_info=True)

        record = _records(stream)[0]
        assert record["exc_code"] == "NOT_SUBMITTABLE"
        assert record["exc_kind"] == "precondition"
        assert record["exc_entity_type"] == "purchase"
        assert record["exc_entity_id"] == "p-1"
        assert record["exc_current_status"] == "approved"

    def test_stock_error_amounts(self, stream):
        try:
            raise InsufficientStockError("item-1", "wh-1", Decimal("2"), Decimal("3"))
        except InsufficientStockError:
            get_logger("test").warning("outbound_refused", exc_info=True)

        record = _records(stream)[0]
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert (record["exc_available"], record["exc_requested"]) == ("2", "3")


class TestLogContext:

    def test_set_ignores_none_and_unknown(self):
        LogContext.set(actor_id="a", entity_id=None, approver="x")
        assert LogContext.get_all() == {"actor_id": "a"}

    def test_values_stored_as_strings(self):
        entity_id = uuid4()
        LogContext.set(entity_id=entity_id)
        assert LogContext.get_all() == {"entity_id": str(entity_id)}

    def test_nested_bind_restores_each_level(self):
        with LogContext.bind(operation="reimbursement_submit", entity_type="reimbursement"):
            with LogContext.bind(operation="finance_sync"):
                assert LogContext.get_all() == {
                    "operation": "finance_sync",
                    "entity_type": "reimbursement",
                }
            assert LogContext.get_all()["operation"] == "reimbursement_submit"
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        LogContext.set(actor_id="outer")
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="inner"):
                raise RuntimeError
        assert LogContext.get_all() == {"actor_id": "outer"}

    def test_context_not_shared_with_other_threads(self):
        seen = {}

        def worker():
            seen.update(LogContext.get_all())

        with LogContext.bind(actor_id="main-thread"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == {}

    def test_clear(self):
        LogContext.set(**{name: name for name in CONTEXT_FIELDS})
        assert len(LogContext.get_all()) == len(CONTEXT_FIELDS)
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:

    def test_idempotent(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        root = logging.getLogger("backoffice")
        assert first in root.handlers
        assert second not in root.handlers
        ours = [h for h in root.handlers if isinstance(h.formatter, StructuredFormatter)]
        assert ours == [first]

    def test_level_by_name(self):
        configure_logging(stream=StringIO(), level="warning")
        assert logging.getLogger("backoffice").level == logging.WARNING

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("BACKOFFICE_LOG_LEVEL", "ERROR")
        configure_logging(stream=StringIO())
        assert logging.getLogger("backoffice").level == logging.ERROR

    def test_unknown_level_name(self):
        with pytest.raises(ValueError):
            configure_logging(level="chatty")

    def test_child_loggers_share_handler(self):
        buffer = StringIO()
        configure_logging(stream=buffer, level=logging.INFO)
        get_logger("modules.inventory.service").debug("filtered")
        get_logger("modules.inventory.service").info("inventory_inbound_recorded")

        assert [r["message"] for r in _records(buffer)] == ["inventory_inbound_recorded"]
