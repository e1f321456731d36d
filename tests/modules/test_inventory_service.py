"""
Tests for the inventory collaborator.

Validates:
- Inbound/outbound movements against per-warehouse snapshots
- Outbound never drives stock negative
- Stock applications: approve deducts stock atomically, decisions are final
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_kernel.exceptions import (
    ApplicationNotPendingError,
    InsufficientStockError,
    InvalidAmountError,
    InventoryApplicationNotFoundError,
    InventoryItemNotFoundError,
    RejectReasonRequiredError,
    RequiredFieldError,
)
from backoffice_modules.inventory.models import (
    ApplicationStatus,
    MovementDirection,
    MovementType,
)

OTHER_WAREHOUSE_ID = uuid4()


@pytest.fixture
def stocked(inventory_service, stock_item, warehouse_id, test_actor_id, session):
    """Factory: receive ``quantity`` of the stock item and commit."""

    def _receive(quantity):
        inventory_service.record_inbound(
            stock_item.id, warehouse_id, Decimal(quantity), test_actor_id,
            movement_type=MovementType.ADJUSTMENT,
        )
        session.commit()

    return _receive


class TestItems:

    def test_create_item(self, inventory_service, test_actor_id):
        item = inventory_service.create_item(" TNR-9 ", " Toner ", test_actor_id, unit="box")
        assert (item.sku, item.name, item.unit, item.is_active) == ("TNR-9", "Toner", "box", True)

    @pytest.mark.parametrize("sku, name", [("", "Toner"), ("TNR-9", "  ")])
    def test_item_requires_sku_and_name(self, inventory_service, test_actor_id, sku, name):
        with pytest.raises(RequiredFieldError):
            inventory_service.create_item(sku, name, test_actor_id)

    def test_unknown_item(self, inventory_service, warehouse_id, test_actor_id):
        with pytest.raises(InventoryItemNotFoundError):
            inventory_service.record_inbound(uuid4(), warehouse_id, Decimal("1"), test_actor_id)


class TestMovements:

    def test_inbound_accumulates(self, inventory_service, stock_item, warehouse_id, test_actor_id):
        first = inventory_service.record_inbound(
            stock_item.id, warehouse_id, Decimal("3"), test_actor_id, unit_cost=Decimal("99.90")
        )
        inventory_service.record_inbound(stock_item.id, warehouse_id, Decimal("2"), test_actor_id)

        assert first.direction == MovementDirection.INBOUND
        assert first.movement_type == MovementType.PURCHASE
        assert inventory_service.stock_on_hand(stock_item.id, warehouse_id) == Decimal("5")

    def test_warehouses_are_separate(self, inventory_service, stock_item, warehouse_id, test_actor_id):
        inventory_service.record_inbound(stock_item.id, warehouse_id, Decimal("4"), test_actor_id)
        assert inventory_service.stock_on_hand(stock_item.id, OTHER_WAREHOUSE_ID) == Decimal("0")

    def test_outbound_deducts(self, inventory_service, stocked, stock_item, warehouse_id, test_actor_id):
        stocked("5")
        movement = inventory_service.record_outbound(
            stock_item.id, warehouse_id, Decimal("5"), test_actor_id
        )
        assert movement.direction == MovementDirection.OUTBOUND
        assert inventory_service.stock_on_hand(stock_item.id, warehouse_id) == Decimal("0")

    def test_insufficient_stock(
        self, inventory_service, stocked, stock_item, warehouse_id, test_actor_id, captured_logs,
    ):
        stocked("2")
        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.record_outbound(
                stock_item.id, warehouse_id, Decimal("3"), test_actor_id
            )

        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert inventory_service.stock_on_hand(stock_item.id, warehouse_id) == Decimal("2")
        assert any(r["message"] == "inventory_outbound_insufficient" for r in captured_logs())

    def test_outbound_from_empty_warehouse(self, inventory_service, stock_item, test_actor_id):
        with pytest.raises(InsufficientStockError):
            inventory_service.record_outbound(
                stock_item.id, OTHER_WAREHOUSE_ID, Decimal("1"), test_actor_id
            )

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_quantity_must_be_positive(
        self, inventory_service, stock_item, warehouse_id, test_actor_id, quantity,
    ):
        with pytest.raises(InvalidAmountError):
            inventory_service.record_inbound(
                stock_item.id, warehouse_id, Decimal(quantity), test_actor_id
            )

    def test_has_inbound_for_purchase(self, inventory_service, stock_item, warehouse_id, test_actor_id):
        purchase_id = uuid4()
        assert not inventory_service.has_inbound_for_purchase(purchase_id, "PC2024010001")

        inventory_service.record_inbound(
            stock_item.id, warehouse_id, Decimal("1"), test_actor_id,
            related_order_no="PC2024010001",
        )
        assert inventory_service.has_inbound_for_purchase(purchase_id, "PC2024010001")
        assert not inventory_service.has_inbound_for_purchase(purchase_id)

    def test_outbound_does_not_count_as_receipt(
        self, inventory_service, stocked, stock_item, warehouse_id, test_actor_id,
    ):
        stocked("1")
        purchase_id = uuid4()
        inventory_service.record_outbound(
            stock_item.id, warehouse_id, Decimal("1"), test_actor_id,
            movement_type=MovementType.RETURN,
        )
        assert not inventory_service.has_inbound_for_purchase(purchase_id)


class TestApplications:

    def test_approve_deducts_stock(
        self, application_service, inventory_service, stocked, stock_item, warehouse_id,
        requester, school_approver,
    ):
        stocked("10")
        application = application_service.create(
            requester.id, stock_item.id, warehouse_id, Decimal("4"), reason="Lab session"
        )
        assert application.status == ApplicationStatus.PENDING

        approved = application_service.approve(application.id, school_approver.id)

        assert approved.status == ApplicationStatus.APPROVED
        assert approved.decided_by == school_approver.id
        assert approved.movement_id is not None
        assert inventory_service.stock_on_hand(stock_item.id, warehouse_id) == Decimal("6")

    def test_insufficient_stock_leaves_application_pending(
        self, application_service, inventory_service, stocked, stock_item, warehouse_id,
        requester, school_approver,
    ):
        stocked("1")
        application = application_service.create(
            requester.id, stock_item.id, warehouse_id, Decimal("2")
        )
        with pytest.raises(InsufficientStockError):
            application_service.approve(application.id, school_approver.id)

        assert application_service.get(application.id).status == ApplicationStatus.PENDING
        assert inventory_service.stock_on_hand(stock_item.id, warehouse_id) == Decimal("1")

    def test_reject(self, application_service, stock_item, warehouse_id, requester, school_approver):
        application = application_service.create(
            requester.id, stock_item.id, warehouse_id, Decimal("1")
        )
        with pytest.raises(RejectReasonRequiredError):
            application_service.reject(application.id, school_approver.id, " ")

        rejected = application_service.reject(application.id, school_approver.id, "Not in budget")
        assert rejected.status == ApplicationStatus.REJECTED
        assert rejected.rejection_reason == "Not in budget"
        assert rejected.movement_id is None

    def test_decisions_are_final(
        self, application_service, stocked, stock_item, warehouse_id, requester, school_approver,
    ):
        stocked("5")
        application = application_service.create(
            requester.id, stock_item.id, warehouse_id, Decimal("1")
        )
        application_service.approve(application.id, school_approver.id)

        with pytest.raises(ApplicationNotPendingError) as exc_info:
            application_service.approve(application.id, school_approver.id)
        assert exc_info.value.current_status == "approved"
        with pytest.raises(ApplicationNotPendingError):
            application_service.reject(application.id, school_approver.id, "changed mind")

    def test_unknown_application(self, application_service, school_approver):
        with pytest.raises(InventoryApplicationNotFoundError):
            application_service.approve(uuid4(), school_approver.id)

    def test_inactive_applicant(
        self, application_service, create_employee, stock_item, warehouse_id,
    ):
        from backoffice_kernel.exceptions import EmployeeNotFoundError

        former = create_employee("Former", is_active=False)
        with pytest.raises(EmployeeNotFoundError):
            application_service.create(former.id, stock_item.id, warehouse_id, Decimal("1"))
