"""
Inventory Module Service (``backoffice_modules.inventory.service``).

Responsibility
--------------
Stock movements against per-warehouse snapshots, and the approval of stock
applications that draw from them.  Purchase-sourced reimbursements consult
``has_inbound_for_purchase`` to confirm the goods were received.

Invariants enforced
-------------------
* The snapshot row for ``(item_id, warehouse_id)`` is locked
  ``SELECT ... FOR UPDATE`` before the available quantity is compared, so
  two concurrent outbounds can never both pass the check against the same
  pre-deduction quantity.
* ``InventoryService`` is flush-only; ``InventoryApplicationService.approve``
  runs the application status check, the deduction and the status change in
  one coordinator transaction.

Failure modes
-------------
* ``InsufficientStockError`` when the locked quantity is below the request.
* ``InventoryItemNotFoundError`` / ``InventoryApplicationNotFoundError``.
* ``ApplicationNotPendingError`` when an application was already decided.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    ApplicationNotPendingError,
    InsufficientStockError,
    InvalidAmountError,
    InventoryApplicationNotFoundError,
    InventoryItemNotFoundError,
    RejectReasonRequiredError,
    RequiredFieldError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.services.base import BaseService
from backoffice_kernel.services.identity_service import IdentityService
from backoffice_kernel.services.transaction import TransactionCoordinator
from backoffice_modules._transition_helpers import optional_text, to_decimal
from backoffice_modules.inventory.models import (
    ApplicationStatus,
    InventoryApplication,
    InventoryItem,
    InventoryMovement,
    MovementDirection,
    MovementType,
)
from backoffice_modules.inventory.orm import (
    InventoryApplicationModel,
    InventoryItemModel,
    InventoryMovementModel,
    StockSnapshotModel,
)
from backoffice_modules.inventory.workflows import INVENTORY_APPLICATION_WORKFLOW

logger = get_logger("modules.inventory.service")

ENTITY_APPLICATION = "inventory_application"


def _positive_quantity(quantity) -> Decimal:
    value = to_decimal("quantity", quantity)
    if value <= 0:
        raise InvalidAmountError("quantity", value, "greater than zero")
    return value


class InventoryService(BaseService[StockSnapshotModel]):
    """Flush-only stock movements."""

    def create_item(
        self, sku: str, name: str, actor_id: UUID, unit: str = "pcs"
    ) -> InventoryItem:
        if not sku or not sku.strip():
            raise RequiredFieldError("InventoryItem", "sku")
        if not name or not name.strip():
            raise RequiredFieldError("InventoryItem", "name")
        model = InventoryItemModel(
            sku=sku.strip(),
            name=name.strip(),
            unit=unit,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()
        logger.info("inventory_item_created", extra={"item_id": str(model.id), "sku": model.sku})
        return model.to_dto()

    def require_item(self, item_id: UUID) -> InventoryItemModel:
        item = self.session.get(InventoryItemModel, item_id)
        if item is None or not item.is_active:
            raise InventoryItemNotFoundError(item_id)
        return item

    def _locked_snapshot(self, item_id: UUID, warehouse_id: UUID) -> StockSnapshotModel | None:
        return self.session.execute(
            select(StockSnapshotModel)
            .where(
                StockSnapshotModel.item_id == item_id,
                StockSnapshotModel.warehouse_id == warehouse_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _locked_or_new_snapshot(
        self, item_id: UUID, warehouse_id: UUID, actor_id: UUID
    ) -> StockSnapshotModel:
        snapshot = self._locked_snapshot(item_id, warehouse_id)
        if snapshot is not None:
            return snapshot

        # First receipt into this warehouse; a concurrent receipt may create it too
        savepoint = self.session.begin_nested()
        try:
            snapshot = StockSnapshotModel(
                item_id=item_id,
                warehouse_id=warehouse_id,
                quantity=Decimal("0"),
                created_by_id=actor_id,
            )
            self.session.add(snapshot)
            self.session.flush()
            savepoint.commit()
            return snapshot
        except IntegrityError:
            savepoint.rollback()
            snapshot = self._locked_snapshot(item_id, warehouse_id)
            if snapshot is None:
                raise
            return snapshot

    def record_inbound(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
        *,
        movement_type: MovementType = MovementType.PURCHASE,
        related_purchase_id: UUID | None = None,
        related_order_no: str | None = None,
        unit_cost: Decimal | None = None,
        notes: str | None = None,
    ) -> InventoryMovement:
        """Receive stock: increment the locked snapshot and append a movement."""
        qty = _positive_quantity(quantity)
        self.require_item(item_id)

        snapshot = self._locked_or_new_snapshot(item_id, warehouse_id, actor_id)
        snapshot.quantity = snapshot.quantity + qty
        snapshot.updated_by_id = actor_id

        movement = InventoryMovementModel(
            item_id=item_id,
            warehouse_id=warehouse_id,
            direction=MovementDirection.INBOUND.value,
            movement_type=MovementType(movement_type).value,
            quantity=qty,
            unit_cost=unit_cost,
            related_purchase_id=related_purchase_id,
            related_order_no=optional_text(related_order_no),
            occurred_at=self.clock.now(),
            notes=optional_text(notes),
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "inventory_inbound_recorded",
            extra={
                "item_id": str(item_id),
                "warehouse_id": str(warehouse_id),
                "quantity": str(qty),
                "on_hand": str(snapshot.quantity),
                "related_purchase_id": str(related_purchase_id) if related_purchase_id else None,
            },
        )
        return movement.to_dto()

    def record_outbound(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
        *,
        movement_type: MovementType = MovementType.APPLICATION,
        related_application_id: UUID | None = None,
        notes: str | None = None,
    ) -> InventoryMovement:
        """
        Issue stock.

        The snapshot is locked first and the comparison is made against the
        locked quantity.

        Raises:
            InsufficientStockError: locked quantity < requested quantity.
        """
        qty = _positive_quantity(quantity)
        self.require_item(item_id)

        snapshot = self._locked_snapshot(item_id, warehouse_id)
        available = snapshot.quantity if snapshot is not None else Decimal("0")
        if snapshot is None or available < qty:
            logger.warning(
                "inventory_outbound_insufficient",
                extra={
                    "item_id": str(item_id),
                    "warehouse_id": str(warehouse_id),
                    "available": str(available),
                    "requested": str(qty),
                },
            )
            raise InsufficientStockError(item_id, warehouse_id, available, qty)

        snapshot.quantity = available - qty
        snapshot.updated_by_id = actor_id

        movement = InventoryMovementModel(
            item_id=item_id,
            warehouse_id=warehouse_id,
            direction=MovementDirection.OUTBOUND.value,
            movement_type=MovementType(movement_type).value,
            quantity=qty,
            related_application_id=related_application_id,
            occurred_at=self.clock.now(),
            notes=optional_text(notes),
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "inventory_outbound_recorded",
            extra={
                "item_id": str(item_id),
                "warehouse_id": str(warehouse_id),
                "quantity": str(qty),
                "on_hand": str(snapshot.quantity),
            },
        )
        return movement.to_dto()

    def has_inbound_for_purchase(
        self, purchase_id: UUID, purchase_number: str | None = None
    ) -> bool:
        """True when at least one inbound movement references the purchase."""
        match = InventoryMovementModel.related_purchase_id == purchase_id
        if purchase_number:
            match = or_(match, InventoryMovementModel.related_order_no == purchase_number)
        row = self.session.execute(
            select(InventoryMovementModel.id)
            .where(
                InventoryMovementModel.direction == MovementDirection.INBOUND.value,
                match,
            )
            .limit(1)
        ).first()
        return row is not None

    def stock_on_hand(self, item_id: UUID, warehouse_id: UUID) -> Decimal:
        quantity = self.session.execute(
            select(StockSnapshotModel.quantity).where(
                StockSnapshotModel.item_id == item_id,
                StockSnapshotModel.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        return quantity if quantity is not None else Decimal("0")


class InventoryApplicationService:
    """
    Stock application decisions.

    Transaction boundary: each public method runs in one
    ``TransactionCoordinator`` transaction; ``auto_commit=False`` nests it in
    a savepoint of the caller's transaction instead.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._inventory = InventoryService(session, self._clock)
        self._identity = IdentityService(session, self._clock)
        self._coordinator = TransactionCoordinator(session, auto_commit=auto_commit)

    def _locked_application(self, application_id: UUID) -> InventoryApplicationModel:
        app = self._session.execute(
            select(InventoryApplicationModel)
            .where(InventoryApplicationModel.id == application_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if app is None:
            raise InventoryApplicationNotFoundError(application_id)
        return app

    def _require_pending(self, app: InventoryApplicationModel, action: str) -> None:
        if not INVENTORY_APPLICATION_WORKFLOW.can(app.status, action):
            raise ApplicationNotPendingError(ENTITY_APPLICATION, app.id, app.status)

    def get(self, application_id: UUID) -> InventoryApplication:
        app = self._session.get(InventoryApplicationModel, application_id)
        if app is None:
            raise InventoryApplicationNotFoundError(application_id)
        return app.to_dto()

    def create(
        self,
        applicant_id: UUID,
        item_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal,
        reason: str | None = None,
    ) -> InventoryApplication:
        with self._coordinator.transaction("inventory_application_create"):
            self._identity.ensure_employee_record_exists(applicant_id, "applicant")
            qty = _positive_quantity(quantity)
            self._inventory.require_item(item_id)
            app = InventoryApplicationModel(
                applicant_id=applicant_id,
                item_id=item_id,
                warehouse_id=warehouse_id,
                quantity=qty,
                reason=optional_text(reason),
                status=ApplicationStatus.PENDING.value,
                created_by_id=applicant_id,
            )
            self._session.add(app)
            self._session.flush()
            result = app.to_dto()
        logger.info(
            "inventory_application_created",
            extra={"application_id": str(result.id), "quantity": str(result.quantity)},
        )
        return result

    def approve(self, application_id: UUID, operator_id: UUID) -> InventoryApplication:
        """Check pending, deduct stock and mark approved in one transaction."""
        with self._coordinator.transaction(
            "inventory_application_approve", application_id=application_id
        ):
            app = self._locked_application(application_id)
            self._require_pending(app, "approve")
            movement = self._inventory.record_outbound(
                app.item_id,
                app.warehouse_id,
                app.quantity,
                operator_id,
                movement_type=MovementType.APPLICATION,
                related_application_id=app.id,
            )
            app.status = ApplicationStatus.APPROVED.value
            app.decided_at = self._clock.now()
            app.decided_by = operator_id
            app.movement_id = movement.id
            app.updated_by_id = operator_id
            self._session.flush()
            result = app.to_dto()
        logger.info(
            "inventory_application_approved",
            extra={"application_id": str(application_id), "movement_id": str(movement.id)},
        )
        return result

    def reject(
        self, application_id: UUID, operator_id: UUID, reason: str
    ) -> InventoryApplication:
        with self._coordinator.transaction(
            "inventory_application_reject", application_id=application_id
        ):
            app = self._locked_application(application_id)
            self._require_pending(app, "reject")
            if not reason or not reason.strip():
                raise RejectReasonRequiredError(ENTITY_APPLICATION, application_id)
            app.status = ApplicationStatus.REJECTED.value
            app.decided_at = self._clock.now()
            app.decided_by = operator_id
            app.rejection_reason = reason.strip()
            app.updated_by_id = operator_id
            self._session.flush()
            result = app.to_dto()
        logger.info(
            "inventory_application_rejected",
            extra={"application_id": str(application_id)},
        )
        return result
