"""
ApproverAssignmentService -- least-loaded approver selection.

Responsibility:
    Pick exactly one active employee eligible to approve documents for an
    organization scope, balancing the pending workload.

Algorithm:
    1. role = routing[organization_type]   (e.g. school -> finance_school)
    2. candidates = active employees whose primary_role is the role OR who
       hold the role in employee_roles
    3. backlog(candidate) = number of non-deleted documents, across every
       registered backlog source, in ``pending_approval`` whose
       pending_approver_id is the candidate
    4. ORDER BY backlog ASC, employees.updated_at DESC, employees.id ASC
       LIMIT 1

Concurrency:
    Backlog counts are read WITHOUT locking.  Two concurrent submits may
    pick the same approver; that only affects how evenly work is spread.
    Correctness does not depend on it: the approver id is written by the
    caller under its own row lock, after re-checking the document status in
    the same transaction.

Failure modes:
    - ApproverNotFoundError (APPROVER_NOT_FOUND) when no candidate exists.
      This is a hard stop; callers do not retry and do not apply the submit.
"""

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import false, func, literal, null, or_, select, union_all

from backoffice_kernel.exceptions import ApproverNotFoundError, InvalidChoiceError
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.employee import EmployeeModel, EmployeeRoleModel
from backoffice_kernel.services.base import BaseService

logger = get_logger("services.approver_assignment")

PENDING_APPROVAL = "pending_approval"


class ApproverAssignmentService(BaseService[EmployeeModel]):
    """
    Read-only approver selection.

    ``backlog_sources`` are ORM classes exposing ``pending_approver_id``,
    ``status`` and ``is_deleted`` columns (purchases, reimbursements).
    """

    def __init__(
        self,
        session,
        role_by_organization: Mapping[str, str],
        backlog_sources: Sequence[Any] = (),
    ):
        super().__init__(session)
        self._roles = dict(role_by_organization)
        self._sources = tuple(backlog_sources)

    def role_for(self, organization_type: str) -> str:
        key = getattr(organization_type, "value", organization_type)
        try:
            return self._roles[key]
        except KeyError:
            raise InvalidChoiceError(
                "organization_type", key, tuple(sorted(self._roles))
            ) from None

    def _backlog_subquery(self):
        if not self._sources:
            # No registered sources: every candidate has zero backlog
            return (
                select(
                    null().label("approver_id"),
                    literal(0).label("pending_count"),
                )
                .where(false())
                .subquery("approver_load")
            )

        pending = union_all(
            *(
                select(src.pending_approver_id.label("approver_id")).where(
                    src.status == PENDING_APPROVAL,
                    src.is_deleted.is_(False),
                    src.pending_approver_id.is_not(None),
                )
                for src in self._sources
            )
        ).subquery("pending_documents")

        return (
            select(
                pending.c.approver_id,
                func.count().label("pending_count"),
            )
            .group_by(pending.c.approver_id)
            .subquery("approver_load")
        )

    def candidate_loads(self, organization_type: str) -> list[tuple[UUID, int]]:
        """All eligible candidates with their backlog, in selection order."""
        role = self.role_for(organization_type)
        load = self._backlog_subquery()
        backlog = func.coalesce(load.c.pending_count, 0)

        holds_role = or_(
            EmployeeModel.primary_role == role,
            EmployeeModel.id.in_(
                select(EmployeeRoleModel.employee_id).where(EmployeeRoleModel.role == role)
            ),
        )

        stmt = (
            select(EmployeeModel.id, backlog.label("backlog"))
            .outerjoin(load, load.c.approver_id == EmployeeModel.id)
            .where(EmployeeModel.is_active.is_(True), holds_role)
            .order_by(
                backlog.asc(),
                EmployeeModel.updated_at.desc(),
                EmployeeModel.id.asc(),
            )
        )
        return [(row.id, int(row.backlog)) for row in self.session.execute(stmt)]

    def assign(self, organization_type: str) -> UUID:
        """Return the id of the selected approver."""
        scope = getattr(organization_type, "value", organization_type)
        role = self.role_for(scope)
        candidates = self.candidate_loads(scope)
        if not candidates:
            logger.warning(
                "approver_not_found",
                extra={"organization_type": scope, "role": role},
            )
            raise ApproverNotFoundError(scope, role)

        approver_id, backlog = candidates[0]
        logger.info(
            "approver_assigned",
            extra={
                "role": role,
                "approver_id": str(approver_id),
                "backlog": backlog,
                "candidate_count": len(candidates),
            },
        )
        return approver_id
