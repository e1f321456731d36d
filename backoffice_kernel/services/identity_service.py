"""
IdentityService -- employee lookup for actor, applicant and approver checks.

The workflow engine consumes identity through this narrow interface only:
find by id or email, and ``ensure_employee_record_exists`` to reject writes
on behalf of unknown or deactivated employees.  ``create_employee`` and
``set_active`` exist for seeding and administration.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from backoffice_kernel.domain.dtos import Employee
from backoffice_kernel.exceptions import EmployeeNotFoundError, RequiredFieldError
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.employee import EmployeeModel, EmployeeRoleModel
from backoffice_kernel.services.base import BaseService

logger = get_logger("services.identity")


class IdentityService(BaseService[EmployeeModel]):
    """Employee lookup and seeding (flush-only)."""

    def find_employee_by_id(self, employee_id: UUID) -> Employee | None:
        model = self.session.get(EmployeeModel, employee_id)
        return model.to_dto() if model is not None else None

    def find_employee_by_email(self, email: str) -> Employee | None:
        if not email or not email.strip():
            return None
        model = self.session.execute(
            select(EmployeeModel).where(
                func.lower(EmployeeModel.email) == email.strip().lower()
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def ensure_employee_record_exists(
        self,
        employee_id: UUID | None,
        purpose: str = "employee",
    ) -> Employee:
        """
        Return the active employee or raise.

        Raises:
            EmployeeNotFoundError: unknown id, missing id, or inactive employee.
        """
        if employee_id is None:
            raise EmployeeNotFoundError(None, purpose)
        employee = self.find_employee_by_id(employee_id)
        if employee is None or not employee.is_active:
            logger.info(
                "employee_lookup_failed",
                extra={"employee_id": str(employee_id), "purpose": purpose},
            )
            raise EmployeeNotFoundError(employee_id, purpose)
        return employee

    def create_employee(
        self,
        display_name: str,
        actor_id: UUID,
        *,
        email: str | None = None,
        primary_role: str | None = None,
        roles: Iterable[str] = (),
        is_active: bool = True,
        employee_id: UUID | None = None,
    ) -> Employee:
        if not display_name or not display_name.strip():
            raise RequiredFieldError("Employee", "display_name")

        model = EmployeeModel(
            display_name=display_name.strip(),
            email=email.strip() if email else None,
            primary_role=primary_role,
            is_active=is_active,
            created_by_id=actor_id,
        )
        if employee_id is not None:
            model.id = employee_id
        for role in dict.fromkeys(r.strip() for r in roles if r and r.strip()):
            model.roles.append(EmployeeRoleModel(role=role))

        self.session.add(model)
        self.session.flush()
        logger.info(
            "employee_created",
            extra={
                "employee_id": str(model.id),
                "primary_role": primary_role,
                "role_count": len(model.roles),
            },
        )
        return model.to_dto()

    def set_active(self, employee_id: UUID, is_active: bool, actor_id: UUID) -> Employee:
        model = self.session.get(EmployeeModel, employee_id)
        if model is None:
            raise EmployeeNotFoundError(employee_id)
        model.is_active = is_active
        model.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "employee_activation_changed",
            extra={"employee_id": str(employee_id), "is_active": is_active},
        )
        return model.to_dto()
