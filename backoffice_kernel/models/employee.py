"""
Employee identity tables.

The identity collaborator: who may act, who may approve, and for which
organization scope.  Roles are normalized into ``employee_roles`` rather
than a JSON array so that "holds role X" is a portable indexed lookup.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import Base, TrackedBase, UUIDString


class EmployeeModel(TrackedBase):
    """An employee record."""

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("email", name="uq_employee_email"),
        Index("idx_employee_primary_role", "primary_role"),
        Index("idx_employee_active", "is_active"),
    )

    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    roles: Mapped[list["EmployeeRoleModel"]] = relationship(
        "EmployeeRoleModel",
        back_populates="employee",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from backoffice_kernel.domain.dtos import Employee

        return Employee(
            id=self.id,
            display_name=self.display_name,
            email=self.email,
            primary_role=self.primary_role,
            roles=tuple(sorted(r.role for r in self.roles)),
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.display_name} [{self.primary_role}]>"


class EmployeeRoleModel(Base):
    """Additional role held by an employee."""

    __tablename__ = "employee_roles"

    __table_args__ = (
        UniqueConstraint("employee_id", "role", name="uq_employee_role"),
        Index("idx_employee_role_role", "role"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)

    employee: Mapped["EmployeeModel"] = relationship(
        "EmployeeModel",
        back_populates="roles",
    )
