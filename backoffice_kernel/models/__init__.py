"""Kernel ORM models shared by every workflow module."""

from backoffice_kernel.models.employee import EmployeeModel, EmployeeRoleModel
from backoffice_kernel.models.finance_record import FinanceExpenseRecordModel
from backoffice_kernel.models.workflow_log import WorkflowLogModel
from backoffice_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "EmployeeModel",
    "EmployeeRoleModel",
    "FinanceExpenseRecordModel",
    "WorkflowLogModel",
    "SequenceCounter",
]
