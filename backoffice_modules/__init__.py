"""
Back-office document modules (``backoffice_modules``).

Responsibility
--------------
The Purchase and Reimbursement state machines, the cross-entity
eligibility checks that link them, and the inventory collaborator whose
inbound movements gate purchase-sourced reimbursements.

Architecture position
---------------------
**Modules layer** -- each sub-package follows the same layout:
``models`` (enums and frozen DTOs), ``orm`` (SQLAlchemy persistence),
``workflows`` (declarative state machine) and ``service`` (the transition
facade).  Modules import from ``backoffice_kernel`` and ``backoffice_config``;
the kernel never imports from here.
"""
