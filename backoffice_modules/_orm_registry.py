"""
Module ORM Registry (``backoffice_modules._orm_registry``).

Responsibility
--------------
Import every SQLAlchemy model so that ``Base.metadata`` knows all tables
before ``create_all()`` runs.  ``backoffice_kernel.db.engine.create_tables``
calls ``import_all_orm_models`` lazily; scripts and ``tests/conftest.py``
use ``create_all_tables``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``backoffice_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    import backoffice_kernel.models  # noqa: F401
    # fmt: off
    import backoffice_modules.inventory.orm  # noqa: F401
    import backoffice_modules.purchase.orm  # noqa: F401
    import backoffice_modules.reimbursement.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Create kernel and module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from backoffice_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
