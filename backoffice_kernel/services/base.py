"""
BaseService -- abstract base for flush-only kernel services.

Responsibility:
    Common constructor and session contract.  Concrete services receive a
    SQLAlchemy ``Session`` and persist with ``session.flush()`` -- never
    ``session.commit()`` or ``session.rollback()``.  This is what lets a
    transition compose the status write, the workflow-log insert, finance
    sync and stock deduction inside one caller-owned transaction.

Failure modes:
    - A subclass that commits on its own breaks the all-or-nothing guarantee
      of every transition that composes it.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from backoffice_kernel.db.base import Base
from backoffice_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
