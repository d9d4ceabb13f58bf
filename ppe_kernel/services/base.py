"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service.  Services use ``session.flush()`` within the
    caller's transaction and never commit or roll back themselves.  The
    one exception is IssuanceEngine, which owns the issuance transaction.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ppe_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``ppe_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
