"""
NumberingService -- human-readable sequential document numbers.

Format: ``{prefix}{YYYYMM}{sequence:0{width}d}``, e.g. ``PC2024010001``.
The sequence restarts every month per prefix because the counter name is
``{prefix}{YYYYMM}``.  Allocation goes through SequenceService, so numbers
are unique under concurrency and a rolled-back create does not consume one.
"""

from sqlalchemy.orm import Session

from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.services.sequence_service import SequenceService

logger = get_logger("services.numbering")


class NumberingService:
    """Allocates document numbers inside the caller's transaction."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_width: int = 4,
    ):
        if sequence_width < 1:
            raise ValueError("sequence_width must be positive")
        self._sequences = SequenceService(session)
        self._clock = clock or SystemClock()
        self._width = sequence_width

    def next_number(self, prefix: str) -> str:
        if not prefix or not prefix.strip():
            raise ValueError("prefix cannot be empty")
        period = self._clock.now().strftime("%Y%m")
        counter_name = f"{prefix}{period}"
        seq = self._sequences.next_value(counter_name)
        number = f"{counter_name}{seq:0{self._width}d}"
        logger.debug(
            "document_number_allocated",
            extra={"prefix": prefix, "period": period, "number": number},
        )
        return number
