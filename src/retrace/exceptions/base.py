from __future__ import annotations


class RetraceError(Exception):
    """Base exception class for all retrace-specific errors.

    Every error raised by the core inherits from this class so the CLI can
    catch them at its boundary while system exceptions propagate naturally.

    Attributes:
        message: Human-readable error message describing what went wrong.

    Example:
        ```python
        try:
            await repo.save()
        except RetraceError as e:
            logger.error("save_failed", error=e.message)
        ```
    """

    def __init__(self, message: str) -> None:
        """Initialize the RetraceError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
