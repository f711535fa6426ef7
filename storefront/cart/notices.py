"""User-facing cart notices (toasts)."""
from typing import Protocol

from storefront.logging import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Default notifier: writes notices to the log."""

    def success(self, message: str) -> None:
        logger.info(f"[notice] {message}")

    def error(self, message: str) -> None:
        logger.warning(f"[notice] {message}")
