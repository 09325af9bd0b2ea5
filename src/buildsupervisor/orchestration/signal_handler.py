"""
Signal handling for the orchestration module.

This module manages signal registration, cleanup, and delegation to active
BuildSupervisor instances using a global registry pattern.
"""

import logging
import signal
import threading
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from .supervisor import BuildSupervisor

logger = logging.getLogger(__name__)

# Signal handlers cannot be bound to instances, so active supervisors are
# kept in a process-wide registry. The handler runs on the main thread and
# may interrupt a holder of the lock, hence the RLock.
_active_supervisors: Dict[int, "BuildSupervisor"] = {}
_active_supervisors_lock = threading.RLock()


class SignalHandler:
    """
    Routes SIGINT and SIGTERM to every registered BuildSupervisor.
    """

    def __init__(self):
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        """Install the delegating handler, remembering the previous ones."""
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._global_signal_handler)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._global_signal_handler)
            self._signal_handlers_set = True
            logger.debug("Signal handlers set up for BuildSupervisor")
        except ValueError as e:
            # signal.signal() only works on the main thread.
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except ValueError as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def register_supervisor(self, supervisor_id: int, supervisor: "BuildSupervisor") -> None:
        with _active_supervisors_lock:
            _active_supervisors[supervisor_id] = supervisor
            logger.debug(f"Registered BuildSupervisor {supervisor_id} for signal handling")

    def unregister_supervisor(self, supervisor_id: int) -> None:
        with _active_supervisors_lock:
            if _active_supervisors.pop(supervisor_id, None) is not None:
                logger.debug(f"Unregistered BuildSupervisor {supervisor_id} from signal handling")

    @staticmethod
    def _global_signal_handler(signum: int, frame: Any) -> None:
        """
        Request shutdown of every active supervisor.

        Args:
            signum: Signal number that was received
            frame: Current stack frame (unused)
        """
        logger.warning(f"Signal {signal.Signals(signum).name} received. Shutting down active builds.")
        with _active_supervisors_lock:
            supervisors = list(_active_supervisors.items())
        for supervisor_id, supervisor in supervisors:
            logger.info(f"Requesting shutdown for BuildSupervisor {supervisor_id}")
            supervisor.request_shutdown()


def active_supervisor_count() -> int:
    with _active_supervisors_lock:
        return len(_active_supervisors)
