"""
Resource sampling for a build's process tree using the 'psutil' library.

The sampler aggregates CPU and RSS usage over the build process and all of
its descendants. It is used by the hang monitor to tell a busy, silent
compiler apart from an idle, deadlocked one.
"""

import logging
import threading
from typing import Dict, List, Optional

import psutil

from ..models.resources import ResourceSnapshot

logger = logging.getLogger(__name__)


class ResourceSampler:
    """
    Samples CPU and memory of a process tree rooted at one pid.

    psutil reports CPU usage relative to the previous call on the same
    Process object, so Process handles are kept across samples.
    """

    def __init__(self, pid: int, cpu_threshold_percent: float = 80.0,
                 memory_threshold_gb: float = 2.0):
        self.pid = pid
        self.cpu_threshold_percent = cpu_threshold_percent
        self.memory_threshold_gb = memory_threshold_gb
        self._processes: Dict[int, psutil.Process] = {}
        self._lock = threading.Lock()
        self._latest: Optional[ResourceSnapshot] = None
        self._cpu_warned = False
        self._memory_warned = False
        self.warnings: List[str] = []

    @property
    def latest(self) -> Optional[ResourceSnapshot]:
        with self._lock:
            return self._latest

    def sample(self) -> Optional[ResourceSnapshot]:
        """
        Take one sample of the process tree.

        Returns:
            The aggregated snapshot, or None if the root process is gone
        """
        try:
            root = self._processes.get(self.pid) or psutil.Process(self.pid)
            tree = [root] + root.children(recursive=True)
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            logger.debug(f"Process {self.pid} no longer exists, skipping resource sample")
            return None
        except psutil.AccessDenied:
            logger.warning(f"Access denied sampling resources of PID {self.pid}")
            return None

        cpu_total = 0.0
        rss_total = 0
        counted = 0
        alive: Dict[int, psutil.Process] = {}
        for proc in tree:
            # Reuse known handles so cpu_percent() has a reference point.
            handle = self._processes.get(proc.pid, proc)
            try:
                with handle.oneshot():
                    cpu_total += handle.cpu_percent(interval=None)
                    rss_total += handle.memory_info().rss
                alive[handle.pid] = handle
                counted += 1
            except (psutil.NoSuchProcess, psutil.ZombieProcess):
                continue
            except psutil.AccessDenied:
                logger.debug(f"Access denied sampling PID {proc.pid}")
                continue

        snapshot = ResourceSnapshot(cpu_percent=cpu_total, rss_bytes=rss_total, process_count=counted)
        with self._lock:
            self._processes = alive
            self._latest = snapshot
        self._check_thresholds(snapshot)
        return snapshot

    def _check_thresholds(self, snapshot: ResourceSnapshot) -> None:
        """Warn once per threshold when the build exceeds it."""
        if not self._cpu_warned and snapshot.cpu_percent >= self.cpu_threshold_percent:
            self._cpu_warned = True
            message = (
                f"Build CPU usage {snapshot.cpu_percent:.1f}% exceeded threshold "
                f"{self.cpu_threshold_percent:.1f}%"
            )
            logger.warning(message)
            self.warnings.append(message)
        if not self._memory_warned and snapshot.rss_gb >= self.memory_threshold_gb:
            self._memory_warned = True
            message = (
                f"Build memory usage {snapshot.rss_gb:.2f}GB exceeded threshold "
                f"{self.memory_threshold_gb:.2f}GB"
            )
            logger.warning(message)
            self.warnings.append(message)
