"""
Resource usage data models.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceSnapshot:
    """Aggregated CPU and memory usage of a build's process tree."""

    # Sum of per-process CPU usage; may exceed 100 on multi-core machines.
    cpu_percent: float
    rss_bytes: int
    process_count: int

    @property
    def rss_gb(self) -> float:
        return self.rss_bytes / (1024 ** 3)

    def describe(self) -> str:
        return (
            f"cpu={self.cpu_percent:.1f}% rss={self.rss_gb:.2f}GB "
            f"processes={self.process_count}"
        )
