"""System resource snapshot and thread-count suggestion for the crawler."""

import os

import psutil

# Every in-flight fetch is a browser tab in crawl4ai.
MB_PER_TAB = 200


class ResourceMonitor:
    """Check free memory and CPUs before picking a batch size."""

    def __init__(
        self,
        max_memory_percent: float = 75.0,
        min_free_memory_mb: int = 512,
        min_threads: int = 1,
    ) -> None:
        self.max_memory_percent = max_memory_percent
        self.min_free_memory_mb = min_free_memory_mb
        self.min_threads = min_threads

    def suggest_max_threads(self, requested: int) -> int:
        """Cap a requested thread count by what the machine can hold.

        - ~200 MB per concurrent tab, after reserving min_free_memory_mb.
        - At most CPU_count * 2 (fetching is I/O bound).
        - Never more than requested, never fewer than min_threads.
        - Already above the memory threshold -> min_threads.
        """
        mem = psutil.virtual_memory()
        if mem.percent >= self.max_memory_percent:
            return self.min_threads

        available_mb = mem.available / (1024 * 1024)
        if available_mb < self.min_free_memory_mb:
            return self.min_threads

        memory_based = int((available_mb - self.min_free_memory_mb) / MB_PER_TAB)
        cpu_based = (os.cpu_count() or 2) * 2
        return max(min(memory_based, cpu_based, requested), self.min_threads)

    def get_snapshot(self) -> dict:
        """Return current resource snapshot for logging."""
        mem = psutil.virtual_memory()
        return {
            "cpu_percent": psutil.cpu_percent(interval=0.1),
            "memory_percent": mem.percent,
            "memory_available_mb": round(mem.available / (1024 * 1024)),
        }
