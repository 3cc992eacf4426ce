"""
Dominant Color Service Metrics Collection
In-process metrics collection for monitoring and performance tracking.
"""
import time
from collections import defaultdict, deque, Counter
from typing import Any, Deque, Dict, Optional, Sequence
from threading import Lock


class MetricsCollector:
    """Simple in-process metrics collector."""

    # Most recent observations kept per series
    DEFAULT_WINDOW = 1000

    def __init__(self, window: int = DEFAULT_WINDOW):
        """Initialize metrics collector."""
        self._lock = Lock()
        self._window = window
        self._counters: Dict[str, int] = Counter()
        self._timings: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self._window))
        self._sampled_pixels: Deque[int] = deque(maxlen=window)
        self._start_time = time.time()

    def increment_request_count(self, mode: str):
        """Increment total and per-mode request counters."""
        with self._lock:
            self._counters["color_extract_requests_total"] += 1
            self._counters[f"color_extract_mode_total_{mode}"] += 1

    def increment_failure_count(self, error_type: str):
        """Increment failure counter by error type."""
        with self._lock:
            self._counters["color_extract_failed_total"] += 1
            self._counters[f"color_extract_error_{error_type.lower()}"] += 1

    def increment_transparent_count(self):
        """Count extractions that fell back to black (no opaque pixels)."""
        with self._lock:
            self._counters["color_extract_all_transparent_total"] += 1

    def record_timing(self, operation: str, duration_ms: float):
        """Record timing for an operation."""
        with self._lock:
            self._timings[f"{operation}_duration_ms"].append(duration_ms)

    def record_sampled_pixels(self, count: int):
        """Record number of pixels that reached aggregation."""
        with self._lock:
            self._sampled_pixels.append(count)

    def get_counters(self) -> Dict[str, int]:
        """Get current counter values."""
        with self._lock:
            return dict(self._counters)

    def get_timing_stats(self) -> Dict[str, Dict[str, float]]:
        """Get timing statistics."""
        with self._lock:
            stats = {}
            for operation, timings in self._timings.items():
                if timings:
                    stats[operation] = {
                        "count": len(timings),
                        "mean": sum(timings) / len(timings),
                        "min": min(timings),
                        "max": max(timings),
                        "p50": self._percentile(timings, 50),
                        "p95": self._percentile(timings, 95)
                    }
            return stats

    def get_sampled_pixel_stats(self) -> Dict[str, float]:
        """Get sampled pixel count statistics."""
        with self._lock:
            if not self._sampled_pixels:
                return {}

            return {
                "count": len(self._sampled_pixels),
                "mean": sum(self._sampled_pixels) / len(self._sampled_pixels),
                "min": min(self._sampled_pixels),
                "max": max(self._sampled_pixels),
                "p50": self._percentile(self._sampled_pixels, 50),
                "p95": self._percentile(self._sampled_pixels, 95)
            }

    def get_uptime_seconds(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        """Get complete metrics summary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "counters": self.get_counters(),
            "timing_stats": self.get_timing_stats(),
            "sampled_pixel_stats": self.get_sampled_pixel_stats()
        }

    def reset(self):
        """Reset all metrics (for testing)."""
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._sampled_pixels.clear()
            self._start_time = time.time()

    @staticmethod
    def _percentile(data: Sequence[float], percentile: int) -> float:
        """Calculate percentile of data."""
        if not data:
            return 0.0

        sorted_data = sorted(data)
        k = (len(sorted_data) - 1) * percentile / 100
        f = int(k)
        c = k - f

        if f + 1 < len(sorted_data):
            return sorted_data[f] + c * (sorted_data[f + 1] - sorted_data[f])
        else:
            return sorted_data[f]


# Global metrics instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _metrics
    if _metrics is not None:
        _metrics.reset()
