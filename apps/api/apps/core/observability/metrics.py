"""
Metrics instrumentation.

Prometheus counters and histograms for the scheduling engine, kept in one
registry so every metric name is declared in a single place.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self, registry=None):
        # None means the prometheus_client default registry
        self._registry = registry
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        """Create a counter metric."""
        kwargs = {'registry': self._registry} if self._registry is not None else {}
        return Counter(name, description, labels or [], **kwargs)

    def _create_histogram(self, name, description, labels=None, buckets=None):
        """Create a histogram metric."""
        kwargs = {'registry': self._registry} if self._registry is not None else {}
        if buckets:
            kwargs['buckets'] = buckets
        return Histogram(name, description, labels or [], **kwargs)

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Booking Metrics
        # ===================================================================
        self.appointment_bookings_total = self._create_counter(
            'appointment_bookings_total',
            'Appointment booking attempts',
            ['kind', 'result']  # result: success|conflict|not_found|invalid|replayed|error
        )

        self.appointment_booking_duration_seconds = self._create_histogram(
            'appointment_booking_duration_seconds',
            'Duration of a booking, provider call included',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.appointment_transitions_total = self._create_counter(
            'appointment_transitions_total',
            'Appointment status transitions',
            ['from_status', 'to_status', 'result']
        )

        # ===================================================================
        # Meeting Provider Metrics
        # ===================================================================
        self.meeting_resources_total = self._create_counter(
            'meeting_resources_total',
            'Meeting resources handed out',
            ['mode']  # mode: real|synthetic
        )

        self.meeting_provider_failures_total = self._create_counter(
            'meeting_provider_failures_total',
            'Meeting provider calls that fell back to a synthetic resource',
            ['failure_reason']
        )

        self.meeting_provider_duration_seconds = self._create_histogram(
            'meeting_provider_duration_seconds',
            'Latency of real meeting provider calls',
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.appointment_booking_duration_seconds)
            def book(self, request):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
