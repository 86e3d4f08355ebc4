"""
Infrastructure shared by the insights components.

- error_handling: exception taxonomy and payload helpers
- metrics: prometheus counters/histograms
"""

from .error_handling import (
    InsightsError, InvalidUsage, ConfigError, TransportError, InsightsDataLimitError,
    DecodeError, InsightsTimeout, InsightsCancelled, JobFailed, RetriesExhausted,
    UnexpectedJobState, PaginationLimitExceeded, dump_payload,
)

__all__ = [
    'InsightsError', 'InvalidUsage', 'ConfigError', 'TransportError', 'InsightsDataLimitError',
    'DecodeError', 'InsightsTimeout', 'InsightsCancelled', 'JobFailed', 'RetriesExhausted',
    'UnexpectedJobState', 'PaginationLimitExceeded', 'dump_payload',
]
