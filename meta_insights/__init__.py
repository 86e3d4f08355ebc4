"""Meta Marketing API insights: sync reports, async report jobs, pagination and batching."""

from .config import InsightsSettings, load_settings
from .infrastructure.error_handling import (
    InsightsError, InvalidUsage, ConfigError, TransportError, InsightsDataLimitError,
    DecodeError, InsightsTimeout, InsightsCancelled, JobFailed, RetriesExhausted,
    UnexpectedJobState, PaginationLimitExceeded,
)
from .integrations.graph_client import AccountAuth, GraphTransport
from .integrations.search import search_targeting
from .insights import (
    InsightsRequest, InsightsSession, JobMode, ReportResult, ReportRequester, request_insights,
)

__version__ = "1.0.0"

__all__ = [
    'InsightsSettings', 'load_settings',
    'InsightsError', 'InvalidUsage', 'ConfigError', 'TransportError', 'InsightsDataLimitError',
    'DecodeError', 'InsightsTimeout', 'InsightsCancelled', 'JobFailed', 'RetriesExhausted',
    'UnexpectedJobState', 'PaginationLimitExceeded',
    'AccountAuth', 'GraphTransport', 'search_targeting',
    'InsightsRequest', 'InsightsSession', 'JobMode', 'ReportResult', 'ReportRequester', 'request_insights',
]
