"""Core layer: exceptions, structured logging, YAML loading, and metrics.

Sits in the middle of the diamond DAG -- depends only on
``notecast.models`` and is depended upon by ``notecast.services``. The
exception module has no package imports at all, so the ``utils`` and
``nips`` layers raise its types too.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][notecast.core.logger.Logger].
    MetricsConfig: Textfile metrics exposition settings.
        See [MetricsConfig][notecast.core.metrics.MetricsConfig].
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][notecast.core.yaml.load_yaml].
    NotecastError: Root of the exception hierarchy.
        See [notecast.core.exceptions][notecast.core.exceptions].

See Also:
    [notecast.models][notecast.models]: Pure dataclass models consumed by
        this layer.
    [notecast.services][notecast.services]: Engines and the publisher that
        depend on this layer.
"""

from .exceptions import (
    ConfigurationError,
    EndpointOperationError,
    EndpointTimeoutError,
    InvalidCredentialFormatError,
    NoReachableEndpointsError,
    NoRelaysConfiguredError,
    NotecastError,
    PublishRejectedError,
    SourcePayloadMissingError,
    UploadError,
    UploadRejectedError,
    UploadResponseError,
    UploadTransportError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    FETCH_RESULT_TOTAL,
    OPERATION_DURATION_SECONDS,
    RELAY_PUBLISH_TOTAL,
    UPLOAD_TOTAL,
    MetricsConfig,
    record_broadcast,
    record_fetch,
    record_uploads,
    track_duration,
    write_metrics,
)
from .yaml import load_yaml


__all__ = [
    "FETCH_RESULT_TOTAL",
    "OPERATION_DURATION_SECONDS",
    "RELAY_PUBLISH_TOTAL",
    "UPLOAD_TOTAL",
    "ConfigurationError",
    "EndpointOperationError",
    "EndpointTimeoutError",
    "InvalidCredentialFormatError",
    "Logger",
    "MetricsConfig",
    "NoReachableEndpointsError",
    "NoRelaysConfiguredError",
    "NotecastError",
    "PublishRejectedError",
    "SourcePayloadMissingError",
    "StructuredFormatter",
    "UploadError",
    "UploadRejectedError",
    "UploadResponseError",
    "UploadTransportError",
    "format_kv_pairs",
    "load_yaml",
    "record_broadcast",
    "record_fetch",
    "record_uploads",
    "track_duration",
    "write_metrics",
]
