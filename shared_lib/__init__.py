"""
shared_lib — Storage-facing code shared by the worker and the service.

Public API:
    ByteSource, LocalByteSource, WebDAVByteSource  -- file byte access backends
    ByteSourceError, ByteSourceNotFound            -- backend failures
    compute_content_id, decode_content_id          -- sampled content identifiers
    MetaCoreClient                                 -- async metadata store client
    CallResult, CallStatus                         -- outcome of a store call
"""

from shared_lib.byte_source import (
    ByteSource,
    ByteSourceError,
    ByteSourceNotFound,
    FileStat,
    LocalByteSource,
    WebDAVByteSource,
    create_byte_source,
)
from shared_lib.content_id import (
    ContentIdInfo,
    SAMPLE_SIZE,
    address_of,
    compute_content_id,
    decode_content_id,
    sample_window,
)
from shared_lib.meta_core_client import MetaCoreClient
from shared_lib.result import CallResult, CallStatus

__all__ = [
    "ByteSource",
    "ByteSourceError",
    "ByteSourceNotFound",
    "FileStat",
    "LocalByteSource",
    "WebDAVByteSource",
    "create_byte_source",
    "ContentIdInfo",
    "SAMPLE_SIZE",
    "address_of",
    "compute_content_id",
    "decode_content_id",
    "sample_window",
    "MetaCoreClient",
    "CallResult",
    "CallStatus",
]
