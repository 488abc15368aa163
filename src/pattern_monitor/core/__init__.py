"""
Pattern Monitor core: ternary VSA encoding, key-value persistence and the
per-message retrieval self-check.
"""

from .ternary_hdv import TernaryHDV, bind, bundle, encode_data, majority_bundle
from .serializer import serialise_vector, deserialise_vector
from .retrieval import TernaryInvertedIndex, SearchConfig, SearchResult, two_stage_search
from .field_encoder import EncodedFields, encode_json_fields, parse_json_object
from .bundle import build_master_bundle
from .pipeline import (
    LogEvent,
    MessagePlan,
    PlannedWrite,
    bundle_key,
    process_message,
    run_retrieval_check,
    semantic_key,
)
from .handler import BrokerMessage, MessageHandler
from .exceptions import (
    PatternMonitorError,
    ConfigurationError,
    EncodeError,
    ParseError,
    ShapeError,
    VectorError,
    DimensionMismatchError,
    SerializeError,
    StoreError,
    NoSuchStoreError,
    AccessDeniedError,
    StoreOtherError,
    RetrievalError,
    MessagingError,
)

__all__ = [
    "TernaryHDV",
    "bind",
    "bundle",
    "encode_data",
    "majority_bundle",
    "serialise_vector",
    "deserialise_vector",
    "TernaryInvertedIndex",
    "SearchConfig",
    "SearchResult",
    "two_stage_search",
    "EncodedFields",
    "encode_json_fields",
    "parse_json_object",
    "build_master_bundle",
    "LogEvent",
    "MessagePlan",
    "PlannedWrite",
    "bundle_key",
    "process_message",
    "run_retrieval_check",
    "semantic_key",
    "BrokerMessage",
    "MessageHandler",
    "PatternMonitorError",
    "ConfigurationError",
    "EncodeError",
    "ParseError",
    "ShapeError",
    "VectorError",
    "DimensionMismatchError",
    "SerializeError",
    "StoreError",
    "NoSuchStoreError",
    "AccessDeniedError",
    "StoreOtherError",
    "RetrievalError",
    "MessagingError",
]
