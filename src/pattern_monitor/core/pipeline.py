"""
Message Processing Pipeline
===========================
Pure planning step for one inbound message.

process_message() runs the whole encode -> serialize -> bundle -> retrieval
chain without touching any host service and returns a MessagePlan: the
ordered store writes plus the log events to emit around them. The handler
executes the plan against a real bucket and logger.

Key-space:
    semantic:v1:{field_name}   one per field, last write wins
    bundle:v1:{subject}        one per message subject, last write wins

Field names and subjects are used verbatim (no escaping of ':').
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from loguru import logger

from .bundle import build_master_bundle
from .config import PatternMonitorConfig, RetrievalConfig, get_config
from .exceptions import EncodeError
from .field_encoder import EncodedFields, encode_json_fields
from .retrieval import SearchConfig, two_stage_search
from .serializer import serialise_vector

PREFIX_SEMANTIC = "semantic:v1"
PREFIX_BUNDLE = "bundle:v1"

INFO = "INFO"
WARNING = "WARNING"
DEBUG = "DEBUG"


def semantic_key(field_name: str) -> str:
    return f"{PREFIX_SEMANTIC}:{field_name}"


def bundle_key(subject: str) -> str:
    return f"{PREFIX_BUNDLE}:{subject}"


@dataclass(frozen=True)
class LogEvent:
    level: str
    message: str


@dataclass(frozen=True)
class PlannedWrite:
    key: str
    value: bytes
    kind: str  # "semantic" | "bundle"
    log: LogEvent


@dataclass
class MessagePlan:
    """Everything one message produces, in emission order."""
    subject: str
    log_events: List[LogEvent] = field(default_factory=list)
    writes: List[PlannedWrite] = field(default_factory=list)
    retrieval_events: List[LogEvent] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)
    skipped: bool = False
    skip_reason: Optional[str] = None

    @property
    def keys(self) -> List[str]:
        return [w.key for w in self.writes]


def run_retrieval_check(
    encoded: EncodedFields, retrieval: RetrievalConfig
) -> List[LogEvent]:
    """
    Query the finalized index with field 0 and report the result count.

    Only runs for messages with at least `retrieval.min_fields` fields.
    Failures are reported as a warning event; they never propagate.
    """
    if len(encoded) < retrieval.min_fields:
        return []
    query = encoded.id_to_vec.get(0)
    if query is None:
        return []

    query_field = encoded.id_to_field.get(0, "field_0")
    try:
        results = two_stage_search(
            query,
            encoded.index,
            encoded.id_to_vec,
            SearchConfig(candidate_k=retrieval.candidate_k),
            retrieval.top_k,
        )
    except Exception as e:
        logger.opt(exception=e).debug("retrieval self-check raised")
        return [LogEvent(WARNING, f"retrieval query for field '{query_field}' failed: {e}")]

    return [
        LogEvent(
            DEBUG,
            f"retrieval query for field '{query_field}' returned {len(results)} result(s)",
        )
    ]


def process_message(
    subject: str,
    body: Union[bytes, bytearray],
    config: Optional[PatternMonitorConfig] = None,
) -> MessagePlan:
    """
    Plan the writes and log events for one message.

    Malformed or non-object bodies and empty objects produce a skipped plan
    with a warning and no writes.

    Raises:
        SerializeError: a vector could not be serialised.
    """
    config = config or get_config()
    plan = MessagePlan(subject=subject)
    plan.log_events.append(
        LogEvent(INFO, f"received message on subject '{subject}' ({len(body)} bytes)")
    )

    try:
        encoded = encode_json_fields(body, config.encoding)
    except EncodeError as err:
        plan.log_events.append(LogEvent(WARNING, f"skipping message: {err}"))
        plan.skipped = True
        plan.skip_reason = str(err)
        return plan

    if encoded.is_empty:
        plan.log_events.append(LogEvent(WARNING, "empty JSON object; skipping"))
        plan.skipped = True
        plan.skip_reason = "empty JSON object"
        return plan

    for field_id in sorted(encoded.id_to_vec):
        field_name = encoded.field_name(field_id)
        data = serialise_vector(encoded.id_to_vec[field_id])
        plan.fields.append(field_name)
        plan.writes.append(
            PlannedWrite(
                key=semantic_key(field_name),
                value=data,
                kind="semantic",
                log=LogEvent(
                    DEBUG,
                    f"stored semantic vector for field '{field_name}' ({len(data)} bytes)",
                ),
            )
        )

    master = build_master_bundle(encoded.id_to_vec)
    if master is not None:
        bundle_bytes = serialise_vector(master)
        plan.writes.append(
            PlannedWrite(
                key=bundle_key(subject),
                value=bundle_bytes,
                kind="bundle",
                log=LogEvent(
                    INFO,
                    f"stored master bundle for subject '{subject}' "
                    f"({len(encoded)} fields, {len(bundle_bytes)} bytes)",
                ),
            )
        )

    plan.retrieval_events = run_retrieval_check(encoded, config.retrieval)
    return plan
