"""
Pattern Monitor - Hypervector Encoding for JSON Event Streams
=============================================================

Encodes every field of an inbound JSON message as a ternary hyperdimensional
vector (key bound to value), superposes the fields into one bundle vector
per message, and persists both into Redis under a deterministic key scheme.

Main Packages:
    - core: VSA primitives, field encoder, serializer, retrieval index,
      message pipeline, Redis store and pub/sub adapter
    - cli: Command-line interface

Quick Start:
    from pattern_monitor.core import process_message

    plan = process_message("pattern.monitor.demo", b'{"event":"quake"}')
    for write in plan.writes:
        print(write.key, len(write.value))
"""

__version__ = "1.0.0"
