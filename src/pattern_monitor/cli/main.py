"""
Pattern Monitor CLI - Main Entry Point

Command-line interface for running the monitor and inspecting its key-space.

Usage:
    pattern-monitor serve                                   # Subscribe and encode
    pattern-monitor process pattern.monitor.demo event.json # Encode one message
    pattern-monitor publish pattern.monitor.demo '{"a":1}'  # Publish test traffic
    pattern-monitor inspect semantic:v1:event               # Read a vector back
    pattern-monitor keys pattern.monitor.demo event depth   # Show key names
"""

import asyncio
import json
from contextlib import asynccontextmanager
from functools import wraps
from pathlib import Path
from typing import Callable, Optional

import click
from loguru import logger

from pattern_monitor.core.config import PatternMonitorConfig, load_config
from pattern_monitor.core.exceptions import PatternMonitorError
from pattern_monitor.core.handler import BrokerMessage, MessageHandler
from pattern_monitor.core.kv_store import RedisKeyValueStore
from pattern_monitor.core.logging_config import configure_logging
from pattern_monitor.core.messaging import RedisMessageSubscriber, publish_message
from pattern_monitor.core.pipeline import bundle_key, semantic_key
from pattern_monitor.core.serializer import deserialise_vector


# ============================================================================
# Store Lifecycle / Error Reporting
# ============================================================================

@asynccontextmanager
async def bucket_context(config: PatternMonitorConfig):
    """
    Open the configured bucket for the duration of one command.

    Usage:
        async with bucket_context(config) as bucket:
            data = await bucket.get("semantic:v1:event")
    """
    store = RedisKeyValueStore(config.store)
    async with store.open(config.store.bucket) as bucket:
        yield bucket


def reports_errors(func: Callable) -> Callable:
    """
    Decorator turning PatternMonitorError into a one-line stderr message
    and exit status 1.
    """
    @wraps(func)
    def wrapper(ctx, *args, **kwargs):
        try:
            return func(ctx, *args, **kwargs)
        except PatternMonitorError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    return wrapper


# ============================================================================
# CLI Group and Main Entry
# ============================================================================

@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to config.yaml file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx, config: Optional[str], log_level: Optional[str]):
    """
    Pattern Monitor - hypervector encoding for JSON event streams.

    Encodes each field of an inbound JSON message as a ternary hypervector,
    bundles the fields per subject and persists both into Redis.
    """
    ctx.ensure_object(dict)

    try:
        settings = load_config(Path(config) if config else None)
    except PatternMonitorError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
        return

    ctx.obj["config_path"] = config
    ctx.obj["config"] = settings

    configure_logging(
        level=log_level or settings.observability.log_level,
        json_format=settings.observability.json_logs,
        enqueue=False,
    )


# ============================================================================
# CLI Commands
# ============================================================================

@cli.command()
@click.option(
    "--max-messages",
    "-n",
    type=int,
    default=None,
    help="Stop after this many messages (default: run until interrupted)",
)
@click.pass_context
@reports_errors
def serve(ctx, max_messages: Optional[int]):
    """
    Subscribe to the configured subject pattern and encode every message.

    Example:
        pattern-monitor serve
    """
    config: PatternMonitorConfig = ctx.obj["config"]
    handler = MessageHandler(RedisKeyValueStore(config.store), config)
    subscriber = RedisMessageSubscriber(config.messaging, handler)

    try:
        asyncio.run(subscriber.run(max_messages=max_messages))
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")

    click.echo(f"Processed: {subscriber.processed}, failed: {subscriber.failed}")


@cli.command()
@click.argument("subject")
@click.argument("payload", type=click.File("rb"), default="-")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output as JSON",
)
@click.pass_context
@reports_errors
def process(ctx, subject: str, payload, output_json: bool):
    """
    Encode one message and write its vectors to the configured bucket.

    PAYLOAD is a file containing the message body, or '-' for stdin.

    Example:
        pattern-monitor process pattern.monitor.demo event.json
    """
    config: PatternMonitorConfig = ctx.obj["config"]
    body = payload.read()
    handler = MessageHandler(RedisKeyValueStore(config.store), config)
    plan = asyncio.run(handler.handle_message(BrokerMessage(subject=subject, body=body)))

    if output_json:
        click.echo(json.dumps({
            "subject": plan.subject,
            "skipped": plan.skipped,
            "skip_reason": plan.skip_reason,
            "fields": plan.fields,
            "keys": plan.keys,
        }, indent=2))
        return

    if plan.skipped:
        click.echo(f"Skipped: {plan.skip_reason}")
        return

    click.echo(f"Stored {len(plan.writes)} vector(s) for subject '{subject}':")
    for write in plan.writes:
        click.echo(f"  {write.key} ({len(write.value)} bytes)")


@cli.command()
@click.argument("subject")
@click.argument("payload")
@click.pass_context
@reports_errors
def publish(ctx, subject: str, payload: str):
    """
    Publish PAYLOAD on the SUBJECT channel.

    Example:
        pattern-monitor publish pattern.monitor.demo '{"event":"quake"}'
    """
    config: PatternMonitorConfig = ctx.obj["config"]
    receivers = asyncio.run(publish_message(config.messaging.url, subject, payload))
    click.echo(f"Published to '{subject}' ({receivers} subscriber(s))")


@cli.command()
@click.argument("key")
@click.option(
    "--compare",
    "compare_key",
    default=None,
    help="Second key; print the cosine similarity between the two vectors",
)
@click.pass_context
@reports_errors
def inspect(ctx, key: str, compare_key: Optional[str]):
    """
    Read a persisted vector back and print its shape.

    Example:
        pattern-monitor inspect bundle:v1:pattern.monitor.demo
    """
    config: PatternMonitorConfig = ctx.obj["config"]

    async def _load():
        async with bucket_context(config) as bucket:
            first = await bucket.get(key)
            second = await bucket.get(compare_key) if compare_key else None
            return first, second

    data, other = asyncio.run(_load())
    if data is None:
        click.echo(f"Error: key '{key}' not found", err=True)
        ctx.exit(1)
        return

    vec = deserialise_vector(data)
    click.echo(f"Key:        {key}")
    click.echo(f"Dimension:  {vec.dimension}")
    click.echo(f"Non-zero:   {vec.nnz}")
    click.echo(f"Bytes:      {len(data)}")

    if compare_key:
        if other is None:
            click.echo(f"Error: key '{compare_key}' not found", err=True)
            ctx.exit(1)
            return
        similarity = vec.cosine_similarity(deserialise_vector(other))
        click.echo(f"Cosine vs {compare_key}: {similarity:.4f}")


@cli.command()
@click.argument("subject")
@click.argument("fields", nargs=-1, required=True)
def keys(subject: str, fields: tuple):
    """
    Print the keys a message with these top-level FIELDS would write.

    Example:
        pattern-monitor keys pattern.monitor.demo event magnitude
    """
    for name in fields:
        click.echo(semantic_key(name))
    click.echo(bundle_key(subject))


def main():
    cli(obj={})


if __name__ == "__main__":
    cli()
