"""
Idempotent broker topology declarations.

Declaring an entity that already exists with the same properties is a no-op
on the broker; a mismatch closes the channel and surfaces here as
MessageMiddlewareTopologyError.
"""

import logging

from common.utils import FANOUT_EXCHANGE_TYPE
from rabbilite.errors import MessageMiddlewareTopologyError, translate_errors

logger = logging.getLogger(__name__)


def declare_work_queue(channel, queue_name):
    """Declare a durable, non exclusive, non auto-delete queue"""
    try:
        with translate_errors(MessageMiddlewareTopologyError):
            channel.queue_declare(
                queue=queue_name,
                durable=True,
                exclusive=False,
                auto_delete=False,
            )
    except Exception as e:
        logger.error(
            f"action: declare_queue | result: fail | queue: {queue_name} | error: {e}"
        )
        raise
    logger.debug("action: declare_queue | result: success | queue: %s", queue_name)
    return queue_name


def declare_fanout_exchange(channel, exchange_name):
    """Declare a durable fanout exchange"""
    try:
        with translate_errors(MessageMiddlewareTopologyError):
            channel.exchange_declare(
                exchange=exchange_name,
                exchange_type=FANOUT_EXCHANGE_TYPE,
                durable=True,
                auto_delete=False,
                internal=False,
            )
    except Exception as e:
        logger.error(
            f"action: declare_exchange | result: fail | exchange: {exchange_name} | error: {e}"
        )
        raise
    logger.debug(
        "action: declare_exchange | result: success | exchange: %s", exchange_name
    )
    return exchange_name


def declare_subscription_queue(channel):
    """
    Declare a broker-named queue that lives only as long as this channel's
    connection: non durable, exclusive and auto-delete.

    Returns the generated queue name.
    """
    try:
        with translate_errors(MessageMiddlewareTopologyError):
            result = channel.queue_declare(
                queue="", durable=False, exclusive=True, auto_delete=True
            )
    except Exception as e:
        logger.error(f"action: declare_subscription_queue | result: fail | error: {e}")
        raise
    queue_name = result.method.queue
    logger.debug(
        "action: declare_subscription_queue | result: success | queue: %s", queue_name
    )
    return queue_name


def bind_queue(channel, queue_name, exchange_name, routing_key=""):
    """Bind a queue to an exchange"""
    try:
        with translate_errors(MessageMiddlewareTopologyError):
            channel.queue_bind(
                queue=queue_name, exchange=exchange_name, routing_key=routing_key
            )
    except Exception as e:
        logger.error(
            f"action: bind_queue | result: fail | "
            f"queue: {queue_name} | exchange: {exchange_name} | routing_key: {routing_key} | error: {e}"
        )
        raise
    logger.debug(
        f"action: bind_queue | result: success | "
        f"queue: {queue_name} | exchange: {exchange_name} | routing_key: {routing_key}"
    )
