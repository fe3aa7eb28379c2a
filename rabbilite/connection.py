# pylint: disable=broad-exception-caught
import logging

import pika
from pika.exceptions import AMQPConnectionError, AMQPError

from rabbilite.errors import MessageMiddlewareDisconnectedError, MessageMiddlewareError


class Connection:
    """
    Owns one RabbitMQ connection and the single channel opened over it.

    Follows standard pattern:
    1. Parse the broker URL
    2. Open the TCP connection
    3. Open the channel used for every protocol operation of the client

    The channel is not safe for concurrent use. Whoever owns the client is
    expected to issue protocol calls from one thread at a time.
    """

    def __init__(self, url):
        self.url = url
        self.connection = None
        self.channel = None
        self.logger = logging.getLogger(__name__)

    def open(self):
        """Connect to the broker and open the channel. No retries are attempted."""
        try:
            parameters = pika.URLParameters(self.url)
        except Exception as e:
            self.logger.error(f"action: parse_broker_url | result: fail | error: {e}")
            raise MessageMiddlewareDisconnectedError(f"invalid broker url: {e}") from e

        try:
            self.connection = pika.BlockingConnection(parameters)
        except AMQPConnectionError as e:
            self.logger.error(f"action: rabbitmq_connect | result: fail | error: {e!r}")
            raise MessageMiddlewareDisconnectedError(str(e) or repr(e)) from e

        try:
            self.channel = self.connection.channel()
        except AMQPError as e:
            self.logger.error(f"action: channel_setup | result: fail | error: {e!r}")
            self._close_connection()
            raise MessageMiddlewareDisconnectedError(str(e) or repr(e)) from e

        self.logger.debug(
            "action: rabbitmq_connect | result: success | host: %s", parameters.host
        )
        return self

    def process_data_events(self, time_limit):
        """Drive the connection I/O loop, dispatching any pending deliveries"""
        if not self.is_connected():
            raise MessageMiddlewareDisconnectedError("connection is closed")
        self.connection.process_data_events(time_limit=time_limit)

    def is_connected(self):
        """Check if connection is active"""
        return bool(self.connection and not self.connection.is_closed)

    def close(self):
        """Close channel (if still open) and connection"""
        try:
            if self.channel and not self.channel.is_closed:
                self.channel.close()
                self.logger.debug("action: channel_close | result: success")
        except Exception as e:
            self.logger.error(f"action: channel_close | result: fail | error: {e}")
        finally:
            self._close_connection()

    def _close_connection(self):
        try:
            if self.connection and not self.connection.is_closed:
                self.connection.close()
                self.logger.debug("action: connection_close | result: success")
        except Exception as e:
            self.logger.error(f"action: connection_close | result: fail | error: {e}")


def open_connection(url):
    """Open a connection and its channel, raising on failure"""
    return Connection(url).open()


class BaseClient:
    """Shared lifecycle for producers and consumers: one connection, one channel"""

    def __init__(self, url):
        self._connection = open_connection(url)

    @property
    def channel(self):
        if self._connection.channel is None:
            raise MessageMiddlewareError("channel not available")
        return self._connection.channel

    def is_connected(self):
        return self._connection.is_connected()

    def close(self):
        self._connection.close()
