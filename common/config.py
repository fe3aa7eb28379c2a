#!/usr/bin/env python3

import os
from configparser import ConfigParser
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode

from common.utils import BLOCKED_CONNECTION_TIMEOUT, HEARTBEAT


@dataclass
class MiddlewareConfig:
    """Configuration for RabbitMQ middleware"""

    host: str
    port: int
    username: str
    password: str
    virtual_host: str = "/"
    heartbeat: int = HEARTBEAT
    blocked_connection_timeout: int = BLOCKED_CONNECTION_TIMEOUT
    max_redeliveries: Optional[int] = None
    url_override: Optional[str] = None

    @property
    def url(self):
        """Broker URL accepted by pika.URLParameters"""
        if self.url_override:
            return self.url_override

        query = urlencode(
            {
                "heartbeat": self.heartbeat,
                "blocked_connection_timeout": self.blocked_connection_timeout,
            }
        )
        return "amqp://{}:{}@{}:{}/{}?{}".format(
            quote(self.username, safe=""),
            quote(self.password, safe=""),
            self.host,
            self.port,
            quote(self.virtual_host, safe=""),
            query,
        )


@dataclass
class NodeConfig:
    """Configuration for the consumer node"""

    logging_level: str
    consume_queue: Optional[str]
    consume_exchange: Optional[str]


def _parse_optional_int(value):
    if value is None or str(value).strip() == "":
        return None
    parsed = int(value)
    if parsed < 0:
        raise ValueError(f"expected a non-negative integer, got {parsed}")
    return parsed


def initialize_config(config_file="config.ini"):
    """Parse config file to find program config params

    Function that searches for program configuration parameters in the config file.
    Environment variables take precedence over config file values.
    If at least one of the required config parameters is not found a KeyError
    exception is thrown. If a parameter could not be parsed, a ValueError is thrown.
    If parsing succeeded, the function returns NodeConfig and MiddlewareConfig objects
    """

    config = ConfigParser(interpolation=None)

    # Read config file - raise error if it doesn't exist or can't be read
    config_files_read = config.read(config_file)
    if not config_files_read:
        raise KeyError(f"Configuration file '{config_file}' not found or could not be read")

    def _get_required_config(env_key, config_key):
        """Get configuration value from environment variable or config file, raise error if missing"""
        # Environment variables take precedence
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        # Try to get from config file
        try:
            return config["DEFAULT"][config_key]
        except KeyError:
            raise KeyError(
                f"Required configuration parameter '{config_key}' not found in environment variable '{env_key}' or config file"
            )

    def _get_optional_config(env_key, config_key, default=None):
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value
        return config["DEFAULT"].get(config_key, default)

    try:
        node_config = NodeConfig(
            logging_level=_get_required_config("LOGGING_LEVEL", "LOGGING_LEVEL"),
            consume_queue=_get_optional_config("CONSUME_QUEUE", "CONSUME_QUEUE") or None,
            consume_exchange=_get_optional_config("CONSUME_EXCHANGE", "CONSUME_EXCHANGE") or None,
        )
        if bool(node_config.consume_queue) == bool(node_config.consume_exchange):
            raise KeyError("exactly one of 'CONSUME_QUEUE' or 'CONSUME_EXCHANGE' must be set")

        middleware_config = MiddlewareConfig(
            host=_get_required_config("RABBITMQ_HOST", "RABBITMQ_HOST"),
            port=int(_get_required_config("RABBITMQ_PORT", "RABBITMQ_PORT")),
            username=_get_required_config("RABBITMQ_USER", "RABBITMQ_USER"),
            password=_get_required_config("RABBITMQ_PASSWORD", "RABBITMQ_PASSWORD"),
            virtual_host=_get_optional_config("RABBITMQ_VHOST", "RABBITMQ_VHOST", "/"),
            heartbeat=int(
                _get_optional_config("RABBITMQ_HEARTBEAT", "RABBITMQ_HEARTBEAT", HEARTBEAT)
            ),
            blocked_connection_timeout=int(
                _get_optional_config(
                    "RABBITMQ_BLOCKED_CONNECTION_TIMEOUT",
                    "RABBITMQ_BLOCKED_CONNECTION_TIMEOUT",
                    BLOCKED_CONNECTION_TIMEOUT,
                )
            ),
            max_redeliveries=_parse_optional_int(
                _get_optional_config("MAX_REDELIVERIES", "MAX_REDELIVERIES")
            ),
            url_override=_get_optional_config("RABBITMQ_URL", "RABBITMQ_URL") or None,
        )

    except KeyError as e:
        raise KeyError("Configuration error: {}. Aborting node".format(e))
    except ValueError as e:
        raise ValueError("Configuration parsing error: {}. Aborting node".format(e))

    return node_config, middleware_config
