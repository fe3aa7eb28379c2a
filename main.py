#!/usr/bin/env python3

from common.config import initialize_config
from common.utils import log_action
from rabbilite import Consumer, RedeliveryPolicy, decode_message
import logging
import signal
import sys


def initialize_log(logging_level):
    """
    Python custom logging initialization

    Current timestamp is added to be able to identify in docker
    compose logs the date when the log has arrived
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(message)s",
        level=logging_level,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def log_delivery(payload):
    """Default handler: log each JSON payload. Invalid JSON raises and is requeued."""
    message = decode_message(payload)
    log_action(
        "message_received",
        "success",
        level=logging.INFO,
        extra_fields={"message": message},
    )


def main():
    consumer = None
    try:
        # Initialize configuration
        node_config, middleware_config = initialize_config()

        # Initialize logging
        initialize_log(node_config.logging_level)

        logging.debug(
            "action: config | result: success | queue: %s | exchange: %s | max_redeliveries: %s | logging_level: %s",
            node_config.consume_queue,
            node_config.consume_exchange,
            middleware_config.max_redeliveries,
            node_config.logging_level,
        )

        consumer = Consumer(
            middleware_config.url,
            redelivery_policy=RedeliveryPolicy(middleware_config.max_redeliveries),
        )

        def _signal_handler(signum, frame):
            logging.info(
                "action: shutdown | result: in_progress | msg: received shutdown signal"
            )
            consumer.close()

        signal.signal(signal.SIGTERM, _signal_handler)

        if node_config.consume_exchange:
            task = consumer.start_consuming_from_fanout(
                node_config.consume_exchange, log_delivery
            )
        else:
            task = consumer.start_consuming(node_config.consume_queue, log_delivery)

        # Keep main thread alive until the stream ends
        task.join()
        logging.info("action: shutdown | result: success")

    except KeyError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
    except ValueError as e:
        print(f"Configuration Parse Error: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        logging.info(
            "action: shutdown | result: in_progress | msg: received keyboard interrupt"
        )
    except Exception as e:
        logging.error("action: consumer_main | result: fail | error: %s", e)
    finally:
        if consumer is not None:
            consumer.close()


if __name__ == "__main__":
    main()
