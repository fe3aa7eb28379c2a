# Connection and message constants shared by producers and consumers
import logging


HEARTBEAT = 600  # 10 minutes
BLOCKED_CONNECTION_TIMEOUT = 300

CONTENT_TYPE_JSON = "application/json"
PERSISTENT_DELIVERY_MODE = 2

FANOUT_EXCHANGE_TYPE = "fanout"
DEFAULT_EXCHANGE = ""

# Header set by quorum queues with the number of previous delivery attempts
DELIVERY_COUNT_HEADER = "x-delivery-count"

logger = logging.getLogger(__name__)


def log_action(action, result, level=logging.INFO, error=None, extra_fields=None):
    """
    Centralized logging function for consistent log format

    Args:
        action: The action being performed
        result: The result of the action (success, fail, etc.)
        level: Logging level (INFO, ERROR, DEBUG, etc.)
        error: Optional error information
        extra_fields: Optional dict with additional fields to log (e.g., queue, etc.)
    """
    log_parts = [
        f"action: {action}",
        f"result: {result}",
    ]

    if error:
        log_parts.append(f"error: {error}")

    if extra_fields:
        for key, value in extra_fields.items():
            log_parts.append(f"{key}: {value}")

    log_message = " | ".join(log_parts)
    logger.log(level, log_message)
