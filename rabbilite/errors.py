from contextlib import contextmanager

from pika.exceptions import (
    AMQPChannelError,
    AMQPConnectionError,
    AMQPError,
    ChannelClosed,
    ChannelClosedByBroker,
    ChannelWrongStateError,
)


# Exceptions


class MessageMiddlewareError(Exception):
    pass


class MessageMiddlewareDisconnectedError(MessageMiddlewareError):
    """Broker unreachable, credentials rejected or connection/channel lost"""


class MessageMiddlewareTopologyError(MessageMiddlewareError):
    """Declaration, binding or consume rejected by the broker"""


class MessageMiddlewareSerializationError(MessageMiddlewareError):
    pass


class MessageMiddlewareMessageError(MessageMiddlewareError):
    """Publish rejected by the broker"""


class MessageMiddlewareConsumingError(MessageMiddlewareError):
    pass


class DeliveryAlreadySettledError(MessageMiddlewareError):
    pass


@contextmanager
def translate_errors(rejected_error=MessageMiddlewareMessageError):
    """
    Maps pika exceptions raised inside the block to middleware exceptions.

    Lost connections and channels that are no longer usable become
    MessageMiddlewareDisconnectedError. A broker-side rejection (the channel
    was closed by the broker) or any other channel error becomes
    rejected_error.
    """
    try:
        yield
    except AMQPConnectionError as e:
        raise MessageMiddlewareDisconnectedError(str(e)) from e
    except ChannelClosedByBroker as e:
        raise rejected_error(str(e)) from e
    except (ChannelClosed, ChannelWrongStateError) as e:
        raise MessageMiddlewareDisconnectedError(str(e)) from e
    except AMQPChannelError as e:
        raise rejected_error(str(e)) from e
    except AMQPError as e:
        raise MessageMiddlewareError(str(e)) from e
