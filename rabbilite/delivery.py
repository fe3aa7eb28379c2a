from enum import Enum

from rabbilite.errors import DeliveryAlreadySettledError


class DeliveryState(Enum):
    RECEIVED = "received"
    DISPATCHED = "dispatched"
    ACKED = "acked"
    REQUEUED = "requeued"
    REJECTED = "rejected"


SETTLED_STATES = (DeliveryState.ACKED, DeliveryState.REQUEUED, DeliveryState.REJECTED)


class Delivery:
    """
    One message received from the broker and the channel it must be settled on.

    A delivery moves RECEIVED -> DISPATCHED -> one of ACKED, REQUEUED or
    REJECTED, and is settled exactly once.
    """

    def __init__(self, channel, method, properties, body):
        self._channel = channel
        self.delivery_tag = method.delivery_tag
        self.redelivered = bool(getattr(method, "redelivered", False))
        self.headers = (getattr(properties, "headers", None) or {}) if properties is not None else {}
        self.body = body
        self.state = DeliveryState.RECEIVED

    @property
    def settled(self):
        return self.state in SETTLED_STATES

    def dispatch(self, handler):
        """Hand the payload to handler. Exceptions raised by handler propagate."""
        if self.state is not DeliveryState.RECEIVED:
            raise DeliveryAlreadySettledError(
                f"delivery {self.delivery_tag} cannot be dispatched from state {self.state.value}"
            )
        self.state = DeliveryState.DISPATCHED
        handler(self.body)

    def ack(self):
        self._settle(DeliveryState.ACKED)
        self._channel.basic_ack(delivery_tag=self.delivery_tag)

    def nack(self, requeue=True):
        self._settle(DeliveryState.REQUEUED if requeue else DeliveryState.REJECTED)
        self._channel.basic_nack(
            delivery_tag=self.delivery_tag, multiple=False, requeue=requeue
        )

    def _settle(self, state):
        if self.settled:
            raise DeliveryAlreadySettledError(
                f"delivery {self.delivery_tag} already {self.state.value}"
            )
        self.state = state
