"""Fanout tests against a live RabbitMQ broker (set MW_URL to run them)"""

import pika

from rabbilite import Consumer, Producer
from .conftest import RecordingHandler, unique_name, wait_until


def _delete_exchange(url, exchange_name):
    connection = pika.BlockingConnection(pika.URLParameters(url))
    try:
        connection.channel().exchange_delete(exchange=exchange_name, if_unused=False)
    finally:
        connection.close()


def test_fanout_1_to_N_pubsub(mw_url):
    """
    Case: fanout 1 -> N
    - Two consumers each get their own queue bound to the exchange
    - Both receive the same message exactly once
    """
    exchange_name = unique_name("ex-1toN")
    producer = Producer(mw_url)
    consumer1 = Consumer(mw_url, poll_interval=0.05)
    consumer2 = Consumer(mw_url, poll_interval=0.05)
    h1 = RecordingHandler()
    h2 = RecordingHandler()

    try:
        consumer1.start_consuming_from_fanout(exchange_name, h1)
        consumer2.start_consuming_from_fanout(exchange_name, h2)

        producer.publish_to_fanout(exchange_name, "hello-fanout")

        assert wait_until(lambda: h1.calls == 1 and h2.calls == 1, timeout=5.0)
        assert h1.payloads == h2.payloads == [b'"hello-fanout"']

        # No extra duplicates
        assert not wait_until(lambda: h1.calls > 1 or h2.calls > 1, timeout=0.5)
    finally:
        consumer1.close()
        consumer2.close()
        producer.close()
        _delete_exchange(mw_url, exchange_name)


def test_fanout_late_subscriber_misses_message(mw_url):
    """
    Case: a consumer subscribes after the publish
    - It receives nothing from that publish
    """
    exchange_name = unique_name("ex-late")
    producer = Producer(mw_url)
    early = Consumer(mw_url, poll_interval=0.05)
    late = Consumer(mw_url, poll_interval=0.05)
    h_early = RecordingHandler()
    h_late = RecordingHandler()

    try:
        early.start_consuming_from_fanout(exchange_name, h_early)
        producer.publish_to_fanout(exchange_name, "before-late")
        assert wait_until(lambda: h_early.calls == 1, timeout=5.0)

        late.start_consuming_from_fanout(exchange_name, h_late)
        assert not wait_until(lambda: h_late.calls > 0, timeout=0.5)
    finally:
        early.close()
        late.close()
        producer.close()
        _delete_exchange(mw_url, exchange_name)
