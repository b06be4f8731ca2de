import json
import logging

from src import observability
from src.observability import configure_logging, incr_metric, log_event, metrics_snapshot, reset_metrics


def test_metrics_are_keyed_by_sorted_labels():
    reset_metrics()
    incr_metric("order.items", status="success")
    incr_metric("order.items", status="success")
    incr_metric("webhook.orders.rejected", reason="validation", source="order")

    snapshot = metrics_snapshot()
    assert snapshot["order.items|status=success"] == 2
    assert snapshot["webhook.orders.rejected|reason=validation,source=order"] == 1

    reset_metrics()
    assert metrics_snapshot() == {}


def test_log_event_writes_json(caplog):
    configure_logging(debug=False)
    with caplog.at_level(logging.INFO, logger=observability.logger.name):
        log_event("order_processed", request_id="req-1", order_id="o1", statuses=("success",))

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload == {"event": "order_processed", "request_id": "req-1", "order_id": "o1", "statuses": ["success"]}


def test_debug_events_are_gated_by_configuration(caplog):
    configure_logging(debug=False)
    caplog.set_level(logging.DEBUG)
    observability.logger.setLevel(logging.INFO)

    log_event("backoff_retry_scheduled", level=logging.DEBUG, attempt=1)
    assert not [r for r in caplog.records if "backoff_retry_scheduled" in r.getMessage()]

    configure_logging(debug=True)
    log_event("backoff_retry_scheduled", level=logging.DEBUG, attempt=1)
    assert [r for r in caplog.records if "backoff_retry_scheduled" in r.getMessage()]
    configure_logging(debug=False)
