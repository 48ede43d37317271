# hm_cashier/common/tests/test_json_logging.py
import json
import logging

from hm_cashier.common.logging import CashierJsonFormatter


def _record(**extra):
    record = logging.LogRecord("hm_cashier.billing.payloads", logging.WARNING, __file__, 1, "bill is stale", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_record_is_rendered_as_json_with_service_fields(settings):
    settings.DJANGO_ENV = "test"
    settings.APP_NAME = "hm-cashier"

    line = json.loads(CashierJsonFormatter().format(_record(request_id="req-1", bill="bill-1")))

    assert line["message"] == "bill is stale"
    assert line["level"] == "WARNING"
    assert line["logger"] == "hm_cashier.billing.payloads"
    assert line["environment"] == "test"
    assert line["app_name"] == "hm-cashier"
    assert line["request_id"] == "req-1"
    assert line["bill"] == "bill-1"


def test_request_id_is_omitted_when_absent():
    line = json.loads(CashierJsonFormatter().format(_record()))

    assert "request_id" not in line
