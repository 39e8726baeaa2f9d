from __future__ import annotations

import json
import logging

from storefront.core.logger import REQUEST_ID_HEADER, JSONFormatter


def test_json_formatter_copies_known_extras() -> None:
    record = logging.LogRecord("storefront.test", logging.INFO, __file__, 1, "cart.updated", None, None)
    record.product_id = 7
    record.unrelated = "dropped"

    line = json.loads(JSONFormatter().format(record))

    assert line["message"] == "cart.updated"
    assert line["level"] == "INFO"
    assert line["product_id"] == 7
    assert "unrelated" not in line


def test_incoming_request_id_is_echoed(client) -> None:
    resp = client.get("/api/health", headers={REQUEST_ID_HEADER: "req-abc"})

    assert resp.headers[REQUEST_ID_HEADER] == "req-abc"


def test_problem_documents_carry_the_request_id(client) -> None:
    resp = client.get("/api/no-such-route", headers={"X-Correlation-ID": "corr-1"})

    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["request_id"] == "corr-1"
    assert body["detail"] == "Route '/api/no-such-route' not found"
    assert resp.headers[REQUEST_ID_HEADER] == "corr-1"
