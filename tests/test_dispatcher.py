import json

import pytest
import requests

import dispatcher
from dispatcher import (DecodeFailure, InvalidMethod, RequestSpec, ResponseOutcome, TransportFailure,
                        decode_body, execute, status_label)


def test_pretty_prints_json(stub_http):
    http, _ = stub_http(body=b'{"a":1}', reason="OK")
    out = execute(RequestSpec("GET", "http://api.test/items"), http)
    assert out.status == "200 OK"
    assert out.body == '{\n  "a": 1\n}'
    assert out.status_code == 200
    assert out.error is None


def test_plain_text_passes_through(stub_http):
    http, _ = stub_http(body=b"hello", headers={"Content-Type": "application/json"})
    out = execute(RequestSpec("GET", "http://api.test/"), http)
    assert out.body == "hello"


def test_non_utf8_body_is_reported_not_raised(stub_http):
    http, _ = stub_http(body=b"\xff\xfe\x00bad")
    out = execute(RequestSpec("GET", "http://api.test/"), http)
    assert out.status == "200 OK"
    assert out.body.startswith("Could not decode response body as UTF-8")
    assert isinstance(out.error, DecodeFailure)
    assert out.ok


def test_error_status_still_decoded(stub_http):
    http, _ = stub_http(status=404, reason="Not Found", body=b'{"detail":"missing"}')
    out = execute(RequestSpec("DELETE", "http://api.test/items/9"), http)
    assert out.status == "404 Not Found"
    assert json.loads(out.body) == {"detail": "missing"}
    assert out.category == "client_error"


def test_invalid_method_never_touches_network(stub_http):
    http, adapter = stub_http()
    out = execute(RequestSpec("PATCH", "http://api.test/"), http)
    assert out.status == "Error"
    assert out.body == "Error: invalid method 'PATCH'"
    assert isinstance(out.error, InvalidMethod)
    assert adapter.sent == []


def test_method_is_case_insensitive(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec(" post ", "http://api.test/"), http)
    assert adapter.sent[0][0].method == "POST"


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_get_and_delete_send_no_body(stub_http, method):
    http, adapter = stub_http()
    execute(RequestSpec(method, "http://api.test/", body='{"ignored":true}'), http)
    assert adapter.sent[0][0].body is None


@pytest.mark.parametrize("method", ["POST", "PUT"])
def test_post_and_put_send_body(stub_http, method):
    http, adapter = stub_http()
    execute(RequestSpec(method, "http://api.test/", body='{"name":"é"}'), http)
    assert adapter.sent[0][0].body == '{"name":"é"}'.encode("utf-8")


def test_missing_body_sent_as_empty(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec("POST", "http://api.test/"), http)
    req = adapter.sent[0][0]
    assert not req.body
    assert req.headers["Content-Length"] == "0"


def test_json_headers_always_forced(stub_http):
    http, adapter = stub_http()
    spec = RequestSpec("POST", "http://api.test/", headers={
        "content-type": "text/plain", "ACCEPT": "text/html", "X-Trace": "abc"})
    execute(spec, http)
    sent = adapter.sent[0][0].headers
    assert sent["Content-Type"] == "application/json"
    assert sent["Accept"] == "application/json"
    assert sent["X-Trace"] == "abc"


def test_bearer_token_added(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec("GET", "http://api.test/", auth_token=" tok123 "), http)
    assert adapter.sent[0][0].headers["Authorization"] == "Bearer tok123"


def test_explicit_authorization_header_wins(stub_http):
    http, adapter = stub_http()
    spec = RequestSpec("GET", "http://api.test/", headers={"authorization": "Basic xyz"}, auth_token="tok")
    execute(spec, http)
    assert adapter.sent[0][0].headers["Authorization"] == "Basic xyz"


def test_blank_token_sends_no_authorization(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec("GET", "http://api.test/", auth_token="   "), http)
    assert "Authorization" not in adapter.sent[0][0].headers


def test_timeout_passed_through(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec("GET", "http://api.test/"), http)
    execute(RequestSpec("GET", "http://api.test/"), http, timeout=2.5)
    assert adapter.sent[0][1]["timeout"] == dispatcher.DEFAULT_TIMEOUT
    assert adapter.sent[1][1]["timeout"] == 2.5


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectionError("Name or service not known"),
    requests.exceptions.ConnectTimeout("timed out"),
    requests.exceptions.SSLError("certificate verify failed"),
])
def test_transport_failures_become_error_outcome(stub_http, error):
    http, _ = stub_http(error=error)
    out = execute(RequestSpec("GET", "https://api.test/"), http)
    assert out.status == "Error"
    assert out.body == f"Error: {error}"
    assert isinstance(out.error, TransportFailure)
    assert out.error.cause is error
    assert out.status_code is None
    assert out.category == "error"
    assert not out.ok


def test_empty_url_is_transport_failure(stub_http):
    http, adapter = stub_http()
    out = execute(RequestSpec("GET", ""), http)
    assert out.status == "Error"
    assert out.body.startswith("Error: ")
    assert adapter.sent == []


def test_unreachable_host_returns_error():
    with requests.Session() as http:
        out = execute(RequestSpec("GET", "http://127.0.0.1:9/"), http, timeout=5)
    assert out.status == "Error"
    assert len(out.body) > len("Error: ")


def test_response_metadata(stub_http):
    http, _ = stub_http(status=201, body=b"{}", headers={"X-Id": "7"})
    out = execute(RequestSpec("PUT", "http://api.test/"), http)
    assert out.status == "201 Created"
    assert out.size == 2
    assert out.headers["X-Id"] == "7"
    assert "X-Id: 7" in out.headers_text()
    assert out.as_pair() == ("201 Created", "{}")


def test_status_label():
    assert status_label(200, "OK") == "200 OK"
    assert status_label(404, "") == "404 Not Found"
    assert status_label(418, "Short And Stout") == "418 Short And Stout"
    assert status_label(599) == "599"


def test_decode_body_stages():
    assert decode_body(b"") == ("", None)
    assert decode_body(b"[1, 2]")[0] == "[\n  1,\n  2\n]"
    assert decode_body('{"k":"ü"}'.encode("utf-8"))[0] == '{\n  "k": "ü"\n}'
    text, err = decode_body(b"\xc3")
    assert isinstance(err, DecodeFailure)
    assert text == str(err)


@pytest.mark.parametrize("code,category", [
    (101, "success"), (204, "success"), (302, "redirect"), (422, "client_error"), (503, "server_error"),
])
def test_category(code, category):
    assert ResponseOutcome(status=str(code), body="", status_code=code).category == category


@pytest.mark.parametrize("spec_kwargs", [
    {"auth_token": "tok€n"},
    {"headers": {"X-Name": "€"}},
    {"headers": {"X-€": "1"}},
])
def test_unsendable_header_becomes_error_outcome(stub_http, spec_kwargs):
    http, adapter = stub_http()
    out = execute(RequestSpec("GET", "http://api.test/", **spec_kwargs), http)
    assert out.status == "Error"
    assert "Latin-1" in out.body
    assert isinstance(out.error, TransportFailure)
    assert adapter.sent == []


def test_latin1_header_values_allowed(stub_http):
    http, adapter = stub_http()
    execute(RequestSpec("GET", "http://api.test/", headers={"X-Name": "José"}), http)
    assert len(adapter.sent) == 1


def test_deeply_nested_body_falls_back_to_raw(stub_http):
    raw = b"[" * 100000
    http, _ = stub_http(body=raw)
    out = execute(RequestSpec("GET", "http://api.test/"), http)
    assert out.status == "200 OK"
    assert out.body == raw.decode("ascii")
    assert out.error is None
