"""Build, send and decode one HTTP request.

``execute`` always returns a populated ResponseOutcome. Network problems and
unknown methods come back as status "Error" with a readable message; a body
that is not UTF-8 is reported in the body text instead of failing the send.
"""
import json
import logging
import time
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Dict, Optional

import requests
from requests.structures import CaseInsensitiveDict

METHODS = ("GET", "POST", "PUT", "DELETE")
BODY_METHODS = ("POST", "PUT")
FORCED_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}
DEFAULT_TIMEOUT = 30.0
ERROR_STATUS = "Error"


class DispatchError(Exception):
    pass


class InvalidMethod(DispatchError):
    def __init__(self, method):
        super().__init__(f"invalid method {method!r}")
        self.method = method


class TransportFailure(DispatchError):
    def __init__(self, cause: requests.exceptions.RequestException):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause


class DecodeFailure(DispatchError):
    def __init__(self, cause: UnicodeDecodeError):
        super().__init__(f"Could not decode response body as UTF-8: {cause}")
        self.cause = cause


@dataclass
class RequestSpec:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    auth_token: Optional[str] = None


@dataclass
class ResponseOutcome:
    status: str
    body: str
    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    elapsed: float = 0.0
    size: int = 0
    error: Optional[DispatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None or isinstance(self.error, DecodeFailure)

    @property
    def category(self) -> str:
        code = self.status_code
        if code is None:
            return "error"
        if code < 300:
            return "success"
        if code < 400:
            return "redirect"
        if code < 500:
            return "client_error"
        return "server_error"

    def headers_text(self) -> str:
        return "\n".join(f"{k}: {v}" for k, v in self.headers.items())

    def as_pair(self):
        return self.status, self.body

    @classmethod
    def failed(cls, err: DispatchError, elapsed: float = 0.0):
        return cls(status=ERROR_STATUS, body=f"Error: {err}", elapsed=elapsed, error=err)


def normalize_method(method) -> str:
    m = (method or "").strip().upper()
    if m not in METHODS:
        raise InvalidMethod(method)
    return m


def status_label(code: int, reason: Optional[str] = None) -> str:
    if not reason:
        try:
            reason = HTTPStatus(code).phrase
        except ValueError:
            reason = ""
    return f"{code} {reason}".strip()


def build_headers(spec: RequestSpec) -> CaseInsensitiveDict:
    headers = CaseInsensitiveDict(spec.headers or {})
    token = (spec.auth_token or "").strip()
    if token and "Authorization" not in headers:
        headers["Authorization"] = f"Bearer {token}"
    headers.update(FORCED_HEADERS)
    for name, value in headers.items():
        for part in (name, value):
            if not isinstance(part, str):
                continue
            try:
                part.encode("latin-1")
            except UnicodeEncodeError as e:
                raise requests.exceptions.InvalidHeader(
                    f"header {name!r} has a character that cannot be sent (not Latin-1): {e}")
    return headers


def pretty_or_raw(text: str) -> str:
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except (ValueError, RecursionError):
        return text


def decode_body(raw: bytes):
    """bytes -> text -> pretty JSON; returns ``(text, DecodeFailure or None)``."""
    try:
        text = (raw or b"").decode("utf-8")
    except UnicodeDecodeError as e:
        err = DecodeFailure(e)
        logging.debug("Response body is not UTF-8: %s", e)
        return str(err), err
    return pretty_or_raw(text), None


def execute(spec: RequestSpec, http_client: requests.Session, timeout: float = DEFAULT_TIMEOUT) -> ResponseOutcome:
    try:
        method = normalize_method(spec.method)
    except InvalidMethod as e:
        logging.warning("Refusing to send: %s", e)
        return ResponseOutcome.failed(e)

    data = (spec.body or "").encode("utf-8") if method in BODY_METHODS else None

    start = time.time()
    try:
        headers = build_headers(spec)
        resp = http_client.request(method, spec.url, headers=headers, data=data, timeout=timeout)
        raw = resp.content
    except requests.exceptions.RequestException as e:
        err = TransportFailure(e)
        logging.warning("%s %s failed: %s", method, spec.url, err)
        return ResponseOutcome.failed(err, elapsed=time.time() - start)
    elapsed = time.time() - start

    body, decode_err = decode_body(raw)
    outcome = ResponseOutcome(
        status=status_label(resp.status_code, resp.reason),
        body=body,
        status_code=resp.status_code,
        headers=dict(resp.headers),
        elapsed=elapsed,
        size=len(raw or b""),
        error=decode_err,
    )
    logging.info("%s %s -> %s (%.2fs)", method, spec.url, outcome.status, elapsed)
    return outcome
