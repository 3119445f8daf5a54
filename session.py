"""Per-window request state: everything the UI edits and the last outcome."""
import enum
import logging
from typing import Dict, List, Optional

import requests

import dispatcher
from dispatcher import RequestSpec, ResponseOutcome
from param_sync import DEFAULT_SLOTS, QueryParam, blank_params, params_from_url, sync
from settings import DEFAULT_HEADERS


class SendState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


class RequestSession:
    """Owns the params, URL and current outcome for one window.

    Only touched from the UI thread. ``request_send`` blocks until the
    request finishes; the window instead splits it into ``build_spec`` /
    ``dispatch`` on a worker / ``accept`` back on the UI thread.
    """

    def __init__(self, http_client: Optional[requests.Session] = None, *, timeout: float = dispatcher.DEFAULT_TIMEOUT,
                 param_slots: int = DEFAULT_SLOTS, encode_params: bool = False,
                 default_headers: Optional[Dict[str, str]] = None):
        self.http = http_client or requests.Session()
        self.timeout = timeout
        self.param_slots = param_slots
        self.encode_params = encode_params
        self.method = "GET"
        self.url = ""
        self.params: List[QueryParam] = blank_params(param_slots)
        self.headers: Dict[str, str] = dict(DEFAULT_HEADERS if default_headers is None else default_headers)
        self.body: Optional[str] = None
        self.auth_token: Optional[str] = None
        self.outcome: Optional[ResponseOutcome] = None
        self.state = SendState.IDLE

    # ---- params ----
    def notify_param_changed(self) -> str:
        self.url = sync(self.url, self.params, encode=self.encode_params)
        return self.url

    def set_param(self, index: int, key=None, value=None, note=None) -> str:
        p = self.params[index]
        if key is not None: p.key = key
        if value is not None: p.value = value
        if note is not None: p.note = note
        return self.notify_param_changed()

    def add_param(self, key="", value="", note="") -> int:
        self.params.append(QueryParam(key, value, note))
        self.notify_param_changed()
        return len(self.params) - 1

    def remove_param(self, index: int) -> str:
        del self.params[index]
        return self.notify_param_changed()

    def load_params_from_url(self) -> List[QueryParam]:
        parsed = params_from_url(self.url, decode=self.encode_params)
        parsed.extend(blank_params(self.param_slots - len(parsed)))
        self.params[:] = parsed
        return self.params

    # ---- sending ----
    def build_spec(self) -> RequestSpec:
        self.state = SendState.BUILDING
        method = (self.method or "").strip().upper()
        body = (self.body or "") if method in dispatcher.BODY_METHODS else None
        return RequestSpec(method=method, url=self.url.strip(), headers=dict(self.headers),
                           body=body, auth_token=self.auth_token)

    def accept(self, outcome: ResponseOutcome) -> ResponseOutcome:
        self.outcome = outcome
        self.state = SendState.FAILED if outcome.status == dispatcher.ERROR_STATUS else SendState.COMPLETED
        return outcome

    def dispatch(self, spec: RequestSpec) -> ResponseOutcome:
        """Run ``execute``; safe to call from a worker thread."""
        try:
            return dispatcher.execute(spec, self.http, timeout=self.timeout)
        except Exception as e:
            logging.exception("Unexpected error sending %s %s", spec.method, spec.url)
            return ResponseOutcome.failed(dispatcher.DispatchError(f"{type(e).__name__}: {e}"))

    def request_send(self):
        spec = self.build_spec()
        self.state = SendState.IN_FLIGHT
        logging.debug("Sending %s %s", spec.method, spec.url)
        return self.accept(self.dispatch(spec)).as_pair()

    def reset(self):
        self.outcome = None
        self.state = SendState.IDLE

    def close(self):
        self.http.close()
