import pytest
import requests
from requests.adapters import BaseAdapter


class StubAdapter(BaseAdapter):
    """Answers every request with a canned response, or raises ``error``."""

    def __init__(self, status=200, body=b"", reason=None, headers=None, error=None):
        super().__init__()
        self.status = status
        self.body = body
        self.reason = reason
        self.headers = headers or {}
        self.error = error
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append((request, kwargs))
        if self.error is not None:
            raise self.error
        resp = requests.Response()
        resp.status_code = self.status
        resp.reason = self.reason
        resp._content = self.body
        resp.headers.update(self.headers)
        resp.url = request.url
        resp.request = request
        return resp

    def close(self):
        pass


@pytest.fixture
def stub_http():
    """Returns ``install(**adapter_kwargs) -> (session, adapter)``."""
    sessions = []

    def _install(**kwargs):
        adapter = StubAdapter(**kwargs)
        s = requests.Session()
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        sessions.append(s)
        return s, adapter

    yield _install
    for s in sessions:
        s.close()
