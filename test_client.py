"""
Unit tests for the HTTP client wrapper, run against the FastAPI app.
"""
import httpx
import pytest
from fastapi.testclient import TestClient
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from main import Settings, create_app
from models import UserStore
from client import UserClient


ADA = {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@x.com"}


@pytest.fixture
def store():
    return UserStore()


@pytest.fixture
def user_client(store, tmp_path):
    session = TestClient(create_app(store, Settings(static_dir=tmp_path)))
    with UserClient("http://testserver", session=session) as c:
        yield c


class TestUserClient:

    def test_fetch_users_empty(self, user_client):
        assert user_client.fetch_users() == []

    def test_create_then_fetch(self, user_client, store):
        assert user_client.create_user(ADA) == "user added"
        assert user_client.fetch_users() == [ADA]
        assert len(store) == 1

    def test_http_error_is_raised(self, store, tmp_path):
        settings = Settings(static_dir=tmp_path, strict_users=True)
        session = TestClient(create_app(store, settings))
        with UserClient("http://testserver", session=session) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.create_user({"firstName": "Ada"})

    def test_request_error_is_propagated(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = httpx.Client(transport=httpx.MockTransport(refuse))
        with UserClient("http://localhost:3080", session=session) as client:
            with pytest.raises(httpx.ConnectError):
                client.fetch_users()

    def test_trace_id_header_sent(self):
        seen = {}

        def capture(request):
            seen["trace_id"] = request.headers.get("X-Trace-ID")
            return httpx.Response(200, json=[])

        session = httpx.Client(transport=httpx.MockTransport(capture))
        client = UserClient("http://localhost:3080", session=session, trace_id="abc-123")
        assert client.fetch_users() == []
        assert seen["trace_id"] == "abc-123"
