"""Tests for starting and stopping the background server."""

import socket
from unittest.mock import MagicMock

import httpx
import mongomock
import pytest

import server


@pytest.fixture
def mongo(monkeypatch):
    client = mongomock.MongoClient()
    client.close = MagicMock()
    monkeypatch.setattr(server, "connect", lambda url: client)
    return client


def test_start_serves_requests_until_stopped(mongo):
    handle = server.start("mongodb://localhost/restaurants-app", port=0, host="127.0.0.1")
    try:
        base = f"http://127.0.0.1:{handle.port}"
        resp = httpx.post(f"{base}/restaurants", json={"name": "A", "borough": "B", "cuisine": "C"})
        assert resp.status_code == 201
        rid = resp.json()["id"]
        assert httpx.get(f"{base}/restaurants/{rid}").json()["name"] == "A"
    finally:
        server.stop(handle)

    mongo.close.assert_called_once()
    assert not handle.thread.is_alive()
    with pytest.raises(httpx.ConnectError):
        httpx.get(f"http://127.0.0.1:{handle.port}/restaurants")


def test_listen_failure_closes_store_connection(mongo):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen()
    try:
        with pytest.raises(OSError):
            server.start("mongodb://localhost/restaurants-app", port=blocker.getsockname()[1], host="127.0.0.1")
    finally:
        blocker.close()
    mongo.close.assert_called_once()


def test_connect_failure_propagates(monkeypatch):
    def refuse(url):
        raise ConnectionError("store unavailable")

    monkeypatch.setattr(server, "connect", refuse)
    with pytest.raises(ConnectionError):
        server.start("mongodb://localhost/restaurants-app", port=0, host="127.0.0.1")
