"""Tests for FlashMiddleware: session cookie, nesting, request.state binding."""
from unittest.mock import patch

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from flash_web.flash_map import FlashMap
from flash_web.middleware import FlashMiddleware, get_flash, get_session
from flash_web.scope import SESSION_KEY, FlashScope
from flash_web.session import SessionStore


def _make_app(store: SessionStore, layers: int = 1, **kwargs) -> FastAPI:
    app = FastAPI()
    for _ in range(layers):
        app.add_middleware(FlashMiddleware, store=store, **kwargs)

    @app.get("/set")
    def set_value(value: str, flash: FlashMap = Depends(get_flash)):
        flash["msg"] = value
        return {"ok": True}

    @app.get("/read")
    def read_value(flash: FlashMap = Depends(get_flash)):
        return {"msg": flash.get("msg")}

    @app.get("/state")
    def state(request: Request):
        return {"same": request.state.flash_map is get_flash(request), "has_session": get_session(request) is not None}

    @app.get("/boom")
    def boom(flash: FlashMap = Depends(get_flash)):
        flash.get("msg")
        raise RuntimeError("handler failed")

    return app


def test_first_request_sets_session_cookie():
    store = SessionStore()
    client = TestClient(_make_app(store))
    r = client.get("/set", params={"value": "hi"})
    assert r.status_code == 200
    assert "flash_session=" in r.headers["set-cookie"]
    assert "httponly" in r.headers["set-cookie"].lower()
    assert len(store) == 1


def test_cookie_not_reissued_for_known_session():
    client = TestClient(_make_app(SessionStore()))
    client.get("/set", params={"value": "hi"})
    r = client.get("/read")
    assert "set-cookie" not in r.headers


def test_value_read_once_across_requests():
    client = TestClient(_make_app(SessionStore()))
    client.get("/set", params={"value": "hi"})
    assert client.get("/read").json() == {"msg": "hi"}
    assert client.get("/read").json() == {"msg": None}


def test_sessions_are_isolated():
    store = SessionStore()
    app = _make_app(store)
    alice = TestClient(app)
    bob = TestClient(app)
    alice.get("/set", params={"value": "for-alice"})
    bob.get("/read")
    assert bob.get("/read").json() == {"msg": None}
    assert alice.get("/read").json() == {"msg": "for-alice"}


def test_request_state_exposes_flash_and_session():
    client = TestClient(_make_app(SessionStore()))
    assert client.get("/state").json() == {"same": True, "has_session": True}


@pytest.mark.parametrize("layers", [1, 2, 3])
def test_stacked_middleware_sweeps_once(layers):
    store = SessionStore()
    client = TestClient(_make_app(store, layers=layers))
    with patch.object(FlashMap, "sweep", autospec=True) as sweep:
        client.get("/read")
    assert sweep.call_count == 1
    assert len(store) == 1


def test_stacked_middleware_shares_one_session():
    store = SessionStore()
    client = TestClient(_make_app(store, layers=2))
    r = client.get("/set", params={"value": "hi"})
    assert len(r.headers.get_list("set-cookie")) == 1
    assert client.get("/read").json() == {"msg": "hi"}


def test_without_session_creation_flash_is_request_only():
    store = SessionStore()
    client = TestClient(_make_app(store, create_session=False))
    r = client.get("/set", params={"value": "hi"})
    assert "set-cookie" not in r.headers
    assert len(store) == 0
    assert client.get("/read").json() == {"msg": None}
    assert client.get("/state").json() == {"same": True, "has_session": False}


def test_sweep_unused_policy_via_middleware():
    store = SessionStore()
    client = TestClient(_make_app(store, flash_scope=FlashScope(sweep_unused=True)))
    client.get("/set", params={"value": "hi"})
    client.get("/state")
    assert client.get("/read").json() == {"msg": None}


def test_handler_failure_propagates_and_flash_still_swept():
    store = SessionStore()
    client = TestClient(_make_app(store))
    client.get("/set", params={"value": "hi"})
    with pytest.raises(RuntimeError, match="handler failed"):
        client.get("/boom")
    session = next(iter(store._sessions.values()))
    assert len(session[SESSION_KEY]) == 0


def test_get_flash_without_middleware():
    app = FastAPI()

    @app.get("/")
    def index(flash: FlashMap = Depends(get_flash)):
        return {}

    with pytest.raises(RuntimeError, match="not installed"):
        TestClient(app).get("/")


def test_lifespan_passes_through():
    with TestClient(_make_app(SessionStore())) as client:
        assert client.get("/read").status_code == 200
