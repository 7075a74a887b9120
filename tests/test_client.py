"""Tests for the client facade, including end-to-end runs against the stub API."""

import httpx
import pytest

from havensync.__main__ import main
from havensync.core.cache import DOCUMENTS_KEY
from havensync.core.client import AuthState, StaticAuth, SyncClient
from havensync.core.config import Settings
from havensync.core.exceptions import NotAuthenticatedError, TransportError
from havensync.core.accessors import UploadFile
from havensync.core.mutations import DOCUMENT_NOT_READY
from havensync.servers.stub import StubBackend
from havensync.servers.stub.server import SESSION_COOKIE

STUB_URL = "http://stub.havenmind.test"


def _stub_client(backend: StubBackend, **settings) -> SyncClient:
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=backend.app))
    return SyncClient(Settings(api_base_url=STUB_URL, **settings), StaticAuth(user_name="Dana"), http_client=http_client)


# ----- mock mode -----

async def test_signed_out_reads_are_disabled(mock_settings, mock_provider, sleeper):
    client = SyncClient(mock_settings, StaticAuth(is_authenticated=False), mock=mock_provider)

    assert await client.dashboard() is None
    assert await client.chat_history() is None
    assert await client.documents() is None
    assert sleeper.calls == []


async def test_signed_out_writes_raise(mock_settings, mock_provider):
    client = SyncClient(mock_settings, StaticAuth(is_authenticated=False), mock=mock_provider)

    with pytest.raises(NotAuthenticatedError):
        await client.send_chat_message("Hi")
    with pytest.raises(NotAuthenticatedError):
        await client.upload_document(UploadFile("a.pdf", b"x"))


def test_greeting_uses_name_or_fallback(mock_settings):
    assert SyncClient(mock_settings, StaticAuth(user_name="Dana")).greeting() == "Hey Dana,"
    assert SyncClient(mock_settings, StaticAuth()).greeting() == "Hey there,"
    assert isinstance(StaticAuth(), AuthState)


def test_mock_client_has_no_live_transport(mock_settings):
    assert SyncClient(mock_settings).resources._transport is None


async def test_mock_dashboard_is_cached(mock_settings, mock_provider, sleeper):
    client = SyncClient(mock_settings, mock=mock_provider)

    snapshot = await client.dashboard()
    again = await client.dashboard()

    assert client.is_mock is True
    assert [m.id for m in snapshot.usage] == ["tasks", "overdue", "documents", "health"]
    assert [p.status for p in snapshot.projects] == ["online", "degraded", "paused"]
    assert len(snapshot.activity) == 3
    assert again == snapshot
    assert sorted(sleeper.calls) == [0.28, 0.3, 0.32]


async def test_mock_chat_round_trip(mock_settings, mock_provider):
    client = SyncClient(mock_settings, mock=mock_provider)

    history = await client.chat_history()
    reply = await client.send_chat_message("What should I prep for fall?")
    messages = await client.chat_history()

    assert [m.id for m in history] == ["intro-1"]
    assert [m.role for m in messages] == ["assistant", "user", "assistant"]
    assert messages[-1] == reply
    assert not any(m.is_optimistic for m in messages)


async def test_mock_upload_then_open(mock_settings, mock_provider):
    client = SyncClient(mock_settings, mock=mock_provider)
    await client.documents()

    document = await client.upload_document(UploadFile("deck.jpg", b"jpeg", "image/jpeg"))
    await client.cache.settle()
    documents = await client.documents()

    assert documents[0].id == document.id
    assert await client.open_document(document.id) is None
    assert str(client.views.state(document.id).advisory) == DOCUMENT_NOT_READY
    assert await client.open_document("doc-roof-2024")


# ----- live mode against the stub API -----

async def test_stub_dashboard_and_chat_history():
    backend = StubBackend()
    async with _stub_client(backend) as client:
        snapshot = await client.dashboard()
        assert client.is_mock is False
        assert snapshot.projects[0].name == "Maple Street Craftsman"

        assert await client.chat_history() == []
        reply = await client.send_chat_message("Is my roof due for inspection?")
        history = await client.chat_history(force=True)

    session_id = backend.sessions[0].id
    assert [m.id for m in history] == [f"{session_id}-prompt", f"{session_id}-response"]
    assert history[0].content == "Is my roof due for inspection?"
    assert history[1].content == reply.content


async def test_stub_upload_reconciles_document_list():
    backend = StubBackend()
    async with _stub_client(backend) as client:
        before = await client.documents()
        document = await client.upload_document(UploadFile("receipt.pdf", b"%PDF", "application/pdf"))
        await client.cache.settle()
        after = client.cache.get(DOCUMENTS_KEY)

        assert len(after) == len(before) + 1
        assert after[0].id == document.id
        assert [d.id for d in after].count(document.id) == 1

        # Not processed yet: the stub answers {} for the view link
        assert await client.open_document(document.id) is None
        assert str(client.views.state(document.id).advisory) == DOCUMENT_NOT_READY

        missing = await client.open_document("nope")
        assert missing is None
        assert client.views.state("nope").error == "Document not found"


async def test_stub_account_endpoints():
    backend = StubBackend(password="old-password")
    async with _stub_client(backend) as client:
        await client.update_profile("Dana R.")
        assert backend.profile["name"] == "Dana R."

        with pytest.raises(TransportError) as exc_info:
            await client.change_password("wrong", "new-password")
        assert exc_info.value.message == "Current password is incorrect"
        assert client.account.error == "Current password is incorrect"

        await client.change_password("old-password", "new-password")
        assert backend.password == "new-password"


async def test_stub_requires_session_cookie():
    backend = StubBackend(require_session="cookie-123")

    async with _stub_client(backend, cookies={SESSION_COOKIE: "cookie-123"}) as client:
        assert len((await client.dashboard()).usage) == 4

    async with _stub_client(backend) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.dashboard()
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Not signed in"


# ----- command line -----

def test_cli_dashboard_in_mock_mode(monkeypatch, capsys):
    monkeypatch.setenv("HAVENMIND_API_BASE_URL", "")
    monkeypatch.delenv("HAVENMIND_LOG_DIR", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        main(["--user", "Dana", "dashboard"])

    out = capsys.readouterr().out
    assert exc_info.value.code == 0
    assert "[mock]" in out
    assert "Hey Dana," in out
    assert "Upcoming tasks: 32 (+18%)" in out
