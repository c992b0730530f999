import asyncio
from types import SimpleNamespace

import pytest
from telethon.errors import SessionPasswordNeededError

from signals.auth.telegram_auth import AuthSessions, TelegramAuth
from signals.config import AuthConfig


PHONE = "+15550001"


class FakeTelegramClient:
    """Клиент Telethon без сети"""

    def __init__(self, authorized=False, sign_in_error=None):
        self.authorized = authorized
        self.sign_in_error = sign_in_error
        self.connected = True
        self.code_requests = []
        self.sign_ins = []

    def is_connected(self):
        return self.connected

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def is_user_authorized(self):
        return self.authorized

    async def send_code_request(self, phone):
        self.code_requests.append(phone)
        return SimpleNamespace(phone_code_hash="code-hash")

    async def sign_in(self, phone=None, code=None, password=None, phone_code_hash=None):
        self.sign_ins.append({"phone": phone, "code": code, "password": password, "phone_code_hash": phone_code_hash})
        if password is None and self.sign_in_error is not None:
            raise self.sign_in_error
        self.authorized = True

    async def get_me(self):
        return SimpleNamespace(first_name="Trader", username=None)


def make_auth(tmp_path, client, api_hash="hash"):
    auth = TelegramAuth(AuthConfig.from_values("123", api_hash, PHONE), tmp_path / "sessions")
    auth.client = client
    return auth


def test_session_path_uses_phone(tmp_path):
    auth = TelegramAuth(AuthConfig.from_values("123", "hash", PHONE), tmp_path / "sessions")

    assert auth.session_path == tmp_path / "sessions" / f"{PHONE}.session"
    assert auth.sessions_dir.is_dir()
    assert not auth.has_session


def test_send_code_when_already_authorized(tmp_path):
    client = FakeTelegramClient(authorized=True)
    auth = make_auth(tmp_path, client)

    assert asyncio.run(auth.send_code()) is True
    assert client.code_requests == []
    assert not auth.awaiting_code


def test_code_flow(tmp_path):
    client = FakeTelegramClient()
    auth = make_auth(tmp_path, client)

    assert asyncio.run(auth.send_code()) is False
    assert client.code_requests == [PHONE]
    assert auth.awaiting_code

    assert asyncio.run(auth.confirm_code("12345")) is True
    assert client.sign_ins == [{"phone": PHONE, "code": "12345", "password": None, "phone_code_hash": "code-hash"}]
    assert not auth.awaiting_code
    assert asyncio.run(auth.is_authorized())


def test_code_flow_with_password(tmp_path):
    client = FakeTelegramClient(sign_in_error=SessionPasswordNeededError(request=None))
    auth = make_auth(tmp_path, client)

    asyncio.run(auth.send_code())

    assert asyncio.run(auth.confirm_code("12345")) is False
    assert auth.awaiting_code

    asyncio.run(auth.confirm_password("secret"))
    assert client.sign_ins[-1]["password"] == "secret"
    assert not auth.awaiting_code
    assert asyncio.run(auth.is_authorized())


def test_confirm_without_pending_code(tmp_path):
    auth = make_auth(tmp_path, FakeTelegramClient())

    with pytest.raises(RuntimeError):
        asyncio.run(auth.confirm_code("12345"))


def test_confirm_password_without_client(tmp_path):
    auth = make_auth(tmp_path, None)

    with pytest.raises(RuntimeError):
        asyncio.run(auth.confirm_password("secret"))


def test_authorized_client_requires_session_file(tmp_path):
    auth = make_auth(tmp_path, FakeTelegramClient(authorized=True))

    with pytest.raises(PermissionError):
        asyncio.run(auth.get_authorized_client())


def test_authorized_client_with_stale_session(tmp_path):
    auth = make_auth(tmp_path, FakeTelegramClient(authorized=False))
    auth.session_path.touch()

    with pytest.raises(PermissionError):
        asyncio.run(auth.get_authorized_client())


def test_authorized_client(tmp_path):
    client = FakeTelegramClient(authorized=True)
    client.connected = False
    auth = make_auth(tmp_path, client)
    auth.session_path.touch()

    assert asyncio.run(auth.get_authorized_client()) is client
    assert client.connected


def test_is_authorized_without_client(tmp_path):
    assert asyncio.run(make_auth(tmp_path, None).is_authorized()) is False


def test_sessions_reuse_and_replace(tmp_path):
    sessions = AuthSessions(tmp_path / "sessions")
    config = AuthConfig.from_values("123", "hash", PHONE)

    auth = sessions.get_or_create(config)

    assert sessions.get_or_create(AuthConfig.from_values("123", "hash", PHONE)) is auth
    assert sessions.get(PHONE) is auth

    replaced = sessions.get_or_create(AuthConfig.from_values("123", "other-hash", PHONE))

    assert replaced is not auth
    assert replaced.config.api_hash == "other-hash"
    assert sessions.get(PHONE) is replaced


def test_sessions_discard_disconnects(tmp_path):
    sessions = AuthSessions(tmp_path / "sessions")
    auth = sessions.get_or_create(AuthConfig.from_values("123", "hash", PHONE))
    auth.client = FakeTelegramClient()

    asyncio.run(sessions.close_all())

    assert sessions.get(PHONE) is None
    assert not auth.client.connected
