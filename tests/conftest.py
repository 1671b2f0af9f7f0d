import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from proxmox_client.config import ConnectionConfig

LOGIN_DATA = {
    'ticket': 'PVE:root@pam:65A0B1C2::c2lnbmF0dXJl',
    'CSRFPreventionToken': '65A0B1C2:Y3NyZnRva2Vu',
    'username': 'root@pam',
}


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status=200, payload=None, text=None, reason='OK', hang=False):
        self.status = status
        self.reason = reason
        if text is None:
            text = json.dumps(payload) if payload is not None else ''
        self._body = text
        self._hang = hang

    async def text(self):
        await asyncio.sleep(0)
        if self._hang:
            await asyncio.Event().wait()
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeTransport:
    """Stands in for aiohttp.ClientSession; replies with queued responses in order."""

    def __init__(self):
        self.closed = False
        self.close = AsyncMock(side_effect=self._close)
        self.request = MagicMock(side_effect=self._request)
        self._replies = []

    def reply(self, status=200, payload=None, **kwargs):
        self._replies.append(FakeResponse(status, payload, **kwargs))
        return self

    def fail(self, error):
        self._replies.append(error)
        return self

    def login_ok(self):
        return self.reply(200, {'data': LOGIN_DATA})

    @property
    def calls(self):
        return self.request.call_args_list

    def _request(self, method, url, **kwargs):
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def _close(self):
        self.closed = True


@pytest.fixture
def http():
    return FakeTransport()


@pytest.fixture
def password_config():
    return ConnectionConfig(host='pve.example.com', username='root', password='secret')


@pytest.fixture
def token_config():
    return ConnectionConfig(host='pve.example.com', username='root', api_token='root@pam!ci=0000-1111-2222')


@pytest.fixture
def api():
    """A ProxmoxSession double for service tests."""
    session = MagicMock()
    session.get = AsyncMock(return_value=None)
    session.post = AsyncMock(return_value=None)
    session.put = AsyncMock(return_value=None)
    session.delete = AsyncMock(return_value=None)
    return session


@pytest.fixture
def tasks():
    poller = MagicMock()
    poller.wait = AsyncMock()
    poller.list = AsyncMock(return_value=[])
    return poller
