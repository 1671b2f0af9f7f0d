"""Authenticated HTTP session against a single Proxmox VE server."""
import asyncio
import functools
import json as jsonlib
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import ConnectionConfig
from .exceptions import ProxmoxAPIError, ProxmoxAuthError, ProxmoxConnectionError
from .models import ApiEnvelope, AuthTicket, SessionState

LOGIN_PATH = 'access/ticket'
TICKET_COOKIE = 'PVEAuthCookie'
CSRF_HEADER = 'CSRFPreventionToken'
STATE_CHANGING_METHODS = frozenset(('POST', 'PUT', 'DELETE'))


@functools.lru_cache(maxsize=None)
def _adapter(response_type) -> TypeAdapter:
    return TypeAdapter(response_type)


def _dump(body) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(mode='json', by_alias=True, exclude_unset=True)
    return body


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, Mapping):
        # property strings, e.g. net0=model=virtio,bridge=vmbr0
        return ','.join(f"{key}={_encode_value(item)}" for key, item in value.items() if item is not None)
    if isinstance(value, (list, tuple, set)):
        return ','.join(_encode_value(item) for item in value)
    return str(value)


def _encode_form(values: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
    """Flatten a mapping into the string pairs Proxmox expects in forms and query strings."""
    if values is None:
        return None
    return {key: _encode_value(value) for key, value in _dump(values).items() if value is not None}


def _summarize_errors(errors: Mapping[str, Any]) -> str:
    return '; '.join(f"{field}: {message}" for field, message in errors.items())


class ProxmoxSession:
    """
    One authenticated session against the Proxmox VE API.

    ``get``/``post``/``put``/``delete`` unwrap the ``{data, errors}`` envelope and
    return ``data``, validated into ``response_type`` when one is given.

    An instance belongs to one event loop and is not thread-safe. Concurrent
    ``authenticate`` calls are serialized; requests read the session state once
    each and never block on a login in progress.
    """

    def __init__(self, config: ConnectionConfig, session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[logging.Logger] = None):
        """
        :param config: Connection settings
        :param session: aiohttp session to send requests through; owned by the caller.
                        When omitted, one is created on first use and closed by close()
        :param logger: Logger to report through, defaults to this module's logger
        """
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._http = session
        self._owns_http = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)
        self._state: Optional[SessionState] = None
        self._auth_lock = asyncio.Lock()

    async def __aenter__(self) -> 'ProxmoxSession':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def state(self) -> Optional[SessionState]:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is not None

    @property
    def transport(self) -> aiohttp.ClientSession:
        if self._http is None or (self._owns_http and self._http.closed):
            if self.config.ignore_tls_errors:
                connector = aiohttp.TCPConnector(ssl=False)
            else:
                connector = aiohttp.TCPConnector()
            self._http = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={'User-Agent': self.config.user_agent, 'Accept': 'application/json'},
            )
            self._owns_http = True
        return self._http

    def url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    async def authenticate(self) -> SessionState:
        """
        Log in and replace the stored session state.

        With an API token no request is made: the token is validated and attached
        to every following request. With a password, a ticket and CSRF token are
        requested from the ticket endpoint.

        :return: The new session state
        :raises ProxmoxAuthError: Credentials missing, malformed or rejected
        :raises ProxmoxConnectionError: The server could not be reached
        """
        async with self._auth_lock:
            return await self._authenticate()

    async def _reauthenticate(self, stale: SessionState) -> SessionState:
        """Log in again unless another request already replaced ``stale``."""
        async with self._auth_lock:
            if self._state is not stale and self._state is not None:
                return self._state
            return await self._authenticate()

    async def _authenticate(self) -> SessionState:
        if self.config.api_token:
            state = SessionState(api_token=self._full_api_token())
            self._logger.info(f"Using API token authentication for {self.config.host}")
        elif self.config.password:
            state = await self._login()
            self._logger.info(f"Authenticated as {self.config.login_name} on {self.config.host}")
        else:
            raise ProxmoxAuthError("No authentication method configured: set password or api_token")
        self._state = state
        return state

    def logout(self) -> None:
        """Forget the session state; following requests are anonymous."""
        self._state = None

    async def close(self) -> None:
        """Release the transport (when owned) and forget the session state."""
        try:
            if self._http is not None and self._owns_http and not self._http.closed:
                await self._http.close()
        finally:
            if self._owns_http:
                self._http = None
            self._state = None
            self._logger.debug("Proxmox session closed")

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None, response_type=None) -> Any:
        """
        Perform a GET request.

        :param path: API path relative to the base URL (e.g., 'nodes/pve1/status')
        :param params: Optional query parameters
        :param response_type: Type to validate the response data into, raw JSON data when None
        :return: Response data
        """
        return await self.request('GET', path, params=params, response_type=response_type)

    async def post(self, path: str, data=None, *, json=None, response_type=None) -> Any:
        """
        Perform a POST request.

        :param path: API path
        :param data: Form encoded body, a mapping or an Options model
        :param json: JSON body, any JSON serializable value or a pydantic model
        :param response_type: Type to validate the response data into
        :return: Response data
        """
        return await self.request('POST', path, data=data, json=json, response_type=response_type)

    async def put(self, path: str, data=None, *, json=None, response_type=None) -> Any:
        """Perform a PUT request; arguments as for post()."""
        return await self.request('PUT', path, data=data, json=json, response_type=response_type)

    async def delete(self, path: str, params: Optional[Mapping[str, Any]] = None, response_type=None) -> Any:
        """Perform a DELETE request; arguments as for get()."""
        return await self.request('DELETE', path, params=params, response_type=response_type)

    async def request(self, method: str, path: str, *, params=None, data=None, json=None,
                      response_type=None) -> Any:
        method = method.upper()
        state = self._state
        url = self.url(path)
        kwargs: Dict[str, Any] = {'headers': self._auth_headers(method, state), 'timeout': self._timeout}
        if params is not None:
            kwargs['params'] = _encode_form(params)
        if data is not None:
            kwargs['data'] = _encode_form(data)
        if json is not None:
            kwargs['json'] = _dump(json)

        self._logger.debug(f"{method} {url}")
        status, reason, body = await self._send(method, url, **kwargs)

        if status == 401 and self.config.reauthenticate_on_401 and state is not None and state.uses_ticket:
            self._logger.warning(f"{method} {url} returned 401, logging in again")
            fresh = await self._reauthenticate(state)
            kwargs['headers'] = self._auth_headers(method, fresh)
            status, reason, body = await self._send(method, url, **kwargs)

        if not 200 <= status < 300:
            raise self._http_error(method, url, status, reason, body)
        return self._decode(status, body, response_type)

    async def _login(self) -> SessionState:
        form = {'username': self.config.login_name, 'password': self.config.password}
        url = self.url(LOGIN_PATH)
        status, reason, body = await self._send('POST', url, data=form, timeout=self._timeout)
        if not 200 <= status < 300:
            raise ProxmoxAuthError(f"Authentication failed: HTTP {status} {reason}".rstrip(),
                                   status_code=status, body=body)
        try:
            envelope = ApiEnvelope[AuthTicket].model_validate_json(body)
        except ValidationError as e:
            raise ProxmoxAuthError("Unreadable authentication response", status_code=status, body=body) from e

        ticket = envelope.data
        if not envelope.is_success or ticket is None or not ticket.ticket or not ticket.csrf_token:
            raise ProxmoxAuthError("Authentication failed: no ticket received", status_code=status, body=body,
                                   errors=envelope.errors)
        return SessionState(ticket=ticket.ticket, csrf_token=ticket.csrf_token)

    def _full_api_token(self) -> str:
        token_id, sep, secret = self.config.api_token.strip().partition('=')
        if '!' not in token_id:
            token_id = f"{self.config.login_name}!{token_id}"
        user, _, name = token_id.partition('!')
        if not sep or not secret or not user or not name:
            raise ProxmoxAuthError("Invalid API token format. Expected 'user@realm!tokenid=secret'")
        return f"{token_id}={secret}"

    @staticmethod
    def _auth_headers(method: str, state: Optional[SessionState]) -> Dict[str, str]:
        if state is None:
            return {}
        if state.api_token:
            return {'Authorization': f'PVEAPIToken={state.api_token}'}
        headers = {'Cookie': f'{TICKET_COOKIE}={state.ticket}'}
        if method in STATE_CHANGING_METHODS:
            headers[CSRF_HEADER] = state.csrf_token
        return headers

    async def _send(self, method: str, url: str, **kwargs) -> Tuple[int, str, str]:
        try:
            async with self.transport.request(method, url, **kwargs) as response:
                body = await response.text()
                return response.status, response.reason or '', body
        except aiohttp.ClientError as e:
            raise ProxmoxConnectionError(f"{method} {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProxmoxConnectionError(f"{method} {url} timed out after {self.config.timeout_seconds}s") from e

    def _http_error(self, method: str, url: str, status: int, reason: str, body: str) -> ProxmoxAPIError:
        errors = None
        try:
            payload = jsonlib.loads(body) if body else None
            if isinstance(payload, dict) and isinstance(payload.get('errors'), dict):
                errors = payload['errors']
        except ValueError:
            pass  # plain text error page, keep the raw body only

        message = f"HTTP {status} {reason}".rstrip()
        if errors:
            message = f"{message}: {_summarize_errors(errors)}"
        self._logger.debug(f"{method} {url} failed with {message}: {body}")
        return ProxmoxAPIError(message, status_code=status, body=body, errors=errors)

    def _decode(self, status: int, body: str, response_type) -> Any:
        if not body or not body.strip():
            return None
        try:
            payload = jsonlib.loads(body)
        except ValueError as e:
            raise ProxmoxAPIError("Failed to deserialize API response", status_code=status, body=body) from e

        if isinstance(payload, dict):
            try:
                envelope = ApiEnvelope[Any].model_validate(payload)
            except ValidationError as e:
                raise ProxmoxAPIError(f"Malformed response envelope: {e}", status_code=status, body=body) from e
            if not envelope.is_success:
                raise ProxmoxAPIError(f"API returned errors: {_summarize_errors(envelope.errors)}",
                                      status_code=status, body=body, errors=envelope.errors)
            data = envelope.data
        else:
            data = payload

        if response_type is None or data is None:
            return data
        try:
            return _adapter(response_type).validate_python(data)
        except ValidationError as e:
            raise ProxmoxAPIError(f"Unexpected response shape: {e}", status_code=status, body=body) from e
