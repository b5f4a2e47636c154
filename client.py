"""
Client for the productivity API.

``ApiSession`` carries the signed-in user and a pluggable ``TokenStore``
instead of module-level state, so several sessions can coexist in one
process. Requests that fail with 401 are retried once after exchanging the
refresh token for a new access token.
"""
import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
DEFAULT_REVEAL_TIMEOUT = 30
MASK = '••••••••'


class ApiError(Exception):
    def __init__(self, status_code, message):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class TokenStore:
    """Where an ApiSession keeps its access/refresh token pair."""

    def get_tokens(self):
        raise NotImplementedError

    def set_tokens(self, access_token, refresh_token):
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def set_access_token(self, access_token):
        _, refresh_token = self.get_tokens()
        self.set_tokens(access_token, refresh_token)


class MemoryTokenStore(TokenStore):
    def __init__(self):
        self._access_token = None
        self._refresh_token = None

    def get_tokens(self):
        return self._access_token, self._refresh_token

    def set_tokens(self, access_token, refresh_token):
        self._access_token = access_token
        self._refresh_token = refresh_token

    def clear(self):
        self._access_token = None
        self._refresh_token = None


class RevealedSecret:
    """A revealed vault password that masks itself after ``timeout`` seconds."""

    def __init__(self, value, timeout=DEFAULT_REVEAL_TIMEOUT, clock=time.monotonic):
        self._value = value
        self._clock = clock
        self._deadline = clock() + timeout

    @property
    def expired(self):
        return self._value is None or self._clock() >= self._deadline

    @property
    def value(self):
        if self.expired:
            self._value = None
            return None
        return self._value

    def mask(self):
        self._value = None

    def __str__(self):
        return self.value or MASK

    def __repr__(self):
        return f"<RevealedSecret {'expired' if self.expired else 'visible'}>"


class ApiSession:
    def __init__(self, base_url, token_store=None, http=None, reveal_timeout=DEFAULT_REVEAL_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.tokens = token_store if token_store is not None else MemoryTokenStore()
        self.http = http if http is not None else httpx.Client()
        self.reveal_timeout = reveal_timeout
        self.user = None

    @property
    def is_authenticated(self):
        access_token, _ = self.tokens.get_tokens()
        return bool(access_token)

    def _send(self, method, path, json=None, auth=True, retry=True):
        headers = {'Content-Type': 'application/json'}
        access_token, refresh_token = self.tokens.get_tokens()
        if auth and access_token:
            headers['Authorization'] = f"Bearer {access_token}"

        response = self.http.request(
            method, self.base_url + path, json=json, headers=headers, timeout=DEFAULT_TIMEOUT
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        body = body or {}

        if response.status_code == 401 and auth and retry and refresh_token:
            try:
                self.refresh()
            except ApiError:
                logger.info("Session could not be refreshed; signing out locally")
                self.tokens.clear()
                self.user = None
            else:
                return self._send(method, path, json=json, auth=auth, retry=False)

        if response.status_code >= 400 or not body.get('success', False):
            raise ApiError(response.status_code, body.get('message', 'Request failed'))
        return body.get('data')

    def _start_session(self, data):
        self.tokens.set_tokens(data['accessToken'], data['refreshToken'])
        self.user = data['user']
        return self.user

    def signup(self, name, email, password):
        data = self._send('POST', '/auth/signup', {'name': name, 'email': email, 'password': password}, auth=False)
        return self._start_session(data)

    def login(self, email, password):
        data = self._send('POST', '/auth/login', {'email': email, 'password': password}, auth=False)
        return self._start_session(data)

    def logout(self):
        """Revoke the server session if possible; local tokens are always cleared."""
        try:
            self._send('POST', '/auth/logout', retry=False)
        except (ApiError, httpx.HTTPError) as exc:
            logger.info("Server-side logout failed: %s", exc)
        finally:
            self.tokens.clear()
            self.user = None

    def refresh(self):
        _, refresh_token = self.tokens.get_tokens()
        if not refresh_token:
            raise ApiError(401, "No refresh token")
        data = self._send('POST', '/auth/refresh', {'refreshToken': refresh_token}, auth=False)
        self.tokens.set_access_token(data['accessToken'])
        return data['accessToken']

    def me(self):
        self.user = self._send('GET', '/auth/me')
        return self.user

    def list_vault(self, page=1, limit=20):
        return self._send('GET', f'/vault/?page={page}&limit={limit}')

    def create_vault_entry(self, website, username, password, category_id, notes=None):
        payload = {'website': website, 'username': username, 'password': password, 'categoryId': category_id}
        if notes:
            payload['notes'] = notes
        return self._send('POST', '/vault/', payload)

    def categories(self, kind):
        return self._send('GET', f'/categories/{kind}')

    def reveal(self, entry_id, account_password):
        # never retried: a 401 may mean a wrong account password, which must not be resent
        data = self._send('POST', f'/vault/{entry_id}/reveal', {'password': account_password}, retry=False)
        return RevealedSecret(data['password'], timeout=self.reveal_timeout)
