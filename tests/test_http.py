"""Tests for the HTTP client module."""

import pytest
from unittest.mock import patch

import httpx

from moodle_client.auth import TokenAuthProvider
from moodle_client.http import AsyncHTTPClient, decode_json
from moodle_client.exceptions import (
    NetworkError,
    ParseError,
    TimeoutError as ClientTimeoutError,
    TransportError,
)


class TestTokenAuthProvider:
    """Tests for the TokenAuthProvider class."""

    def test_initialization_without_token(self):
        provider = TokenAuthProvider()
        assert not provider.is_authenticated()
        assert provider.token is None

    def test_empty_token_is_not_authenticated(self):
        assert not TokenAuthProvider("").is_authenticated()

    def test_set_token(self):
        provider = TokenAuthProvider()
        provider.set_token("abc")
        assert provider.is_authenticated()
        assert provider.token == "abc"


class TestDecodeJson:
    """Tests for response body decoding."""

    def test_decodes_null(self):
        assert decode_json(httpx.Response(200, content=b"null")) is None

    def test_decodes_scalar(self):
        assert decode_json(httpx.Response(200, content=b"5")) == 5

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            decode_json(httpx.Response(200, content=b"<html>Error</html>"))
        assert exc_info.value.__cause__ is not None

    def test_empty_body_raises_parse_error(self):
        with pytest.raises(ParseError):
            decode_json(httpx.Response(200, content=b""))


class TestAsyncHTTPClient:
    """Tests for the AsyncHTTPClient class."""

    def test_initialization(self):
        client = AsyncHTTPClient(base_url="http://moodle.test/moodle/")
        assert client.base_url == "http://moodle.test/moodle"
        assert client.verify is True
        assert client.timeout == 30.0

    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with AsyncHTTPClient(base_url="http://moodle.test") as client:
            assert client._client is not None
        assert client._client is None

    @pytest.mark.asyncio
    async def test_path_prefix_is_kept(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, content=b"{}")

        client = AsyncHTTPClient(
            base_url="http://moodle.test/moodle",
            transport=httpx.MockTransport(handler),
        )
        await client.get("/webservice/rest/server.php", params=[("a[0]", "1")])
        await client.close()

        assert seen[0].path == "/moodle/webservice/rest/server.php"
        assert seen[0].params["a[0]"] == "1"

    @pytest.mark.asyncio
    async def test_default_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"{}")

        client = AsyncHTTPClient(
            base_url="http://moodle.test",
            headers={"User-Agent": "moodle-client-test"},
            transport=httpx.MockTransport(handler),
        )
        await client.get("/")
        await client.close()

        assert seen[0].headers["User-Agent"] == "moodle-client-test"

    @pytest.mark.asyncio
    async def test_post_form(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"{}")

        client = AsyncHTTPClient(base_url="http://moodle.test", transport=httpx.MockTransport(handler))
        await client.post_form("/form", body="a=1&b=2", params={"x": "y"})
        await client.close()

        request = seen[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.content == b"a=1&b=2"
        assert request.url.params["x"] == "y"


class TestAsyncHTTPClientErrorHandling:
    """Tests for error handling in AsyncHTTPClient."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [201, 301, 404, 500, 503])
    async def test_non_200_status_raises(self, status_code):
        client = AsyncHTTPClient(
            base_url="http://moodle.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(status_code)),
        )
        with pytest.raises(TransportError) as exc_info:
            await client.get("/")
        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = AsyncHTTPClient(base_url="http://moodle.test", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert isinstance(exc_info.value, TransportError)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = AsyncHTTPClient(base_url="http://moodle.test", transport=httpx.MockTransport(handler))
        with pytest.raises(ClientTimeoutError) as exc_info:
            await client.get("/")
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("Connection refused", request=request)

        client = AsyncHTTPClient(base_url="http://moodle.test", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkError):
            await client.get("/")
        assert len(attempts) == 1


class TestVerifyOverride:
    """Tests for the per-request TLS verification override."""

    @pytest.mark.asyncio
    async def test_override_uses_one_shot_client(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"{}"))
        client = AsyncHTTPClient(base_url="https://moodle.test", transport=transport)

        with patch.object(client, "_new_client", wraps=client._new_client) as new_client:
            await client.get("/", verify=False)

        new_client.assert_called_once_with(False)
        # the shared client was never created
        assert client._client is None

    @pytest.mark.asyncio
    async def test_same_policy_uses_shared_client(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"{}"))
        client = AsyncHTTPClient(base_url="https://moodle.test", transport=transport)

        await client.get("/", verify=True)
        shared = client._client
        await client.get("/")

        assert shared is not None
        assert client._client is shared
        await client.close()
