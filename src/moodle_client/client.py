"""
Main Moodle web service client.

This module provides the MoodleClient class, the primary entry point for
talking to a Moodle site. It manages the web service token, calls web
service functions through the REST server and transfers files through
the pluginfile and upload endpoints.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode
import copy
import logging
import os

import httpx
from pydantic import BaseModel, ValidationError

from moodle_client.auth import TokenAuthProvider
from moodle_client.config import MoodleSettings
from moodle_client.encoding import flatten_params, urlencode_params
from moodle_client.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RemoteExecutionError,
    UnexpectedResponseError,
    UnsupportedMethodError,
)
from moodle_client.http import AsyncHTTPClient, decode_json
from moodle_client.models import (
    DEFAULT_SERVICE,
    REST_FORMAT,
    SUPPORTED_METHODS,
    CallSettings,
    PasswordCredentials,
    TokenCredentials,
    TokenResponse,
)

logger = logging.getLogger(__name__)

TOKEN_PATH = "/login/token.php"
REST_PATH = "/webservice/rest/server.php"
PLUGINFILE_PATH = "/webservice/pluginfile.php"
UPLOAD_PATH = "/webservice/upload.php"

UploadItem = Union[str, "os.PathLike[str]", Tuple[str, Any]]


class MoodleClient:
    """
    Client for the Moodle web service API.

    Example usage:
        ```python
        async with MoodleClient("https://moodle.example.com") as client:
            await client.authenticate(username="wsuser", password="secret")

            info = await client.call("core_webservice_get_site_info")
            courses = await client.call(
                "core_course_get_courses_by_field",
                {"field": "category", "value": 1},
                {"method": "POST"},
            )
        ```

    Calls only read the token, so they may run concurrently on one client.
    Re-authenticating while calls are in flight is not supported.
    """

    def __init__(
        self,
        wwwroot: Optional[str] = None,
        *,
        service: Optional[str] = None,
        token: Optional[str] = None,
        verify: bool = True,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Moodle client.

        Args:
            wwwroot: Moodle site URL (e.g., "https://moodle.example.com/moodle")
            service: Web service to request tokens for
            token: Pre-existing web service token (optional)
            verify: Whether to verify TLS certificates
            timeout: Request timeout in seconds
            headers: Additional headers to include in all requests
            transport: Custom httpx transport
        """
        self._wwwroot = (wwwroot or "").rstrip("/") or None
        self._service = service or DEFAULT_SERVICE

        self._auth_provider = TokenAuthProvider(token)

        if self._wwwroot is None:
            logger.debug("client created without wwwroot, requests will fail")
        elif httpx.URL(self._wwwroot).scheme == "http":
            logger.warning("client using http protocol - credentials are transmitted unencrypted")

        self._http = AsyncHTTPClient(
            base_url=self._wwwroot or "",
            verify=verify,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: MoodleSettings, **kwargs) -> "MoodleClient":
        """Create a client from MoodleSettings; kwargs override settings."""
        options: Dict[str, Any] = {
            "service": settings.service,
            "token": settings.token,
            "verify": settings.verify,
            "timeout": settings.timeout,
        }
        options.update(kwargs)
        return cls(settings.wwwroot, **options)

    @property
    def wwwroot(self) -> Optional[str]:
        """Get the Moodle site URL."""
        return self._wwwroot

    @property
    def service(self) -> str:
        """Get the web service name."""
        return self._service

    @property
    def token(self) -> Optional[str]:
        """Get the current web service token."""
        return self._auth_provider.token

    @property
    def is_authenticated(self) -> bool:
        """Check if the client holds a token."""
        return self._auth_provider.is_authenticated()

    @property
    def http(self) -> AsyncHTTPClient:
        """Get the underlying HTTP client."""
        return self._http

    def __repr__(self) -> str:
        state = "authenticated" if self.is_authenticated else "not authenticated"
        return f"MoodleClient(wwwroot={self._wwwroot!r}, service={self._service!r}, {state})"

    def _require_wwwroot(self) -> str:
        if not self._wwwroot:
            raise ConfigurationError("No wwwroot configured")
        return self._wwwroot

    def _require_token(self) -> str:
        token = self._auth_provider.token
        if not token:
            logger.error("no web service token, authenticate first")
            raise ConfigurationError("No web service token, authenticate first")
        return token

    # =========================================================================
    # Authentication
    # =========================================================================

    async def authenticate(
        self,
        *,
        token: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        """
        Authenticate with a token or with username and password.

        A token is stored as-is without contacting the server, even an
        empty one; calls still refuse to run until a non-empty token is set.
        A username and password are exchanged for a token at
        /login/token.php: the service name goes in the query string so
        access logs stay useful, the credentials only go in the POST body.

        Raises:
            ConfigurationError: If neither or both credential forms are
                given, or no wwwroot is configured
            TransportError: On a status code other than 200 or a network failure
            ParseError: If the response is not JSON
            AuthenticationError: If the server rejected the credentials
            UnexpectedResponseError: If the response has neither token nor error
        """
        if token is not None and (username is not None or password is not None):
            raise ConfigurationError("Provide either a token or username and password, not both")

        try:
            if token is not None:
                credentials = TokenCredentials(token=token)
            elif username is not None or password is not None:
                credentials = PasswordCredentials(username=username, password=password)
            else:
                raise ConfigurationError("Neither token nor username and password provided")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid credentials: {e.error_count()} field(s) missing or empty") from e

        if isinstance(credentials, TokenCredentials):
            self._auth_provider.set_token(credentials.token)
            logger.debug("web service token set")
            return

        self._require_wwwroot()
        logger.debug(f"requesting {self._service} token from {self._wwwroot}")

        response = await self._http.post_form(
            TOKEN_PATH,
            params={"service": self._service},
            body=urlencode({
                "username": credentials.username,
                "password": credentials.password,
            }),
        )
        data = decode_json(response)

        if isinstance(data, dict) and "error" in data:
            logger.error(f"authentication failed: {data['error']}")
            raise AuthenticationError(
                str(data["error"]),
                error_code=data.get("errorcode"),
                details={k: data[k] for k in ("debuginfo", "stacktrace") if data.get(k)},
            )

        if isinstance(data, dict) and data.get("token"):
            try:
                token_response = TokenResponse.model_validate(data)
            except ValidationError as e:
                logger.error("unexpected token response format")
                raise UnexpectedResponseError() from e
            self._auth_provider.set_token(token_response.token)
            logger.info(f"obtained {self._service} token")
            return

        logger.error("unexpected token response format")
        raise UnexpectedResponseError()

    # =========================================================================
    # Web Service Functions
    # =========================================================================

    async def call(
        self,
        wsfunction: str,
        args: Optional[Union[Mapping[str, Any], BaseModel]] = None,
        settings: Optional[Union[CallSettings, Mapping[str, Any]]] = None,
    ) -> Any:
        """
        Execute a web service function.

        Args:
            wsfunction: Name of the web service function
            args: Function arguments; nested lists and mappings are
                flattened into bracketed keys
            settings: CallSettings or a mapping with the same keys

        Returns:
            The decoded JSON result; None when the function returns no data

        Raises:
            ConfigurationError: If no token or wwwroot is set
            UnsupportedMethodError: If the method is not GET or POST
            TransportError: On a status code other than 200 or a network failure
            ParseError: If the response is not JSON
            RemoteExecutionError: If the function raised an exception
        """
        logger.debug(f"calling web service function {wsfunction}")

        token = self._require_token()
        self._require_wwwroot()

        if settings is None:
            settings = CallSettings()
        elif not isinstance(settings, CallSettings):
            try:
                settings = CallSettings.model_validate(dict(settings))
            except ValidationError as e:
                fields = {error["loc"][0] for error in e.errors() if error["loc"]}
                if "method" in fields:
                    logger.error("requested method not supported (only GET and POST supported)")
                    raise UnsupportedMethodError(repr(dict(settings).get("method"))) from e
                names = ", ".join(sorted(map(str, fields)))
                raise ConfigurationError(f"Invalid call settings: {names}") from e

        method = settings.normalized_method
        if method not in SUPPORTED_METHODS:
            logger.error("requested method not supported (only GET and POST supported)")
            raise UnsupportedMethodError(settings.method)

        query = self._build_query(token, wsfunction, args, settings)

        if method == "POST":
            # wsfunction is repeated in the URL so that server logs show it
            response = await self._http.post_form(
                REST_PATH,
                params={"wsfunction": wsfunction},
                body=urlencode_params(query),
                verify=settings.verify,
            )
        else:
            response = await self._http.get(REST_PATH, params=flatten_params(query), verify=settings.verify)

        return self._process_call_response(response)

    @staticmethod
    def _build_query(
        token: str,
        wsfunction: str,
        args: Optional[Union[Mapping[str, Any], BaseModel]],
        settings: CallSettings,
    ) -> Dict[str, Any]:
        """Copy the caller's arguments and add the protocol fields."""
        if args is None:
            query: Dict[str, Any] = {}
        elif isinstance(args, BaseModel):
            query = args.model_dump(mode="json", exclude_none=True)
        else:
            query = dict(copy.deepcopy(args))

        query["wstoken"] = token
        query["wsfunction"] = wsfunction
        query["moodlewsrestformat"] = REST_FORMAT
        query.update(settings.protocol_fields())
        return query

    @staticmethod
    def _process_call_response(response: httpx.Response) -> Any:
        data = decode_json(response)

        if data is None:
            # Some web service functions do not return any data
            logger.debug("null data returned")
            return None

        if isinstance(data, dict) and "exception" in data:
            error = RemoteExecutionError.from_payload(data)
            logger.error(str(error))
            if error.debuginfo:
                logger.debug(error.debuginfo)
            raise error

        logger.debug("data returned")
        return data

    # =========================================================================
    # Files
    # =========================================================================

    async def download(
        self,
        filepath: str,
        *,
        preview: Optional[str] = None,
        offline: bool = False,
    ) -> bytes:
        """
        Download a file through webservice/pluginfile.php.

        Args:
            filepath: File path as returned in file URLs, e.g.
                "/123/user/private/0/notes.pdf"
            preview: Preview mode (e.g., "thumb", "bigthumb", "tinyicon")
            offline: Request the file for offline use

        Returns:
            Raw file content
        """
        token = self._require_token()
        self._require_wwwroot()

        params: Dict[str, str] = {"token": token, "file": filepath}
        if preview:
            params["preview"] = preview
        if offline:
            params["offline"] = "1"

        logger.debug(f"downloading {filepath}")
        response = await self._http.get(PLUGINFILE_PATH, params=params)
        return response.content

    async def upload(
        self,
        files: Sequence[UploadItem],
        *,
        filepath: Optional[str] = None,
        itemid: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Upload files to the user's draft area through webservice/upload.php.

        Args:
            files: Local paths, or (filename, content) tuples where content
                is bytes or a binary file object
            filepath: Target path within the file area (server default "/")
            itemid: Draft item id to add the files to; omitted or <= 0 lets
                the server allocate a new one

        Returns:
            Decoded descriptors of the created files
        """
        token = self._require_token()
        self._require_wwwroot()

        if not files:
            raise ConfigurationError("No files to upload")

        params: Dict[str, Any] = {"token": token}
        if filepath:
            params["filepath"] = filepath
        if itemid is not None and itemid > 0:
            params["itemid"] = itemid

        multipart = [
            (f"file_{index}", _upload_part(item))
            for index, item in enumerate(files, start=1)
        ]

        logger.debug(f"uploading {len(multipart)} file(s)")
        response = await self._http.post(UPLOAD_PATH, params=params, files=multipart)
        data = decode_json(response)

        if isinstance(data, dict) and "exception" in data:
            error = RemoteExecutionError.from_payload(data)
            logger.error(str(error))
            raise error

        if isinstance(data, dict) and "error" in data:
            error = RemoteExecutionError(
                str(data.get("exception") or "upload_error"),
                str(data["error"]),
                data.get("errorcode"),
                debuginfo=data.get("debuginfo"),
            )
            logger.error(str(error))
            raise error

        return data

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def close(self) -> None:
        """Close the client and release pooled connections."""
        await self._http.close()
        logger.debug("Client closed")

    async def __aenter__(self) -> "MoodleClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()


def _upload_part(item: UploadItem) -> Tuple[str, Any]:
    if isinstance(item, (str, os.PathLike)):
        path = Path(item)
        return path.name, path.read_bytes()
    filename, content = item
    return filename, content


async def init(
    wwwroot: Optional[str] = None,
    *,
    token: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    service: Optional[str] = None,
    settings: Optional[MoodleSettings] = None,
    **client_options,
) -> MoodleClient:
    """
    Create a client and authenticate it.

    Explicit arguments take precedence over values from settings.

    Example:
        ```python
        client = await moodle_client.init(
            "https://moodle.example.com", username="wsuser", password="secret"
        )
        ```

    Returns:
        An authenticated MoodleClient

    Raises:
        Any error raised by MoodleClient.authenticate(); the client is
        closed before the error propagates.
    """
    if settings is not None:
        wwwroot = wwwroot or settings.wwwroot
        service = service or settings.service
        client_options.setdefault("verify", settings.verify)
        client_options.setdefault("timeout", settings.timeout)
        if token is None and username is None and password is None:
            token = settings.token
            if token is None:
                username, password = settings.username, settings.password

    client = MoodleClient(wwwroot, service=service, **client_options)
    try:
        await client.authenticate(token=token, username=username, password=password)
    except BaseException:
        await client.close()
        raise
    return client
