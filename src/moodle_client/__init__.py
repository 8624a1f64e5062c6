"""
Moodle Client Library.

An async client for the Moodle web service API.

Example usage:
    ```python
    import moodle_client

    client = await moodle_client.init(
        "https://moodle.example.com",
        username="wsuser",
        password="secret",
    )
    async with client:
        info = await client.call("core_webservice_get_site_info")
        total = await client.call("local_demo_sum", {"a": 2, "b": 3}, {"method": "POST"})
    ```
"""

__version__ = "0.1.0"

# Main client
from moodle_client.client import MoodleClient, init

# Building blocks (for advanced usage)
from moodle_client.auth import TokenAuthProvider
from moodle_client.http import AsyncHTTPClient
from moodle_client.encoding import flatten_params
from moodle_client.models import CallSettings, DEFAULT_SERVICE
from moodle_client.config import MoodleSettings, configure_settings, get_settings

# Exceptions
from moodle_client.exceptions import (
    # Base exception
    MoodleClientError,
    # Caller errors
    ConfigurationError,
    UnsupportedMethodError,
    # Transport errors
    TransportError,
    NetworkError,
    TimeoutError,
    # Response errors
    ParseError,
    UnexpectedResponseError,
    AuthenticationError,
    RemoteExecutionError,
)

__all__ = [
    # Version
    "__version__",
    # Main client
    "MoodleClient",
    "init",
    # Building blocks
    "TokenAuthProvider",
    "AsyncHTTPClient",
    "flatten_params",
    "CallSettings",
    "DEFAULT_SERVICE",
    # Configuration
    "MoodleSettings",
    "configure_settings",
    "get_settings",
    # Exceptions
    "MoodleClientError",
    "ConfigurationError",
    "UnsupportedMethodError",
    "TransportError",
    "NetworkError",
    "TimeoutError",
    "ParseError",
    "UnexpectedResponseError",
    "AuthenticationError",
    "RemoteExecutionError",
]
