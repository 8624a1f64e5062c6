"""Pytest configuration and fixtures for moodle-client tests."""

import json
from typing import Any, Dict, List
from urllib.parse import parse_qsl

import httpx
import pytest

from moodle_client import MoodleClient


WWWROOT = "http://moodle.test/moodle"
TOKEN = "Ex@mpleT0kenThat1s5upposedToB3Returned"
USERNAME = "wsuser"
PASSWORD = "wsp@sswd"
SERVICE = "test-python-client"


# ============================================================================
# Fake Moodle Server
# ============================================================================


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    """Create an httpx.Response with a JSON body, including JSON null."""
    return httpx.Response(
        status_code,
        content=json.dumps(data).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


class FakeMoodle:
    """
    Minimal stand-in for a Moodle site, used as an httpx.MockTransport handler.

    Every request is recorded so tests can inspect what went over the wire.
    Like Moodle, errors are reported with HTTP 200 and an error body.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        if request.headers.get("content-type") != "application/x-www-form-urlencoded":
            return {}
        return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        query = dict(request.url.params)
        form = self.form(request)

        if path == "/moodle/login/token.php":
            return self.token(query, form)
        if path == "/moodle/webservice/rest/server.php":
            return self.rest(query, form)
        if path == "/moodle/webservice/pluginfile.php":
            return self.pluginfile(query)
        if path == "/moodle/webservice/upload.php":
            return self.upload(query, request)
        return httpx.Response(404, text="Not found")

    def token(self, query: Dict[str, str], form: Dict[str, str]) -> httpx.Response:
        if (
            query.get("service") == SERVICE
            and form.get("username") == USERNAME
            and form.get("password") == PASSWORD
        ):
            return json_response({"token": TOKEN, "privatetoken": None})
        return json_response({
            "error": "The username was not found in the database",
            "errorcode": "invalidlogin",
            "stacktrace": "",
            "debuginfo": "",
        })

    def rest(self, query: Dict[str, str], form: Dict[str, str]) -> httpx.Response:
        params = form or query
        if params.get("wstoken") != TOKEN:
            return json_response({
                "exception": "moodle_exception",
                "message": "Invalid token - token not found",
                "errorcode": "invalidtoken",
            })

        wsfunction = params.get("wsfunction")
        if wsfunction == "get_no_data":
            return json_response(None)
        if wsfunction == "sum_get" and not form:
            return json_response(int(query["a"]) + int(query["b"]))
        if wsfunction == "sum_post" and form:
            return json_response(int(form["a"]) + int(form["b"]))
        if wsfunction == "complex_args":
            if (
                params.get("a[0]") == "0"
                and params.get("a[1]") == "b"
                and params.get("a[2]") == "2"
                and params.get("c[0][x]") == "1"
                and params.get("c[0][y]") == "2"
                and params.get("c[1][x]") == "3"
                and params.get("c[1][y]") == "4"
            ):
                return json_response("ok")
            return json_response("mismatch")
        if wsfunction == "echo":
            return json_response(params)
        if wsfunction == "failing":
            return json_response({
                "exception": "moodle_exception",
                "message": "m",
                "errorcode": "e",
                "debuginfo": "line 42",
            })
        return json_response({"executed": wsfunction})

    def pluginfile(self, query: Dict[str, str]) -> httpx.Response:
        if query.get("token") != TOKEN:
            return httpx.Response(403, text="Forbidden")
        body = f"file:{query['file']}".encode("utf-8")
        if "preview" in query:
            body += f";preview:{query['preview']}".encode("utf-8")
        if "offline" in query:
            body += b";offline"
        return httpx.Response(200, content=body, headers={"Content-Type": "application/octet-stream"})

    def upload(self, query: Dict[str, str], request: httpx.Request) -> httpx.Response:
        if query.get("token") != TOKEN:
            return json_response({
                "error": "Invalid token - token not found",
                "errorcode": "invalidtoken",
                "stacktrace": None,
                "debuginfo": None,
            })
        itemid = int(query.get("itemid", 0)) or 4711
        content = request.content
        names = [
            part.split(b'"', 1)[0].decode("utf-8")
            for part in content.split(b'filename="')[1:]
        ]
        return json_response([
            {
                "component": "user",
                "contextid": 5,
                "filearea": "draft",
                "filename": name,
                "filepath": query.get("filepath", "/"),
                "itemid": itemid,
                "license": "allrightsreserved",
            }
            for name in names
        ])


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_moodle():
    """The fake Moodle site handling all requests."""
    return FakeMoodle()


@pytest.fixture
def transport(fake_moodle):
    """httpx transport routing requests to the fake Moodle site."""
    return httpx.MockTransport(fake_moodle)


@pytest.fixture
def client(transport):
    """Create a client without a token."""
    return MoodleClient(WWWROOT, service=SERVICE, transport=transport)


@pytest.fixture
def authenticated_client(transport):
    """Create a client holding a valid token."""
    return MoodleClient(WWWROOT, service=SERVICE, token=TOKEN, transport=transport)
