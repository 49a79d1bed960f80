"""Unit tests for Gravity credentials."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from gravity_bridge.credentials import INTROSPECTION_QUERY, GravityCredentials


def _session(status_code: int = 200, payload: object = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {"data": {}}
    session = Mock(spec=requests.Session)
    session.post.return_value = response
    return session


def test_headers_carry_api_key() -> None:
    credentials = GravityCredentials("http://gravity.local:4100/", "secret", session=Mock())

    assert credentials.headers()["x-api-key"] == "secret"
    assert credentials.graphql_url == "http://gravity.local:4100/graphql"


def test_server_url_is_required() -> None:
    with pytest.raises(ValueError):
        GravityCredentials("", "secret")


def test_successful_check_posts_introspection_query() -> None:
    session = _session()
    credentials = GravityCredentials("http://gravity.local", "secret", session=session)

    check = credentials.test()

    assert check.ok is True
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert url == "http://gravity.local/graphql"
    assert kwargs["json"] == {"query": INTROSPECTION_QUERY}
    assert kwargs["headers"]["x-api-key"] == "secret"


def test_http_error_fails_check() -> None:
    credentials = GravityCredentials("http://g", "bad", session=_session(status_code=401))

    check = credentials.test()

    assert check.ok is False
    assert check.status_code == 401


def test_graphql_errors_fail_check() -> None:
    session = _session(payload={"errors": [{"message": "Unauthorized"}]})

    check = GravityCredentials("http://g", "bad", session=session).test()

    assert check.ok is False
    assert check.message == "Unauthorized"


def test_connection_error_fails_check() -> None:
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("refused")

    check = GravityCredentials("http://g", "k", session=session).test()

    assert check.ok is False
    assert "refused" in check.message
