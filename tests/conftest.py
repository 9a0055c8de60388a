"""
Shared fixtures for shipper tests.

Provides fakes for the two network collaborators:
- A credential issuer served through httpx.MockTransport
- An aiobotocore-shaped session whose S3 client records put_object calls
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest

CREDENTIALS_RESPONSE = {
    "bucketName": "must-gather-bucket",
    "secretKey": "secret-key-value",
    "accessKey": "AKIATEST",
    "sessionToken": "session-token-value",
    "region": "eu-west-1",
    "key": "uploads/cluster-1/must-gather.tar.gz",
}


class FakeS3Client:
    """Records put_object calls, reading the body the way a real client would."""

    def __init__(self, session: FakeS3Session) -> None:
        self.session = session

    async def put_object(self, **kwargs: Any) -> dict[str, Any]:
        body = kwargs["Body"]
        call = dict(kwargs)
        call["position"] = body.tell()
        call["Body"] = body.read()
        self.session.put_calls.append(call)
        if self.session.error is not None:
            raise self.session.error
        return {"ETag": '"fake-etag"'}


class FakeS3Session:
    """Stands in for aiobotocore.session.AioSession."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.clients: list[tuple[str, dict[str, Any]]] = []
        self.put_calls: list[dict[str, Any]] = []

    @asynccontextmanager
    async def _client(self):
        yield FakeS3Client(self)

    def create_client(self, service_name: str, **kwargs: Any):
        self.clients.append((service_name, kwargs))
        return self._client()


class FakeIssuer:
    """Credential issuer handler for httpx.MockTransport."""

    def __init__(self, status_code: int = 200, body: Any = None, raw: bytes | None = None) -> None:
        self.status_code = status_code
        self.body = CREDENTIALS_RESPONSE if body is None else body
        self.raw = raw
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raw is not None:
            return httpx.Response(self.status_code, content=self.raw)
        return httpx.Response(self.status_code, content=json.dumps(self.body).encode())

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_s3_session():
    """Fake S3 session that accepts every upload."""
    return FakeS3Session()


@pytest.fixture
def fake_issuer():
    """Issuer returning valid credentials with HTTP 200."""
    return FakeIssuer()


@pytest.fixture
def make_issuer():
    """Factory for issuers with custom status or body."""
    return FakeIssuer


@pytest.fixture
def make_s3_session():
    """Factory for fake S3 sessions, optionally failing put_object."""
    return FakeS3Session


@pytest.fixture
def credentials_response():
    """Copy of the issuer's valid response body."""
    return dict(CREDENTIALS_RESPONSE)
