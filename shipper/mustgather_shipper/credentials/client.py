"""
Credential issuer client for the must-gather shipper.

Requests short-lived object storage credentials from the issuing service
(Hydra) with a single authenticated POST.

Request:
    POST <HYDRA_URL>
    Content-Type: application/json
    Authorization: Basic <user:pass>
    {"fileName": "<name>", "isPrivate": "false"}

Response (HTTP 200):
    {"bucketName": ..., "secretKey": ..., "accessKey": ...,
     "sessionToken": ..., "region": ..., "key": ...}

Invariants:
    - Exactly one request per fetch, no retries
    - Any status other than 200 is a failure
    - Credentials are valid for the following upload only and never cached
    - TLS verification is skipped only when insecure_skip_verify is set
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import CredentialServiceConfig
from ..errors import CredentialFetchError

logger = logging.getLogger(__name__)

# JSON field name -> Credentials attribute
_RESPONSE_FIELDS = {
    "bucketName": "bucket_name",
    "accessKey": "access_key",
    "secretKey": "secret_key",
    "sessionToken": "session_token",
    "region": "region",
    "key": "key",
}


@dataclass(frozen=True)
class Credentials:
    """Temporary storage credentials for one upload.

    Attributes:
        bucket_name: Destination bucket
        access_key: Temporary access key ID
        secret_key: Temporary secret access key
        session_token: Session token paired with the keys
        region: Bucket region
        key: Destination object key
    """

    bucket_name: str
    access_key: str
    secret_key: str = field(repr=False)
    session_token: str = field(repr=False)
    region: str
    key: str

    @classmethod
    def from_dict(cls, data: Any) -> Credentials:
        """Decode an issuer response body.

        Raises:
            CredentialFetchError: If the body is not an object or a field is
                missing or not a string
        """
        if not isinstance(data, dict):
            raise CredentialFetchError(
                f"Credential response must be a JSON object, got {type(data).__name__}"
            )

        missing = [name for name in _RESPONSE_FIELDS if not isinstance(data.get(name), str)]
        if missing:
            raise CredentialFetchError(
                f"Credential response missing fields: {', '.join(missing)}"
            )

        return cls(**{attr: data[name] for name, attr in _RESPONSE_FIELDS.items()})


class CredentialClient:
    """Fetches temporary storage credentials from the issuer.

    Attributes:
        config: Issuer configuration
        file_name: Name announced in the request body

    Example:
        >>> client = CredentialClient(config.hydra, file_name="must-gather.tar.gz")
        >>> creds = await client.fetch()
        >>> print(creds.bucket_name, creds.key)
    """

    def __init__(
        self,
        config: CredentialServiceConfig,
        file_name: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Issuer URL, basic-auth credentials, TLS and timeout settings
            file_name: Value for the "fileName" request field
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self.file_name = file_name
        self._transport = transport

    @property
    def verify_tls(self) -> bool:
        return not self.config.insecure_skip_verify

    def request_body(self) -> dict[str, str]:
        return {"fileName": self.file_name, "isPrivate": "false"}

    async def fetch(self) -> Credentials:
        """Request credentials from the issuer.

        Returns:
            Decoded Credentials

        Raises:
            CredentialFetchError: On transport failure, non-200 status or a
                malformed response body
        """
        url = self.config.url
        if self.config.insecure_skip_verify:
            logger.warning(
                "TLS certificate verification disabled for credential request",
                extra={"url": url},
            )

        logger.info("Requesting storage credentials", extra={"url": url})

        try:
            async with httpx.AsyncClient(
                verify=self.verify_tls,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    json=self.request_body(),
                    auth=httpx.BasicAuth(self.config.username, self.config.password),
                    headers={"Content-Type": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CredentialFetchError(f"Credential request to {url} failed: {e}", url=url) from e

        if response.status_code != httpx.codes.OK:
            raise CredentialFetchError(
                "Unexpected HTTP response status code: "
                f"{response.status_code} {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CredentialFetchError(
                f"Credential response is not valid JSON: {e}",
                url=url,
                status_code=response.status_code,
            ) from e

        try:
            credentials = Credentials.from_dict(data)
        except CredentialFetchError as e:
            raise CredentialFetchError(e.message, url=url, status_code=response.status_code) from e

        logger.info(
            "Storage credentials received",
            extra={
                "bucket": credentials.bucket_name,
                "key": credentials.key,
                "region": credentials.region,
            },
        )
        return credentials
