"""HMAC-SHA256 request signer.

Processing flow:
    1. Format `date_stamp` (YYYYMMDD) and `x_date` (YYYYMMDDTHHMMSSZ) in UTC.
    2. Merge caller query parameters with `Action` and `Version`.
    3. Hash the body and build the canonical request.
    4. Build the string to sign over the credential scope
       `date_stamp/region/service/request`.
    5. Derive the signing key:
       HMAC(HMAC(HMAC(HMAC(secret, date_stamp), region), service), "request").
    6. Emit headers and the request URL.

Determinism:
    `sign` is a pure function of credentials, request fields and timestamp.
    The signing key is derived again for every request; nothing is cached.

Security considerations:
    Empty access keys or secrets are rejected when `Credentials` is built.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping
from urllib.parse import urlparse

from jimeng.auth.canonical import CONTENT_TYPE, build_canonical_request, hash_payload
from jimeng.core.config import DEFAULT_ENDPOINT, DEFAULT_REGION, DEFAULT_SERVICE, JimengConfig
from jimeng.core.errors import SigningError

ALGORITHM = "HMAC-SHA256"
SCOPE_TERMINATOR = "request"
ACTION_SUBMIT = "CVSync2AsyncSubmitTask"
ACTION_QUERY = "CVSync2AsyncGetResult"
API_VERSION = "2022-08-31"


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Four-stage key derivation; each stage keys the next with raw bytes."""
    k_date = _hmac(secret_key.encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, SCOPE_TERMINATOR)


def format_timestamps(timestamp: datetime) -> tuple[str, str]:
    """Return `(date_stamp, x_date)` for a timestamp, seconds truncated.

    Naive datetimes are interpreted as UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    utc = timestamp.astimezone(timezone.utc)
    return utc.strftime("%Y%m%d"), utc.strftime("%Y%m%dT%H%M%SZ")


@dataclass(frozen=True)
class Credentials:
    """Immutable signing identity for one client instance."""

    access_key_id: str
    secret_key: str
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    host: str = urlparse(DEFAULT_ENDPOINT).hostname

    def __post_init__(self) -> None:
        if not self.access_key_id:
            raise SigningError("Access key is required for request signing")
        if not self.secret_key:
            raise SigningError("Secret key is required for request signing")
        if not self.host:
            raise SigningError("Host is required for request signing")


@dataclass(frozen=True)
class SignedRequest:
    """Signer output ready to hand to an HTTP transport."""

    url: str
    headers: dict[str, str]
    body: str
    canonical_request: str
    string_to_sign: str
    signature: str


class Signer:
    """Sign requests for one credential set and endpoint."""

    def __init__(self, credentials: Credentials, endpoint: str = DEFAULT_ENDPOINT) -> None:
        self.credentials = credentials
        self.endpoint = endpoint.rstrip("/")

    @classmethod
    def from_config(cls, config: JimengConfig) -> "Signer":
        """Build a signer from runtime configuration.

        Raises:
            SigningError: Missing credentials or an endpoint without a host.
        """
        host = urlparse(config.endpoint).hostname or ""
        credentials = Credentials(
            access_key_id=config.access_key,
            secret_key=config.secret_key,
            region=config.region or DEFAULT_REGION,
            service=config.service or DEFAULT_SERVICE,
            host=host,
        )
        return cls(credentials, endpoint=config.endpoint or DEFAULT_ENDPOINT)

    def credential_scope(self, date_stamp: str) -> str:
        creds = self.credentials
        return f"{date_stamp}/{creds.region}/{creds.service}/{SCOPE_TERMINATOR}"

    def sign(
        self,
        method: str,
        path: str,
        query_params: Mapping[str, object],
        body: str,
        action: str,
        version: str,
        timestamp: datetime | None = None,
    ) -> SignedRequest:
        """Sign one request.

        Args:
            method: HTTP method.
            path: Request path.
            query_params: Caller query parameters (without Action/Version).
            body: Serialized JSON body exactly as it will be sent.
            action: API action name.
            version: API version string.
            timestamp: Signing time; defaults to the current UTC time.

        Returns:
            `SignedRequest` with headers, URL and intermediate signing values.
        """
        date_stamp, x_date = format_timestamps(timestamp or datetime.now(timezone.utc))
        creds = self.credentials

        all_query = {**query_params, "Action": action, "Version": version}
        payload_hash = hash_payload(body)
        canonical = build_canonical_request(
            method, path, all_query, creds.host, x_date, payload_hash
        )

        scope = self.credential_scope(date_stamp)
        string_to_sign = "\n".join([ALGORITHM, x_date, scope, canonical.digest()])

        signing_key = derive_signing_key(creds.secret_key, date_stamp, creds.region, creds.service)
        signature = hmac.new(
            signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        authorization = (
            f"{ALGORITHM} Credential={creds.access_key_id}/{scope}, "
            f"SignedHeaders={canonical.signed_header_names}, Signature={signature}"
        )
        headers = {
            "Content-Type": CONTENT_TYPE,
            "Host": creds.host,
            "X-Date": x_date,
            "X-Content-Sha256": payload_hash,
            "Authorization": authorization,
        }

        query_string = canonical.sorted_query_string
        url = f"{self.endpoint}{path}{'?' + query_string if query_string else ''}"

        return SignedRequest(
            url=url,
            headers=headers,
            body=body,
            canonical_request=canonical.render(),
            string_to_sign=string_to_sign,
            signature=signature,
        )

    def sign_submit(self, body: str, timestamp: datetime | None = None) -> SignedRequest:
        """Sign a task submission (`POST /`)."""
        return self.sign("POST", "/", {}, body, ACTION_SUBMIT, API_VERSION, timestamp)

    def sign_query(self, body: str, timestamp: datetime | None = None) -> SignedRequest:
        """Sign a task result query (`POST /`)."""
        return self.sign("POST", "/", {}, body, ACTION_QUERY, API_VERSION, timestamp)
