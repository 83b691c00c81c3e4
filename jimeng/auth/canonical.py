"""Canonical request serialization.

Canonical form:
    METHOD
    PATH
    sorted query string (`k=v` joined by `&`)
    canonical header block (four lines, each newline-terminated)
    signed header names
    hex SHA-256 of the body

Query handling:
    Names are sorted by code point. Values are emitted verbatim without URL
    encoding, which the remote verifier expects; a value containing `&` or
    `=` therefore yields an ambiguous query string.

Body hashing:
    The hash is taken over the UTF-8 body exactly as it will be sent. Callers
    must serialize once and reuse the same text for hashing and transport.
"""

import hashlib
from dataclasses import dataclass
from typing import Mapping

CONTENT_TYPE = "application/json"
SIGNED_HEADERS = "content-type;host;x-content-sha256;x-date"


def hash_payload(body: str) -> str:
    """Return the lowercase hex SHA-256 digest of a UTF-8 body."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def format_query(parameters: Mapping[str, object]) -> str:
    """Render query parameters sorted by name as `k=v&k=v`."""
    return "&".join(f"{key}={parameters[key]}" for key in sorted(parameters))


@dataclass(frozen=True)
class CanonicalRequest:
    """Signing input derived from one outgoing request."""

    method: str
    path: str
    sorted_query_string: str
    canonical_headers: str
    signed_header_names: str
    payload_hash_hex: str

    def render(self) -> str:
        return "\n".join(
            [
                self.method,
                self.path,
                self.sorted_query_string,
                self.canonical_headers,
                self.signed_header_names,
                self.payload_hash_hex,
            ]
        )

    def digest(self) -> str:
        return hash_payload(self.render())


def build_canonical_request(
    method: str,
    path: str,
    query_params: Mapping[str, object],
    host: str,
    x_date: str,
    payload_hash: str,
) -> CanonicalRequest:
    """Assemble the canonical request for an already-hashed JSON body.

    Args:
        method: HTTP method, used as given.
        path: Request path, used as given.
        query_params: Full query mapping including `Action` and `Version`.
        host: Host header value.
        x_date: `YYYYMMDDTHHMMSSZ` timestamp.
        payload_hash: Hex SHA-256 of the body.

    Returns:
        `CanonicalRequest`; call `render()` for the signing string.
    """
    canonical_headers = (
        "\n".join(
            [
                f"content-type:{CONTENT_TYPE}",
                f"host:{host}",
                f"x-content-sha256:{payload_hash}",
                f"x-date:{x_date}",
            ]
        )
        + "\n"
    )
    return CanonicalRequest(
        method=method,
        path=path,
        sorted_query_string=format_query(query_params),
        canonical_headers=canonical_headers,
        signed_header_names=SIGNED_HEADERS,
        payload_hash_hex=payload_hash,
    )
