"""Request-signing package.

Architectural role:
    Produces the HMAC-SHA256 authorization headers verified by the remote
    visual API.

Module split:
    - `canonical`: deterministic canonical-request serialization.
    - `signer`: credential scope, four-stage key derivation, header output.

Determinism:
    Both modules are pure functions of their inputs and an explicit
    timestamp; neither performs I/O.
"""

from jimeng.auth.canonical import CanonicalRequest, build_canonical_request, format_query, hash_payload
from jimeng.auth.signer import Credentials, SignedRequest, Signer

__all__ = [
    "CanonicalRequest",
    "Credentials",
    "SignedRequest",
    "Signer",
    "build_canonical_request",
    "format_query",
    "hash_payload",
]
