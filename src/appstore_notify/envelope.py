"""Compact signed envelope (JWS) decoding.

Only the payload segment is read. The signature is NOT verified: the
certificate chain in the header is ignored and the payload is trusted as-is.
"""

import base64
import binascii
import json
from typing import Any, Dict, Mapping, Optional


def decode_envelope(token: Any) -> Optional[Any]:
    if not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) < 3:
        return None
    segment = parts[1].replace("-", "+").replace("_", "/")
    padding = len(segment) % 4
    if padding:
        segment += "=" * (4 - padding)
    try:
        raw = base64.b64decode(segment, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError):
        return None


def decode_envelope_object(token: Any) -> Optional[Dict[str, Any]]:
    payload = decode_envelope(token)
    if not isinstance(payload, Mapping):
        return None
    return {str(k): v for k, v in payload.items()}


def encode_envelope(
    payload: Mapping[str, Any],
    *,
    header: Optional[Mapping[str, Any]] = None,
    signature: str = "unsigned",
) -> str:
    header_value = dict(header or {"alg": "ES256", "typ": "JWT"})
    return ".".join(
        [
            _b64url(json.dumps(header_value, separators=(",", ":")).encode("utf-8")),
            _b64url(json.dumps(dict(payload), separators=(",", ":")).encode("utf-8")),
            signature,
        ]
    )


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
