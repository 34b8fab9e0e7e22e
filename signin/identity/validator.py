from typing import Any

REQUEST_CLAIMS = ["jti", "iat", "exp", "iss", "public_keys", "redirect_uri", "manifest_uri", "scopes"]
RESPONSE_CLAIMS = ["jti", "iat", "exp", "iss", "public_keys", "private_key"]


# Checks the shape of a decoded auth request payload, signatures are checked elsewhere
def is_valid_auth_request_payload(payload: dict[str, Any] | None) -> bool:
    if payload is None or not _has_claims(payload, REQUEST_CLAIMS):
        return False
    if not isinstance(payload["scopes"], list):
        return False
    return _has_single_public_key(payload)


# Checks the shape of a decoded auth response payload
def is_valid_auth_response_payload(payload: dict[str, Any] | None) -> bool:
    if payload is None or not _has_claims(payload, RESPONSE_CLAIMS):
        return False
    username = payload.get("username")
    if username is not None and not isinstance(username, str):
        return False
    return _has_single_public_key(payload)


def _has_claims(payload: dict[str, Any], claims: list[str]) -> bool:
    return all(claim in payload for claim in claims)


def _has_single_public_key(payload: dict[str, Any]) -> bool:
    public_keys = payload["public_keys"]
    return (
        isinstance(public_keys, list)
        and len(public_keys) == 1
        and isinstance(public_keys[0], dict)
        and public_keys[0].get("kty") == "EC"
    )
