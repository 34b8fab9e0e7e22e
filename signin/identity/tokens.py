import json
import time
from abc import ABC, abstractmethod
from logging import getLogger
from typing import Any, override
from urllib.parse import urlparse

from aiohttp import ContentTypeError
from authlib.common.encoding import to_bytes, to_unicode, urlsafe_b64decode, urlsafe_b64encode
from authlib.common.security import generate_token
from authlib.jose import JsonWebKey, Key, jwt
from authlib.jose.errors import JoseError

from signin.security import hardened_http, is_safe_url, is_valid_lookup_name

from .errors import NameLookupUnavailable
from .types import AuthRequestToken, AuthResponseToken, SessionKey
from .validator import is_valid_auth_request_payload, is_valid_auth_response_payload

logger = getLogger(__name__)

PROTOCOL_VERSION = "1.1.0"
TOKEN_LIFETIME = 3600


class Tokens(ABC):
    """Key generation and signed token handling used by the sign in handshake."""

    @abstractmethod
    def make_ec_private_key(self) -> SessionKey:
        pass

    @abstractmethod
    def make_auth_request(
        self,
        private_key: SessionKey,
        redirect_uri: str,
        manifest_uri: str,
        scopes: list[str],
    ) -> AuthRequestToken:
        pass

    @abstractmethod
    def decode_token(self, token: str) -> dict[str, Any]:
        """Returns `{"header": ..., "payload": ...}` without checking the signature."""
        pass

    @abstractmethod
    async def verify_auth_response(
        self,
        token: AuthResponseToken,
        name_lookup_url: str,
    ) -> bool:
        pass


class JoseTokens(Tokens):
    """ES256 tokens over P-256 keys. Issuers are identified by did:jwk DIDs."""

    @override
    def make_ec_private_key(self) -> SessionKey:
        key: Key = JsonWebKey.generate_key("EC", "P-256", is_private=True)
        return SessionKey(key.as_json(is_private=True))

    @override
    def make_auth_request(
        self,
        private_key: SessionKey,
        redirect_uri: str,
        manifest_uri: str,
        scopes: list[str],
    ) -> AuthRequestToken:
        key = JsonWebKey.import_key(json.loads(private_key))
        public_jwk = public_jwk_from_key(key)
        redirect = urlparse(redirect_uri)
        payload = {
            **_timestamps(),
            "iss": did_from_public_jwk(public_jwk),
            "public_keys": [public_jwk],
            "domain_name": f"{redirect.scheme}://{redirect.netloc}",
            "manifest_uri": manifest_uri,
            "redirect_uri": redirect_uri,
            "version": PROTOCOL_VERSION,
            "do_not_include_profile": True,
            "scopes": list(scopes),
        }
        return AuthRequestToken(_sign(payload, key))

    def make_auth_response(
        self,
        identity_key: str,
        username: str | None,
        profile: dict[str, Any] | None,
        app_private_key: str,
        core_token: str | None = None,
    ) -> AuthResponseToken:
        """Signs an auth response the way an identity provider answers a request."""

        key = JsonWebKey.import_key(json.loads(identity_key))
        public_jwk = public_jwk_from_key(key)
        payload = {
            **_timestamps(),
            "iss": did_from_public_jwk(public_jwk),
            "public_keys": [public_jwk],
            "username": username,
            "profile": profile,
            "private_key": app_private_key,
            "core_token": core_token,
        }
        return AuthResponseToken(_sign(payload, key))

    @override
    def decode_token(self, token: str) -> dict[str, Any]:
        segments = token.split(".")
        if len(segments) != 3:
            raise ValueError("not a compact JWS")
        header, payload, _ = segments
        return {
            "header": json.loads(urlsafe_b64decode(to_bytes(header))),
            "payload": json.loads(urlsafe_b64decode(to_bytes(payload))),
        }

    def verify_auth_request(self, token: AuthRequestToken) -> bool:
        try:
            payload = self.decode_token(token)["payload"]
            if not is_valid_auth_request_payload(payload):
                return False
            self._verify_signed_payload(token, payload)
        except (JoseError, ValueError, KeyError, TypeError) as exception:
            logger.debug(f"auth request rejected: {exception}")
            return False
        return True

    @override
    async def verify_auth_response(
        self,
        token: AuthResponseToken,
        name_lookup_url: str,
    ) -> bool:
        try:
            payload = self.decode_token(token)["payload"]
            if not is_valid_auth_response_payload(payload):
                return False
            self._verify_signed_payload(token, payload)
        except (JoseError, ValueError, KeyError, TypeError) as exception:
            logger.debug(f"auth response rejected: {exception}")
            return False

        username: str | None = payload.get("username")
        if username is None:
            return True

        # network errors are left to the caller
        record = await self.lookup_name(name_lookup_url, username)
        if record is None:
            logger.debug(f"name {username} not found")
            return False
        return record.get("did") == payload["iss"]

    async def lookup_name(self, name_lookup_url: str, username: str) -> dict[str, Any] | None:
        """Returns the name record for `username`, None when it doesn't resolve.

        Raises NameLookupUnavailable when `name_lookup_url` isn't safe to fetch.
        """

        if not is_valid_lookup_name(username):
            logger.debug(f"refusing to look up name {username!r}")
            return None

        url = f"{name_lookup_url}{username}"
        if not is_safe_url(url):
            raise NameLookupUnavailable(f"refusing to fetch {url}")

        async with hardened_http.get_session() as session:
            response = await session.get(url)
            if not response.ok:
                return None
            try:
                record = await response.json()
            except (ContentTypeError, ValueError) as exception:
                logger.debug(f"unreadable name record for {username}: {exception}")
                return None
        if not isinstance(record, dict):
            return None
        return record

    def _verify_signed_payload(self, token: str, payload: dict[str, Any]):
        # signature, issuance and expiration dates, then issuer
        public_jwk: dict[str, str] = payload["public_keys"][0]
        claims = jwt.decode(token, JsonWebKey.import_key(public_jwk))
        claims.validate()
        if public_jwk_from_did(claims["iss"]) != public_jwk:
            raise ValueError("issuer does not match public key")


def public_jwk_from_key(key: Key) -> dict[str, str]:
    return json.loads(key.as_json(is_private=False))


def did_from_public_jwk(public_jwk: dict[str, str]) -> str:
    encoded = urlsafe_b64encode(to_bytes(json.dumps(public_jwk, sort_keys=True)))
    return f"did:jwk:{to_unicode(encoded)}"


def public_jwk_from_did(did: str) -> dict[str, str]:
    if not did.startswith("did:jwk:"):
        raise ValueError(f"unsupported DID method: {did}")
    return json.loads(urlsafe_b64decode(to_bytes(did[8:])))


def _timestamps() -> dict[str, Any]:
    now = int(time.time())
    return {"jti": generate_token(), "iat": now, "exp": now + TOKEN_LIFETIME}


def _sign(payload: dict[str, Any], key: Key) -> str:
    return jwt.encode({"typ": "JWT", "alg": "ES256"}, payload, key).decode("utf-8")


jose_tokens = JoseTokens()
