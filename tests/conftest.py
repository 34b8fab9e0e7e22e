from typing import Any

import pytest

from signin.identity.kv import MemoryKV
from signin.identity.tokens import Tokens
from signin.identity.types import AuthRequestToken, AuthResponseToken, SessionKey


class FakeTokens(Tokens):
    """Deterministic stand in for the token collaborator."""

    def __init__(self):
        self.generated_keys = 0
        self.requests: list[tuple[str, str, str, list[str]]] = []
        self.payloads: dict[str, dict[str, Any]] = {}
        self.valid = True
        self.error: Exception | None = None
        self.verify_calls: list[tuple[str, str]] = []

    def make_ec_private_key(self) -> SessionKey:
        self.generated_keys += 1
        return SessionKey(f"key-{self.generated_keys}")

    def make_auth_request(
        self,
        private_key: SessionKey,
        redirect_uri: str,
        manifest_uri: str,
        scopes: list[str],
    ) -> AuthRequestToken:
        self.requests.append((private_key, redirect_uri, manifest_uri, scopes))
        return AuthRequestToken(f"request-{private_key}")

    def decode_token(self, token: str) -> dict[str, Any]:
        return {"header": {}, "payload": self.payloads[token]}

    async def verify_auth_response(
        self,
        token: AuthResponseToken,
        name_lookup_url: str,
    ) -> bool:
        self.verify_calls.append((token, name_lookup_url))
        if self.error is not None:
            raise self.error
        return self.valid


class Recorder:
    """Navigation capability that remembers every target."""

    def __init__(self):
        self.targets: list[str] = []

    def __call__(self, url: str):
        self.targets.append(url)


ALICE_PAYLOAD = {
    "username": "alice.id",
    "profile": {},
    "private_key": "abc",
    "core_token": "xyz",
}


@pytest.fixture
def storage() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def tokens() -> FakeTokens:
    fake = FakeTokens()
    fake.payloads["T"] = dict(ALICE_PAYLOAD)
    return fake


@pytest.fixture
def navigate() -> Recorder:
    return Recorder()
