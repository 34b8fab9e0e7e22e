import json
from typing import Any, NamedTuple, NewType

SessionKey = NewType("SessionKey", str)
AuthRequestToken = NewType("AuthRequestToken", str)
AuthResponseToken = NewType("AuthResponseToken", str)


class RedirectTarget(NamedTuple):
    protocol_uri: str
    https_uri: str


class UserSession(NamedTuple):
    username: str | None
    profile: dict[str, Any] | None
    app_private_key: str | None
    core_session_token: str | None
    auth_response_token: AuthResponseToken

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        auth_response_token: AuthResponseToken,
    ) -> "UserSession":
        """Projects a verified auth response payload into a session."""

        return cls(
            username=payload.get("username"),
            profile=payload.get("profile"),
            app_private_key=payload.get("private_key"),
            core_session_token=payload.get("core_token"),
            auth_response_token=auth_response_token,
        )

    @classmethod
    def from_json(cls, raw: str) -> "UserSession":
        data: dict[str, Any] = json.loads(raw)
        return cls(
            username=data["username"],
            profile=data["profile"],
            app_private_key=data["appPrivateKey"],
            core_session_token=data["coreSessionToken"],
            auth_response_token=AuthResponseToken(data["authResponseToken"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "profile": self.profile,
            "appPrivateKey": self.app_private_key,
            "coreSessionToken": self.core_session_token,
            "authResponseToken": self.auth_response_token,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
