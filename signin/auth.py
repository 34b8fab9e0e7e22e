from typing import override

from flask import Response, current_app, redirect
from flask.sessions import SessionMixin

from .identity.kv import KV


class SessionKV(KV):
    """Keeps the sign in slots inside the signed Flask session cookie."""

    session: SessionMixin

    def __init__(self, session: SessionMixin):
        self.session = session

    @override
    def get(self, key: str) -> str | None:
        value = self.session.get(key)
        if value is not None and not isinstance(value, str):
            current_app.logger.debug(f"ignoring non string value under {key}")
            return None
        return value

    @override
    def set(self, key: str, value: str):
        current_app.logger.debug(f"storing {key} in session")
        self.session[key] = value

    @override
    def delete(self, key: str):
        _ = self.session.pop(key, None)


class Navigation:
    """Records where the handshake wants the browser to go next."""

    target: str | None

    def __init__(self):
        self.target = None

    def __call__(self, url: str):
        if self.target is not None:
            current_app.logger.warning(f"navigation to {self.target} replaced by {url}")
        self.target = url

    def response(self, code: int = 302) -> Response:
        assert self.target is not None
        return redirect(self.target, code)
