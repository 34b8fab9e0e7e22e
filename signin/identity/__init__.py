from logging import getLogger
from os import getenv
from typing import Callable, assert_never
from urllib.parse import parse_qs, urlparse

from aiohttp import ClientError

from .detect import Detector, ProbeOutcome
from .errors import InvalidAuthResponse, MissingAuthResponse, NameLookupUnavailable
from .kv import KV
from .tokens import Tokens, jose_tokens
from .types import AuthRequestToken, AuthResponseToken, RedirectTarget, SessionKey, UserSession

logger = getLogger(__name__)

DEFAULT_IDENTITY_HOST = getenv("SIGNIN_IDENTITY_HOST") or "https://browser.blockstack.org/auth"
DEFAULT_NAME_LOOKUP_URL = getenv("SIGNIN_NAME_LOOKUP_URL") or "https://core.blockstack.org/v1/names/"
PROTOCOL_HANDLER = getenv("SIGNIN_PROTOCOL_HANDLER") or "blockstack"
APP_PRIVATE_KEY_SLOT = getenv("SIGNIN_APP_KEY_SLOT") or "blockstack-transit-private-key"
USER_SESSION_SLOT = getenv("SIGNIN_SESSION_SLOT") or "blockstack"
DEFAULT_SCOPE = (getenv("SIGNIN_SCOPES") or "store_write").split(",")
AUTH_RESPONSE_PARAM = "authResponse"

type Navigate = Callable[[str], None]


def generate_and_store_app_key(storage: KV, tokens: Tokens = jose_tokens) -> SessionKey:
    """Generates a new app private key and stores it, replacing any previous one."""

    app_key = tokens.make_ec_private_key()
    storage.set(APP_PRIVATE_KEY_SLOT, app_key)
    return app_key


def build_auth_request(
    storage: KV,
    origin: str,
    redirect_uri: str | None = None,
    manifest_uri: str | None = None,
    scopes: list[str] | None = None,
    tokens: Tokens = jose_tokens,
) -> AuthRequestToken:
    """Signs an auth request with a freshly generated app key.

    `origin` is the app's scheme and host, e.g. `https://example.com`. It is
    used for the default redirect and manifest locations.
    """

    origin = origin.rstrip("/")
    app_key = generate_and_store_app_key(storage, tokens)
    return tokens.make_auth_request(
        app_key,
        redirect_uri or f"{origin}/",
        manifest_uri or f"{origin}/manifest.json",
        scopes if scopes is not None else DEFAULT_SCOPE,
    )


def redirect_target(
    auth_request: AuthRequestToken,
    identity_host: str = DEFAULT_IDENTITY_HOST,
) -> RedirectTarget:
    return RedirectTarget(
        protocol_uri=f"{PROTOCOL_HANDLER}:{auth_request}",
        https_uri=f"{identity_host}?authRequest={auth_request}",
    )


def redirect_to_sign_in_with_auth_request(
    auth_request: AuthRequestToken,
    navigate: Navigate,
    detector: Detector,
    identity_host: str = DEFAULT_IDENTITY_HOST,
) -> ProbeOutcome:
    """Sends the user to the identity provider with the given auth request.

    The native protocol handler is preferred. When the detector can't tell
    whether one is installed, the custom scheme is tried anyway. The HTTPS
    identity host is only used when the handler is known to be absent.
    """

    target = redirect_target(auth_request, identity_host)
    outcome = detector.probe(target.protocol_uri)

    match outcome:
        case ProbeOutcome.DETECTED:
            # the detector already handed the request to the handler
            logger.info("protocol handler detected")
        case ProbeOutcome.ABSENT:
            logger.info("protocol handler not detected")
            navigate(target.https_uri)
        case ProbeOutcome.UNSUPPORTED:
            logger.info("can not detect custom protocols on this browser")
            navigate(target.protocol_uri)
        case _:
            assert_never(outcome)

    return outcome


def redirect_to_sign_in(
    storage: KV,
    origin: str,
    navigate: Navigate,
    detector: Detector,
    redirect_uri: str | None = None,
    manifest_uri: str | None = None,
    scopes: list[str] | None = None,
    identity_host: str = DEFAULT_IDENTITY_HOST,
    tokens: Tokens = jose_tokens,
) -> ProbeOutcome:
    auth_request = build_auth_request(
        storage, origin, redirect_uri, manifest_uri, scopes, tokens=tokens
    )
    return redirect_to_sign_in_with_auth_request(
        auth_request, navigate, detector, identity_host
    )


def get_auth_response_token(url: str) -> AuthResponseToken | None:
    """Returns the auth response carried in the query of `url`, if any."""

    query = parse_qs(urlparse(url).query)
    values = query.get(AUTH_RESPONSE_PARAM)
    if not values:
        return None
    return AuthResponseToken(values[0])


def is_sign_in_pending(url: str) -> bool:
    return get_auth_response_token(url) is not None


async def finalize_sign_in(
    storage: KV,
    auth_response_token: AuthResponseToken,
    name_lookup_url: str = DEFAULT_NAME_LOOKUP_URL,
    tokens: Tokens = jose_tokens,
) -> UserSession:
    """Verifies the auth response and stores the resulting user session.

    Storage is only written after verification succeeded. A verification in
    flight can't be cancelled, and concurrent calls don't share a round trip.
    """

    try:
        is_valid = await tokens.verify_auth_response(auth_response_token, name_lookup_url)
    except (ClientError, TimeoutError) as exception:
        raise NameLookupUnavailable(name_lookup_url) from exception

    if not is_valid:
        raise InvalidAuthResponse("auth response failed verification")

    payload = tokens.decode_token(auth_response_token)["payload"]
    user_session = UserSession.from_payload(payload, auth_response_token)
    save_user_data(storage, user_session)
    return user_session


async def handle_pending_sign_in(
    url: str,
    storage: KV,
    name_lookup_url: str = DEFAULT_NAME_LOOKUP_URL,
    tokens: Tokens = jose_tokens,
) -> UserSession:
    auth_response_token = get_auth_response_token(url)
    if auth_response_token is None:
        raise MissingAuthResponse("no pending sign in")
    return await finalize_sign_in(storage, auth_response_token, name_lookup_url, tokens)


def is_user_signed_in(storage: KV) -> bool:
    # an unreadable session is cleared by load_user_data and doesn't count
    return load_user_data(storage) is not None


def save_user_data(storage: KV, user_session: UserSession):
    storage.set(USER_SESSION_SLOT, user_session.to_json())


def load_user_data(storage: KV) -> UserSession | None:
    """Returns the stored user session, None when signed out.

    A stored session that can't be read is removed, the user is signed out.
    """

    raw = storage.get(USER_SESSION_SLOT)
    if not raw:
        return None

    try:
        return UserSession.from_json(raw)
    except (ValueError, TypeError, KeyError) as exception:
        logger.debug(f"unable to load {USER_SESSION_SLOT}")
        logger.debug(exception)
        storage.delete(USER_SESSION_SLOT)
        return None


def sign_user_out(storage: KV, navigate: Navigate, redirect_url: str | None = None):
    storage.delete(USER_SESSION_SLOT)

    if redirect_url is not None:
        navigate(redirect_url)
