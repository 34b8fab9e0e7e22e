from dotenv import load_dotenv
from flask import Flask, jsonify, redirect, request, session, url_for
from flask_htmx import HTMX
from flask_htmx import make_response as htmx_response

from signin.auth import Navigation, SessionKV
from signin.identity import (
    DEFAULT_IDENTITY_HOST,
    DEFAULT_NAME_LOOKUP_URL,
    handle_pending_sign_in,
    is_sign_in_pending,
    is_user_signed_in,
    load_user_data,
    redirect_to_sign_in,
    sign_user_out,
)
from signin.identity.detect import Detector, ProbeOutcome, StaticDetector, UserAgentDetector
from signin.identity.errors import SignInError
from signin.identity.tokens import Tokens, jose_tokens

_ = load_dotenv()
app = Flask(__name__)
_ = app.config.from_prefixed_env()
htmx = HTMX()
htmx.init_app(app)

tokens: Tokens = jose_tokens


def get_storage() -> SessionKV:
    return SessionKV(session)


def get_detector() -> Detector:
    forced: str | None = app.config.get("PROTOCOL_DETECTION")
    if forced:
        return StaticDetector(ProbeOutcome(forced))
    return UserAgentDetector(request.headers.get("User-Agent"))


def app_origin() -> str:
    return request.host_url.rstrip("/")


@app.get("/")
async def page_home():
    storage = get_storage()

    if is_sign_in_pending(request.url):
        name_lookup_url = app.config.get("NAME_LOOKUP_URL") or DEFAULT_NAME_LOOKUP_URL
        try:
            user_session = await handle_pending_sign_in(
                request.url, storage, name_lookup_url, tokens=tokens
            )
        except SignInError as exception:
            app.logger.warning(f"sign in failed: {exception!r}")
            return "sign in failed", 401
        app.logger.debug(f"signed in as {user_session.username}")
        # remove the ?authResponse parameter
        return redirect(request.path)

    user_session = load_user_data(storage)
    if user_session is None:
        return jsonify({"signed_in": False})

    return jsonify(
        {
            "signed_in": True,
            "username": user_session.username,
            "profile": user_session.profile,
        }
    )


@app.get("/login")
def page_login():
    storage = get_storage()
    if is_user_signed_in(storage):
        return redirect(url_for("page_home"))

    navigation = Navigation()
    outcome = redirect_to_sign_in(
        storage,
        app_origin(),
        navigation,
        get_detector(),
        identity_host=app.config.get("IDENTITY_HOST") or DEFAULT_IDENTITY_HOST,
        tokens=tokens,
    )
    if outcome is ProbeOutcome.DETECTED:
        return "waiting for the protocol handler", 202
    return navigation.response()


@app.route("/logout", methods=["GET", "POST"])
def auth_logout():
    navigation = Navigation()
    sign_user_out(get_storage(), navigation, url_for("page_home"))
    if htmx:
        return htmx_response(redirect=navigation.target)
    return navigation.response(303)


@app.get("/manifest.json")
def app_manifest():
    origin = app_origin()
    manifest = {
        "name": app.config.get("APP_NAME", "signin"),
        "start_url": f"{origin}/",
        "description": app.config.get("APP_DESCRIPTION", ""),
        "icons": [],
    }
    icon_url: str | None = app.config.get("APP_ICON_URL")
    if icon_url:
        manifest["icons"].append({"src": icon_url, "sizes": "192x192", "type": "image/png"})

    response = jsonify(manifest)
    # identity providers fetch the manifest cross origin
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response
