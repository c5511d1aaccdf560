"""
api/routes/v1/auth.py -- Session lifecycle REST endpoints.

Routes:
  POST /api/v1/auth/register       -- create account; 201 + refresh cookie
  POST /api/v1/auth/login          -- password login; 200 + refresh cookie
  POST /api/v1/auth/refresh-token  -- rotate refresh cookie; new access token
  POST /api/v1/auth/logout         -- clear stored refresh token + cookie (requires auth)
  GET  /api/v1/auth/profile        -- current user (requires auth)

Transport:
  Access token travels in the JSON body and comes back on
  "Authorization: Bearer <token>". The refresh token never appears in a body;
  it lives in an HttpOnly, SameSite=strict cookie scoped to /api/v1/auth so the
  browser only sends it to these routes.

Security:
  Login and register are rate-limited to 10 requests/minute per IP.
  Cache-Control: no-store on every response that carries a token.
  Login errors never reveal whether the email exists (see SessionManager.login).
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccessTokenData,
    AuthData,
    AuthResponse,
    EmptyResponse,
    ErrorResponse,
    LoginRequest,
    ProfileResponse,
    RefreshResponse,
    RegisterRequest,
    UserData,
    UserResponse,
)
from auth.dependencies import get_auth_context
from auth.errors import UnauthorizedError
from auth.models import AuthContext, AuthResult
from auth.service import SessionManager
from core.config import Settings

REFRESH_COOKIE_NAME = "refresh_token"
REFRESH_COOKIE_PATH = "/api/v1/auth"

# Auth policy:
# - POST /auth/register:       public
# - POST /auth/login:          public
# - POST /auth/refresh-token:  public -- the refresh cookie is the credential
# - POST /auth/logout:         requires access token (get_auth_context)
# - GET  /auth/profile:        requires access token (get_auth_context)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_refresh_cookie(response, token: str, settings: Settings) -> None:
    """Write the refresh token as an HttpOnly cookie.

    max_age follows JWT_REFRESH_EXPIRES_IN (7 days if it cannot be parsed),
    so the cookie and the token it carries expire together.
    """
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
        path=REFRESH_COOKIE_PATH,
        max_age=settings.refresh_cookie_max_age,
    )


def clear_refresh_cookie(response, settings: Settings) -> None:
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
    )


def _manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _auth_response(request: Request, result: AuthResult, status_code: int) -> JSONResponse:
    body = AuthResponse(
        data=AuthData(
            user=UserResponse.from_profile(result.user),
            access_token=result.tokens.access_token,
        )
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))
    set_refresh_cookie(resp, result.tokens.refresh_token, _settings(request))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", status_code=201, response_model=AuthResponse)
@limiter.limit("10/minute")  # below @router, so the route registers the limited function
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and start its first session.

    409 if the email is already registered.
    """
    result = _manager(request).register(body.email, body.password, body.name)
    return _auth_response(request, result, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; replaces any previous session."""
    result = _manager(request).login(body.email, body.password)
    return _auth_response(request, result, status_code=200)


@router.post("/auth/refresh-token", response_model=RefreshResponse)
def refresh_token(request: Request) -> JSONResponse:
    """Exchange the refresh cookie for a new access token and a rotated cookie.

    On failure the stale cookie is deleted in the same 401 response, so the
    browser stops replaying a token the server has already forgotten.
    """
    settings = _settings(request)
    token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise UnauthorizedError("Refresh token not found")

    try:
        tokens = _manager(request).refresh(token)
    except UnauthorizedError as exc:
        resp = JSONResponse(status_code=exc.status_code, content=ErrorResponse(message=exc.message).body())
        clear_refresh_cookie(resp, settings)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    body = RefreshResponse(data=AccessTokenData(access_token=tokens.access_token))
    resp = JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
    set_refresh_cookie(resp, tokens.refresh_token, settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=EmptyResponse)
def logout(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> JSONResponse:
    """Revoke the refresh token. Access tokens already issued run to expiry."""
    _manager(request).logout(ctx.user_id)
    resp = JSONResponse(status_code=200, content=EmptyResponse().model_dump(by_alias=True))
    clear_refresh_cookie(resp, _settings(request))
    return resp


@router.get("/auth/profile", response_model=ProfileResponse)
def profile(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> ProfileResponse:
    """Return the sanitized record of the authenticated user. 404 if it is gone."""
    user = _manager(request).get_profile(ctx.user_id)
    return ProfileResponse(data=UserData(user=UserResponse.from_profile(user)))
