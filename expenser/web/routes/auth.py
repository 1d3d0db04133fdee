import hashlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from expenser.core.config import settings
from expenser.core.context import AppServices, get_services
from expenser.core.cookies import clear_session_cookie, set_session_cookie
from expenser.core.rate_limit import rate_limiter
from expenser.core.session import get_current_user
from expenser.domain.users.schemas import Identity, LoginRequest, ProviderLoginRequest, RegisterRequest
from expenser.services.identity_client import IdentityProviderError

router = APIRouter(prefix="/auth")

logger = logging.getLogger(__name__)


async def _enforce_rate_limit(request: Request, identifier: str) -> None:
    client_host = request.client.host if request.client else "unknown"
    rate_key = f"{client_host}:{identifier.lower()}"
    allowed = await rate_limiter.is_allowed(
        rate_key,
        settings.LOGIN_RATE_LIMIT_MAX,
        settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        anonymised_key = hashlib.sha256(rate_key.encode()).hexdigest()[:12]
        logger.warning("Login rate limit exceeded for identifier %s", anonymised_key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )


def _signed_in(response: Response, identity: Identity) -> dict:
    set_session_cookie(response, identity)
    return identity.model_dump(by_alias=True)


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
):
    """Sign in with e-mail and password."""
    await _enforce_rate_limit(request, payload.email)
    try:
        identity = await services.sessions.login(payload.email, payload.password)
    except IdentityProviderError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _signed_in(response, identity)


@router.post("/login/provider")
async def login_with_provider(
    payload: ProviderLoginRequest,
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
):
    """Exchange an OAuth ID token from the federated popup for a session."""
    await _enforce_rate_limit(request, "provider")
    try:
        identity = await services.sessions.login_with_provider(payload.id_token, payload.provider_id)
    except IdentityProviderError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _signed_in(response, identity)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
):
    await _enforce_rate_limit(request, payload.email)
    try:
        identity = await services.sessions.register(payload.email, payload.password, payload.display_name)
    except IdentityProviderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _signed_in(response, identity)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    identity: Identity = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> Response:
    await services.sessions.logout(identity)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookie(response)
    return response


@router.get("/me")
async def me(identity: Identity = Depends(get_current_user)):
    return identity.model_dump(by_alias=True)
