import logging

from fastapi import APIRouter, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import ContextDep, CurrentRecipientDep, OptionalRecipientDep, StoreDep
from app.core.audit import audit_login_failed, audit_login_success, audit_logout, audit_register
from app.core.config import Settings
from app.core.errors import InvalidInput, Unauthorized
from app.core.rate_limit import check_rate_limit
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.models import Recipient
from app.schemas.auth import LoginRequest, RecipientPublic, RegisterRequest


router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("wishlist.auth")

SESSION_COOKIE = "access_token"


def _cookie_options(settings: Settings) -> dict[str, object]:
    """Lax same-site cookies locally, cross-site secure cookies elsewhere."""
    environment = (settings.environment or "local").lower()
    if environment == "local":
        return {"samesite": "lax", "secure": False}
    return {"samesite": "none", "secure": True}


def _set_session_cookie(response: Response, recipient: Recipient, settings: Settings) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        create_access_token(str(recipient.id), settings),
        httponly=True,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        **_cookie_options(settings),
    )


@router.post("/register", response_model=RecipientPublic, status_code=status.HTTP_201_CREATED)
async def register_recipient(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    store: StoreDep,
    context: ContextDep,
) -> RecipientPublic:
    check_rate_limit(
        request,
        context.rate_limiter,
        context.settings,
        max_requests=5,
        window_seconds=300,
        key_suffix="register",
    )

    recipient = await store.create_recipient(
        email=payload.email,
        name=payload.name,
        hashed_password=get_password_hash(payload.password),
    )
    if recipient is None:
        logger.info("Registration failed - email already exists: %s", payload.email)
        raise InvalidInput("Email already registered")

    _set_session_cookie(response, recipient, context.settings)
    audit_register(request, recipient.id, recipient.email)
    logger.info("New recipient registered: %s (%s)", recipient.name, recipient.email)
    return RecipientPublic.model_validate(recipient)


@router.post("/login", response_model=RecipientPublic)
async def login_recipient(
    payload: LoginRequest,
    request: Request,
    response: Response,
    store: StoreDep,
    context: ContextDep,
) -> RecipientPublic:
    check_rate_limit(
        request,
        context.rate_limiter,
        context.settings,
        max_requests=context.settings.rate_limit_login_requests,
        window_seconds=60,
        key_suffix="login",
    )

    request_id = request.headers.get("X-Request-Id")
    try:
        recipient = await store.get_recipient_by_email(payload.email)
    except SQLAlchemyError:
        logger.exception("Auth login db error id=%s email=%s", request_id, payload.email)
        raise

    if recipient is None:
        logger.info("Login failed - user not found id=%s email=%s", request_id, payload.email)
        audit_login_failed(request, payload.email, "user_not_found")
        raise Unauthorized("Invalid credentials")

    if not verify_password(payload.password, recipient.hashed_password):
        logger.info("Login failed - wrong password id=%s recipient_id=%s", request_id, recipient.id)
        audit_login_failed(request, payload.email, "invalid_password")
        raise Unauthorized("Invalid credentials")

    _set_session_cookie(response, recipient, context.settings)
    audit_login_success(request, recipient.id, recipient.email)
    logger.info("Recipient logged in id=%s recipient_id=%s", request_id, recipient.id)
    return RecipientPublic.model_validate(recipient)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_recipient(
    request: Request,
    response: Response,
    context: ContextDep,
    viewer: OptionalRecipientDep,
) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/", **_cookie_options(context.settings))
    audit_logout(request, viewer.id if viewer else None)


@router.get("/me", response_model=RecipientPublic)
async def read_me(current: CurrentRecipientDep) -> RecipientPublic:
    return RecipientPublic.model_validate(current)
