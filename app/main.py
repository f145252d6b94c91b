import logging
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.database import init_db, make_engine, make_sessionmaker
from app.routers.auth import router as auth_router
from app.services.errors import AuthError
from app.services.identity import IdentityResolver
from app.services.mailer import Mailer, ResendMailer
from app.services.otp import OtpManager
from app.services.sessions import SessionIssuer
from app.services.store import CredentialStore, SqlCredentialStore
from app.services.tokens import utcnow

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid request body"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    settings: Settings | None = None,
    *,
    store: CredentialStore | None = None,
    mailer: Mailer | None = None,
    clock=utcnow,
) -> FastAPI:
    # raises ConfigurationError when JWT_SECRET is missing, so the server never starts unsigned
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    if store is None:
        engine = make_engine(settings.DATABASE_URL)
        init_db(engine)
        store = SqlCredentialStore(make_sessionmaker(engine))

    if mailer is None:
        mailer = ResendMailer(settings.RESEND_API_KEY, settings.MAIL_FROM, ttl_minutes=settings.OTP_EXP_MINUTES)

    app = FastAPI(title="CareerPro AI")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.mailer = mailer
    app.state.otp = OtpManager(
        store,
        settings.JWT_SECRET,
        ttl=timedelta(minutes=settings.OTP_EXP_MINUTES),
        code_length=settings.OTP_CODE_LENGTH,
        max_attempts=settings.OTP_MAX_ATTEMPTS,
        clock=clock,
    )
    app.state.identity = IdentityResolver(store, clock=clock)
    app.state.sessions = SessionIssuer(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        ttl=timedelta(days=settings.SESSION_TTL_DAYS),
        clock=clock,
    )

    register_error_handlers(app)
    app.include_router(auth_router)

    # Health check
    @app.get("/")
    def health_check():
        return {"status": "ok"}

    logger.info("CareerPro auth service ready")
    return app
