from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from loanops.api.v1 import api_router
from loanops.core.errors import register_exception_handlers
from loanops.core.limiter import limiter
from loanops.core.logging import configure_logging
from loanops.core.settings import settings
from loanops.events import register_event_handlers
from loanops.middlewares.request_context import RequestContextMiddleware
from loanops.middlewares.security_headers import SecurityHeadersMiddleware
from loanops.services.store import QueryStore


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Loan Query Desk", version="0.1.0")
    register_exception_handlers(app)
    app.state.limiter = limiter
    app.state.query_store = QueryStore()
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.enable_hsts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api/v1")
    register_event_handlers(app)
    return app


app = create_app()
