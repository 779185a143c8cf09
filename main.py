# main.py
import os

from config.logging_config import configure_logging

configure_logging()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.explain_routes import router as explain_router
from routers.narrative_routes import router as narrative_router
from routers.portfolio_routes import router as portfolio_router

app = FastAPI(title="Narrative Dashboard API")

origins = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.add_middleware(RequestLoggingMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(narrative_router, prefix="/api/narratives", tags=["narratives"])
app.include_router(portfolio_router, prefix="/api/portfolio", tags=["portfolio"])
app.include_router(explain_router, prefix="/api/ai", tags=["ai"])


@app.get("/health")
def health():
    return {"status": "ok"}


# db startup
from database import Base, engine
import models  # noqa: E402, F401  registers narratives + belief_edges

Base.metadata.create_all(bind=engine)
