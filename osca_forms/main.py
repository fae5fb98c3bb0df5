from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from osca_forms.api import sessions
from osca_forms.config import settings
from osca_forms.services.session_registry import FormSessionRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    FormSessionRegistry.get_instance().start_background_cleanup(settings.session_ttl_seconds)
    yield


app = FastAPI(
    title="OSCA Form Engine",
    description="Schema-driven senior citizen registration forms",
    version="1.0.0",
    lifespan=lifespan,
)

# The UI sends the backend session cookie along, so credentials must be allowed
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router, tags=["sessions"])


@app.get("/health")
async def health_check():
    from osca_forms.services.backend_client import BackendClient
    backend = BackendClient()
    backend_ok = await backend.is_available()

    return {
        "status": "ok",
        "backend": "connected" if backend_ok else "unavailable",
        "open_sessions": FormSessionRegistry.get_instance().active_count,
    }
