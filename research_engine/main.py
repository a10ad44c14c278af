from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.api.routes import lookup, research, sessions
from research_engine.config import settings
from research_engine.services import logger as log_service
from research_engine.services.session_store import SessionStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings.require_search_credentials()
    log_service.log_event("startup", "API started", provider=settings.search_provider)
    yield
    # Shutdown
    log_service.log_event("shutdown", "API stopped", sessions=len(app.state.session_store))


app = FastAPI(
    title="Research Engine",
    description="Multi-agent topic research with adaptive stopping and citations",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.session_store = SessionStore()
app.state.researcher = LeadResearcher()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(research.router)
app.include_router(sessions.router)
app.include_router(lookup.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "research-engine"}
