"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from map_veto.config import settings
from map_veto.api.routes.match import router as match_router
from map_veto.api.routes.rooms import router as rooms_router
from map_veto.api.routes.veto import router as veto_router
from map_veto.api.websockets.match_ws import match_websocket
from map_veto.repositories.duckdb_session_store import DuckDBSessionStore
from map_veto.repositories.room_repository import RoomRepository
from map_veto.repositories.session_store import InMemorySessionStore, SessionStore
from map_veto.services.draft_state_machine import DraftStateMachine
from map_veto.services.event_bus import EventBus
from map_veto.services.match_service import MatchService
from map_veto.services.veto_board import VetoBoardManager

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def get_database_path() -> Path:
    """Session store path; relative paths resolve from the repo root."""
    db_path = Path(settings.database_path)
    if db_path.is_absolute():
        return db_path
    repo_root = Path(__file__).parent.parent.parent
    return repo_root / db_path


def create_store() -> SessionStore:
    if settings.store_backend == "duckdb":
        return DuckDBSessionStore(get_database_path())
    return InMemorySessionStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup: tests may pre-populate app.state with their own collaborators
    if not hasattr(app.state, "store"):
        app.state.store = create_store()
    if not hasattr(app.state, "rooms"):
        app.state.rooms = RoomRepository(room_id_length=settings.room_id_length)
    if not hasattr(app.state, "event_bus"):
        app.state.event_bus = EventBus()
    if not hasattr(app.state, "match_service"):
        app.state.match_service = MatchService(
            app.state.store,
            app.state.rooms,
            event_bus=app.state.event_bus,
            state_machine=DraftStateMachine(
                team_a_name=settings.team_a_name,
                team_b_name=settings.team_b_name,
                default_team_format=settings.default_team_format,
                default_match_format=settings.default_match_format,
            ),
            max_retries=settings.sync_max_retries,
        )
    if not hasattr(app.state, "veto_boards"):
        app.state.veto_boards = VetoBoardManager()
    logger.info(f"Map veto started with {settings.store_backend} store")
    yield
    # Shutdown: drop store subscriptions
    app.state.match_service.close()


app = FastAPI(
    title="Map Veto",
    description="Team formation and map ban/pick drafting for match rooms",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "map-veto"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Map Veto API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# Register routers
app.include_router(rooms_router)
app.include_router(match_router)
app.include_router(veto_router)


@app.websocket("/ws/rooms/{room_id}")
async def websocket_match(websocket: WebSocket, room_id: str):
    """WebSocket endpoint for live match state."""
    await match_websocket(websocket, room_id, app.state.match_service)
