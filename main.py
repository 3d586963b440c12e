import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from timbel.config.settings import Settings
from timbel.core.exceptions import ProvisioningError
from timbel.database import Base, SessionLocal, engine
from timbel import models  # noqa: F401  registers every table on Base.metadata
from timbel.routers import admin, notes, organization, users, weekly_tasks
from timbel.services.websocket_manager import websocket_manager
from timbel.utils.auth import resolve_viewer, verify_token

logging.basicConfig(
    level=Settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Timbel Weekly API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Route registration
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(organization.departments_router, prefix="/departments", tags=["Organization"])
app.include_router(organization.teams_router, prefix="/teams", tags=["Organization"])
app.include_router(weekly_tasks.router, prefix="/weekly-tasks", tags=["Weekly Tasks"])
app.include_router(notes.router, prefix="/notes", tags=["Notes"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Timbel Weekly API...")
    Base.metadata.create_all(bind=engine)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down Timbel Weekly API ({websocket_manager.get_total_connections()} open connections)")

# Root route
@app.get("/")
def read_root():
    return {"message": "Timbel Weekly API"}

@app.get("/health")
def health():
    return {"status": "ok"}

# Note change push channel
@app.websocket("/ws/notes")
async def notes_websocket(websocket: WebSocket, token: str = None):
    claims = verify_token(token) if token else None
    if not claims or not claims.get("sub"):
        logger.info("Rejected WebSocket connection without a valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # The session only lives for the lookup; an open socket holds no connection
    db = SessionLocal()
    try:
        user_id = resolve_viewer(claims, db).id
    except ProvisioningError as e:
        logger.error(f"WebSocket user could not be provisioned: {e}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    finally:
        db.close()

    await websocket.accept()
    await websocket_manager.connect(websocket, user_id)

    try:
        while True:
            # Clients only listen; anything they send is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        websocket_manager.disconnect(websocket, user_id)
