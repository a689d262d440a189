import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .connection_manager import ConnectionManager
from .raid_manager import RaidManager, RaidNotFoundError
from .routers import router as raid_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Raid Battle Server")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(raid_router, prefix="/api")


# --- SINGLETON INSTANCES ---
connection_manager = ConnectionManager()
raid_manager = RaidManager(connection_manager, settings)
app.state.raid_manager = raid_manager


@app.get("/api/health")
def health_check(request: Request):
    return {"status": "ok", "raids": len(request.app.state.raid_manager.repository)}


@app.websocket("/ws/raids/{raid_id}/{user_id}")
async def raid_websocket(websocket: WebSocket, raid_id: str, user_id: str):
    """
    Real-time channel for one user in one raid.
    """
    manager: RaidManager = websocket.app.state.raid_manager
    await websocket.accept()
    try:
        await manager.connect(raid_id, user_id, websocket)
    except RaidNotFoundError:
        await websocket.send_json({"type": "error", "payload": {"message": f"Raid {raid_id} not found"}})
        await websocket.close(code=4404)
        return

    try:
        while True:
            data = await websocket.receive_json()
            try:
                await manager.handle_message(raid_id, user_id, data)
            except RaidNotFoundError:
                await websocket.send_json({"type": "error", "payload": {"message": "Raid closed."}})
                break
            except Exception:
                logger.exception("Error handling message from %s in raid %s", user_id, raid_id)
                await websocket.send_json({"type": "error", "payload": {"message": "Internal error."}})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(raid_id, user_id)


def run():
    import uvicorn

    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000)
