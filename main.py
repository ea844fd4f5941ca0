import contextlib
import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.websockets import WebSocket, WebSocketDisconnect

from core import config
from middlewares.auth import AuthMiddleware
from routes import routers
from services import database
from services.database import create_indexes, initialize_db_connection
from services.scheduler import start_scheduler, shutdown_scheduler
from services.websocket import get_current_user_id, manager

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Netwin API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],  # This allows all methods, including OPTIONS
    allow_headers=["*"],
)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_db_connection()
    await create_indexes()
    Path(config.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    start_scheduler()
    yield
    shutdown_scheduler()
    database.client.close()
    logger.info("Shutdown complete.")


app.router.lifespan_context = lifespan
app.add_middleware(AuthMiddleware)

for router in routers:
    app.include_router(router, prefix="/api")

app.mount(config.FILES_BASE_URL, StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="files")


@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "Server is running"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str):
    try:
        user_id = await get_current_user_id(token)
    except HTTPException:
        await websocket.close(code=1008)
        return
    await manager.connect(websocket, user_id)
    try:
        while True:
            data = await websocket.receive_text()
            await manager.handle_message(data, websocket, user_id)
    except WebSocketDisconnect:
        manager.disconnect(websocket, user_id)


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
