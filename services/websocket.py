import json
import logging
from typing import Dict

from core.config import SECRET_KEY, ALGORITHM
from fastapi import WebSocket, WebSocketDisconnect, HTTPException, status
from jose import JWTError, jwt

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.online_users: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        self.online_users[user_id] = websocket

    def disconnect(self, websocket: WebSocket, user_id: str):
        if self.online_users.get(user_id) is websocket:
            del self.online_users[user_id]

    async def get_user(self, user_id: str):
        return self.online_users.get(user_id)

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        await websocket.send_json(message)

    async def push(self, user_id: str, message: dict) -> bool:
        websocket = await self.get_user(user_id)
        if websocket is None:
            return False
        try:
            await self.send_personal_message(message, websocket)
        except (RuntimeError, WebSocketDisconnect) as error:
            logger.warning("Dropping stale connection for %s: %s", user_id, error)
            self.disconnect(websocket, user_id)
            return False
        return True

    async def handle_message(self, message: str, websocket: WebSocket, user_id: str):
        try:
            json_decoded = json.loads(message)
        except json.JSONDecodeError:
            await self.send_personal_message({"type": "error", "msg": "Invalid JSON format"}, websocket)
            return

        if json_decoded.get("type") == "ping":
            await self.send_personal_message({"type": "pong"}, websocket)
        else:
            await self.send_personal_message({"type": "error", "msg": "Unknown message type"}, websocket)


manager = ConnectionManager()


async def get_current_user_id(token: str):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    return user_id
