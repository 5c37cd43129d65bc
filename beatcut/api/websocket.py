"""WebSocket support for real-time processing updates.

This module provides:
- ClientRegistry: Owns one WebSocket per connected client id
- ClientChannel: Handle passed into a pipeline to reach one client
- The /ws endpoint that registers clients
"""

import logging
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()
logger = logging.getLogger(__name__)


class ClientRegistry:
    """Maps client ids to their live WebSocket.

    Each client owns its own key, so sessions never contend for an entry.
    """

    def __init__(self):
        self._connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, client_id: Optional[str] = None) -> str:
        """Accept a WebSocket, register it, and tell the client its id."""
        await websocket.accept()
        client_id = client_id or str(uuid4())
        self._connections[client_id] = websocket
        logger.info(f"Client connected: {client_id}")
        await websocket.send_json(create_connected_message(client_id))
        return client_id

    def disconnect(self, client_id: str) -> None:
        """Forget a client."""
        if self._connections.pop(client_id, None) is not None:
            logger.info(f"Client disconnected: {client_id}")

    def is_connected(self, client_id: Optional[str]) -> bool:
        return client_id is not None and client_id in self._connections

    async def send(self, client_id: Optional[str], message: dict[str, Any]) -> bool:
        """Deliver a message at most once; unknown or closed clients drop it.

        Returns:
            True if the message was handed to the socket
        """
        if client_id is None:
            return False
        websocket = self._connections.get(client_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(message)
        except Exception:
            # Client went away mid-send
            self.disconnect(client_id)
            return False
        return True

    def channel(self, client_id: Optional[str]) -> "ClientChannel":
        """Handle bound to one client, for handing to a pipeline."""
        return ClientChannel(self, client_id)

    def get_connection_count(self) -> int:
        return len(self._connections)


class ClientChannel:
    """Status channel for one client id."""

    def __init__(self, registry: ClientRegistry, client_id: Optional[str]):
        self._registry = registry
        self.client_id = client_id

    async def send(self, message: dict[str, Any]) -> None:
        await self._registry.send(self.client_id, message)


def create_connected_message(client_id: str) -> dict[str, Any]:
    """Create the greeting sent right after a client connects."""
    return {"type": "connected", "clientId": client_id}


# Global client registry instance
client_registry = ClientRegistry()


def get_client_registry() -> ClientRegistry:
    return client_registry


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Register a client and hold the socket open until it disconnects."""
    client_id = await client_registry.connect(websocket)
    try:
        while True:
            # Clients do not send anything meaningful; keep reading to notice closes.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        client_registry.disconnect(client_id)
