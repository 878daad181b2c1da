"""
backend/app/services/websocket_manager.py

Purpose:
    Process-local WebSocket connection manager for the notification feed.
    Tracks authenticated connections per user, delivers user-scoped pushes,
    runs the heartbeat and drops dead sockets.

Dependencies:
    - fastapi.WebSocket
    - app.config
    - app.utils
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from app.config import settings
from app.utils import utcnow

logger = logging.getLogger("tawaqo.websocket_manager")


class ConnectionLimitExceeded(RuntimeError):
    pass


@dataclass
class ManagedConnection:
    connection_id: str
    user_id: str
    websocket: WebSocket
    connected_at: datetime
    last_seen_at: datetime


class WebSocketManager:
    def __init__(
        self,
        *,
        max_connections: int,
        heartbeat_seconds: int,
    ) -> None:
        self._max_connections = max(1, int(max_connections))
        self._heartbeat_seconds = max(1, int(heartbeat_seconds))
        self._connections: dict[str, ManagedConnection] = {}
        self._by_user: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()
        self._heartbeat_task: asyncio.Task | None = None
        self._running = False
        self._sent_total = 0
        self._send_failures = 0
        self._dropped_connections = 0
        self._last_error: dict[str, Any] | None = None

    async def start(self) -> None:
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(), name="ws_heartbeat")
            logger.info("WebSocket manager started")

    async def stop(self) -> None:
        async with self._lock:
            if not self._running:
                return
            self._running = False
            if self._heartbeat_task is not None:
                self._heartbeat_task.cancel()
                try:
                    await self._heartbeat_task
                except asyncio.CancelledError:
                    pass
                self._heartbeat_task = None
            self._connections.clear()
            self._by_user.clear()
            logger.info("WebSocket manager stopped")

    async def connect(self, websocket: WebSocket, *, user_id: str) -> str:
        await websocket.accept()
        async with self._lock:
            if len(self._connections) >= self._max_connections:
                raise ConnectionLimitExceeded("max_connections_exceeded")
            connection_id = str(uuid.uuid4())
            now = utcnow()
            self._connections[connection_id] = ManagedConnection(
                connection_id=connection_id,
                user_id=str(user_id),
                websocket=websocket,
                connected_at=now,
                last_seen_at=now,
            )
            self._by_user.setdefault(str(user_id), set()).add(connection_id)
            return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._remove_locked(connection_id)

    async def disconnect_user(self, user_id: str, *, code: int = 4001, reason: str = "logged_out") -> int:
        """Close and forget every socket of one user (logout)."""
        async with self._lock:
            conn_ids = list(self._by_user.get(str(user_id), set()))
            conns = [self._connections[c] for c in conn_ids if c in self._connections]
            for conn_id in conn_ids:
                self._remove_locked(conn_id)
        for conn in conns:
            try:
                await conn.websocket.close(code=code, reason=reason)
            except Exception as exc:
                logger.debug("Close failed for %s: %s", conn.connection_id, exc)
        return len(conns)

    async def touch(self, connection_id: str) -> None:
        async with self._lock:
            conn = self._connections.get(connection_id)
            if conn:
                conn.last_seen_at = utcnow()

    async def notify_user(self, user_id: str, *, event_type: str, data: dict[str, Any]) -> int:
        """Push one message to the sockets of a single user. Returns deliveries."""
        async with self._lock:
            conns = [
                self._connections[c]
                for c in self._by_user.get(str(user_id), set())
                if c in self._connections
            ]
        return await self._send_all(conns, {"type": str(event_type), "data": data})

    def connected_users(self) -> set[str]:
        return {uid for uid, conns in self._by_user.items() if conns}

    def stats(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "active_connections": len(self._connections),
            "connected_users": len(self.connected_users()),
            "max_connections": self._max_connections,
            "sent_total": self._sent_total,
            "send_failures": self._send_failures,
            "dropped_connections": self._dropped_connections,
            "last_error": self._last_error,
        }

    async def _send_all(self, connections: list[ManagedConnection], message: dict[str, Any]) -> int:
        """Send to each connection; sockets that fail are removed."""
        delivered = 0
        for conn in connections:
            try:
                await conn.websocket.send_json(message)
            except Exception as exc:
                self._send_failures += 1
                self._last_error = {
                    "ts": utcnow().isoformat(),
                    "connection_id": conn.connection_id,
                    "event_type": str(message.get("type")),
                    "error": str(exc),
                }
                await self.disconnect(conn.connection_id)
                self._dropped_connections += 1
                continue
            delivered += 1
        self._sent_total += delivered
        return delivered

    async def _heartbeat_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._heartbeat_seconds)
            async with self._lock:
                connections = list(self._connections.values())
            await self._send_all(connections, {"type": "ping", "data": {"ts": utcnow().isoformat()}})

    def _remove_locked(self, connection_id: str) -> None:
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return
        user_conns = self._by_user.get(conn.user_id)
        if user_conns is not None:
            user_conns.discard(connection_id)
            if not user_conns:
                self._by_user.pop(conn.user_id, None)


websocket_manager = WebSocketManager(
    max_connections=settings.WS_MAX_CONNECTIONS,
    heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
)
