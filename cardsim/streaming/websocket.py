"""
Pure asyncio WebSocket server (no threading).
Pushes committed snapshots to every client and feeds client commands
into the engine's command queue.
"""
import asyncio
import json
import websockets
from typing import Any, Dict, Optional, Set
import logging

from .snapshot_stream import BoundedSnapshotStream
from ..core.commands import parse_command
from ..core.snapshot import SimulationSnapshot

logger = logging.getLogger(__name__)


class AsyncWebSocketServer:
    """
    WebSocket server for a display client.

    Architecture:
    - Each client gets a bridge task forwarding the snapshot stream
    - Client messages are JSON commands, e.g.
      {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 1}
    - Commands are queued on the engine and answered once the next tick commits
    - The server never touches engine state directly
    """

    def __init__(
        self,
        snapshot_stream: BoundedSnapshotStream,
        engine: Optional['SimulationEngine'] = None,
        host: str = 'localhost',
        port: int = 8765,
        command_timeout: float = 30.0
    ):
        self.snapshot_stream = snapshot_stream
        self.engine = engine
        self.host = host
        self.port = port
        self.command_timeout = command_timeout

        # Client management
        self.clients: Set = set()

        # Stats
        self.total_connections = 0
        self.messages_sent = 0
        self.commands_received = 0

        logger.info(f"WebSocket server initialized on {host}:{port}")

    # ========================================================================
    # CONNECTION HANDLER
    # ========================================================================

    async def handler(self, websocket):
        """Handle individual client connection"""
        client_id = f"{websocket.remote_address[0]}:{websocket.remote_address[1]}"
        logger.info(f"Client connected: {client_id}")

        self.clients.add(websocket)
        self.total_connections += 1

        message_task = asyncio.create_task(self._handle_client_messages(websocket, client_id))
        bridge_task = asyncio.create_task(self._bridge_snapshot_stream(websocket, client_id))

        try:
            await asyncio.gather(message_task, bridge_task, return_exceptions=True)
        except asyncio.CancelledError:
            logger.info(f"Client handler cancelled: {client_id}")
        finally:
            message_task.cancel()
            bridge_task.cancel()
            self.clients.discard(websocket)
            logger.info(f"Client cleaned up: {client_id}")

    async def _handle_client_messages(self, websocket, client_id: str):
        """Handle incoming messages from client"""
        try:
            async for message in websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    logger.error(f"Invalid JSON from client {client_id}")
                    await websocket.send(json.dumps(self._error_response(None, "invalid JSON")))
                    continue
                response = await self.handle_message(data)
                await websocket.send(json.dumps(response))
                self.messages_sent += 1
        except websockets.ConnectionClosed:
            logger.info(f"Client {client_id} disconnected")
        except asyncio.CancelledError:
            logger.info(f"Message handler cancelled for {client_id}")

    async def handle_message(self, data: Any) -> Dict[str, Any]:
        """
        Turn one decoded client message into a response dict.
        `request_id`, if present, is echoed back.
        """
        request_id = data.get('request_id') if isinstance(data, dict) else None
        if not isinstance(data, dict):
            return self._error_response(request_id, "message must be a JSON object")

        if data.get('type') == 'get_snapshot':
            return self._snapshot_message(self.snapshot_stream.latest)

        if self.engine is None:
            return self._error_response(request_id, "no simulation attached")

        payload = {k: v for k, v in data.items() if k != 'request_id'}
        try:
            command = parse_command(payload)
        except ValueError as e:
            return self._error_response(request_id, str(e))

        self.commands_received += 1
        future = self.engine.submit(command)
        try:
            result = await asyncio.wait_for(asyncio.wrap_future(future), self.command_timeout)
        except asyncio.TimeoutError:
            return self._error_response(request_id, "command timed out")

        return {'type': 'command_result', 'request_id': request_id, **result.to_dict()}

    async def _bridge_snapshot_stream(self, websocket, client_id: str):
        """Bridge snapshot stream directly to WebSocket client"""
        try:
            logger.info(f"Starting snapshot bridge for client {client_id}")
            async for snapshot in self.snapshot_stream.subscribe():
                try:
                    await websocket.send(json.dumps(self._snapshot_message(snapshot)))
                    self.messages_sent += 1
                except websockets.ConnectionClosed:
                    logger.info(f"Client {client_id} disconnected during snapshot bridge")
                    break
        except asyncio.CancelledError:
            logger.debug(f"Snapshot bridge cancelled for client {client_id}")

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    @staticmethod
    def _snapshot_message(snapshot: Optional[SimulationSnapshot]) -> Dict[str, Any]:
        return {
            'type': 'snapshot',
            'data': snapshot.to_dict() if snapshot is not None else None
        }

    @staticmethod
    def _error_response(request_id: Optional[Any], message: str) -> Dict[str, Any]:
        return {
            'type': 'error',
            'request_id': request_id,
            'message': message
        }

    # ========================================================================
    # SERVER CONTROL
    # ========================================================================

    async def start(self):
        """Start WebSocket server"""
        logger.info(f"Starting WebSocket server on {self.host}:{self.port}")

        async with websockets.serve(self.handler, self.host, self.port):
            logger.info("WebSocket server running")
            await asyncio.Future()  # Run forever

    async def shutdown(self):
        """Graceful shutdown"""
        logger.info("Shutting down WebSocket server...")

        close_tasks = [ws.close() for ws in self.clients]
        await asyncio.gather(*close_tasks, return_exceptions=True)
        self.clients.clear()

        logger.info("WebSocket server shutdown complete")

    # ========================================================================
    # STATISTICS
    # ========================================================================

    def get_stats(self) -> dict:
        """Get server statistics"""
        return {
            'active_clients': len(self.clients),
            'total_connections': self.total_connections,
            'messages_sent': self.messages_sent,
            'commands_received': self.commands_received,
            'stream_stats': self.snapshot_stream.get_stats().__dict__
        }
