import asyncio
import logging
import uuid
from typing import Dict

from fastapi import WebSocket

from pathfinder.state import CareerPathFinder


logger = logging.getLogger(__name__)


class ConnectionManager:

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.path_finders: Dict[str, CareerPathFinder] = {}
        self.pending_tasks: Dict[str, asyncio.Task] = {}

        logger.info(" ConnectionManager initialized for PathFinder AI")

    def generate_session_id(self) -> str:
        """Generate unique session ID"""
        session_id = str(uuid.uuid4())
        logger.info(f"Generated new session ID: {session_id}")
        return session_id

    def connect_path_finder(self, websocket: WebSocket, session_id: str, path_finder: CareerPathFinder):
        self.active_connections[session_id] = websocket
        self.path_finders[session_id] = path_finder
        logger.info(f" Session connected: {session_id}")
        logger.info(f"Active sessions: {self.get_active_session_count()}")

    def disconnect(self, session_id: str):
        self.cancel_task(session_id)

        if session_id in self.active_connections:
            del self.active_connections[session_id]
            logger.info(f" Removed connection for session {session_id}")

        path_finder = self.path_finders.pop(session_id, None)
        if path_finder:
            logger.info(
                f" Session {session_id} ended in phase {path_finder.phase.value} "
                f"with {len(path_finder.chat_messages)} chat messages"
            )

        logger.info(f" Remaining active sessions: {self.get_active_session_count()}")

    async def send_message(self, session_id: str, message: dict):
        """Send a JSON message to a specific connected session"""
        websocket = self.active_connections.get(session_id)
        if websocket:
            try:
                await websocket.send_json(message)
                logger.debug(f" Sent message to session {session_id}: {message.get('type', 'unknown')}")
            except Exception as e:
                logger.error(f" Error sending message to session {session_id}: {e}")
                self.disconnect(session_id)
        else:
            logger.warning(f" No active connection for session {session_id}")

    # ==================== IN-FLIGHT REQUESTS ====================

    def is_busy(self, session_id: str) -> bool:
        task = self.pending_tasks.get(session_id)
        return task is not None and not task.done()

    def start_task(self, session_id: str, coro) -> asyncio.Task:
        """Run a long operation (submit, chat) without blocking the receive loop"""
        task = asyncio.create_task(coro)
        self.pending_tasks[session_id] = task
        task.add_done_callback(lambda t: self._task_done(session_id, t))
        return task

    def _task_done(self, session_id: str, task: asyncio.Task):
        if self.pending_tasks.get(session_id) is task:
            del self.pending_tasks[session_id]
        if not task.cancelled() and task.exception():
            logger.error(f" Task for session {session_id} failed: {task.exception()}")

    def cancel_task(self, session_id: str):
        task = self.pending_tasks.pop(session_id, None)
        if task and not task.done():
            task.cancel()
            logger.info(f" Cancelled in-flight request for session {session_id}")

    # ==================== STATS ====================

    def get_active_session_count(self) -> int:
        """Get number of active connections"""
        return len(self.active_connections)

    def get_manager_stats(self) -> Dict:
        """Get overall manager statistics"""
        phases_count = {}
        for path_finder in self.path_finders.values():
            phase = path_finder.phase.value
            phases_count[phase] = phases_count.get(phase, 0) + 1

        return {
            "total_active_sessions": self.get_active_session_count(),
            "requests_in_flight": sum(1 for t in self.pending_tasks.values() if not t.done()),
            "phases_distribution": phases_count,
        }


manager = ConnectionManager()
