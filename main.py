import os
import json
import logging
from datetime import datetime
from typing import List

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from pathfinder.errors import InputValidationError, ModelInvocationError, ResponseParseError
from pathfinder.models import SubjectEntry
from pathfinder.prompt import COMMON_SUBJECTS, MIN_SUBJECTS, AdvisorMessages
from pathfinder.recommender import get_career_recommendations
from pathfinder.state import CareerPathFinder
from websocket_manager import manager


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

load_dotenv()

VERSION = "1.0.0"

SUPPORTED_TYPES = [
    "ping", "state", "subjects", "add_subject", "remove_subject",
    "update_subject", "submit", "chat", "reset"
]

app = FastAPI(title="PathFinder AI Career Recommendation API", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class SubjectGradeIn(BaseModel):
    name: str = Field(..., min_length=1)
    grade: int = Field(..., ge=0, le=100)


class RecommendationRequest(BaseModel):
    subjects: List[SubjectGradeIn]


def _now() -> str:
    return datetime.now().isoformat()


def state_message(path_finder: CareerPathFinder) -> dict:
    return {
        "type": "state",
        "state": path_finder.snapshot(),
        "timestamp": _now()
    }


# ==================== HTTP ENDPOINTS ====================

@app.get("/")
async def root():
    return {
        "message": "PathFinder AI. Connect to /ws to build your subject list and chat with the advisor.",
        "version": VERSION
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": _now(),
        **manager.get_manager_stats()
    }


@app.get("/subjects")
async def common_subjects():
    return {"subjects": COMMON_SUBJECTS}


@app.post("/recommendations")
async def recommendations(request: RecommendationRequest):
    """Stateless recommendation call for clients that don't need the chat"""
    subjects = [
        SubjectEntry(name=s.name.strip(), grade=f"{s.grade}%")
        for s in request.subjects
        if s.name.strip()
    ]
    if len(subjects) < MIN_SUBJECTS:
        raise HTTPException(status_code=400, detail=AdvisorMessages.NOT_ENOUGH_SUBJECTS)

    try:
        result = await get_career_recommendations(subjects)
    except (ModelInvocationError, ResponseParseError) as e:
        raise HTTPException(status_code=502, detail=str(e) or AdvisorMessages.GENERIC_ERROR)

    return result.to_wire()


# ==================== LONG-RUNNING SESSION TASKS ====================

async def run_submit(session_id: str, path_finder: CareerPathFinder):
    await path_finder.submit()
    await manager.send_message(session_id, state_message(path_finder))


async def run_chat(session_id: str, path_finder: CareerPathFinder, text: str):

    async def push_tail(pf: CareerPathFinder):
        tail = pf.chat_messages[-1]
        await manager.send_message(session_id, {
            "type": "stream",
            "role": tail.role.value,
            "text": tail.text,
            "timestamp": _now()
        })

    accepted = await path_finder.send_chat_message(text, on_update=push_tail)
    if not accepted:
        await manager.send_message(session_id, {
            "type": "error",
            "message": "Chat is not available right now"
        })
    await manager.send_message(session_id, state_message(path_finder))


# ==================== WEBSOCKET ENDPOINT ====================

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):

    session_id = None

    try:
        await websocket.accept()
        logger.info(" WebSocket connection accepted")

        # client opens with a hello frame before the session is created
        await websocket.receive_text()

        session_id = manager.generate_session_id()
        path_finder = CareerPathFinder()
        manager.connect_path_finder(websocket, session_id, path_finder)

        await manager.send_message(session_id, {
            "type": "connected",
            "session_id": session_id,
            "message": "Connected to PathFinder AI",
            "version": VERSION,
            "timestamp": _now()
        })
        await manager.send_message(session_id, state_message(path_finder))

        logger.info(f" New PathFinder session created: {session_id}")

        while True:
            try:
                data = await websocket.receive_text()
                message = json.loads(data)
                msg_type = message.get("type", "")

                logger.info(f"Received from session {session_id}: {msg_type}")

                if msg_type == "ping":
                    await manager.send_message(session_id, {
                        "type": "pong",
                        "timestamp": _now()
                    })

                elif msg_type == "state":
                    await manager.send_message(session_id, state_message(path_finder))

                elif msg_type == "subjects":
                    await manager.send_message(session_id, {
                        "type": "subjects",
                        "subjects": COMMON_SUBJECTS,
                        "timestamp": _now()
                    })

                elif msg_type == "add_subject":
                    path_finder.add_subject()
                    await manager.send_message(session_id, state_message(path_finder))

                elif msg_type == "remove_subject":
                    path_finder.remove_subject(message.get("id", ""))
                    await manager.send_message(session_id, state_message(path_finder))

                elif msg_type == "update_subject":
                    value = message.get("value")
                    try:
                        updated = path_finder.update_subject(
                            message.get("id", ""),
                            message.get("field", ""),
                            "" if value is None else str(value)
                        )
                    except InputValidationError as e:
                        await manager.send_message(session_id, {
                            "type": "error",
                            "message": str(e)
                        })
                        continue

                    if not updated:
                        await manager.send_message(session_id, {
                            "type": "error",
                            "message": "Subject not found"
                        })
                        continue

                    await manager.send_message(session_id, state_message(path_finder))

                elif msg_type == "submit":
                    if manager.is_busy(session_id):
                        await manager.send_message(session_id, {
                            "type": "error",
                            "message": "A request is already in progress"
                        })
                        continue

                    if len(path_finder.valid_subjects()) >= MIN_SUBJECTS:
                        await manager.send_message(session_id, {
                            "type": "status",
                            "status": "analyzing",
                            "message": "Analyzing..."
                        })

                    manager.start_task(session_id, run_submit(session_id, path_finder))

                elif msg_type == "chat":
                    user_text = message.get("message", "").strip()
                    if not user_text:
                        await manager.send_message(session_id, {
                            "type": "error",
                            "message": "Empty message"
                        })
                        continue

                    if manager.is_busy(session_id) or path_finder.is_chatting:
                        await manager.send_message(session_id, {
                            "type": "error",
                            "message": "Please wait for the current reply to finish"
                        })
                        continue

                    manager.start_task(session_id, run_chat(session_id, path_finder, user_text))

                elif msg_type == "reset":
                    manager.cancel_task(session_id)
                    path_finder.reset()
                    await manager.send_message(session_id, state_message(path_finder))

                else:
                    await manager.send_message(session_id, {
                        "type": "error",
                        "message": f"Unknown message type: {msg_type}",
                        "supported_types": SUPPORTED_TYPES
                    })

            except WebSocketDisconnect:
                logger.info(f" WebSocket disconnected for session {session_id}")
                break
            except json.JSONDecodeError as e:
                logger.error(f" JSON decode error: {e}")
                await manager.send_message(session_id, {
                    "type": "error",
                    "message": "Invalid JSON format"
                })
            except Exception as e:
                logger.error(f" Error processing message: {e}", exc_info=True)
                await manager.send_message(session_id, {
                    "type": "error",
                    "message": f"Error: {str(e)}"
                })

    except WebSocketDisconnect:
        logger.info(f" Session {session_id} disconnected")
    except Exception as e:
        logger.error(f" WebSocket error for session {session_id}: {e}", exc_info=True)
    finally:
        if session_id:
            manager.disconnect(session_id)


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))

    uvicorn.run("main:app", host=host, port=port, reload=False)
