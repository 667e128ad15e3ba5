"""
Alfredo Voice — FastAPI Backend
===============================
REST endpoints for typed commands and kitchen state, plus a WebSocket
bridge that lets a browser's speech recognizer drive a VoiceSession.
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError
import uvicorn

from agents.narrator import CallbackSpeechSink, ResponseNarrator
from agents.orchestrator import CommandOrchestrator
from agents.voice_session import SpeechSource, VoiceSession
from config.settings import VOICE_CONFIG, configure_logging
from memory.session_manager import KitchenMemoryManager
from tools.gemini_gateway import build_gateway
from tools.schemas import SpeechFragment, Utterance

configure_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

MEMORY_MANAGER = KitchenMemoryManager()
GATEWAY = build_gateway()


# =============================================================================
# PYDANTIC MODELS
# =============================================================================
class VoiceCommandRequest(BaseModel):
    message: str
    user_id: str = "default"


class PantryItemRequest(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: float = Field(1.0, ge=0)
    unit: str = "piece"
    expiry_date: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    system: str
    gateway: str
    persistent: bool
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# =============================================================================
# APP SETUP
# =============================================================================
app = FastAPI(
    title="Alfredo Voice API",
    version=API_VERSION,
    description="Voice-command pipeline for pantry, nutrition and recipes",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
def build_orchestrator(user_id: str, narrator: Optional[ResponseNarrator] = None) -> CommandOrchestrator:
    """Fresh orchestrator bound to the user's collaborators. One per session."""
    pantry, nutrition_log, shopping_lists = MEMORY_MANAGER.get_stores(user_id)
    return CommandOrchestrator(GATEWAY, pantry, nutrition_log, shopping_lists, narrator)


class WebSocketSpeechSource(SpeechSource):
    """The browser runs recognition; stopping asks it to stop."""

    def __init__(self, outbox: "asyncio.Queue[Optional[Dict[str, Any]]]"):
        self.outbox = outbox

    async def start(self, session: VoiceSession) -> None:
        self.outbox.put_nowait({"type": "status", "status": session.status, "listening": False})

    async def stop(self) -> None:
        self.outbox.put_nowait({"type": "stop"})


async def _drain_outbox(websocket: WebSocket, outbox: "asyncio.Queue[Optional[Dict[str, Any]]]") -> None:
    while True:
        message = await outbox.get()
        if message is None:
            return
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError):
            # Socket already closed; remaining messages have nowhere to go.
            return


NOT_AN_OBJECT_ERROR = {"type": "error", "error": "Message must be a JSON object"}


async def handle_client_message(session: VoiceSession, message: Any) -> Optional[Dict[str, Any]]:
    """Route one browser message. Returns an error payload for bad input."""
    if not isinstance(message, dict):
        return dict(NOT_AN_OBJECT_ERROR)

    kind = message.get("type")

    if kind == "start":
        session.on_start()
    elif kind == "result":
        try:
            fragments = [SpeechFragment.model_validate(r) for r in message.get("results") or []]
        except ValidationError as e:
            return {"type": "error", "error": f"Invalid results: {e.error_count()} errors"}
        session.on_result(fragments)
    elif kind == "error":
        session.on_error(message.get("error"))
    elif kind == "end":
        session.on_end()
    elif kind == "text":
        await session.submit_text(str(message.get("text", "")))
    else:
        return {"type": "error", "error": f"Unknown message type: {kind!r}"}
    return None


# -----------------------------------------------------------------------------
# Health & Root
# -----------------------------------------------------------------------------
@app.get("/")
async def root():
    """Root endpoint for health checking."""
    return {
        "status": "online",
        "system": VOICE_CONFIG["assistant_name"],
        "version": API_VERSION,
        "docs": "/docs",
        "gateway": GATEWAY.mode,
    }


@app.get("/api/v1/health", response_model=HealthResponse)
async def api_health():
    """Detailed health check endpoint."""
    return HealthResponse(
        status="online",
        system=VOICE_CONFIG["app_name"],
        gateway=GATEWAY.mode,
        persistent=bool(MEMORY_MANAGER.state_manager.filepath),
    )


# -----------------------------------------------------------------------------
# Voice
# -----------------------------------------------------------------------------
@app.websocket("/api/v1/voice/{user_id}")
async def voice_socket(websocket: WebSocket, user_id: str):
    """
    Browser -> server: {"type": "start" | "result" | "error" | "end" | "text", ...}
    Server -> browser: transcript, status, command, speak and stop messages.
    """
    await websocket.accept()
    outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()

    def push(kind: str, payload: Dict[str, Any]) -> None:
        outbox.put_nowait({"type": kind, **payload})

    narrator = ResponseNarrator(
        CallbackSpeechSink(lambda text, rate, pitch: push("speak", {"text": text, "rate": rate, "pitch": pitch}))
    )
    session = VoiceSession(
        build_orchestrator(user_id, narrator),
        source=WebSocketSpeechSource(outbox),
        listener=push,
    )
    writer = asyncio.create_task(_drain_outbox(websocket, outbox))
    logger.info("🎙️ Voice session opened for %s", user_id)

    try:
        async with session:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    outbox.put_nowait(dict(NOT_AN_OBJECT_ERROR))
                    continue
                error = await handle_client_message(session, message)
                if error is not None:
                    outbox.put_nowait(error)
    except WebSocketDisconnect:
        logger.info("🎙️ Voice client disconnected: %s", user_id)
    finally:
        outbox.put_nowait(None)
        await writer


@app.post("/api/v1/voice/command")
async def voice_command(request: VoiceCommandRequest):
    """Run a typed command through the same pipeline as speech."""
    message = request.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message must not be empty")

    orchestrator = build_orchestrator(request.user_id)
    command = await orchestrator.process(Utterance(text=message))
    return command.model_dump(mode="json")


# -----------------------------------------------------------------------------
# Pantry
# -----------------------------------------------------------------------------
@app.get("/api/v1/pantry/{user_id}")
async def get_pantry(user_id: str):
    pantry, _, _ = MEMORY_MANAGER.get_stores(user_id)
    return {
        "items": [item.model_dump() for item in pantry.snapshot()],
        "low_stock": [item.name for item in pantry.low_stock_items()],
        "expiring": [item.name for item in pantry.expiring_items()],
    }


@app.post("/api/v1/pantry/{user_id}/items")
async def add_pantry_item(user_id: str, request: PantryItemRequest):
    pantry, _, _ = MEMORY_MANAGER.get_stores(user_id)
    item = await pantry.add_item(request.name, request.quantity, request.unit, request.expiry_date)
    return {"status": "success", "item": item.model_dump()}


# -----------------------------------------------------------------------------
# Nutrition & Shopping
# -----------------------------------------------------------------------------
@app.get("/api/v1/nutrition/{user_id}/today")
async def get_today_nutrition(user_id: str):
    _, nutrition_log, _ = MEMORY_MANAGER.get_stores(user_id)
    meals: List[Dict[str, Any]] = [meal.model_dump() for meal in nutrition_log.todays_meals()]
    return {
        "date": datetime.now().date().isoformat(),
        "meals": meals,
        "totals": nutrition_log.todays_totals().model_dump(),
    }


@app.get("/api/v1/shopping-lists/{user_id}")
async def get_shopping_lists(user_id: str):
    _, _, shopping_lists = MEMORY_MANAGER.get_stores(user_id)
    active = shopping_lists.active_list()
    return {
        "lists": [grocery_list.model_dump() for grocery_list in shopping_lists.lists()],
        "active": active.model_dump() if active else None,
    }


if __name__ == "__main__":
    logger.info("🚀 %s Voice API v%s", VOICE_CONFIG["assistant_name"], API_VERSION)
    logger.info("   • Gateway: %s", GATEWAY.mode)
    logger.info("   • Storage: %s", MEMORY_MANAGER.state_manager.filepath or "in-memory")
    logger.info("🔗 API Docs: http://localhost:8000/docs")

    uvicorn.run(app, host="0.0.0.0", port=8000)
