from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import json
from app.core.logger import get_logger
from app.api.deps import get_ws_services

router = APIRouter()
log = get_logger(__name__)


@router.websocket("/ws")
async def session_events(websocket: WebSocket):
    """Realtime progress channel.

    Client messages:
    - {"event": "join_session", "sessionId": "<id>"} subscribes this socket to
      transcript_update, session_state, summary_ready and session_error
      events for that session. Joining is idempotent.
    - {"event": "leave_session", "sessionId": "<id>"} unsubscribes.
    - {"event": "ping"} answers {"event": "pong"}.

    Nothing is replayed on join; fetch /sessions/<id> for history.
    """
    await websocket.accept()
    broadcaster = get_ws_services(websocket).broadcaster
    log.info("WebSocket connection established")

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except ValueError:
                await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "error", "data": {"message": "Expected a JSON object"}})
                continue

            event = message.get("event")
            session_id = message.get("sessionId")

            if event in ("join_session", "leave_session"):
                if not isinstance(session_id, str) or not session_id:
                    await websocket.send_json({"event": "error", "data": {"message": "sessionId required"}})
                    continue
                if event == "join_session":
                    await broadcaster.subscribe(session_id, websocket)
                    log.info("WebSocket joined session %s", session_id)
                    await websocket.send_json({"event": "joined", "data": {"sessionId": session_id}})
                else:
                    await broadcaster.unsubscribe(session_id, websocket)
                    log.info("WebSocket left session %s", session_id)
                    await websocket.send_json({"event": "left", "data": {"sessionId": session_id}})
            elif event == "ping":
                await websocket.send_json({"event": "pong"})
            else:
                await websocket.send_json({"event": "error", "data": {"message": "unknown event"}})

    except WebSocketDisconnect:
        log.info("WebSocket connection closed")
    finally:
        await broadcaster.unsubscribe_all(websocket)
