"""Activity feed: ``activities`` documents plus a WebSocket push to admin dashboards."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import WebSocket
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from pymongo.errors import PyMongoError

import paths

logger = logging.getLogger(__name__)

FEED = "activity"


# ---------------------------
# WebSocket connection manager
# ---------------------------
class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, channel: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)

    def disconnect(self, channel: str, websocket: WebSocket):
        if channel in self.active_connections:
            try:
                self.active_connections[channel].remove(websocket)
            except ValueError:
                pass

    async def broadcast(self, channel: str, message: dict):
        for ws in list(self.active_connections.get(channel, [])):
            try:
                await ws.send_json(message)
            except Exception:
                # A dead socket must not fail the submission that triggered the push
                logger.debug("Dropping unreachable subscriber on %s", channel)
                self.disconnect(channel, ws)


def record_activity(ctx, uid: str, kind: str, description: str) -> Dict[str, Any]:
    data = {"type": kind, "description": description, "userId": uid, "timestamp": ctx.now()}
    activity_id = ctx.store.add(paths.ACTIVITIES, data)
    return {"id": activity_id, **data}


async def publish_activity(ctx, uid: str, kind: str, description: str) -> None:
    """Record and push one activity. Best-effort: failures are logged only.

    The store write runs in the threadpool; only the broadcast runs on the loop.
    """
    try:
        activity = await run_in_threadpool(record_activity, ctx, uid, kind, description)
    except PyMongoError:
        logger.exception("Could not record %s activity for %s", kind, uid)
        return
    await ctx.feed.broadcast(FEED, jsonable_encoder({"type": kind, "data": activity}))
