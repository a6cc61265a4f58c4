"""
Socket.IO hub used to push "something changed, refetch" events to clients.

Every signed-in user may join a room named after their user id; admins also
join ADMIN_ROOM. Emission helpers never raise: a failed push is logged and
the request that triggered it carries on.
"""

import logging
from typing import Any, Optional
from urllib.parse import parse_qs

import socketio
from sqlalchemy import func

from .auth import user_from_token
from .config import ALLOWED_ORIGINS
from .database import SessionLocal
from .models import Booking, Feedback, Service

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin_room"

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


# ============================================================================
# SERVER-SIDE EMISSION HELPERS
# ============================================================================


async def emit_to_user(user_id: Optional[int], event: str, data: Any = None) -> None:
    """Push an event to every socket in a user's room"""
    if user_id is None:
        return
    try:
        await sio.emit(event, data, room=str(user_id))
        logger.debug(f"📡 {event} -> user {user_id}")
    except Exception as e:
        logger.error(f"❌ Failed to emit {event} to user {user_id}: {e}")


async def emit_to_admins(event: str, data: Any = None) -> None:
    """Push an event to the admin room"""
    try:
        await sio.emit(event, data, room=ADMIN_ROOM)
        logger.debug(f"📡 {event} -> {ADMIN_ROOM}")
    except Exception as e:
        logger.error(f"❌ Failed to emit {event} to admins: {e}")


async def broadcast(event: str, data: Any = None) -> None:
    """Push an event to every connected socket"""
    try:
        await sio.emit(event, data)
        logger.debug(f"📡 {event} -> everyone")
    except Exception as e:
        logger.error(f"❌ Failed to broadcast {event}: {e}")


# ============================================================================
# DASHBOARD SNAPSHOT
# ============================================================================


def dashboard_snapshot(db) -> dict:
    """Counters the admin dashboard shows live"""
    revenue = (
        db.query(func.coalesce(func.sum(Booking.total_price), 0.0))
        .filter(Booking.status == "completed")
        .scalar()
    )
    return {
        "revenueUpdated": {"total": float(revenue or 0)},
        "servicesUpdated": {"count": db.query(Service).count()},
        "feedbacksUpdated": {"count": db.query(Feedback).count()},
        "paymentsUpdated": {
            "count": db.query(Booking).filter(Booking.payment_status == "completed").count()
        },
    }


# ============================================================================
# SOCKET EVENT HANDLERS
# ============================================================================


def _token_from_handshake(environ: dict, auth: Optional[dict]) -> Optional[str]:
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]
    params = parse_qs(environ.get("QUERY_STRING", ""))
    values = params.get("token")
    return values[0] if values else None


@sio.event
async def connect(sid, environ, auth=None):
    """Identify the socket when a token is offered, then send the dashboard snapshot"""
    db = SessionLocal()
    try:
        user = user_from_token(_token_from_handshake(environ, auth), db)
        session = {"user_id": user.id, "role": user.role} if user else {}
        await sio.save_session(sid, session)
        logger.info(f"🔌 Socket connected: {sid} user={session.get('user_id', 'anonymous')}")

        for event, data in dashboard_snapshot(db).items():
            await sio.emit(event, data, to=sid)
    except Exception as e:
        logger.error(f"❌ Socket connect handling failed for {sid}: {e}")
    finally:
        db.close()


@sio.event
async def disconnect(sid):
    logger.info(f"🔌 Socket disconnected: {sid}")


@sio.event
async def joinRoom(sid, user_id):
    """Join the personal room; only the authenticated owner may join it"""
    session = await sio.get_session(sid)
    if not session.get("user_id") or str(session["user_id"]) != str(user_id):
        logger.warning(f"🚫 Socket {sid} tried to join room {user_id}")
        await sio.emit("error", {"message": "Not authorized to join this room"}, to=sid)
        return
    await sio.enter_room(sid, str(user_id))
    logger.debug(f"✅ Socket {sid} joined room {user_id}")


@sio.event
async def leaveRoom(sid, user_id):
    await sio.leave_room(sid, str(user_id))


@sio.event
async def joinAdminRoom(sid, *args):
    session = await sio.get_session(sid)
    if session.get("role") != "admin":
        logger.warning(f"🚫 Socket {sid} tried to join {ADMIN_ROOM} without admin role")
        await sio.emit("error", {"message": "Not authorized to join admin room"}, to=sid)
        return
    await sio.enter_room(sid, ADMIN_ROOM)
    logger.info(f"✅ Admin socket {sid} joined {ADMIN_ROOM}")
