"""Editing sessions — in-memory diagram sessions with net undo/redo.

Each session owns its own net history. Calls into one session are
serialised with a lock because the history does not detect interleaved
writers.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Literal

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from sld.config import get_settings
from sld.schemas.diagram import (
    Diagram,
    DiagramEdge,
    DiagramNode,
    Net,
    NetKind,
    Phase,
)
from sld.schemas.validation import ValidationSummary
from sld.services.diagram_service import DiagramSession

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Session Registry ───


@dataclass
class SessionEntry:
    session: DiagramSession
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_used: float = field(default_factory=time.monotonic)


class SessionManager:
    """In-memory registry. Idle sessions expire and the oldest are evicted
    once ``max_sessions`` is reached."""

    def __init__(
        self,
        idle_timeout: float | None = None,
        max_sessions: int | None = None,
        clock=time.monotonic,
    ):
        settings = get_settings()
        self.sessions: dict[str, SessionEntry] = {}
        self.idle_timeout = (
            idle_timeout
            if idle_timeout is not None
            else settings.session_idle_timeout_seconds
        )
        self.max_sessions = (
            max_sessions if max_sessions is not None else settings.max_sessions
        )
        self.clock = clock

    def create(self, session: DiagramSession) -> str:
        self.cleanup_expired()
        while self.sessions and len(self.sessions) >= self.max_sessions:
            oldest = min(self.sessions, key=lambda sid: self.sessions[sid].last_used)
            logger.info("Session limit reached; evicting %s", oldest)
            del self.sessions[oldest]

        session_id = uuid.uuid4().hex
        self.sessions[session_id] = SessionEntry(session=session, last_used=self.clock())
        return session_id

    def get(self, session_id: str) -> SessionEntry:
        self.cleanup_expired()
        entry = self.sessions.get(session_id)
        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found",
            )
        entry.last_used = self.clock()
        return entry

    def remove(self, session_id: str) -> None:
        self.get(session_id)
        del self.sessions[session_id]

    def cleanup_expired(self) -> None:
        cutoff = self.clock() - self.idle_timeout
        expired = [sid for sid, entry in self.sessions.items() if entry.last_used < cutoff]
        for sid in expired:
            logger.info("Session %s expired", sid)
            del self.sessions[sid]


sessions = SessionManager()


# ─── Schemas ───


class SessionCreate(BaseModel):
    template: Literal["demo", "empty"] = "demo"
    diagram: Diagram | None = None


class HistoryState(BaseModel):
    can_undo: bool
    can_redo: bool


class SessionState(BaseModel):
    session_id: str
    nodes: list[DiagramNode]
    edges: list[DiagramEdge]
    nets: list[Net]
    net_edge_counts: dict[str, int]
    history: HistoryState


class ConnectRequest(BaseModel):
    source: str
    target: str
    source_port: str | None = None
    target_port: str | None = None
    net_id: str | None = None


class ConnectResponse(BaseModel):
    accepted: bool
    edge: DiagramEdge | None = None


class NetCreate(BaseModel):
    kind: NetKind | None = None
    voltage: float | None = None
    phase: Phase | None = None
    label: str | None = None
    tolerance: float | None = None


class NetUpdate(BaseModel):
    kind: NetKind | None = None
    voltage: float | None = None
    phase: int | None = None
    label: str | None = None
    tolerance: float | None = None


class EdgeNetUpdate(BaseModel):
    net_id: str | None


def _state(session_id: str, session: DiagramSession) -> SessionState:
    return SessionState(
        session_id=session_id,
        nodes=session.nodes,
        edges=session.edges,
        nets=session.nets,
        net_edge_counts=session.net_edge_counts(),
        history=HistoryState(**session.history.state()),
    )


# ─── Endpoints ───


@router.post("", response_model=SessionState, status_code=201)
async def create_session(data: SessionCreate):
    if data.diagram is not None:
        session = DiagramSession(
            nodes=data.diagram.nodes,
            edges=data.diagram.edges,
            nets=data.diagram.nets,
        )
    elif data.template == "demo":
        session = DiagramSession.demo()
    else:
        session = DiagramSession()
    session_id = sessions.create(session)
    return _state(session_id, session)


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session_id: str):
    entry = sessions.get(session_id)
    with entry.lock:
        return _state(session_id, entry.session)


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str):
    sessions.remove(session_id)


@router.post("/{session_id}/connect", response_model=ConnectResponse)
async def connect(session_id: str, data: ConnectRequest):
    """Add an edge. A cyclic edge is refused with ``accepted=False``."""
    entry = sessions.get(session_id)
    with entry.lock:
        edge = entry.session.connect(
            data.source,
            data.target,
            source_port=data.source_port,
            target_port=data.target_port,
            net_id=data.net_id,
        )
    return ConnectResponse(accepted=edge is not None, edge=edge)


@router.post("/{session_id}/nets", response_model=SessionState, status_code=201)
async def add_net(session_id: str, data: NetCreate):
    entry = sessions.get(session_id)
    with entry.lock:
        entry.session.add_net(**data.model_dump(exclude_none=True))
        return _state(session_id, entry.session)


@router.patch("/{session_id}/nets/{net_id}", response_model=SessionState)
async def update_net(session_id: str, net_id: str, data: NetUpdate):
    entry = sessions.get(session_id)
    with entry.lock:
        if entry.session.get_net(net_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Net {net_id} not found",
            )
        entry.session.update_net_attributes(net_id, **data.model_dump(exclude_unset=True))
        return _state(session_id, entry.session)


@router.delete("/{session_id}/nets/{net_id}", response_model=SessionState)
async def remove_net(session_id: str, net_id: str):
    entry = sessions.get(session_id)
    with entry.lock:
        if entry.session.get_net(net_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Net {net_id} not found",
            )
        if not entry.session.remove_net(net_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Net {net_id} is still referenced by edges",
            )
        return _state(session_id, entry.session)


@router.put("/{session_id}/edges/{edge_id}/net", response_model=SessionState)
async def assign_edge_net(session_id: str, edge_id: str, data: EdgeNetUpdate):
    entry = sessions.get(session_id)
    with entry.lock:
        if not entry.session.update_edge_net(edge_id, data.net_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Edge {edge_id} or net {data.net_id} not found",
            )
        return _state(session_id, entry.session)


@router.post("/{session_id}/undo", response_model=SessionState)
async def undo(session_id: str):
    entry = sessions.get(session_id)
    with entry.lock:
        entry.session.undo_net_action()
        return _state(session_id, entry.session)


@router.post("/{session_id}/redo", response_model=SessionState)
async def redo(session_id: str):
    entry = sessions.get(session_id)
    with entry.lock:
        entry.session.redo_net_action()
        return _state(session_id, entry.session)


@router.get("/{session_id}/validation", response_model=ValidationSummary)
async def validate(session_id: str):
    entry = sessions.get(session_id)
    with entry.lock:
        return entry.session.validate()
