from __future__ import annotations

import time
from threading import Lock


class SessionRegistry:
    """Live orchestrators by session id, with the owning user."""

    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, dict] = {}

    def register(self, session_id: str, user_id: str, orchestrator) -> None:
        with self._lock:
            self._sessions[session_id] = {
                "user_id": user_id,
                "orchestrator": orchestrator,
                "created_at": time.time(),
                "updated_at": time.time(),
                "active": True,
            }

    def register_if_absent(self, session_id: str, user_id: str, orchestrator):
        """Registers `orchestrator` unless the session already has one; returns the registered one."""
        with self._lock:
            item = self._sessions.get(session_id)
            if item is not None and item.get("user_id") == user_id:
                item["updated_at"] = time.time()
                return item["orchestrator"]
            self._sessions[session_id] = {
                "user_id": user_id,
                "orchestrator": orchestrator,
                "created_at": time.time(),
                "updated_at": time.time(),
                "active": True,
            }
            return orchestrator

    def touch(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["updated_at"] = time.time()

    def mark_inactive(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["active"] = False
                self._sessions[session_id]["updated_at"] = time.time()

    def get(self, session_id: str) -> dict | None:
        with self._lock:
            item = self._sessions.get(session_id)
            return dict(item) if item else None

    def get_orchestrator(self, session_id: str, user_id: str):
        """Returns None for unknown sessions and for sessions of other users."""
        with self._lock:
            item = self._sessions.get(session_id)
            if not item or item.get("user_id") != user_id:
                return None
            item["updated_at"] = time.time()
            return item["orchestrator"]

    def cleanup_inactive(self, ttl_sec: float) -> int:
        now_ts = time.time()
        cutoff = now_ts - max(30.0, float(ttl_sec or 900.0))
        removed = []
        with self._lock:
            for session_id, data in list(self._sessions.items()):
                if bool((data or {}).get("active", False)):
                    continue
                updated_at = float((data or {}).get("updated_at") or 0.0)
                if updated_at <= cutoff:
                    removed.append(self._sessions.pop(session_id))
        for data in removed:
            orchestrator = data.get("orchestrator")
            if orchestrator is not None and hasattr(orchestrator, "close"):
                orchestrator.close()
        return len(removed)

    def cleanup_idle(self, ttl_sec: float) -> int:
        """Marks sessions untouched for longer than ttl_sec inactive."""
        cutoff = time.time() - max(30.0, float(ttl_sec or 900.0))
        marked = 0
        with self._lock:
            for data in self._sessions.values():
                if data.get("active") and float(data.get("updated_at") or 0.0) <= cutoff:
                    data["active"] = False
                    marked += 1
        return marked


session_registry = SessionRegistry()
