# presence.py
import threading


class PresenceRegistry:
    """Live real-time connections per user.

    Shared by the websocket handler and the request workers, so every access
    goes through the lock. A user is online while at least one connection is
    registered.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._connections = {}

    def connect(self, user_id: int, connection) -> bool:
        """Register ``connection``; True when the user just came online."""
        with self._lock:
            existing = self._connections.setdefault(user_id, [])
            existing.append(connection)
            return len(existing) == 1

    def disconnect(self, user_id: int, connection) -> bool:
        """Drop ``connection``; True when the user just went offline."""
        with self._lock:
            existing = self._connections.get(user_id)
            if not existing:
                return False
            if connection in existing:
                existing.remove(connection)
            if existing:
                return False
            del self._connections[user_id]
            return True

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._connections.get(user_id))

    def online_users(self) -> list:
        with self._lock:
            return sorted(self._connections)

    def connections(self, user_id: int) -> list:
        with self._lock:
            return list(self._connections.get(user_id, ()))

    def everyone_except(self, user_id: int) -> list:
        with self._lock:
            return [
                connection
                for owner, connections in self._connections.items()
                if owner != user_id
                for connection in connections
            ]

    def clear(self):
        with self._lock:
            self._connections.clear()


presence = PresenceRegistry()
