"""
Key derivation for the key/value backend.

Keys take the form ``<namespace>:session:<id>``; the scan pattern is
``<namespace>:session:*``. The relational backend keys rows by bare id.
"""


class SessionKeyBuilder:
    """Namespaced key builder, fixed at construction."""

    def __init__(self, namespace: str):
        if not namespace:
            raise ValueError("namespace cannot be empty")
        self.namespace = namespace
        self._prefix = f"{namespace}:session:"

    def key(self, session_id: str) -> str:
        """
        Build the storage key for a session.

        Args:
            session_id: The session identifier.

        Returns:
            Key with the namespaced "session:" prefix.
        """
        return f"{self._prefix}{session_id}"

    def match_pattern(self) -> str:
        """Glob pattern matching every session key in the namespace."""
        return f"{self._prefix}*"

    def session_id(self, key: str) -> str:
        """Inverse of key(); raises ValueError for keys outside the namespace."""
        if not key.startswith(self._prefix):
            raise ValueError(f"Key {key!r} is not in namespace {self.namespace!r}")
        return key[len(self._prefix):]
