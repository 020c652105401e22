"""Authenticated session shared by every command"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from vetassist.core.config import Config
from vetassist.services.backend_client import BackendClient
from vetassist.types.records import Role, User

logger = logging.getLogger(__name__)


class PermissionDenied(Exception):
    pass


class SessionStore:
    """Persists the token and user profile between runs

    The file holds exactly two keys, ``token`` and ``user``, and is only
    readable by its owner.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or Config.SESSION_PATH)

    def read(self) -> tuple:
        if not self.path.exists():
            return None, None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error("Error loading saved session from %s: %s", self.path, e)
            return None, None
        token = data.get("token")
        user = data.get("user")
        if not token or not user:
            return None, None
        return token, User.model_validate(user)

    def write(self, token: str, user: User) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"token": token, "user": user.model_dump()}, f)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class Session:
    """Current user and bearer token, loaded once and passed to handlers"""

    def __init__(self, client: Optional[BackendClient] = None, store: Optional[SessionStore] = None):
        self.client = client or BackendClient()
        self.store = store or SessionStore()
        self.user: Optional[User] = None
        self.token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.user)

    def _set(self, token: Optional[str], user: Optional[User]) -> None:
        self.token = token
        self.user = user
        self.client.token = token

    def load(self) -> "Session":
        """Restore a persisted session, if any"""
        token, user = self.store.read()
        self._set(token, user)
        return self

    def login(self, username: str, password: str) -> User:
        """Authenticate and persist the credential; raises AuthenticationError"""
        response = self.client.login(username, password)
        user = response.user or User(id=0, username=username, role=Role.ASSISTANT.value)
        self.store.write(response.access_token, user)
        self._set(response.access_token, user)
        return user

    def logout(self) -> None:
        self.store.clear()
        self._set(None, None)

    def require_user(self) -> User:
        if not self.is_authenticated:
            raise PermissionDenied("No hay una sesión activa. Ejecuta 'vetassist login'.")
        return self.user

    def require_admin(self) -> User:
        user = self.require_user()
        if not user.is_admin:
            raise PermissionDenied("Esta acción requiere el rol de administrador")
        return user
