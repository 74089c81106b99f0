"""Per-shell session state: active context, keystore cache, pending operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from .pending import PendingOperationTracker


@dataclass
class KeystoreUser:
    username: str
    password: Optional[str] = None

    def __repr__(self) -> str:
        return f"KeystoreUser(username={self.username!r})"


class KeystoreCache:
    """Known keystore users in memory, one of which may be active."""

    def __init__(self):
        self._users: Dict[str, KeystoreUser] = {}
        self.active_username: Optional[str] = None

    def add_user(self, user: KeystoreUser, set_active: bool = False) -> None:
        self._users[user.username] = user
        if set_active:
            self.active_username = user.username

    def get_user(self, username: str) -> Optional[KeystoreUser]:
        return self._users.get(username)

    @property
    def active_user(self) -> Optional[KeystoreUser]:
        if self.active_username is None:
            return None
        return self._users.get(self.active_username)

    def usernames(self) -> List[str]:
        return list(self._users)


@dataclass
class PromptQuestion:
    question: str
    secret: bool = False
    answer: Optional[str] = None


class Prompter(Protocol):
    def ask(self, questions: List[PromptQuestion]) -> bool:
        """Fill in each answer; False means the user cancelled."""
        ...


@dataclass
class ShellSession:
    """State owned by one running shell.

    Only the dispatcher changes ``active_context``. The pending tracker is also
    written by the status poller, which is why it carries its own lock.
    """

    keystore: KeystoreCache = field(default_factory=KeystoreCache)
    pending: PendingOperationTracker = field(default_factory=PendingOperationTracker)
    active_context: Optional[str] = None
    prompter: Optional[Prompter] = None

    @property
    def credential(self) -> Optional[KeystoreUser]:
        return self.keystore.active_user

    def ask(self, questions: List[PromptQuestion]) -> bool:
        if self.prompter is None:
            return False
        return self.prompter.ask(questions)
