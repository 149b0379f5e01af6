"""In-process account repository for tests and local development."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable

from ..domain.account import Account, AccountLink
from ..errors import AlreadyExistsError, DocumentMissingError, InvalidArgumentError, RecordNotFoundError

logger = logging.getLogger(__name__)

MEMORY_INDEX = "memory"


class InMemoryAccountRepository:
    """Thread-safe keyed map of immutable ``Account`` values.

    The map only supports whole-value replacement, so every field update
    derives a new ``Account`` from the stored one and swaps it in while the
    instance lock is held.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = RLock()

    def close(self) -> None:
        """Nothing to release: the map lives and dies with this instance."""

    def ping(self) -> bool:
        return True

    def _check_username(self, username: str) -> None:
        if not username:
            raise InvalidArgumentError("username is required")

    def _replace(self, username: str, changes: Callable[[Account], dict[str, Any]]) -> Account:
        self._check_username(username)
        with self._lock:
            stored = self._accounts.get(username)
            if stored is None:
                raise DocumentMissingError(MEMORY_INDEX, username)
            updated = stored.with_changes(**changes(stored))
            del self._accounts[username]
            self._accounts[username] = updated
            return updated

    def load_by_username(self, username: str) -> Account | None:
        self._check_username(username)
        with self._lock:
            return self._accounts.get(username)

    def set_enabled(self, username: str) -> None:
        self._replace(username, lambda _: {"enabled": True})

    def set_disabled(self, username: str) -> None:
        self._replace(username, lambda _: {"enabled": False})

    def is_enabled(self, username: str) -> bool:
        account = self.load_by_username(username)
        if account is None:
            return False
        return account.enabled

    def decrement_attempts_left(self, username: str) -> int:
        self._check_username(username)
        with self._lock:
            if username not in self._accounts:
                raise RecordNotFoundError(f"user {username} does not exist")
            updated = self._replace(
                username,
                lambda stored: {"login_attempts_left": max(stored.login_attempts_left - 1, 0)},
            )
        logger.debug("attempts left for %s: %d", username, updated.login_attempts_left)
        return updated.login_attempts_left

    def set_attempts_left(self, username: str, attempts: int) -> None:
        if attempts < 0:
            raise InvalidArgumentError("attempts left cannot be negative")
        self._replace(username, lambda _: {"login_attempts_left": attempts})

    def set_password(self, username: str, new_password: str) -> None:
        if not new_password:
            raise InvalidArgumentError("new password is required")
        now = datetime.now(timezone.utc)
        self._replace(
            username,
            lambda _: {
                "encoded_password": new_password,
                "password_last_change_date": now,
                "link": None,
                "link_date": None,
            },
        )

    def get_encoded_password(self, username: str) -> str | None:
        account = self.load_by_username(username)
        if account is None:
            return None
        return account.encoded_password

    def get_password_last_change_date(self, username: str) -> datetime:
        return self._require(username).password_last_change_date

    def set_authority(self, username: str, authority: str) -> None:
        raise NotImplementedError("set_authority is not supported by the in-memory repository")

    def create_user(self, account: Account) -> Account:
        new_user = Account(
            username=account.username,
            encoded_password=account.encoded_password,
            enabled=False,
            login_attempts_left=account.login_attempts_left,
            password_last_change_date=datetime.now(timezone.utc),
            first_name=account.first_name,
            last_name=account.last_name,
            authorities=account.authorities,
            link=account.link,
            link_date=account.link_date,
        )
        with self._lock:
            if new_user.username in self._accounts:
                raise AlreadyExistsError(new_user.username)
            self._accounts[new_user.username] = new_user
        logger.debug("created user %s", new_user.username)
        return new_user

    def delete_user(self, username: str) -> None:
        self._check_username(username)
        with self._lock:
            if self._accounts.pop(username, None) is None:
                raise DocumentMissingError(MEMORY_INDEX, username)

    def user_exists(self, username: str) -> bool:
        self._check_username(username)
        with self._lock:
            return username in self._accounts

    def add_link(self, username: str, link: str) -> None:
        if not link:
            raise InvalidArgumentError("link is required")
        now = datetime.now(timezone.utc)
        self._replace(username, lambda _: {"link": link, "link_date": now})

    def remove_link(self, username: str) -> bool:
        """Clear the link and its date; return ``False`` when no link was set."""
        self._check_username(username)
        with self._lock:
            stored = self._accounts.get(username)
            if stored is None:
                raise DocumentMissingError(MEMORY_INDEX, username)
            if stored.link is None:
                return False
            self._replace(username, lambda _: {"link": None, "link_date": None})
            return True

    def get_link(self, username: str) -> AccountLink:
        return self._require(username).link_info

    def get_username_by_link(self, link: str) -> str:
        # linear scan: this backend has no secondary index on the link
        if not link:
            raise InvalidArgumentError("link is required")
        with self._lock:
            for account in self._accounts.values():
                if account.link == link:
                    return account.username
        raise RecordNotFoundError("could not find any user with this link")

    def get_all_accounts(self) -> list[Account]:
        with self._lock:
            return list(self._accounts.values())

    def _require(self, username: str) -> Account:
        account = self.load_by_username(username)
        if account is None:
            raise RecordNotFoundError(f"user {username} does not exist")
        return account
