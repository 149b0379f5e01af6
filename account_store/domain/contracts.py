"""Capability interface implemented by every account repository backend."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from .account import Account, AccountLink


@runtime_checkable
class AccountRepository(Protocol):
    """Account lifecycle and link lookup operations used by upstream services.

    Methods either return a value, return ``None`` for a plain absence, or
    raise one of the :mod:`account_store.errors` types.
    """

    def load_by_username(self, username: str) -> Account | None: ...

    def set_enabled(self, username: str) -> None: ...

    def set_disabled(self, username: str) -> None: ...

    def is_enabled(self, username: str) -> bool: ...

    def decrement_attempts_left(self, username: str) -> int: ...

    def set_attempts_left(self, username: str, attempts: int) -> None: ...

    def set_password(self, username: str, new_password: str) -> None: ...

    def get_encoded_password(self, username: str) -> str | None: ...

    def get_password_last_change_date(self, username: str) -> datetime: ...

    def set_authority(self, username: str, authority: str) -> None: ...

    def create_user(self, account: Account) -> Account: ...

    def delete_user(self, username: str) -> None: ...

    def user_exists(self, username: str) -> bool: ...

    def add_link(self, username: str, link: str) -> None: ...

    def remove_link(self, username: str) -> bool: ...

    def get_link(self, username: str) -> AccountLink: ...

    def get_username_by_link(self, link: str) -> str: ...

    def get_all_accounts(self) -> list[Account]: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...
