from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, FrozenSet

from ..errors import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class AccountLink:
    """One-time reset/activation link paired with its issue time."""

    link: str | None
    date: datetime | None


@dataclass(frozen=True, slots=True)
class Account:
    """Immutable user account keyed by ``username`` (the account email)."""

    username: str
    encoded_password: str
    enabled: bool = False
    login_attempts_left: int = 0
    password_last_change_date: datetime | None = None
    first_name: str = ""
    last_name: str = ""
    authorities: FrozenSet[str] = field(default_factory=frozenset)
    link: str | None = None
    link_date: datetime | None = None

    def __post_init__(self) -> None:
        if not self.username:
            raise InvalidArgumentError("account username is required")
        if (self.link is None) != (self.link_date is None):
            raise InvalidArgumentError("link and link_date must be set or cleared together")
        if not isinstance(self.authorities, frozenset):
            object.__setattr__(self, "authorities", frozenset(self.authorities))

    def with_changes(self, **changes: Any) -> "Account":
        """Return a copy with ``changes`` applied and every other field carried over."""
        if "username" in changes and changes["username"] != self.username:
            raise InvalidArgumentError("username is immutable")
        return replace(self, **changes)

    @property
    def link_info(self) -> AccountLink:
        return AccountLink(link=self.link, date=self.link_date)
