"""Pydantic model of the account document persisted in the search index."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..domain.account import Account

EMAIL = "email"
ENCODED_PASSWORD = "encodedPassword"
ENABLED = "enabled"
LOGIN_ATTEMPTS_LEFT = "loginAttemptsLeft"
PASSWORD_LAST_CHANGE_DATE = "passwordLastChangeDate"
TOKEN = "token"
TOKEN_DATE = "tokenDate"


class AccountDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: str = Field(..., alias=EMAIL)
    encoded_password: str = Field(..., alias=ENCODED_PASSWORD)
    enabled: bool = Field(False, alias=ENABLED)
    login_attempts_left: int = Field(0, alias=LOGIN_ATTEMPTS_LEFT)
    password_last_change_date: datetime | None = Field(None, alias=PASSWORD_LAST_CHANGE_DATE)
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    authorities: list[str] = Field(default_factory=list)
    token: str | None = Field(None, alias=TOKEN)
    token_date: datetime | None = Field(None, alias=TOKEN_DATE)

    @classmethod
    def from_account(cls, account: Account) -> "AccountDocument":
        """Build the stored representation of a domain ``Account``."""
        return cls(
            email=account.username,
            encoded_password=account.encoded_password,
            enabled=account.enabled,
            login_attempts_left=account.login_attempts_left,
            password_last_change_date=account.password_last_change_date,
            first_name=account.first_name,
            last_name=account.last_name,
            authorities=sorted(account.authorities),
            token=account.link,
            token_date=account.link_date,
        )

    def to_account(self) -> Account:
        return Account(
            username=self.email,
            encoded_password=self.encoded_password,
            enabled=self.enabled,
            login_attempts_left=self.login_attempts_left,
            password_last_change_date=self.password_last_change_date,
            first_name=self.first_name,
            last_name=self.last_name,
            authorities=frozenset(self.authorities),
            link=self.token,
            link_date=self.token_date,
        )

    def to_source(self) -> dict[str, Any]:
        """Serialise to the JSON body sent to the store (camelCase, ISO-8601 dates)."""
        return self.model_dump(by_alias=True, mode="json")


def serialize_timestamp(value: datetime | None) -> str | None:
    """Render a timestamp the way ``AccountDocument.to_source`` does, for partial updates."""
    return value.isoformat() if value is not None else None


ACCOUNT_INDEX_MAPPINGS: dict[str, Any] = {
    "properties": {
        EMAIL: {"type": "keyword"},
        ENCODED_PASSWORD: {"type": "keyword", "index": False},
        ENABLED: {"type": "boolean"},
        LOGIN_ATTEMPTS_LEFT: {"type": "integer"},
        PASSWORD_LAST_CHANGE_DATE: {"type": "date"},
        "firstName": {"type": "text"},
        "lastName": {"type": "text"},
        "authorities": {"type": "keyword"},
        TOKEN: {"type": "keyword"},
        TOKEN_DATE: {"type": "date"},
    }
}
