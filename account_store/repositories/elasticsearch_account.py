"""Durable account repository stored in the ``authentication-account`` index."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from ..domain.account import Account, AccountLink
from ..errors import AlreadyExistsError, DocumentMissingError, InvalidArgumentError, RecordNotFoundError
from ..schemas import account as fields
from ..schemas.account import ACCOUNT_INDEX_MAPPINGS, AccountDocument, serialize_timestamp
from .document import DocumentRepository

logger = logging.getLogger(__name__)

AUTH_ACCOUNT_INDEX = "authentication-account"


class ElasticsearchAccountRepository(DocumentRepository[Account]):
    """Account persistence on top of the generic document repository.

    Document ids are usernames. Field changes go through partial updates;
    only ``create_user`` writes a whole document.
    """

    index_name = AUTH_ACCOUNT_INDEX
    index_mappings = ACCOUNT_INDEX_MAPPINGS

    def _to_record(self, source: Mapping[str, Any]) -> Account:
        return AccountDocument.model_validate(source).to_account()

    def _to_document(self, record: Account) -> dict[str, Any]:
        return AccountDocument.from_account(record).to_source()

    def load_by_username(self, username: str) -> Account | None:
        return self.get_item(username)

    def set_enabled(self, username: str) -> None:
        self._set_enabled_flag(username, True)

    def set_disabled(self, username: str) -> None:
        self._set_enabled_flag(username, False)

    def _set_enabled_flag(self, username: str, enabled: bool) -> None:
        self.update_item(username, {fields.ENABLED: enabled})

    def is_enabled(self, username: str) -> bool:
        account = self.load_by_username(username)
        if account is None:
            return False
        return account.enabled

    def decrement_attempts_left(self, username: str) -> int:
        """Lower ``login_attempts_left`` by one, never below zero.

        The write is conditioned on the version that was read, so a concurrent
        writer surfaces as ``ConcurrentUpdateError`` instead of a lost update.
        """
        versioned = self.get_versioned_item(username)
        if versioned is None:
            raise RecordNotFoundError(f"user {username} does not exist")
        attempts = versioned.record.login_attempts_left
        logger.debug("current num attempts for %s: %d", username, attempts)
        remaining = max(attempts - 1, 0)
        self.update_item(
            username,
            {fields.LOGIN_ATTEMPTS_LEFT: remaining},
            if_seq_no=versioned.seq_no,
            if_primary_term=versioned.primary_term,
        )
        return remaining

    def set_attempts_left(self, username: str, attempts: int) -> None:
        if attempts < 0:
            raise InvalidArgumentError("attempts left cannot be negative")
        self.update_item(username, {fields.LOGIN_ATTEMPTS_LEFT: attempts})

    def set_password(self, username: str, new_password: str) -> None:
        """Store a new encoded password and invalidate any outstanding link."""
        if not new_password:
            raise InvalidArgumentError("new password is required")
        self.update_item(
            username,
            {
                fields.ENCODED_PASSWORD: new_password,
                fields.PASSWORD_LAST_CHANGE_DATE: serialize_timestamp(datetime.now(timezone.utc)),
                fields.TOKEN: None,
                fields.TOKEN_DATE: None,
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
        raise NotImplementedError("set_authority is not supported by the Elasticsearch repository")

    def create_user(self, account: Account) -> Account:
        logger.debug("create_user / elasticsearch implementation")
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
        if self.user_exists(new_user.username):
            raise AlreadyExistsError(new_user.username)

        self.index_item(new_user.username, new_user)
        return new_user

    def delete_user(self, username: str) -> None:
        self.delete_item(username)

    def user_exists(self, username: str) -> bool:
        return self.exists(username)

    def add_link(self, username: str, link: str) -> None:
        if not link:
            raise InvalidArgumentError("link is required")
        self.update_item(
            username,
            {
                fields.TOKEN: link,
                fields.TOKEN_DATE: serialize_timestamp(datetime.now(timezone.utc)),
            },
        )

    def remove_link(self, username: str) -> bool:
        """Clear the link and its date; return ``False`` when no link was set."""
        account = self.load_by_username(username)
        if account is None:
            raise DocumentMissingError(self.index_name, username)
        if account.link is None:
            return False
        self.update_item(username, {fields.TOKEN: None, fields.TOKEN_DATE: None})
        return True

    # used by automation to read back the link that was mailed out
    def get_link(self, username: str) -> AccountLink:
        return self._require(username).link_info

    def get_username_by_link(self, link: str) -> str:
        if not link:
            raise InvalidArgumentError("link is required")
        items = self.search({"term": {fields.TOKEN: link}})
        if not items:
            raise RecordNotFoundError("could not find any user with this link")
        return items[0].username

    def get_all_accounts(self) -> list[Account]:
        return self.get_all_items()

    def _require(self, username: str) -> Account:
        account = self.load_by_username(username)
        if account is None:
            raise RecordNotFoundError(f"user {username} does not exist")
        return account
