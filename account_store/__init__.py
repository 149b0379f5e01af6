"""User-account persistence for the authentication service."""

from .domain import Account, AccountLink, AccountRepository
from .repositories import ElasticsearchAccountRepository, InMemoryAccountRepository, build_account_repository

__all__ = [
    "Account",
    "AccountLink",
    "AccountRepository",
    "ElasticsearchAccountRepository",
    "InMemoryAccountRepository",
    "build_account_repository",
]

__version__ = "0.1.0"
