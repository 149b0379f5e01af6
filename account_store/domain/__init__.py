"""Domain values and contracts shared by every repository backend."""

from .account import Account, AccountLink
from .contracts import AccountRepository

__all__ = ["Account", "AccountLink", "AccountRepository"]
