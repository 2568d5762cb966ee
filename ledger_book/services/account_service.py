"""
Account service: the chart of accounts.

Accounts are addressed by colon-delimited paths such as
"Assets:bank:AlfaBank". Resolving a path walks the tree one level
at a time from the root, matching each segment against the
children of the level above it.
"""

import logging
import re
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_book.errors import (
    AccountNotFound,
    AlreadyExists,
    InvalidInput,
    NotFound,
)
from ledger_book.models.account import Account, PATH_SEPARATOR
from ledger_book.schemas.account import AccountNode
from ledger_book.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_FULL_NAME_LENGTH = 1024

# Anything other than word characters and the path separator
INVALID_PATH_CHARS = re.compile(r"[^A-Za-z0-9_:]")


def split_path(path: str) -> list[str]:
    """Validate an account path and split it into segments."""
    if not isinstance(path, str):
        raise InvalidInput("Account path should be a string")
    if not path:
        raise InvalidInput("No account provided")
    if INVALID_PATH_CHARS.search(path):
        raise InvalidInput(
            f"Account {path} should contain only alphanumeric chars, "
            f"underscores and '{PATH_SEPARATOR}' as level delimiter"
        )
    return path.split(PATH_SEPARATOR)


def to_node(account: Account, children=None) -> AccountNode:
    return AccountNode(
        name=account.name,
        full_name=account.full_name,
        path=account.path,
        currency=account.currency.code,
        children=children or None,
    )


class AccountService:

    def __init__(self, db: Session):
        self.db = db
        self.currency_service = CurrencyService(db)

    def resolve(self, path: str) -> Account | None:
        """
        Find an account by its path, or None if any level is missing.

        A missing root and a missing leaf look the same to the
        caller; each use site decides which error to raise.
        """
        parent_id = None
        account = None
        for name in split_path(path):
            account = self.db.execute(
                select(Account).where(
                    Account.name == name,
                    Account.parent_id.is_(None)
                    if parent_id is None
                    else Account.parent_id == parent_id,
                )
            ).scalar_one_or_none()
            if account is None:
                return None
            parent_id = account.id
        return account

    def get_account(self, path: str) -> Account:
        """Resolve a path, raising AccountNotFound on a miss."""
        account = self.resolve(path)
        if account is None:
            raise AccountNotFound(path)
        return account

    def create_account(self, path: str, currency: str | None = None) -> Account:
        """
        Create the deepest level of path. Non-recursive.

        "Assets" is created at the root. For "Assets:bank:AlfaBank"
        only "AlfaBank" is created, and "Assets:bank" must exist.
        currency defaults to the base currency.
        """
        segments = split_path(path)
        if len(path) > MAX_FULL_NAME_LENGTH:
            raise InvalidInput(
                f"Account path should be <= {MAX_FULL_NAME_LENGTH} chars"
            )
        if not all(segments):
            raise InvalidInput(f"Account {path} has an empty level")

        name = segments[-1]
        if len(name) > MAX_NAME_LENGTH:
            raise InvalidInput(
                f"Account name should be <= {MAX_NAME_LENGTH} chars"
            )

        if self.resolve(path) is not None:
            raise AlreadyExists(f"Account {path} already exists")

        parent = None
        if len(segments) > 1:
            parent_path = PATH_SEPARATOR.join(segments[:-1])
            parent = self.resolve(parent_path)
            if parent is None:
                raise NotFound(f"Parent account {parent_path} not found")

        found = self.currency_service.find_currency(currency)
        if found is None:
            raise NotFound(
                f"Currency {currency} not found"
                if currency is not None
                else "No base currency: create a currency first"
            )

        account = Account(
            name=name,
            full_name=(
                f"{parent.full_name}{PATH_SEPARATOR}{name}"
                if parent is not None
                else name
            ),
            parent_id=parent.id if parent is not None else None,
            currency_id=found.id,
        )
        self.db.add(account)
        self.db.flush()

        logger.info("Created account %s (%s)", account.full_name, found.code)
        return account

    def check_account(self, path: str) -> AccountNode | None:
        """Return the account's safe projection, or None if unknown."""
        account = self.resolve(path)
        if account is None:
            return None
        return to_node(account)

    def subaccounts(self, account: Account | None) -> list[Account]:
        """
        Every descendant of account as a flat list ordered by
        full_name. None selects the whole chart.
        """
        query = select(Account).order_by(Account.full_name.asc())
        if account is not None:
            query = query.where(
                Account.full_name.startswith(
                    account.full_name + PATH_SEPARATOR, autoescape=True
                )
            )
        return list(self.db.execute(query).scalars().all())

    def get_accounts(self, parent: str | None = None) -> list[AccountNode]:
        """
        The account tree below parent (the whole chart if parent is
        None or empty).

        The subtree is fetched flat and grouped by parent_id, then
        rebuilt top-down from that index.
        """
        root = self.get_account(parent) if parent else None
        children_of: dict[int | None, list[Account]] = defaultdict(list)
        for account in self.subaccounts(root):
            children_of[account.parent_id].append(account)

        def build(parent_id):
            return [
                to_node(child, build(child.id))
                for child in children_of.get(parent_id, [])
            ]

        return build(root.id if root is not None else None)
