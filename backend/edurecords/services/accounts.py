"""
Account provisioning for students synthesized from ledger data.
"""

import asyncio
import logging
import re
import unicodedata
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edurecords.core.security import get_password_hash
from edurecords.models.account import Account, AccountRole

logger = logging.getLogger(__name__)


def _normalize(text: str) -> str:
    text = (text or "").replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9 ]", "", stripped.lower())


def generate_username(first_name: str, last_name: str) -> str:
    """
    Given name followed by the initials of the family and middle names.

    ``generate_username("An", "Nguyen Van")`` -> ``"annv"``
    """
    given = _normalize(first_name).split()
    family = _normalize(last_name).split()
    username = "".join(given) + "".join(word[0] for word in family)
    return username or "student"


class AccountProvisioner:
    """Creates accounts with unique usernames and hashed passwords."""

    def __init__(self, session: AsyncSession, hash_rounds: Optional[int] = None):
        self.session = session
        self.hash_rounds = hash_rounds

    async def unique_username(self, username: str) -> str:
        result = await self.session.execute(
            select(Account.username).where(Account.username.like(f"{username}%"))
        )
        taken = set(result.scalars().all())
        if username not in taken:
            return username
        suffix = 1
        while f"{username}{suffix}" in taken:
            suffix += 1
        return f"{username}{suffix}"

    async def create_account(
        self,
        username: str,
        password: str,
        account_id: Optional[int] = None,
        role: AccountRole = AccountRole.STUDENT
    ) -> Account:
        """Add a new account to the session; the username gets a suffix if taken."""
        account = Account(
            username=await self.unique_username(username),
            hashed_password=await asyncio.to_thread(get_password_hash, password, self.hash_rounds),
            role=role
        )
        if account_id is not None:
            account.id = account_id
        self.session.add(account)
        await self.session.flush()
        logger.info(f"Created account {account.id} ({account.username})")
        return account
