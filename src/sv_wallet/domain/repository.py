"""Repository Protocol — the SQL surface WalletLedger composes into the caller's transaction."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_wallet.domain.models import Transaction, User


class WalletRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> User | None: ...

    async def credit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> tuple[Decimal, str] | None:
        """Return (balance_after, currency), or None if the user does not exist."""
        ...

    async def debit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> tuple[Decimal, str] | None:
        """Guarded by balance >= amount. None if no row matched."""
        ...

    async def insert_transaction(self, db: AsyncSession, tx: Transaction) -> Transaction: ...

    async def get_transaction_by_reference(
        self, db: AsyncSession, reference: str
    ) -> Transaction | None: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: str | None,
        limit: int,
        tx_type: str | None,
    ) -> list[Transaction]: ...
