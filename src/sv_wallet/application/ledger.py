"""WalletLedger — the only writer of ``users.balance``.

Every balance change is paired with exactly one append-only Transaction row
carrying before/after snapshots, in the caller's DB transaction. The ledger
never commits: the order insert and its payment debit, or a refund credit
and the order status flip, land together or not at all.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import TransactionStatus, TransactionType
from src.sv_common.errors import InsufficientFundsError, InvalidAmountError, UserNotFoundError
from src.sv_common.id_generator import generate_id, generate_reference
from src.sv_common.money import to_money
from src.sv_wallet.domain.models import Transaction
from src.sv_wallet.domain.repository import WalletRepositoryProtocol
from src.sv_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


def _validated(amount: Decimal) -> Decimal:
    if amount <= 0:
        raise InvalidAmountError(amount)
    quantized = to_money(amount)
    if quantized <= 0:
        raise InvalidAmountError(amount)
    return quantized


class WalletLedger:
    def __init__(self, repo: WalletRepositoryProtocol | None = None) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        tx_type: TransactionType,
        description: str,
        order_id: str | None = None,
        reference: str | None = None,
    ) -> Transaction:
        amount = _validated(amount)
        changed = await self._repo.debit_balance(db, user_id, amount)
        if changed is None:
            if await self._repo.get_user(db, user_id) is None:
                raise UserNotFoundError(user_id)
            raise InsufficientFundsError(user_id, amount)
        balance_after, currency = changed
        return await self._record(
            db, user_id, amount, currency, balance_after + amount, balance_after,
            tx_type, description, order_id, reference,
        )

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        tx_type: TransactionType,
        description: str,
        order_id: str | None = None,
        reference: str | None = None,
    ) -> Transaction:
        amount = _validated(amount)
        changed = await self._repo.credit_balance(db, user_id, amount)
        if changed is None:
            raise UserNotFoundError(user_id)
        balance_after, currency = changed
        return await self._record(
            db, user_id, amount, currency, balance_after - amount, balance_after,
            tx_type, description, order_id, reference,
        )

    async def _record(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        currency: str,
        balance_before: Decimal,
        balance_after: Decimal,
        tx_type: TransactionType,
        description: str,
        order_id: str | None,
        reference: str | None,
    ) -> Transaction:
        tx = await self._repo.insert_transaction(
            db,
            Transaction(
                id=generate_id(),
                user_id=user_id,
                transaction_number=generate_reference("TXN"),
                type=tx_type,
                amount=amount,
                currency=currency,
                balance_before=balance_before,
                balance_after=balance_after,
                status=TransactionStatus.COMPLETED,
                order_id=order_id,
                description=description,
                reference=reference,
            ),
        )
        logger.info(
            "Ledger %s %s %s user=%s balance %s → %s",
            tx.transaction_number, tx_type.value, amount, user_id, balance_before, balance_after,
        )
        return tx
