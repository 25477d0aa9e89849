"""WalletApplicationService — balance reads, history, deposits, admin adjustments.

Mutating operations commit on success and roll back on any exception.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import LogLevel, TransactionType
from src.sv_common.errors import InvalidAmountError, UserNotFoundError
from src.sv_common.money import money_to_display
from src.sv_common.pagination import cursor_decode, cursor_encode
from src.sv_common.system_log import SystemLogRepository
from src.sv_wallet.application.ledger import WalletLedger
from src.sv_wallet.application.schemas import (
    BalanceResponse,
    TransactionItem,
    TransactionListResponse,
)
from src.sv_wallet.domain.repository import WalletRepositoryProtocol
from src.sv_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class WalletApplicationService:
    def __init__(
        self,
        repo: WalletRepositoryProtocol | None = None,
        ledger: WalletLedger | None = None,
        log_repo: SystemLogRepository | None = None,
    ) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()
        self._ledger = ledger or WalletLedger(self._repo)
        self._log_repo = log_repo or SystemLogRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        user = await self._repo.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return BalanceResponse(
            user_id=user.id,
            balance=user.balance,
            currency=user.currency,
            balance_display=money_to_display(user.balance, user.currency),
        )

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        tx_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        txs = await self._repo.list_transactions(db, user_id, cursor_id, limit + 1, tx_type)
        has_more = len(txs) > limit
        page = txs[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(
            items=[TransactionItem.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def credit_deposit(
        self, db: AsyncSession, user_id: str, amount: Decimal, reference: str
    ) -> TransactionItem:
        """Credit a payment already verified upstream; replays of ``reference`` are no-ops."""
        existing = await self._repo.get_transaction_by_reference(db, reference)
        if existing is not None:
            logger.info("Deposit %s already credited as %s", reference, existing.transaction_number)
            return TransactionItem.from_domain(existing)
        try:
            tx = await self._ledger.credit(
                db, user_id, amount, TransactionType.DEPOSIT,
                f"Wallet deposit {reference}", reference=reference,
            )
            await db.commit()
        except IntegrityError:
            # Lost a race on the unique reference: the other request credited it
            await db.rollback()
            existing = await self._repo.get_transaction_by_reference(db, reference)
            if existing is None:
                raise
            return TransactionItem.from_domain(existing)
        except Exception:
            await db.rollback()
            raise
        logger.info("Deposit %s credited %s to user %s", reference, amount, user_id)
        return TransactionItem.from_domain(tx)

    async def adjust_balance(
        self,
        db: AsyncSession,
        user_id: str,
        signed_amount: Decimal,
        reason: str,
        admin_id: str,
    ) -> TransactionItem:
        if signed_amount == 0:
            raise InvalidAmountError(signed_amount)
        description = f"Admin adjustment: {reason}"
        try:
            if signed_amount > 0:
                tx = await self._ledger.credit(
                    db, user_id, signed_amount, TransactionType.ADMIN_ADJUSTMENT, description
                )
            else:
                tx = await self._ledger.debit(
                    db, user_id, -signed_amount, TransactionType.ADMIN_ADJUSTMENT, description
                )
            await self._log_repo.write(
                db,
                LogLevel.INFO,
                "admin",
                f"Balance adjusted for user {user_id}",
                {
                    "admin_id": admin_id,
                    "user_id": user_id,
                    "amount": str(signed_amount),
                    "reason": reason,
                    "transaction_id": tx.id,
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s adjusted user %s by %s", admin_id, user_id, signed_amount)
        return TransactionItem.from_domain(tx)
