"""WalletRepository — concrete implementation of WalletRepositoryProtocol.

Balance mutations are single atomic UPDATE ... RETURNING statements. The row
lock they take is held until the caller commits, so concurrent debits and
credits on one user serialize. A debit matching 0 rows means the guard
``balance >= :amount`` failed (or the user does not exist).

Transaction ownership: the CALLER commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import TransactionStatus, TransactionType, UserRole, UserStatus
from src.sv_common.errors import InternalError
from src.sv_wallet.domain.models import Transaction, User

_GET_USER_SQL = text("""
    SELECT id, email, balance, currency, status, role, created_at, updated_at
    FROM users
    WHERE id = :user_id
""")

_CREDIT_SQL = text("""
    UPDATE users
    SET balance = balance + :amount
    WHERE id = :user_id
    RETURNING balance, currency
""")

_DEBIT_SQL = text("""
    UPDATE users
    SET balance = balance - :amount
    WHERE id = :user_id AND balance >= :amount
    RETURNING balance, currency
""")

_TX_COLUMNS = """
    id, user_id, transaction_number, type, amount, currency,
    balance_before, balance_after, status, order_id, description,
    reference, created_at
"""

_INSERT_TX_SQL = text(f"""
    INSERT INTO transactions
        (id, user_id, transaction_number, type, amount, currency,
         balance_before, balance_after, status, order_id, description, reference)
    VALUES
        (:id, :user_id, :transaction_number, :type, :amount, :currency,
         :balance_before, :balance_after, :status, :order_id, :description, :reference)
    RETURNING {_TX_COLUMNS}
""")

_GET_TX_BY_REFERENCE_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE reference = :reference
""")

# Keyset pagination on (created_at, id), newest first
_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions t
    WHERE t.user_id = :user_id
      AND (CAST(:tx_type AS TEXT) IS NULL OR t.type = CAST(:tx_type AS TEXT))
      AND (
        CAST(:cursor_id AS TEXT) IS NULL
        OR (t.created_at, t.id) < (
            SELECT c.created_at, c.id FROM transactions c WHERE c.id = :cursor_id
        )
      )
    ORDER BY t.created_at DESC, t.id DESC
    LIMIT :limit
""")


def _row_to_user(row: object) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        balance=Decimal(row.balance),  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        status=UserStatus(row.status),  # type: ignore[attr-defined]
        role=UserRole(row.role),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        transaction_number=row.transaction_number,  # type: ignore[attr-defined]
        type=TransactionType(row.type),  # type: ignore[attr-defined]
        amount=Decimal(row.amount),  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        balance_before=Decimal(row.balance_before),  # type: ignore[attr-defined]
        balance_after=Decimal(row.balance_after),  # type: ignore[attr-defined]
        status=TransactionStatus(row.status),  # type: ignore[attr-defined]
        order_id=row.order_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        reference=row.reference,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletRepository:
    async def get_user(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def credit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> tuple[Decimal, str] | None:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        return (Decimal(row.balance), row.currency) if row else None

    async def debit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> tuple[Decimal, str] | None:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        return (Decimal(row.balance), row.currency) if row else None

    async def insert_transaction(self, db: AsyncSession, tx: Transaction) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "id": tx.id,
                "user_id": tx.user_id,
                "transaction_number": tx.transaction_number,
                "type": tx.type.value,
                "amount": tx.amount,
                "currency": tx.currency,
                "balance_before": tx.balance_before,
                "balance_after": tx.balance_after,
                "status": tx.status.value,
                "order_id": tx.order_id,
                "description": tx.description,
                "reference": tx.reference,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows — this should never happen")
        return _row_to_transaction(row)

    async def get_transaction_by_reference(
        self, db: AsyncSession, reference: str
    ) -> Transaction | None:
        result = await db.execute(_GET_TX_BY_REFERENCE_SQL, {"reference": reference})
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: str | None,
        limit: int,
        tx_type: str | None,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TX_SQL,
            {"user_id": user_id, "cursor_id": cursor_id, "limit": limit, "tx_type": tx_type},
        )
        return [_row_to_transaction(row) for row in result.fetchall()]
