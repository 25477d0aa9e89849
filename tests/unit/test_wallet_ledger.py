"""WalletLedger tests against the in-memory wallet repository."""

from decimal import Decimal

import pytest

from src.sv_common.enums import TransactionStatus, TransactionType
from src.sv_common.errors import InsufficientFundsError, InvalidAmountError, UserNotFoundError
from src.sv_wallet.application.ledger import WalletLedger
from tests.unit.fakes import FakeSession, FakeStore, FakeWalletRepo, make_user


def _ledger(balance: str = "100.00") -> tuple[WalletLedger, FakeStore]:
    store = FakeStore(users={"user-1": make_user(balance=Decimal(balance))})
    return WalletLedger(FakeWalletRepo(store)), store


class TestDebit:
    async def test_moves_balance_and_records_snapshots(self) -> None:
        ledger, store = _ledger("10.00")

        tx = await ledger.debit(
            None, "user-1", Decimal("1.80"), TransactionType.ORDER_PAYMENT, "pay", order_id="o-1"
        )

        assert store.users["user-1"].balance == Decimal("8.20")
        assert tx.balance_before == Decimal("10.00")
        assert tx.balance_after == Decimal("8.20")
        assert tx.amount == Decimal("1.80")
        assert tx.signed_amount == Decimal("-1.80")
        assert tx.order_id == "o-1"
        assert tx.status == TransactionStatus.COMPLETED
        assert tx.transaction_number.startswith("TXN-")
        assert len(store.transactions) == 1

    async def test_exact_balance_allowed(self) -> None:
        ledger, store = _ledger("1.80")
        await ledger.debit(None, "user-1", Decimal("1.80"), TransactionType.ORDER_PAYMENT, "pay")
        assert store.users["user-1"].balance == Decimal("0.00")

    async def test_insufficient_funds(self) -> None:
        ledger, store = _ledger("1.00")
        with pytest.raises(InsufficientFundsError):
            await ledger.debit(
                None, "user-1", Decimal("1.80"), TransactionType.ORDER_PAYMENT, "pay"
            )
        assert store.users["user-1"].balance == Decimal("1.00")
        assert store.transactions == []

    async def test_unknown_user(self) -> None:
        ledger, _ = _ledger()
        with pytest.raises(UserNotFoundError):
            await ledger.debit(None, "ghost", Decimal("1"), TransactionType.WITHDRAWAL, "w")

    @pytest.mark.parametrize("amount", ["0", "-1.00", "0.004"])
    async def test_rejects_non_positive(self, amount: str) -> None:
        ledger, store = _ledger()
        with pytest.raises(InvalidAmountError):
            await ledger.debit(
                None, "user-1", Decimal(amount), TransactionType.ORDER_PAYMENT, "pay"
            )
        assert store.transactions == []


class TestCredit:
    async def test_credit_refund(self) -> None:
        ledger, store = _ledger("8.20")

        tx = await ledger.credit(None, "user-1", Decimal("1.80"), TransactionType.REFUND, "r")

        assert store.users["user-1"].balance == Decimal("10.00")
        assert tx.balance_before == Decimal("8.20")
        assert tx.balance_after == Decimal("10.00")
        assert tx.signed_amount == Decimal("1.80")

    async def test_credit_unknown_user(self) -> None:
        ledger, _ = _ledger()
        with pytest.raises(UserNotFoundError):
            await ledger.credit(None, "ghost", Decimal("1"), TransactionType.DEPOSIT, "d")

    async def test_amount_quantized(self) -> None:
        ledger, store = _ledger("0.00")
        tx = await ledger.credit(None, "user-1", Decimal("1.005"), TransactionType.BONUS, "b")
        assert tx.amount == Decimal("1.01")
        assert store.users["user-1"].balance == Decimal("1.01")


class TestLedgerConsistency:
    async def test_balance_equals_sum_of_signed_amounts(self) -> None:
        ledger, store = _ledger("0.00")
        session = FakeSession(store)
        await ledger.credit(session, "user-1", Decimal("50"), TransactionType.DEPOSIT, "d")
        await ledger.debit(session, "user-1", Decimal("1.80"), TransactionType.ORDER_PAYMENT, "p")
        await ledger.credit(session, "user-1", Decimal("1.80"), TransactionType.REFUND, "r")
        await ledger.debit(
            session, "user-1", Decimal("5"), TransactionType.ADMIN_ADJUSTMENT, "adj"
        )

        total = sum((t.signed_amount for t in store.transactions), Decimal("0"))
        assert store.users["user-1"].balance == total == Decimal("45.00")
        for prev, cur in zip(store.transactions, store.transactions[1:], strict=False):
            assert cur.balance_before == prev.balance_after
