"""Unit tests for WalletApplicationService."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.sv_common.enums import LogLevel, TransactionType
from src.sv_common.errors import InsufficientFundsError, InvalidAmountError, UserNotFoundError
from src.sv_wallet.application.schemas import AdjustBalanceRequest
from src.sv_wallet.application.service import WalletApplicationService
from src.sv_wallet.domain.models import Transaction
from tests.unit.fakes import (
    FakeLogRepo,
    FakeSession,
    FakeStore,
    FakeWalletRepo,
    make_user,
)


def _service(balance: str = "100.00") -> tuple[WalletApplicationService, FakeStore]:
    store = FakeStore(users={"user-1": make_user(balance=Decimal(balance))})
    svc = WalletApplicationService(repo=FakeWalletRepo(store), log_repo=FakeLogRepo(store))
    return svc, store


class TestGetBalance:
    async def test_returns_balance(self) -> None:
        svc, _ = _service("1500.00")
        resp = await svc.get_balance(None, "user-1")
        assert resp.balance == Decimal("1500.00")
        assert resp.balance_display == "NGN 1,500.00"

    async def test_unknown_user(self) -> None:
        svc, _ = _service()
        with pytest.raises(UserNotFoundError):
            await svc.get_balance(None, "ghost")


class TestListTransactions:
    async def test_paginates_newest_first(self) -> None:
        svc, store = _service("0.00")
        db = FakeSession(store)
        for n in range(3):
            await svc.credit_deposit(db, "user-1", Decimal("10"), f"pay-{n}")

        first = await svc.list_transactions(db, "user-1", None, 2, None)
        assert [i.reference for i in first.items] == ["pay-2", "pay-1"]
        assert first.has_more is True

        second = await svc.list_transactions(db, "user-1", first.next_cursor, 2, None)
        assert [i.reference for i in second.items] == ["pay-0"]
        assert second.has_more is False
        assert second.next_cursor is None

    async def test_type_filter(self) -> None:
        svc, store = _service("0.00")
        db = FakeSession(store)
        await svc.credit_deposit(db, "user-1", Decimal("10"), "pay-1")
        await svc.adjust_balance(db, "user-1", Decimal("-1"), "fee correction", "admin-1")

        page = await svc.list_transactions(db, "user-1", None, 20, "ADMIN_ADJUSTMENT")

        assert [i.type for i in page.items] == ["ADMIN_ADJUSTMENT"]
        assert page.items[0].signed_amount == Decimal("-1.00")
        assert page.items[0].amount_display == "-NGN 1.00"


class TestCreditDeposit:
    async def test_credits_once_per_reference(self) -> None:
        svc, store = _service("0.00")
        db = FakeSession(store)

        first = await svc.credit_deposit(db, "user-1", Decimal("25.00"), "psk-1")
        replay = await svc.credit_deposit(db, "user-1", Decimal("25.00"), "psk-1")

        assert replay.id == first.id
        assert store.users["user-1"].balance == Decimal("25.00")
        assert len(store.transactions) == 1
        assert db.commits == 1

    async def test_lost_race_returns_winner(self) -> None:
        winner = Transaction(
            id="7001",
            user_id="user-1",
            transaction_number="TXN-7001",
            type=TransactionType.DEPOSIT,
            amount=Decimal("5.00"),
            currency="NGN",
            balance_before=Decimal("100.00"),
            balance_after=Decimal("105.00"),
            reference="psk-9",
        )
        repo = AsyncMock()
        repo.get_transaction_by_reference.side_effect = [None, winner]
        ledger = AsyncMock()
        ledger.credit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate"))
        svc = WalletApplicationService(repo=repo, ledger=ledger, log_repo=AsyncMock())
        db = AsyncMock()

        result = await svc.credit_deposit(db, "user-1", Decimal("5"), "psk-9")

        assert result.id == "7001"
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestAdjustBalance:
    async def test_positive_adjustment_credits(self) -> None:
        svc, store = _service("10.00")
        db = FakeSession(store)

        item = await svc.adjust_balance(db, "user-1", Decimal("5.00"), "goodwill", "admin-1")

        assert item.type == "ADMIN_ADJUSTMENT"
        assert store.users["user-1"].balance == Decimal("15.00")
        assert store.logs[-1]["metadata"]["admin_id"] == "admin-1"
        assert store.logs[-1]["level"] == LogLevel.INFO
        assert db.commits == 1

    async def test_negative_adjustment_is_guarded(self) -> None:
        svc, store = _service("2.00")
        db = FakeSession(store)

        with pytest.raises(InsufficientFundsError):
            await svc.adjust_balance(db, "user-1", Decimal("-5.00"), "chargeback", "admin-1")

        assert store.users["user-1"].balance == Decimal("2.00")
        assert store.transactions == []
        assert store.logs == []
        assert db.rollbacks == 1

    async def test_zero_rejected(self) -> None:
        svc, _ = _service()
        with pytest.raises(InvalidAmountError):
            await svc.adjust_balance(FakeSession(FakeStore()), "user-1", Decimal("0"), "x", "a")


class TestAdjustBalanceRequest:
    def test_zero_amount_invalid(self) -> None:
        with pytest.raises(ValueError):
            AdjustBalanceRequest(amount=Decimal("0"), reason="nothing")

    def test_short_reason_invalid(self) -> None:
        with pytest.raises(ValueError):
            AdjustBalanceRequest(amount=Decimal("1"), reason="x")
