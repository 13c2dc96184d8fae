"""
Тесты для PositionLedger

Coverage:
- deposit: рост collateral ровно на amount, регистрация пользователя
- deposit: отказ актива пробрасывается, состояние не меняется
- withdraw: InsufficientCollateral, частичный вывод стратегии
- Атомарность: откат позиций, реестра и внешних эффектов
- Чтение: пустой снапшот, total_collateral, collateral_value
- credit_remote: дедупликация по (source_domain, nonce)
"""

import threading
from decimal import Decimal

import pytest

from src.coordinator import InitializationCoordinator
from src.core.domain import Network, RebalanceMessage
from src.core.errors import (
    InsufficientCollateral,
    InvalidAmount,
    NotInitialized,
    StrategyError,
    TransferRejected,
    UnknownPosition,
)
from src.ledger import AssetLedger, PositionLedger, StaticPriceFeed
from src.strategy import MockStrategy

LEDGER_ID = "ledger-eth"
ALICE = "0xA11ce"
BOB = "0xB0b"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def asset() -> AssetLedger:
    """Актив с балансами депозиторов"""
    asset = AssetLedger()
    asset.mint(ALICE, Decimal("10000"))
    asset.mint(BOB, Decimal("5000"))
    return asset


@pytest.fixture
def strategy() -> MockStrategy:
    return MockStrategy()


def make_ledger(strategy, asset, price_feed=None) -> PositionLedger:
    ledger = PositionLedger(LEDGER_ID, Network.ETHEREUM, strategy, asset, price_feed)
    InitializationCoordinator().initialize(ledger)
    return ledger


@pytest.fixture
def ledger(strategy, asset) -> PositionLedger:
    """Активный ledger с MockStrategy и feed $1.00"""
    return make_ledger(strategy, asset, StaticPriceFeed())


def approve_and_deposit(ledger, asset, user, amount):
    asset.approve(user, LEDGER_ID, Decimal(amount))
    return ledger.deposit(user, Decimal(amount))


def remote_message(user=ALICE, amount="250", nonce=0, source=Network.BASE) -> RebalanceMessage:
    return RebalanceMessage(
        source_domain=source,
        user=user,
        amount=Decimal(amount),
        nonce=nonce,
        target_hint=Network.ETHEREUM,
    )


# =============================================================================
# DEPOSIT
# =============================================================================


class TestDeposit:
    """Тесты для deposit"""

    def test_deposit_credits_exact_amount(self, ledger, asset, strategy) -> None:
        snapshot = approve_and_deposit(ledger, asset, ALICE, "1000")

        assert snapshot.collateral == Decimal("1000")
        assert snapshot.needs_rebalance is False
        assert ledger.is_known_user(ALICE)
        assert strategy.total_deposited == Decimal("1000")
        assert asset.balance_of(LEDGER_ID) == Decimal("1000")
        assert asset.balance_of(ALICE) == Decimal("9000")

    def test_repeated_deposits_accumulate(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "100")
        snapshot = approve_and_deposit(ledger, asset, ALICE, "250.5")

        assert snapshot.collateral == Decimal("350.5")
        assert ledger.known_users() == (ALICE,)

    def test_registry_keeps_first_deposit_order(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, BOB, "1")
        approve_and_deposit(ledger, asset, ALICE, "1")
        approve_and_deposit(ledger, asset, BOB, "1")

        assert ledger.known_users() == (BOB, ALICE)

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, ledger, amount) -> None:
        with pytest.raises(InvalidAmount, match="Amount must be greater than 0"):
            ledger.deposit(ALICE, Decimal(amount))
        assert not ledger.is_known_user(ALICE)

    @pytest.mark.parametrize("amount", ["1.0000009", "0.0000001"])
    def test_excess_precision_rejected(self, ledger, asset, strategy, amount) -> None:
        """Сумма за пределами 6 знаков не списывается и не округляется"""
        asset.approve(ALICE, LEDGER_ID, Decimal("2"))

        with pytest.raises(InvalidAmount, match="precision"):
            ledger.deposit(ALICE, Decimal(amount))

        assert ledger.get_position(ALICE).collateral == 0
        assert not ledger.is_known_user(ALICE)
        assert asset.balance_of(ALICE) == Decimal("10000")
        assert asset.allowance(ALICE, LEDGER_ID) == Decimal("2")
        assert strategy.total_deposited == 0

    def test_smallest_unit_deposit(self, ledger, asset) -> None:
        snapshot = approve_and_deposit(ledger, asset, ALICE, "1.000001")

        assert snapshot.collateral == Decimal("1.000001")
        assert asset.balance_of(ALICE) == Decimal("9998.999999")

    def test_transfer_without_allowance_rejected(self, ledger, asset, strategy) -> None:
        with pytest.raises(TransferRejected, match="ERC20: insufficient allowance"):
            ledger.deposit(ALICE, Decimal("1000"))

        assert not ledger.is_known_user(ALICE)
        assert ledger.get_position(ALICE).collateral == 0
        assert strategy.total_deposited == 0

    def test_transfer_exceeding_balance_rejected(self, ledger, asset) -> None:
        asset.approve(ALICE, LEDGER_ID, Decimal("20000"))
        with pytest.raises(TransferRejected, match="exceeds balance"):
            ledger.deposit(ALICE, Decimal("20000"))

        assert asset.balance_of(ALICE) == Decimal("10000")
        assert asset.allowance(ALICE, LEDGER_ID) == Decimal("20000")

    def test_strategy_failure_refunds_asset(self, asset) -> None:
        class FailingStrategy(MockStrategy):
            def _deposit(self, amount):
                raise StrategyError("backend paused")

        ledger = make_ledger(FailingStrategy(), asset)
        with pytest.raises(StrategyError, match="backend paused"):
            approve_and_deposit(ledger, asset, ALICE, "1000")

        assert asset.balance_of(ALICE) == Decimal("10000")
        assert asset.balance_of(LEDGER_ID) == 0
        assert not ledger.is_known_user(ALICE)

    def test_deposit_before_init_rejected(self, strategy, asset) -> None:
        ledger = PositionLedger(LEDGER_ID, Network.ETHEREUM, strategy, asset)
        asset.approve(ALICE, LEDGER_ID, Decimal("1000"))

        with pytest.raises(NotInitialized):
            ledger.deposit(ALICE, Decimal("1000"))
        assert asset.balance_of(ALICE) == Decimal("10000")

    def test_concurrent_deposits_serialized(self, ledger, asset) -> None:
        """Параллельные депозиты не теряют обновлений"""
        users = [f"0xUser{i}" for i in range(8)]
        for user in users:
            asset.mint(user, Decimal("100"))
            asset.approve(user, LEDGER_ID, Decimal("100"))

        def worker(user):
            for _ in range(10):
                ledger.deposit(user, Decimal("10"))

        threads = [threading.Thread(target=worker, args=(user,)) for user in users]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        for user in users:
            assert ledger.get_position(user).collateral == Decimal("100")
        assert ledger.total_collateral() == Decimal("800")
        assert len(ledger.known_users()) == len(users)


# =============================================================================
# WITHDRAW
# =============================================================================


class TestWithdraw:
    """Тесты для withdraw"""

    def test_withdraw_returns_asset(self, ledger, asset, strategy) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")

        actual = ledger.withdraw(ALICE, Decimal("400"))

        assert actual == Decimal("400")
        assert ledger.get_position(ALICE).collateral == Decimal("600")
        assert strategy.total_deposited == Decimal("600")
        assert asset.balance_of(ALICE) == Decimal("9400")

    def test_withdraw_more_than_collateral_rejected(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")

        with pytest.raises(InsufficientCollateral):
            ledger.withdraw(ALICE, Decimal("1000.000001"))
        assert ledger.get_position(ALICE).collateral == Decimal("1000")

    def test_withdraw_unknown_user_rejected(self, ledger) -> None:
        with pytest.raises(InsufficientCollateral):
            ledger.withdraw(BOB, Decimal("1"))

    def test_withdraw_zero_rejected(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")
        with pytest.raises(InvalidAmount):
            ledger.withdraw(ALICE, Decimal("0"))

    def test_withdraw_excess_precision_rejected(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")
        with pytest.raises(InvalidAmount, match="precision"):
            ledger.withdraw(ALICE, Decimal("999.9999999"))

        assert ledger.get_position(ALICE).collateral == Decimal("1000")
        assert asset.balance_of(ALICE) == Decimal("9000")

    def test_partial_strategy_return(self, asset) -> None:
        """Collateral уменьшается на запрошенное, пользователь получает фактическое"""
        strategy = MockStrategy(liquidity_cap=Decimal("300"))
        ledger = make_ledger(strategy, asset)
        approve_and_deposit(ledger, asset, ALICE, "1000")

        actual = ledger.withdraw(ALICE, Decimal("500"))

        assert actual == Decimal("300")
        assert ledger.get_position(ALICE).collateral == Decimal("500")
        assert asset.balance_of(ALICE) == Decimal("9300")

    def test_withdraw_preserves_health_factor(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")
        ledger.apply_health_factor(ALICE, Decimal("1.05"))

        ledger.withdraw(ALICE, Decimal("100"))

        snapshot = ledger.get_position(ALICE)
        assert snapshot.last_health_factor == Decimal("1.05")
        assert snapshot.needs_rebalance is True


# =============================================================================
# TRANSACTIONS
# =============================================================================


class TestTransaction:
    """Тесты атомарности"""

    def test_outer_failure_rolls_back_everything(self, ledger, asset, strategy) -> None:
        asset.approve(ALICE, LEDGER_ID, Decimal("1000"))

        with pytest.raises(RuntimeError, match="abort"):
            with ledger.transaction():
                ledger.deposit(ALICE, Decimal("1000"))
                assert ledger.get_position(ALICE).collateral == Decimal("1000")
                raise RuntimeError("abort")

        assert ledger.get_position(ALICE).collateral == 0
        assert not ledger.is_known_user(ALICE)
        assert ledger.known_users() == ()
        assert strategy.total_deposited == 0
        assert asset.balance_of(ALICE) == Decimal("10000")
        assert asset.balance_of(LEDGER_ID) == 0

    def test_rollback_keeps_earlier_committed_state(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, BOB, "50")

        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.credit_remote(remote_message(user=ALICE, nonce=4))
                raise RuntimeError("abort")

        assert ledger.known_users() == (BOB,)
        assert not ledger.is_processed(Network.BASE, 4)
        assert ledger.get_position(BOB).collateral == Decimal("50")

    def test_nested_transaction_joins_outer(self, ledger) -> None:
        with ledger.transaction() as outer:
            with ledger.transaction() as inner:
                assert inner is outer


# =============================================================================
# HEALTH / READS
# =============================================================================


class TestReads:
    """Тесты чтения состояния"""

    def test_unknown_user_gets_empty_snapshot(self, ledger) -> None:
        snapshot = ledger.get_position(ALICE)

        assert snapshot.collateral == 0
        assert snapshot.last_health_factor is None
        assert snapshot.needs_rebalance is False
        assert not ledger.is_known_user(ALICE)

    def test_apply_health_factor_unknown_user(self, ledger) -> None:
        with pytest.raises(UnknownPosition):
            ledger.apply_health_factor(ALICE, Decimal("1.5"))

    def test_find_first_in_registry_order(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "10")
        approve_and_deposit(ledger, asset, BOB, "10")
        ledger.apply_health_factor(BOB, Decimal("1.0"))

        found = ledger.find_first(lambda p: p.needs_rebalance)
        assert found is not None and found.owner == BOB
        assert ledger.find_first(lambda p: p.collateral > 100) is None

    def test_total_collateral(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "1000")
        approve_and_deposit(ledger, asset, BOB, "250.25")

        assert ledger.total_collateral() == Decimal("1250.25")

    def test_collateral_value_uses_feed(self, asset, strategy) -> None:
        ledger = make_ledger(strategy, asset, StaticPriceFeed(answer=99_950_000))
        approve_and_deposit(ledger, asset, ALICE, "1000")

        assert ledger.collateral_value(ALICE) == Decimal("999.5")

    def test_collateral_value_without_feed(self, asset, strategy) -> None:
        ledger = make_ledger(strategy, asset)
        with pytest.raises(NotInitialized):
            ledger.collateral_value(ALICE)

    def test_empty_ledger_id_rejected(self, strategy, asset) -> None:
        with pytest.raises(ValueError):
            PositionLedger("", Network.ETHEREUM, strategy, asset)


# =============================================================================
# REMOTE CREDIT
# =============================================================================


class TestCreditRemote:
    """Тесты для credit_remote"""

    def test_credit_creates_position(self, ledger, strategy) -> None:
        assert ledger.credit_remote(remote_message()) is True

        snapshot = ledger.get_position(ALICE)
        assert snapshot.collateral == Decimal("250")
        assert snapshot.last_health_factor is None
        assert ledger.is_known_user(ALICE)
        assert ledger.position_record(ALICE).home_domain == Network.ETHEREUM
        assert strategy.total_deposited == Decimal("250")
        assert ledger.is_processed(Network.BASE, 0)

    def test_credit_adds_to_existing_position(self, ledger, asset) -> None:
        approve_and_deposit(ledger, asset, ALICE, "100")
        ledger.credit_remote(remote_message(amount="250"))

        assert ledger.get_position(ALICE).collateral == Decimal("350")
        assert ledger.known_users() == (ALICE,)

    def test_duplicate_ignored(self, ledger) -> None:
        message = remote_message()
        ledger.credit_remote(message)

        assert ledger.credit_remote(message) is False
        assert ledger.get_position(ALICE).collateral == Decimal("250")

    def test_same_nonce_other_source_is_distinct(self, ledger) -> None:
        ledger.credit_remote(remote_message(nonce=1, source=Network.BASE))

        assert ledger.credit_remote(remote_message(nonce=1, source=Network.POLYGON)) is True
        assert ledger.get_position(ALICE).collateral == Decimal("500")

    def test_zero_amount_registers_without_strategy_call(self, ledger, strategy) -> None:
        assert ledger.credit_remote(remote_message(amount="0")) is True

        assert ledger.is_known_user(ALICE)
        assert strategy.total_deposited == 0
