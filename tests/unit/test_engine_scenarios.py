"""
Сквозные сценарии двух доменов через общий транспорт

Coverage:
- deposit → health 1.05 → poll → act → ровно одно сообщение → кредит в BASE
- Повторная доставка и повторный act не дублируют collateral
- Переупорядоченная доставка сообщений разных пользователей
- Частичный вывод стратегии: удалённый домен получает меньшую сумму
- receive_message: только локальный транспорт и известный удалённый домен
"""

from decimal import Decimal

import pytest

from src.automation import UpkeepOutcome, decode_user_payload
from src.core.config import EngineConfig, load_route_table
from src.core.domain import Network, RebalanceMessage
from src.core.errors import Unauthorized
from src.dispatch import InMemoryTransport, PreferredDomainPolicy
from src.engine import EngineBuilder
from src.ledger import AssetLedger, StaticPriceFeed
from src.strategy import MockStrategy

ORACLE = "0x0rac1e"
ALICE = "0xA11ce"
BOB = "0xB0b"

ROUTE_TABLE = load_route_table()


def build_engine(key, transport, strategy=None):
    route = ROUTE_TABLE[key]
    config = EngineConfig.from_route(route, ledger_id=f"ledger-{key}", oracle_identity=ORACLE)
    return (
        EngineBuilder(config)
        .with_strategy(strategy or MockStrategy(strategy_id=f"mock-{key}"))
        .with_asset(AssetLedger(address=route.asset))
        .with_price_feed(StaticPriceFeed())
        .with_transport(transport)
        .with_routes(ROUTE_TABLE)
        .with_policy(PreferredDomainPolicy(Network.BASE))
        .build()
    )


def fund_and_deposit(engine, user, amount):
    amount = Decimal(amount)
    engine.ledger.asset.mint(user, amount)
    engine.ledger.asset.approve(user, engine.config.ledger_id, amount)
    return engine.deposit(user, amount)


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport(ordered=False)


@pytest.fixture
def ethereum(transport):
    return build_engine("sepolia", transport)


@pytest.fixture
def base(transport):
    return build_engine("base", transport)


# =============================================================================
# FULL CYCLE
# =============================================================================


class TestRebalanceCycle:
    def test_full_cycle(self, ethereum, base, transport) -> None:
        fund_and_deposit(ethereum, ALICE, "1000")
        assert ethereum.get_position(ALICE).collateral == Decimal("1000")

        ethereum.update_health_factor(ORACLE, ALICE, Decimal("1.05"))
        needed, payload = ethereum.poll()
        assert needed is True
        assert decode_user_payload(payload) == ALICE

        result = ethereum.act(payload)
        assert result.outcome == UpkeepOutcome.DISPATCHED
        assert len(transport.pending()) == 1
        assert result.receipt.message.nonce == 0

        again = ethereum.act(payload)
        assert again.outcome == UpkeepOutcome.STALE_REBALANCE
        assert len(transport.pending()) == 1
        assert ethereum.poll() == (False, b"")

        assert transport.deliver_all() == [True]
        assert base.is_known_user(ALICE)
        assert base.get_position(ALICE).collateral == Decimal("1000")
        assert base.strategy.total_deposited == Decimal("1000")
        assert base.ledger.asset.balance_of("ledger-base") == Decimal("1000")
        assert ethereum.get_position(ALICE).collateral == 0
        assert ethereum.ledger.asset.balance_of(ethereum.config.transport_endpoint) == Decimal("1000")

    def test_redelivery_is_idempotent(self, ethereum, base, transport) -> None:
        fund_and_deposit(ethereum, ALICE, "1000")
        ethereum.update_health_factor(ORACLE, ALICE, Decimal("0.9"))
        receipt = ethereum.act(ethereum.poll()[1]).receipt
        transport.deliver_all()

        assert transport.redeliver(receipt.message_id) is False
        assert base.get_position(ALICE).collateral == Decimal("1000")
        assert base.ledger.is_processed(Network.ETHEREUM, receipt.message.nonce)

    def test_reordered_delivery(self, ethereum, base, transport) -> None:
        fund_and_deposit(ethereum, ALICE, "1000")
        fund_and_deposit(ethereum, BOB, "300")
        ethereum.update_health_factor(ORACLE, ALICE, Decimal("1.0"))
        ethereum.update_health_factor(ORACLE, BOB, Decimal("1.0"))

        ethereum.act(ethereum.poll()[1])
        ethereum.act(ethereum.poll()[1])
        assert ethereum.poll() == (False, b"")

        transport.deliver_all()

        assert base.get_position(ALICE).collateral == Decimal("1000")
        assert base.get_position(BOB).collateral == Decimal("300")
        assert base.ledger.known_users() == (BOB, ALICE)

    def test_partial_withdrawal_credits_lesser_amount(self, transport, base) -> None:
        ethereum = build_engine("sepolia", transport, MockStrategy(liquidity_cap=Decimal("400")))
        fund_and_deposit(ethereum, ALICE, "1000")
        ethereum.update_health_factor(ORACLE, ALICE, Decimal("1.05"))

        result = ethereum.act(ethereum.poll()[1])
        transport.deliver_all()

        assert result.receipt.shortfall == Decimal("600")
        assert ethereum.get_position(ALICE).collateral == 0
        assert base.get_position(ALICE).collateral == Decimal("400")

    def test_remote_position_can_rebalance_back(self, ethereum, base, transport) -> None:
        fund_and_deposit(ethereum, ALICE, "1000")
        ethereum.update_health_factor(ORACLE, ALICE, Decimal("1.0"))
        ethereum.act(ethereum.poll()[1])
        transport.deliver_all()

        base.update_health_factor(ORACLE, ALICE, Decimal("1.0"))
        needed, payload = base.poll()
        assert needed is True

        # BASE не имеет маршрута в себя: предпочтительный домен недоступен
        base.trigger.target_domain = Network.ETHEREUM
        result = base.act(payload)
        transport.deliver_all()

        assert result.receipt.message.source_domain == Network.BASE
        assert ethereum.get_position(ALICE).collateral == Decimal("1000")
        assert base.get_position(ALICE).collateral == 0

    def test_collateral_value(self, ethereum) -> None:
        fund_and_deposit(ethereum, ALICE, "1000")
        assert ethereum.collateral_value(ALICE) == Decimal("1000")


# =============================================================================
# RECEIVE AUTHORIZATION
# =============================================================================


def inbound(source=Network.ETHEREUM, nonce=0) -> RebalanceMessage:
    return RebalanceMessage(
        source_domain=source,
        user=ALICE,
        amount=Decimal("10"),
        nonce=nonce,
        target_hint=Network.BASE,
    )


class TestReceiveMessage:
    def test_only_local_transport(self, base) -> None:
        with pytest.raises(Unauthorized, match="Not authorized"):
            base.receive_message("0xMallory", inbound())
        assert not base.is_known_user(ALICE)

    def test_unknown_source_domain(self, base) -> None:
        endpoint = base.config.transport_endpoint
        with pytest.raises(Unauthorized):
            base.receive_message(endpoint, inbound(source=Network.BASE))

    def test_authorized_delivery(self, base) -> None:
        endpoint = base.config.transport_endpoint

        assert base.receive_message(endpoint, inbound(nonce=3)) is True
        assert base.receive_message(endpoint, inbound(nonce=3)) is False
        assert base.get_position(ALICE).collateral == Decimal("10")
