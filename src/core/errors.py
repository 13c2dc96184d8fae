"""
Errors — Таксономия ошибок движка ребалансировки

Все ошибки наследуются от EngineError и пробрасываются вызывающему слою без
внутренних повторов: политика retry принадлежит транзакционному слою.

Не является ошибкой:
- Устаревший вызов act() (флаг уже сброшен) — это UpkeepOutcome.STALE_REBALANCE
- Сбой доставки сообщения ПОСЛЕ принятия транспортом — вне зоны ответственности
"""


class EngineError(Exception):
    """Базовый класс всех ошибок движка."""

    pass


# =============================================================================
# LEDGER
# =============================================================================


class InvalidAmount(EngineError, ValueError):
    """Сумма депозита/вывода <= 0 или не является конечным числом."""

    pass


class TransferRejected(EngineError):
    """
    Перевод актива отклонён (нет allowance или баланса).

    Пробрасывается из AssetLedger без изменений текста.
    """

    pass


class InsufficientCollateral(EngineError):
    """Запрошенный вывод превышает collateral позиции."""

    pass


class UnknownPosition(EngineError, KeyError):
    """Позиция для пользователя не создана (не было депозита)."""

    pass


# =============================================================================
# HEALTH MONITOR
# =============================================================================


class Unauthorized(EngineError):
    """Вызов от идентичности, не совпадающей со сконфигурированной."""

    pass


class InvalidHealthFactor(EngineError, ValueError):
    """Отрицательный или не конечный health factor."""

    pass


# =============================================================================
# INITIALIZATION
# =============================================================================


class AlreadyInitialized(EngineError):
    """Повторный вызов одноразовой инициализации (bind_consumer / complete_init)."""

    pass


class NotInitialized(EngineError):
    """Операция до завершения двухфазной инициализации."""

    pass


class BindingMismatch(EngineError):
    """Стратегия привязана к другому потребителю (или не привязана вовсе)."""

    pass


# =============================================================================
# STRATEGY
# =============================================================================


class StrategyError(EngineError):
    """Backend стратегии не может выполнить операцию (например, вывод сверх депозита)."""

    pass


# =============================================================================
# AUTOMATION / DISPATCH
# =============================================================================


class InvalidPayload(EngineError, ValueError):
    """Payload от планировщика не декодируется в идентичность пользователя."""

    pass


class UnknownRoute(EngineError, KeyError):
    """Домен назначения не зарегистрирован в таблице маршрутов."""

    pass


class RouteRegistryFrozen(EngineError):
    """Попытка изменить таблицу маршрутов после завершения конфигурации."""

    pass


class TransportRejected(EngineError):
    """Транспорт синхронно отказался принять сообщение."""

    pass


class RebalanceSendRejected(EngineError):
    """
    Синхронный отказ отправки сообщения ребалансировки.

    Причина (TransportRejected, UnknownRoute, ValidationError) доступна
    через __cause__.
    """

    pass
