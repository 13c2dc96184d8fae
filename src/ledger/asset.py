"""AssetLedger — in-memory токен актива с allowance.

Эталонный коллаборатор для "asset handle": депозитор заранее разрешает ledger
списать сумму (approve), ledger забирает её через transfer_from. Любой отказ
(нет allowance / баланса) — TransferRejected, текст пробрасывается дальше
без изменений.
"""

from decimal import Decimal
from typing import Dict, Tuple

from src.core.domain.amounts import ZERO, to_amount
from src.core.errors import TransferRejected


class AssetLedger:
    """Балансы и allowance одного актива."""

    def __init__(self, symbol: str = "USDC", address: str = ""):
        self.symbol = symbol
        self.address = address
        self._balances: Dict[str, Decimal] = {}
        self._allowances: Dict[Tuple[str, str], Decimal] = {}

    def balance_of(self, account: str) -> Decimal:
        return self._balances.get(account, ZERO)

    def allowance(self, owner: str, spender: str) -> Decimal:
        return self._allowances.get((owner, spender), ZERO)

    def mint(self, account: str, amount: Decimal) -> None:
        amount = to_amount(amount)
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount {amount}")
        self._balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, spender: str, amount: Decimal) -> None:
        amount = to_amount(amount)
        if amount < 0:
            raise ValueError(f"Cannot approve negative amount {amount}")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: Decimal) -> None:
        amount = to_amount(amount)
        if self.balance_of(sender) < amount:
            raise TransferRejected("ERC20: transfer amount exceeds balance")
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: Decimal) -> None:
        """Списание с owner по allowance, выданному spender."""
        amount = to_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise TransferRejected("ERC20: insufficient allowance")
        self.transfer(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount
