"""NonceRegistry — таблица дедупликации входящих сообщений.

Транспорт доставляет at-least-once, поэтому одно и то же сообщение может
прийти несколько раз и в любом порядке. Ключ дедупликации —
(source_domain, nonce); запись добавляется только после успешного кредита
позиции и никогда не удаляется.
"""

from typing import Iterator, Set, Tuple

DedupKey = Tuple[str, int]


class NonceRegistry:
    """Множество обработанных ключей (source_domain, nonce)."""

    def __init__(self):
        self._seen: Set[DedupKey] = set()

    def __contains__(self, key: DedupKey) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[DedupKey]:
        return iter(sorted(self._seen))

    def record(self, key: DedupKey) -> None:
        if key in self._seen:
            raise ValueError(f"Nonce {key} already recorded")
        self._seen.add(key)

    def copy(self) -> "NonceRegistry":
        clone = NonceRegistry()
        clone._seen = set(self._seen)
        return clone
