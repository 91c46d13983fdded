# services/cache.py
"""Cachés explícitos del motor.

Cada caché pertenece a una instancia de motor (o a una pasada de cálculo); no
hay estado global compartido entre carritos. Ambos son seguros entre hilos de
un servidor Flask con threads.
"""

import threading
import time
from datetime import date
from decimal import Decimal


class PriceCache:
    """Precios por (entity_id canónico, día calendario).

    Se invalida por escritura (``invalidate``) cuando cambian los atributos del
    curso; no hay expiración por tiempo. Al guardar un precio se descartan los
    de otros días, así que el caché nunca supera un día de entradas.
    """

    def __init__(self):
        self._entries: dict[tuple, Decimal] = {}
        self._lock = threading.Lock()

    def get(self, entity_id, day: date) -> Decimal | None:
        with self._lock:
            return self._entries.get((entity_id, day))

    def set(self, entity_id, day: date, price: Decimal) -> None:
        with self._lock:
            for key in [key for key in self._entries if key[1] != day]:
                del self._entries[key]
            self._entries[(entity_id, day)] = price

    def invalidate(self, entity_id) -> int:
        with self._lock:
            keys = [key for key in self._entries if key[0] == entity_id]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class HistoryCache:
    """Resultados de consultas de historial por (cliente, serie, niño, meses).

    Con ``ttl`` = 0 las entradas valen mientras viva el objeto (una pasada).
    Con TTL, cada ``set`` purga las entradas vencidas.
    """

    def __init__(self, ttl: float = 0, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[tuple, tuple[float, list]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(customer_id, series_id, child_id, lookback_months: int) -> tuple:
        return (customer_id, series_id, child_id, lookback_months)

    def _expired(self, stored_at: float, now: float) -> bool:
        return bool(self.ttl) and now - stored_at > self.ttl

    def get(self, key: tuple) -> list | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._expired(stored_at, self._clock()):
                del self._entries[key]
                return None
            return value

    def set(self, key: tuple, value: list) -> None:
        with self._lock:
            now = self._clock()
            if self.ttl:
                expired = [k for k, (stored_at, _) in self._entries.items()
                           if self._expired(stored_at, now)]
                for k in expired:
                    del self._entries[k]
            self._entries[key] = (now, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
