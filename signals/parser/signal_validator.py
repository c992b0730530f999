# signals/parser/signal_validator.py
from signals.models import ParsedSignal


class SignalValidator:
    """Проверка результата парсинга на минимальный торговый сигнал"""

    @staticmethod
    def is_signal(parsed: ParsedSignal) -> bool:
        """
        Проверка является ли результат парсинга торговым сигналом

        Entry, TP и SL не обязательны: достаточно пары и направления.

        Args:
            parsed: Результат парсинга

        Returns:
            True если найдены пара и направление, False иначе
        """
        return parsed.pair is not None and parsed.direction is not None
