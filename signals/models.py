# signals/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


DEFAULT_TEMPLATE = "#SIGNAL #{pair}\nType: {type}\nEntry: {entry}\nTP: {tp}\nSL: {sl}"


@dataclass(frozen=True)
class ParserConfiguration:
    """Настройки парсера сигналов"""

    template: str
    use_regex: bool = False

    @classmethod
    def default(cls) -> "ParserConfiguration":
        return cls(template=DEFAULT_TEMPLATE, use_regex=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfiguration":
        """
        Создание конфигурации из сохраненного словаря

        Args:
            data: Словарь с ключами template и useRegex

        Returns:
            ParserConfiguration экземпляр

        Raises:
            ValueError: Если template не является строкой
        """
        template = data.get("template", "")
        if not isinstance(template, str):
            raise ValueError("template должен быть строкой")

        return cls(template=template, use_regex=bool(data.get("useRegex", False)))

    def to_dict(self) -> Dict[str, Any]:
        return {"template": self.template, "useRegex": self.use_regex}


@dataclass(frozen=True)
class RawMessage:
    """Сообщение из Telegram канала"""

    message_id: int
    chat_id: int
    text: str
    date: int


@dataclass(frozen=True)
class ParsedSignal:
    """Результат разбора сообщения"""

    pair: Optional[str] = None
    direction: Optional[str] = None
    entry: Optional[str] = None
    take_profits: List[str] = field(default_factory=list)
    stop_loss: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "type": self.direction,
            "entry": self.entry,
            "tp": list(self.take_profits),
            "sl": self.stop_loss,
        }

    def __str__(self) -> str:
        tps = ", ".join(self.take_profits)
        return (
            f"Signal({self.pair} {self.direction} | Entry: {self.entry} | "
            f"TPs: [{tps}] | SL: {self.stop_loss})"
        )


@dataclass(frozen=True)
class SignalRecord:
    """Сигнал, найденный в истории канала"""

    id: str
    channel_id: int
    channel_name: str
    message_id: int
    text: str
    timestamp: str
    parsed: ParsedSignal

    @classmethod
    def from_message(
            cls,
            message: RawMessage,
            channel_name: str,
            parsed: ParsedSignal
    ) -> "SignalRecord":
        """
        Сборка записи из сообщения и результата парсинга

        Args:
            message: Исходное сообщение
            channel_name: Название канала
            parsed: Результат парсинга

        Returns:
            SignalRecord экземпляр
        """
        timestamp = datetime.fromtimestamp(message.date, tz=timezone.utc)

        return cls(
            id=f"{message.chat_id}-{message.message_id}",
            channel_id=message.chat_id,
            channel_name=channel_name,
            message_id=message.message_id,
            text=message.text,
            timestamp=timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            parsed=parsed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "groupId": str(self.channel_id),
            "groupName": self.channel_name,
            "messageId": self.message_id,
            "text": self.text,
            "timestamp": self.timestamp,
            "parsed": self.parsed.to_dict(),
        }
