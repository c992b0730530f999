# signals/config.py
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
from utils.logger import get_logger


@dataclass
class AuthConfig:
    """Конфигурация для авторизации в Telegram"""

    api_id: int
    api_hash: str
    phone: str
    session_name: str

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """
        Загрузка конфигурации из .env файла

        Returns:
            AuthConfig экземпляр

        Raises:
            ValueError: Если обязательные параметры отсутствуют или некорректны
        """
        load_dotenv()

        return cls.from_values(
            os.getenv('API_ID'),
            os.getenv('API_HASH'),
            os.getenv('PHONE_NUMBER'),
            os.getenv('SESSION_NAME')
        )

    @classmethod
    def from_values(
            cls,
            api_id: Any,
            api_hash: Optional[str],
            phone: Optional[str],
            session_name: Optional[str] = None
    ) -> "AuthConfig":
        """
        Сборка конфигурации из параметров запроса или окружения

        Args:
            api_id: API ID приложения Telegram
            api_hash: API hash приложения Telegram
            phone: Номер телефона в международном формате
            session_name: Имя файла сессии (по умолчанию номер телефона)

        Returns:
            AuthConfig экземпляр

        Raises:
            ValueError: Если обязательные параметры отсутствуют или некорректны
        """
        if not api_id:
            raise ValueError("API_ID должен быть указан")
        if not api_hash:
            raise ValueError("API_HASH должен быть указан")
        if not phone:
            raise ValueError("PHONE_NUMBER должен быть указан")
        if not phone.startswith('+'):
            raise ValueError("Номер телефона должен начинаться с кода страны (например, +1234567890)")

        try:
            api_id = int(api_id)
        except (TypeError, ValueError):
            raise ValueError("API_ID должен быть числом")

        return cls(
            api_id=api_id,
            api_hash=api_hash,
            phone=phone,
            session_name=session_name or phone
        )


@dataclass
class Channel:
    """Канал или группа, из которой читаются сигналы"""

    chat_id: int
    name: str
    enabled: bool
    signals_count: int = 0
    last_signal: str = "N/A"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        return cls(
            chat_id=int(data["id"]),
            name=str(data.get("name") or f"ID: {data['id']}"),
            enabled=bool(data.get("active", False)),
            signals_count=int(data.get("signalsCount", 0)),
            last_signal=str(data.get("lastSignal", "N/A"))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.chat_id),
            "name": self.name,
            "active": self.enabled,
            "signalsCount": self.signals_count,
            "lastSignal": self.last_signal,
            "memberCount": 0
        }


class ChannelsConfig:
    """Сохраненный список каналов одного аккаунта Telegram"""

    def __init__(self, path: Path, channels: Optional[List[Channel]] = None):
        self.logger = get_logger(__name__)
        self.path = Path(path)
        self.channels: List[Channel] = channels if channels is not None else []

    @classmethod
    def load(cls, path: Path) -> "ChannelsConfig":
        """
        Загрузка списка каналов из JSON файла

        Args:
            path: Путь к файлу groups-<phone>.json

        Returns:
            ChannelsConfig экземпляр (пустой, если файла нет или он поврежден)
        """
        config = cls(path)

        if not config.path.exists():
            return config

        try:
            data = json.loads(config.path.read_text(encoding="utf-8"))
            config.channels = [Channel.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            config.logger.warning(f"Ошибка загрузки каналов из {config.path}: {e}")
            config.channels = []

        return config

    @classmethod
    def for_phone(cls, config_dir: Path, phone: str) -> "ChannelsConfig":
        return cls.load(Path(config_dir) / f"groups-{phone}.json")

    def save(self) -> None:
        """Сохранение списка каналов"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [ch.to_dict() for ch in self.channels]
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def get(self, chat_id: int) -> Optional[Channel]:
        for channel in self.channels:
            if channel.chat_id == chat_id:
                return channel
        return None

    def upsert(self, channel: Channel) -> Channel:
        """
        Добавление канала или замена существующего с тем же ID

        Args:
            channel: Канал

        Returns:
            Сохраненный канал
        """
        for i, existing in enumerate(self.channels):
            if existing.chat_id == channel.chat_id:
                self.channels[i] = channel
                break
        else:
            self.channels.append(channel)

        self.save()
        return channel

    def set_enabled(self, chat_id: int, enabled: bool) -> Channel:
        """
        Включение или выключение канала

        Raises:
            KeyError: Если канал не найден
        """
        channel = self.get(chat_id)
        if channel is None:
            raise KeyError(f"Канал не найден: ID: {chat_id}")

        channel.enabled = enabled
        self.save()
        return channel

    def remove(self, chat_id: int) -> None:
        """
        Удаление канала

        Raises:
            KeyError: Если канал не найден
        """
        remaining = [ch for ch in self.channels if ch.chat_id != chat_id]
        if len(remaining) == len(self.channels):
            raise KeyError(f"Канал не найден: ID: {chat_id}")

        self.channels = remaining
        self.save()

    def merge_dialogs(self, dialogs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Объединение актуальных диалогов Telegram с сохраненными настройками

        Args:
            dialogs: Список {"id", "name", "isChannel", "isGroup"}

        Returns:
            Диалоги с полями active, signalsCount, lastSignal, memberCount
        """
        merged = []

        for dialog in dialogs:
            saved = self.get(int(dialog["id"]))
            merged.append({
                **dialog,
                "active": saved.enabled if saved else False,
                "signalsCount": saved.signals_count if saved else 0,
                "lastSignal": saved.last_signal if saved else "N/A",
                "memberCount": 0
            })

        return merged

    def record_signals(self, counts: Dict[int, int], last_signals: Dict[int, str]) -> None:
        """
        Обновление счетчиков сигналов после сканирования

        Args:
            counts: Количество найденных сигналов по chat_id
            last_signals: Время последнего сигнала по chat_id
        """
        changed = False

        for channel in self.channels:
            if channel.chat_id not in counts:
                continue
            channel.signals_count = counts[channel.chat_id]
            channel.last_signal = last_signals.get(channel.chat_id, channel.last_signal)
            changed = True

        if changed:
            self.save()

    def get_active_channels(self) -> List[Channel]:
        """
        Получение списка активных каналов

        Returns:
            Список активных каналов
        """
        return [ch for ch in self.channels if ch.enabled]

    def get_active_chat_ids(self) -> List[int]:
        """
        Получение списка ID активных каналов

        Returns:
            Список chat_id активных каналов
        """
        return [ch.chat_id for ch in self.channels if ch.enabled]
