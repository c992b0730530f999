# signals/parser/channel_parser.py
from typing import Dict, List, Optional
from signals.config import Channel, ChannelsConfig
from signals.models import SignalRecord
from signals.parser.config_store import ParserConfigStore
from signals.parser.signal_parser import SignalParser
from signals.parser.signal_validator import SignalValidator
from signals.source import MessageSource
from utils.logger import get_logger


class ChannelParser:
    """Поиск сигналов в истории Telegram каналов"""

    def __init__(self, source: MessageSource, config_store: ParserConfigStore):
        self.logger = get_logger(__name__)
        self.source = source
        self.config_store = config_store

    async def scan(self, channels: List[Channel], limit: int) -> List[SignalRecord]:
        """
        Сканирование последних сообщений каналов

        Ошибка одного канала не прерывает сканирование остальных.

        Args:
            channels: Активные каналы
            limit: Максимальное количество сообщений на канал

        Returns:
            Список найденных сигналов
        """
        config = self.config_store.load()
        records: List[SignalRecord] = []

        for channel in channels:
            try:
                messages = await self.source.fetch_messages(channel.chat_id, limit)
            except ValueError as e:
                if "Cannot find any entity" in str(e):
                    self.logger.warning(f"Канал не найден: {channel.name} (ID: {channel.chat_id})")
                else:
                    self.logger.warning(f"Ошибка получения сообщений канала {channel.chat_id}: {e}")
                continue
            except Exception as e:
                self.logger.error(f"Ошибка получения сообщений канала {channel.chat_id}: {e}", exc_info=True)
                continue

            found = 0

            for message in messages:
                if not message.text:
                    continue

                parsed = SignalParser.parse(message.text, config)

                if not SignalValidator.is_signal(parsed):
                    continue

                records.append(SignalRecord.from_message(message, channel.name, parsed))
                found += 1

            self.logger.info(f"[{channel.name}] Найдено сигналов: {found} из {len(messages)} сообщений")

        return records

    async def scan_config(
            self,
            channels_config: ChannelsConfig,
            limit: int,
            chat_id: Optional[int] = None
    ) -> List[SignalRecord]:
        """
        Сканирование активных каналов аккаунта с обновлением счетчиков

        Args:
            channels_config: Сохраненные каналы аккаунта
            limit: Максимальное количество сообщений на канал
            chat_id: Сканировать только этот канал

        Returns:
            Список найденных сигналов

        Raises:
            KeyError: Если chat_id указан, но среди активных каналов его нет
        """
        channels = channels_config.get_active_channels()

        if chat_id is not None:
            channels = [ch for ch in channels if ch.chat_id == chat_id]
            if not channels:
                raise KeyError(f"Канал не найден или неактивен: ID: {chat_id}")

        records = await self.scan(channels, limit)

        counts: Dict[int, int] = {ch.chat_id: 0 for ch in channels}
        last_signals: Dict[int, str] = {}

        for record in records:
            counts[record.channel_id] = counts.get(record.channel_id, 0) + 1
            if record.timestamp > last_signals.get(record.channel_id, ""):
                last_signals[record.channel_id] = record.timestamp

        channels_config.record_signals(counts, last_signals)

        return records
