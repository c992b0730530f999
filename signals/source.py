# signals/source.py
from datetime import datetime
from typing import Any, Dict, List, Protocol
from telethon import TelegramClient
from telethon.tl.functions.messages import ImportChatInviteRequest
from telethon.tl.types import Channel as TgChannel, Chat
from signals.models import RawMessage
from utils.logger import get_logger


class MessageSource(Protocol):
    """Источник сообщений каналов"""

    async def fetch_messages(self, chat_id: int, limit: int) -> List[RawMessage]:
        ...


def _to_epoch(date: Any) -> int:
    if isinstance(date, datetime):
        return int(date.timestamp())
    return int(date or 0)


def _entity_to_group(entity: Any, fallback_name: str = "") -> Dict[str, Any]:
    is_channel = isinstance(entity, TgChannel) and bool(entity.broadcast)
    is_group = isinstance(entity, Chat) or (isinstance(entity, TgChannel) and not entity.broadcast)
    title = getattr(entity, 'title', None) or fallback_name or f"ID: {entity.id}"

    return {
        "id": str(entity.id),
        "name": title,
        "isChannel": is_channel,
        "isGroup": is_group
    }


class TelethonMessageSource:
    """Чтение истории каналов через Telethon"""

    def __init__(self, client: TelegramClient):
        self.logger = get_logger(__name__)
        self.client = client

    async def fetch_messages(self, chat_id: int, limit: int) -> List[RawMessage]:
        """
        Получение последних сообщений канала (сначала новые)

        Args:
            chat_id: ID канала
            limit: Максимальное количество сообщений

        Returns:
            Список RawMessage

        Raises:
            ValueError: Если канал не найден
        """
        entity = await self.client.get_entity(chat_id)
        messages = await self.client.get_messages(entity, limit=limit)

        self.logger.debug(f"Получено {len(messages)} сообщений из канала {chat_id}")

        return [
            RawMessage(
                message_id=message.id,
                chat_id=chat_id,
                text=message.message or "",
                date=_to_epoch(message.date)
            )
            for message in messages
        ]

    async def list_groups(self) -> List[Dict[str, Any]]:
        """
        Получение списка каналов и групп аккаунта

        Returns:
            Список {"id", "name", "isChannel", "isGroup"}
        """
        groups = []

        async for dialog in self.client.iter_dialogs():
            if not (dialog.is_channel or dialog.is_group):
                continue

            groups.append({
                "id": str(dialog.id),
                "name": dialog.name,
                "isChannel": dialog.is_channel and not dialog.is_group,
                "isGroup": dialog.is_group
            })

        return groups

    async def resolve(self, name: str) -> Dict[str, Any]:
        """
        Поиск канала по username или ссылке

        Raises:
            ValueError: Если канал не найден
        """
        entity = await self.client.get_entity(name)
        return _entity_to_group(entity, name)

    async def join(self, invite_link: str) -> Dict[str, Any]:
        """
        Вступление в группу по пригласительной ссылке

        Args:
            invite_link: Ссылка вида https://t.me/+hash или сам hash

        Returns:
            Описание группы
        """
        invite_hash = invite_link.rstrip('/').split('/')[-1].lstrip('+')
        updates = await self.client(ImportChatInviteRequest(invite_hash))

        chats = getattr(updates, 'chats', None) or []
        if not chats:
            raise ValueError(f"Не удалось вступить в группу по ссылке: {invite_link}")

        self.logger.info(f"Вступили в группу: {chats[0].title}")
        return _entity_to_group(chats[0])
