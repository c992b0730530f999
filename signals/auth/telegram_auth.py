# signals/auth/telegram_auth.py
from pathlib import Path
from typing import Dict, Optional
from telethon import TelegramClient
from telethon.errors import SessionPasswordNeededError
from signals.config import AuthConfig
from utils.logger import get_logger


class TelegramAuth:
    """Управление авторизацией в Telegram аккаунте"""

    def __init__(self, config: AuthConfig, sessions_dir: Path):
        self.logger = get_logger(__name__)

        self.config = config

        self.sessions_dir = Path(sessions_dir)
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

        self.session_path = self.sessions_dir / f"{self.config.session_name}.session"

        self.client: Optional[TelegramClient] = None
        self._phone_code_hash: Optional[str] = None

    def _create_client(self) -> TelegramClient:
        return TelegramClient(
            str(self.session_path),
            self.config.api_id,
            self.config.api_hash,
            auto_reconnect=True,
            connection_retries=5,
            retry_delay=5,
            timeout=10,
            device_model="Signal Dashboard Server",
            system_version="1.0",
            app_version="1.0.0",
            lang_code="en",
            system_lang_code="en"
        )

    @property
    def has_session(self) -> bool:
        return self.session_path.exists()

    @property
    def awaiting_code(self) -> bool:
        return self._phone_code_hash is not None

    async def connect(self) -> TelegramClient:
        """
        Подключение к Telegram (без авторизации)

        Returns:
            Подключенный TelegramClient
        """
        if self.client and self.client.is_connected():
            return self.client

        if self.client is None:
            self.client = self._create_client()

        await self.client.connect()
        return self.client

    async def get_authorized_client(self) -> TelegramClient:
        """
        Получение авторизованного клиента по сохраненной сессии

        Returns:
            Авторизованный TelegramClient

        Raises:
            PermissionError: Если сессия отсутствует или устарела
        """
        if not self.has_session:
            raise PermissionError("Не авторизован")

        client = await self.connect()

        if not await self.is_authorized():
            raise PermissionError("Сессия устарела")

        return client

    async def send_code(self) -> bool:
        """
        Начало авторизации: отправка кода на телефон

        Returns:
            True если сессия уже авторизована и код не нужен
        """
        client = await self.connect()

        if await client.is_user_authorized():
            self.logger.info(f"Сессия для {self.config.phone} активна, авторизация не требуется")
            return True

        result = await client.send_code_request(self.config.phone)
        self._phone_code_hash = result.phone_code_hash
        self.logger.info(f"Код отправлен на {self.config.phone}")

        return False

    async def confirm_code(self, code: str) -> bool:
        """
        Подтверждение кода из Telegram

        Args:
            code: Код подтверждения

        Returns:
            True если авторизация завершена, False если требуется 2FA пароль

        Raises:
            RuntimeError: Если код не запрашивался
        """
        if self.client is None or self._phone_code_hash is None:
            raise RuntimeError("Нет ожидающей авторизации для этого номера")

        try:
            await self.client.sign_in(
                self.config.phone,
                code,
                phone_code_hash=self._phone_code_hash
            )
        except SessionPasswordNeededError:
            self.logger.info(f"Требуется 2FA пароль для {self.config.phone}")
            return False

        self._phone_code_hash = None
        await self._log_me()
        return True

    async def confirm_password(self, password: str) -> None:
        """
        Подтверждение 2FA пароля

        Raises:
            RuntimeError: Если авторизация не начиналась
        """
        if self.client is None:
            raise RuntimeError("Нет ожидающей авторизации для этого номера")

        await self.client.sign_in(password=password)
        self._phone_code_hash = None
        self.logger.info(f"Авторизация с 2FA успешна для {self.config.phone}")
        await self._log_me()

    async def _log_me(self) -> None:
        me = await self.client.get_me()
        self.logger.info(f"Подключен как: {me.first_name} (@{me.username if me.username else 'no username'})")

    async def disconnect(self) -> None:
        """Корректное отключение клиента"""
        if self.client and self.client.is_connected():
            await self.client.disconnect()
            self.logger.info("Клиент отключен")

    async def is_authorized(self) -> bool:
        """
        Проверка статуса авторизации

        Returns:
            True если авторизован, False иначе
        """
        if not self.client:
            return False

        try:
            return await self.client.is_user_authorized()
        except Exception as e:
            self.logger.error(f"Ошибка проверки авторизации: {e}")
            return False


class AuthSessions:
    """Реестр авторизаций Telegram по номеру телефона"""

    def __init__(self, sessions_dir: Path):
        self.logger = get_logger(__name__)
        self.sessions_dir = Path(sessions_dir)
        self._sessions: Dict[str, TelegramAuth] = {}

    def get(self, phone: str) -> Optional[TelegramAuth]:
        return self._sessions.get(phone)

    def get_or_create(self, config: AuthConfig) -> TelegramAuth:
        """
        Получение авторизации для номера, создание при отсутствии

        Если для номера уже есть авторизация с другими API ключами, она заменяется.
        """
        auth = self._sessions.get(config.phone)

        if auth is None or auth.config != config:
            auth = TelegramAuth(config, self.sessions_dir)
            self._sessions[config.phone] = auth

        return auth

    async def discard(self, phone: str) -> None:
        auth = self._sessions.pop(phone, None)
        if auth:
            await auth.disconnect()

    async def close_all(self) -> None:
        """Отключение всех клиентов"""
        for phone in list(self._sessions):
            await self.discard(phone)
