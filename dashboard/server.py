# dashboard/server.py
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from aiohttp import web
from telethon import TelegramClient
from telethon.errors import (
    ApiIdInvalidError,
    FloodWaitError,
    PasswordHashInvalidError,
    PhoneCodeExpiredError,
    PhoneCodeInvalidError,
    PhoneNumberInvalidError,
)
from dashboard.config import ServerConfig
from signals.auth.telegram_auth import AuthSessions
from signals.config import AuthConfig, Channel, ChannelsConfig
from signals.models import ParserConfiguration
from signals.parser.channel_parser import ChannelParser
from signals.parser.config_store import ParserConfigStore
from signals.parser.signal_parser import SignalParser
from signals.source import TelethonMessageSource
from trading.bybit_client import BybitClient
from trading.config import CredentialsStore, TradingConfig
from utils.logger import get_logger


TWO_FA_MESSAGE = "Two-factor authentication is required. Please provide your password."


class ApiError(Exception):
    """Ошибка запроса, возвращаемая клиенту как JSON"""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


@dataclass
class AppContext:
    """Зависимости обработчиков API"""

    server_config: ServerConfig
    parser_store: ParserConfigStore
    credentials: CredentialsStore
    auth_sessions: AuthSessions
    source_factory: Callable[[TelegramClient], Any] = TelethonMessageSource
    exchange_factory: Callable[[TradingConfig], Any] = BybitClient

    @classmethod
    def from_config(cls, server_config: ServerConfig) -> "AppContext":
        return cls(
            server_config=server_config,
            parser_store=ParserConfigStore(server_config.parser_config_path),
            credentials=CredentialsStore(server_config.credentials_path),
            auth_sessions=AuthSessions(server_config.sessions_dir)
        )


@web.middleware
async def error_middleware(request: web.Request, handler):
    logger = get_logger(__name__)

    try:
        return await handler(request)
    except ApiError as e:
        return web.json_response({"error": e.message}, status=e.status)
    except web.HTTPNotFound:
        return web.json_response(
            {"error": "Not Found", "message": "The requested endpoint does not exist"},
            status=404
        )
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"Необработанная ошибка {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({"error": "Internal server error", "message": str(e)}, status=500)


class DashboardServer:
    """HTTP API для дашборда: парсер сигналов, каналы Telegram, данные Bybit"""

    def __init__(self, context: AppContext):
        self.logger = get_logger(__name__)
        self.context = context
        self.runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[error_middleware])

        app.router.add_get("/", self._health)

        # Telegram auth
        app.router.add_post("/api/telegram/auth/init", self._auth_init)
        app.router.add_post("/api/telegram/auth/confirm", self._auth_confirm)
        app.router.add_post("/api/telegram/auth/2fa", self._auth_2fa)

        # Groups
        app.router.add_get("/api/telegram/groups", self._groups_list)
        app.router.add_post("/api/telegram/groups", self._groups_add)
        app.router.add_put("/api/telegram/groups/{id}", self._groups_update)
        app.router.add_delete("/api/telegram/groups/{id}", self._groups_remove)

        # Signal parsing
        app.router.add_post("/api/telegram/parser/test", self._parser_test)
        app.router.add_get("/api/telegram/parser/config", self._parser_get_config)
        app.router.add_post("/api/telegram/parser/config", self._parser_save_config)
        app.router.add_get("/api/telegram/signals", self._signals)

        # Bybit
        app.router.add_get("/api/bybit/health", self._bybit_health)
        app.router.add_post("/api/bybit/credentials", self._bybit_set_credentials)
        app.router.add_delete("/api/bybit/credentials", self._bybit_clear_credentials)
        app.router.add_get("/api/bybit/balance", self._bybit_balance)
        app.router.add_get("/api/bybit/positions", self._bybit_positions)
        app.router.add_get("/api/bybit/stats", self._bybit_stats)
        app.router.add_get("/api/bybit/orders", self._bybit_orders)
        app.router.add_post("/api/bybit/orders", self._bybit_place_order)
        app.router.add_delete("/api/bybit/orders/{id}", self._bybit_cancel_order)

        app.on_cleanup.append(self._on_cleanup)

        return app

    async def start(self) -> None:
        config = self.context.server_config

        self.runner = web.AppRunner(self.build_app())
        await self.runner.setup()
        site = web.TCPSite(self.runner, config.host, config.port)
        await site.start()
        self.logger.info(f"Дашборд API запущен: http://{config.host}:{config.port}")

    async def stop(self) -> None:
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("Дашборд API остановлен")

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.context.auth_sessions.close_all()

    # ── Helpers ───────────────────────────────────────────

    @staticmethod
    async def _read_json(request: web.Request) -> Dict[str, Any]:
        try:
            data = await request.json()
        except Exception:
            raise ApiError(400, "Invalid JSON")

        if not isinstance(data, dict):
            raise ApiError(400, "Invalid JSON")

        return data

    @staticmethod
    def _parse_int(value: Any, name: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ApiError(400, f"Invalid {name}")

    def _channels_config(self, phone: Optional[str]) -> ChannelsConfig:
        if not phone:
            raise ApiError(400, "Missing phone number")
        return ChannelsConfig.for_phone(self.context.server_config.config_dir, phone)

    async def _message_source(self, params) -> Any:
        """Источник сообщений для авторизованного аккаунта из параметров запроса"""
        if not params.get("phoneNumber"):
            raise ApiError(400, "Missing phone number")

        try:
            auth_config = AuthConfig.from_values(
                params.get("apiId"),
                params.get("apiHash"),
                params.get("phoneNumber")
            )
        except ValueError as e:
            raise ApiError(400, f"Missing API credentials: {e}")

        auth = self.context.auth_sessions.get_or_create(auth_config)

        try:
            client = await auth.get_authorized_client()
        except PermissionError as e:
            raise ApiError(401, str(e))

        return self.context.source_factory(client)

    def _exchange_client(self) -> Any:
        config = self.context.credentials.load()

        if config is None:
            try:
                config = TradingConfig.from_env()
            except ValueError:
                raise ApiError(401, "API credentials not found")

        return self.context.exchange_factory(config)

    # ── Health ────────────────────────────────────────────

    async def _health(self, request):
        return web.json_response({"status": "ok", "message": "API server is running"})

    async def _bybit_health(self, request):
        return web.json_response({"status": "ok", "message": "Bybit API is running"})

    # ── Telegram auth ─────────────────────────────────────

    async def _auth_init(self, request):
        data = await self._read_json(request)

        if not data.get("apiId") or not data.get("apiHash") or not data.get("phoneNumber"):
            raise ApiError(400, "Missing required fields")

        try:
            auth_config = AuthConfig.from_values(data["apiId"], data["apiHash"], data["phoneNumber"])
        except ValueError as e:
            raise ApiError(400, str(e))

        auth = self.context.auth_sessions.get_or_create(auth_config)

        try:
            already_authorized = await auth.send_code()
        except FloodWaitError as e:
            raise ApiError(429, f"Too many requests: Please try again after {e.seconds} seconds.")
        except PhoneNumberInvalidError:
            raise ApiError(400, "The phone number is invalid. Please check the format and try again.")
        except ApiIdInvalidError:
            raise ApiError(400, "The API ID is invalid. Please check your credentials.")

        if already_authorized:
            return web.json_response({"success": True, "alreadyAuthorized": True})

        return web.json_response({"success": True, "awaitingCode": True})

    async def _auth_confirm(self, request):
        data = await self._read_json(request)
        phone = data.get("phoneNumber")
        code = data.get("code")

        if not phone or not code:
            raise ApiError(400, "Missing phone number or verification code")

        auth = self.context.auth_sessions.get(phone)
        if auth is None or not auth.awaiting_code:
            raise ApiError(400, "No pending authentication for this phone number")

        try:
            completed = await auth.confirm_code(str(code))
        except PhoneCodeInvalidError:
            raise ApiError(400, "PHONE_CODE_INVALID: The verification code is incorrect.")
        except PhoneCodeExpiredError:
            await self.context.auth_sessions.discard(phone)
            raise ApiError(
                400,
                "PHONE_CODE_EXPIRED: The verification code has expired. Please restart authentication."
            )

        if not completed:
            return web.json_response({"success": False, "needs2FA": True, "message": TWO_FA_MESSAGE})

        return web.json_response({"success": True})

    async def _auth_2fa(self, request):
        data = await self._read_json(request)
        phone = data.get("phoneNumber")
        password = data.get("password")

        if not phone or not password:
            raise ApiError(400, "Missing phone number or password")

        auth = self.context.auth_sessions.get(phone)
        if auth is None:
            raise ApiError(400, "No pending authentication for this phone number")

        try:
            await auth.confirm_password(password)
        except PasswordHashInvalidError:
            raise ApiError(400, "The password is incorrect.")

        return web.json_response({"success": True})

    # ── Groups ────────────────────────────────────────────

    async def _groups_list(self, request):
        channels_config = self._channels_config(request.query.get("phoneNumber"))
        source = await self._message_source(request.query)

        dialogs = await source.list_groups()
        return web.json_response(channels_config.merge_dialogs(dialogs))

    async def _groups_add(self, request):
        data = await self._read_json(request)
        name = data.get("name")
        url = data.get("url")

        if not data.get("phoneNumber") or (not name and not url):
            raise ApiError(400, "Missing required fields")

        channels_config = self._channels_config(data.get("phoneNumber"))
        source = await self._message_source(data)

        if url:
            try:
                group = await source.join(url)
            except Exception as e:
                self.logger.warning(f"Не удалось вступить в группу {url}: {e}")
                raise ApiError(400, "Could not join group with the provided URL")
        else:
            try:
                group = await source.resolve(name)
            except ValueError:
                raise ApiError(404, "Group not found")

        channel = Channel(
            chat_id=int(group["id"]),
            name=group.get("name") or name,
            enabled=True
        )
        channels_config.upsert(channel)
        self.logger.info(f"Канал добавлен: {channel.name} (ID: {channel.chat_id})")

        return web.json_response(channel.to_dict())

    async def _groups_update(self, request):
        data = await self._read_json(request)
        chat_id = self._parse_int(request.match_info["id"], "group id")

        if "active" not in data:
            raise ApiError(400, "Missing required fields")

        if not isinstance(data["active"], bool):
            raise ApiError(400, "Field active must be a boolean")

        channels_config = self._channels_config(data.get("phoneNumber"))

        try:
            channel = channels_config.set_enabled(chat_id, data["active"])
        except KeyError:
            raise ApiError(404, "Group not found")

        return web.json_response(channel.to_dict())

    async def _groups_remove(self, request):
        chat_id = self._parse_int(request.match_info["id"], "group id")
        channels_config = self._channels_config(request.query.get("phoneNumber"))

        try:
            channels_config.remove(chat_id)
        except KeyError:
            raise ApiError(404, "Group not found")

        return web.json_response({"success": True})

    # ── Signal parsing ────────────────────────────────────

    async def _parser_test(self, request):
        data = await self._read_json(request)
        template = data.get("template")
        signal = data.get("signal")

        if not template or not signal:
            raise ApiError(400, "Missing template or signal")

        config = ParserConfiguration(template=template, use_regex=bool(data.get("useRegex", False)))
        parsed = SignalParser.parse(signal, config)

        return web.json_response(parsed.to_dict())

    async def _parser_get_config(self, request):
        return web.json_response(self.context.parser_store.load().to_dict())

    async def _parser_save_config(self, request):
        data = await self._read_json(request)
        template = data.get("template")

        if not template or not isinstance(template, str):
            raise ApiError(400, "Missing template")

        config = ParserConfiguration(template=template, use_regex=bool(data.get("useRegex", False)))
        self.context.parser_store.save(config)

        return web.json_response({"success": True})

    async def _signals(self, request):
        query = request.query
        channels_config = self._channels_config(query.get("phoneNumber"))
        limit = self._parse_int(query.get("limit", "10"), "limit")
        group_id = query.get("groupId")
        chat_id = self._parse_int(group_id, "group id") if group_id else None

        source = await self._message_source(query)
        parser = ChannelParser(source, self.context.parser_store)

        try:
            records = await parser.scan_config(channels_config, limit, chat_id)
        except KeyError:
            raise ApiError(404, "Group not found or inactive")

        return web.json_response([record.to_dict() for record in records])

    # ── Bybit ─────────────────────────────────────────────

    async def _bybit_set_credentials(self, request):
        data = await self._read_json(request)

        if not data.get("apiKey") or not data.get("apiSecret"):
            raise ApiError(400, "API key and secret are required")

        is_testnet = data.get("isTestnet")
        config = TradingConfig(
            api_key=data["apiKey"],
            api_secret=data["apiSecret"],
            testnet=True if is_testnet is None else bool(is_testnet)
        )

        client = self.context.exchange_factory(config)
        if not await client.validate_credentials():
            raise ApiError(400, "Invalid API credentials")

        self.context.credentials.save(config)
        return web.json_response({"success": True, "message": "Credentials set successfully"})

    async def _bybit_clear_credentials(self, request):
        self.context.credentials.clear()
        return web.json_response({"success": True})

    async def _bybit_balance(self, request):
        client = self._exchange_client()
        return web.json_response(await client.get_balance())

    async def _bybit_positions(self, request):
        client = self._exchange_client()
        return web.json_response(await client.get_positions())

    async def _bybit_stats(self, request):
        client = self._exchange_client()
        stats = await client.get_trading_stats()
        return web.json_response(stats.to_dict())

    async def _bybit_orders(self, request):
        limit = self._parse_int(request.query.get("limit", "20"), "limit")
        client = self._exchange_client()
        return web.json_response(await client.get_orders(limit))

    async def _bybit_place_order(self, request):
        data = await self._read_json(request)
        client = self._exchange_client()

        try:
            result = await client.place_order(**data)
        except ValueError as e:
            raise ApiError(400, str(e))
        except RuntimeError as e:
            raise ApiError(400, str(e))

        return web.json_response(result)

    async def _bybit_cancel_order(self, request):
        order_id = request.match_info["id"]
        symbol = request.query.get("symbol")

        if not symbol:
            raise ApiError(400, "Order ID and symbol are required")

        client = self._exchange_client()

        try:
            result = await client.cancel_order(order_id, symbol)
        except RuntimeError as e:
            raise ApiError(400, str(e))

        return web.json_response(result)
