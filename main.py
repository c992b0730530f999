# main.py
import asyncio
from dashboard.config import ServerConfig
from dashboard.server import AppContext, DashboardServer
from utils.logger import get_logger, initialize_logging


class DashboardApplication:
    """Главное приложение дашборда"""

    def __init__(self):
        self.logger = get_logger(__name__)
        self.server = None
        self.running = False
        self.shutdown_event = asyncio.Event()

    async def start(self):
        """Запуск API дашборда"""
        self.logger.info("Запуск дашборда сигналов (Telegram -> Bybit)")

        try:
            server_config = ServerConfig.from_env()
            context = AppContext.from_config(server_config)

            self.server = DashboardServer(context)
            await self.server.start()

            self.running = True
            self.logger.info("Дашборд активен и готов к работе")

            try:
                await self.shutdown_event.wait()
            except asyncio.CancelledError:
                self.logger.info("Получен сигнал об остановке от пользователя")
                raise

        except Exception as e:
            self.logger.error(f"Критическая ошибка: {e}", exc_info=True)
        finally:
            await self.stop()

    async def stop(self):
        """Остановка дашборда"""
        self.running = False

        if self.server:
            await self.server.stop()
            self.server = None
            self.logger.info("Дашборд успешно остановлен")

        self.shutdown_event.set()


async def main():
    """Точка входа"""
    initialize_logging()

    app = DashboardApplication()

    try:
        await app.start()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
