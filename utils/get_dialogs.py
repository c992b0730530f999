# utils/get_dialogs.py
import asyncio
from signals.auth.telegram_auth import TelegramAuth
from signals.config import AuthConfig
from signals.source import TelethonMessageSource
from dashboard.config import ServerConfig


async def main():
    """Получение списка каналов и групп аккаунта с их chat ID"""
    try:
        auth_config = AuthConfig.from_env()
    except ValueError as e:
        print(f"\nОшибка: {e}\n")
        return

    server_config = ServerConfig.from_env()
    auth = TelegramAuth(auth_config, server_config.sessions_dir)

    if not auth.has_session:
        print("\n" + "=" * 80)
        print("СЕССИЯ НЕ НАЙДЕНА")
        print("=" * 80)
        print(f"\nФайл сессии не найден: {auth.session_path}")
        print("\nСначала авторизуйтесь через дашборд:")
        print("  python main.py")
        print("\nПосле успешной авторизации запустите эту утилиту снова.\n")
        return

    try:
        print("Подключение к Telegram для получения списка диалогов...")

        try:
            client = await auth.get_authorized_client()
        except PermissionError:
            print("\n" + "=" * 80)
            print("СЕССИЯ УСТАРЕЛА")
            print("=" * 80)
            print("\nСессия больше не авторизована.")
            print("Авторизуйтесь заново через дашборд:")
            print("  python main.py\n")
            return

        groups = await TelethonMessageSource(client).list_groups()

        print("\n" + "=" * 80)
        print("СПИСОК ВАШИХ КАНАЛОВ И ГРУПП")
        print("=" * 80 + "\n")

        for group in groups:
            chat_type = "channel" if group["isChannel"] else "group"
            print(f"Тип: {chat_type:8} | ID: {group['id']:>15} | Название: {group['name']}")

        print("\n" + "=" * 80)
        print(f"Всего: {len(groups)}")
        print("=" * 80)
        print("\nДобавьте нужный канал на странице Telegram в дашборде\n")

    except Exception as e:
        print(f"\nОшибка: {e}\n")
    finally:
        await auth.disconnect()
        print("Готово!")


if __name__ == "__main__":
    asyncio.run(main())
