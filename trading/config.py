# trading/config.py
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from utils.logger import get_logger


@dataclass
class TradingConfig:
    """Ключи доступа к Bybit"""

    api_key: str
    api_secret: str
    testnet: bool = True

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """
        Загрузка конфигурации из .env файла

        Returns:
            TradingConfig экземпляр

        Raises:
            ValueError: Если обязательные параметры отсутствуют
        """
        load_dotenv()

        api_key = os.getenv('BYBIT_API_KEY')
        api_secret = os.getenv('BYBIT_API_SECRET')
        testnet_str = os.getenv('BYBIT_TESTNET', 'true')

        if not api_key:
            raise ValueError("BYBIT_API_KEY должен быть указан в .env")
        if not api_secret:
            raise ValueError("BYBIT_API_SECRET должен быть указан в .env")

        return cls(
            api_key=api_key,
            api_secret=api_secret,
            testnet=testnet_str.lower() in ('true', '1', 'yes')
        )


class CredentialsStore:
    """Хранение ключей Bybit в JSON файле"""

    def __init__(self, path: Path):
        self.logger = get_logger(__name__)
        self.path = Path(path)

    def save(self, config: TradingConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"key": config.api_key, "secret": config.api_secret, "isTestnet": config.testnet}
        self.path.write_text(json.dumps(data), encoding="utf-8")
        self.logger.info(f"Ключи Bybit сохранены (testnet={config.testnet})")

    def load(self) -> Optional[TradingConfig]:
        """
        Загрузка сохраненных ключей

        Returns:
            TradingConfig или None, если ключи не сохранены или файл поврежден
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return TradingConfig(
                api_key=data["key"],
                api_secret=data["secret"],
                testnet=bool(data.get("isTestnet", True))
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.error(f"Ошибка загрузки ключей Bybit: {e}")
            return None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            self.logger.info("Ключи Bybit удалены")
