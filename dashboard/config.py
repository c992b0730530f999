# dashboard/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv


@dataclass
class ServerConfig:
    """Конфигурация HTTP сервера дашборда"""

    host: str
    port: int
    data_dir: Path

    @property
    def config_dir(self) -> Path:
        return self.data_dir / "config"

    @property
    def sessions_dir(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def parser_config_path(self) -> Path:
        return self.config_dir / "parser-config.json"

    @property
    def credentials_path(self) -> Path:
        return self.data_dir / "credentials" / "bybit-credentials.json"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Загрузка конфигурации из .env файла

        Returns:
            ServerConfig экземпляр

        Raises:
            ValueError: Если порт указан некорректно
        """
        load_dotenv()

        host = os.getenv('DASHBOARD_HOST', '0.0.0.0')
        port_str = os.getenv('DASHBOARD_PORT', '3000')
        data_dir = os.getenv('DATA_DIR', 'data')

        try:
            port = int(port_str)
        except ValueError:
            raise ValueError("DASHBOARD_PORT должен быть числом")

        if not 0 < port < 65536:
            raise ValueError("DASHBOARD_PORT должен быть в диапазоне 1-65535")

        return cls(host=host, port=port, data_dir=Path(data_dir))
