# signals/parser/config_store.py
import json
from pathlib import Path
from signals.models import ParserConfiguration
from utils.logger import get_logger


class ParserConfigStore:
    """Хранилище настроек парсера в JSON файле"""

    def __init__(self, path: Path):
        self.logger = get_logger(__name__)
        self.path = Path(path)

    def load(self) -> ParserConfiguration:
        """
        Загрузка настроек парсера

        Returns:
            Сохраненная конфигурация или конфигурация по умолчанию,
            если файла нет или он поврежден
        """
        if not self.path.exists():
            return ParserConfiguration.default()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"ожидался объект, получено {type(data).__name__}")
            return ParserConfiguration.from_dict(data)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ошибка загрузки настроек парсера {self.path}: {e}")
            return ParserConfiguration.default()

    def save(self, config: ParserConfiguration) -> None:
        """
        Сохранение настроек парсера (полная замена)

        Args:
            config: Новая конфигурация

        Raises:
            OSError: Если файл не удалось записать
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        self.logger.info(f"Настройки парсера сохранены (useRegex={config.use_regex})")
