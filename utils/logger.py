# utils/logger.py
import logging
import sys
from datetime import datetime
from pathlib import Path


class MillisecondFormatter(logging.Formatter):
    """Форматтер с миллисекундами (3 цифры)"""

    def formatTime(self, record, datefmt=None):
        s = datetime.fromtimestamp(record.created).strftime(datefmt or "%Y-%m-%d %H:%M:%S")
        return f"{s}.{int(record.msecs):03d}"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Создает логгер с консольным и файловым выводом

    Args:
        name: Имя логгера
        level: Уровень логирования

    Returns:
        Настроенный логгер
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    formatter = MillisecondFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)-37s | %(message)s',
        datefmt='%d-%m-%y %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    project_root = Path(__file__).resolve().parent.parent
    logs_dir = project_root / "logs"
    logs_dir.mkdir(exist_ok=True)

    log_file_path = logs_dir / "logs.txt"

    file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
    logger.propagate = False

    return logger


def initialize_logging() -> None:
    """
    Инициализация логирования приложения.
    Отключает verbose логи внешних библиотек.
    """
    logging.getLogger('pybit').setLevel(logging.WARNING)
    logging.getLogger('pybit._http_manager').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.CRITICAL)
    logging.getLogger('urllib3.connectionpool').setLevel(logging.CRITICAL)
    logging.getLogger('telethon').setLevel(logging.WARNING)
    logging.getLogger('telethon.client').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
