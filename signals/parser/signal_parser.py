# signals/parser/signal_parser.py
import re
from typing import FrozenSet, List, Optional, Pattern
from signals.models import ParsedSignal, ParserConfiguration


class SignalParser:
    """Парсер торговых сигналов"""

    PAIR_PATTERN = re.compile(r'#([A-Z]+)')
    DIRECTION_PATTERN = re.compile(r'Type:?\s*([A-Z]+)', re.IGNORECASE)
    ENTRY_PATTERN = re.compile(r'Entry:?\s*([0-9.,\-]+)', re.IGNORECASE)
    TP_PATTERN = re.compile(r'TP:?\s*([0-9.,\s]+)', re.IGNORECASE)
    SL_PATTERN = re.compile(r'SL:?\s*([0-9.,\-]+)', re.IGNORECASE)

    # Хэштеги-метки сообщения, а не торговые пары
    MARKER_TAGS = frozenset({"SIGNAL"})

    @staticmethod
    def parse(text: str, config: Optional[ParserConfiguration] = None) -> ParsedSignal:
        """
        Парсинг торгового сигнала из текста

        Каждое поле ищется независимо по всему тексту, используется первое
        совпадение. Хэштег #SIGNAL и хэштеги, записанные в шаблоне буквально,
        считаются метками и парой не являются. Отсутствующие поля возвращаются
        как None, TP как пустой список.

        Args:
            text: Текст сообщения
            config: Текущие настройки парсера

        Returns:
            ParsedSignal, возможно частично заполненный
        """
        if not text:
            return ParsedSignal()

        markers = SignalParser._marker_tags(config)

        if config is not None and config.use_regex:
            return SignalParser._parse_regex_mode(text, markers)

        return SignalParser._parse_template_mode(text, markers)

    @staticmethod
    def _parse_regex_mode(text: str, markers: FrozenSet[str]) -> ParsedSignal:
        """Режим regex: пока использует тот же набор шаблонов, что и режим template"""
        return SignalParser._extract(text, markers)

    @staticmethod
    def _parse_template_mode(text: str, markers: FrozenSet[str]) -> ParsedSignal:
        """Режим template: из шаблона берутся только метки, поля ищутся общими шаблонами"""
        return SignalParser._extract(text, markers)

    @staticmethod
    def _marker_tags(config: Optional[ParserConfiguration]) -> FrozenSet[str]:
        if config is None:
            return SignalParser.MARKER_TAGS

        literal_tags = SignalParser.PAIR_PATTERN.findall(config.template)
        return SignalParser.MARKER_TAGS | frozenset(literal_tags)

    @staticmethod
    def _extract(text: str, markers: FrozenSet[str]) -> ParsedSignal:
        direction = SignalParser._search(SignalParser.DIRECTION_PATTERN, text)

        return ParsedSignal(
            pair=SignalParser._search_pair(text, markers),
            direction=direction.upper() if direction else None,
            entry=SignalParser._search(SignalParser.ENTRY_PATTERN, text),
            take_profits=SignalParser._parse_take_profits(text),
            stop_loss=SignalParser._search(SignalParser.SL_PATTERN, text),
        )

    @staticmethod
    def _search(pattern: Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        return match.group(1) if match else None

    @staticmethod
    def _search_pair(text: str, markers: FrozenSet[str]) -> Optional[str]:
        """Первый хэштег, не являющийся меткой"""
        for match in SignalParser.PAIR_PATTERN.finditer(text):
            if match.group(1) not in markers:
                return match.group(1)

        return None

    @staticmethod
    def _parse_take_profits(text: str) -> List[str]:
        """Извлечение всех take-profit уровней в порядке появления"""
        tp_text = SignalParser._search(SignalParser.TP_PATTERN, text)
        if tp_text is None:
            return []

        return [tp.strip() for tp in tp_text.split(',') if tp.strip()]
