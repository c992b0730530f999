from signals.models import ParsedSignal, ParserConfiguration
from signals.parser.signal_parser import SignalParser
from signals.parser.signal_validator import SignalValidator


SAMPLE_SIGNAL = "#SIGNAL #BTCUSDT\nType: LONG\nEntry: 65400-65800\nTP: 66500, 67200, 68000\nSL: 64000"

TEMPLATE_CONFIG = ParserConfiguration.default()
REGEX_CONFIG = ParserConfiguration(template=TEMPLATE_CONFIG.template, use_regex=True)


def test_full_signal():
    parsed = SignalParser.parse(SAMPLE_SIGNAL, TEMPLATE_CONFIG)

    assert parsed == ParsedSignal(
        pair="BTCUSDT",
        direction="LONG",
        entry="65400-65800",
        take_profits=["66500", "67200", "68000"],
        stop_loss="64000",
    )
    assert SignalValidator.is_signal(parsed)


def test_signal_marker_is_not_a_pair():
    for config in (TEMPLATE_CONFIG, REGEX_CONFIG, None):
        assert SignalParser.parse("#SIGNAL #BTCUSDT Type: LONG", config).pair == "BTCUSDT"

    parsed = SignalParser.parse("#SIGNAL Type: LONG", TEMPLATE_CONFIG)
    assert parsed.pair is None
    assert not SignalValidator.is_signal(parsed)


def test_literal_template_hashtags_are_markers():
    config = ParserConfiguration(template="#VIP #{pair}\nType: {type}")
    text = "#VIP #ETHUSDT\nType: SHORT"

    assert SignalParser.parse(text, config).pair == "ETHUSDT"
    assert SignalParser.parse(text, TEMPLATE_CONFIG).pair == "VIP"


def test_plain_chat_message_has_no_fields():
    parsed = SignalParser.parse("Just chatting, no signal here", TEMPLATE_CONFIG)

    assert parsed == ParsedSignal()
    assert parsed.take_profits == []
    assert not SignalValidator.is_signal(parsed)


def test_pair_and_direction_only():
    parsed = SignalParser.parse("#ETHUSDT Type: SHORT", TEMPLATE_CONFIG)

    assert parsed.pair == "ETHUSDT"
    assert parsed.direction == "SHORT"
    assert parsed.entry is None
    assert parsed.take_profits == []
    assert parsed.stop_loss is None
    assert SignalValidator.is_signal(parsed)


def test_empty_text():
    for config in (TEMPLATE_CONFIG, REGEX_CONFIG, None):
        assert SignalParser.parse("", config) == ParsedSignal()


def test_field_order_does_not_matter():
    text = "SL: 120.5\nTP: 140, 150\nType: short\nEntry: 130\nsome words #SOLUSDT"
    parsed = SignalParser.parse(text, TEMPLATE_CONFIG)

    assert parsed.pair == "SOLUSDT"
    assert parsed.direction == "SHORT"
    assert parsed.entry == "130"
    assert parsed.take_profits == ["140", "150"]
    assert parsed.stop_loss == "120.5"


def test_first_occurrence_wins():
    text = "#BTCUSDT #ETHUSDT Type: LONG Type: SHORT Entry: 1 Entry: 2 SL: 3 SL: 4"
    parsed = SignalParser.parse(text, TEMPLATE_CONFIG)

    assert parsed.pair == "BTCUSDT"
    assert parsed.direction == "LONG"
    assert parsed.entry == "1"
    assert parsed.stop_loss == "3"


def test_labels_without_colon_and_any_case():
    text = "#XRPUSDT type long entry 0.52 tp 0.55,0.58 sl 0.49"
    parsed = SignalParser.parse(text, TEMPLATE_CONFIG)

    assert parsed.direction == "LONG"
    assert parsed.entry == "0.52"
    assert parsed.take_profits == ["0.55", "0.58"]
    assert parsed.stop_loss == "0.49"


def test_lowercase_hashtag_is_not_a_pair():
    parsed = SignalParser.parse("#btcusdt Type: LONG", TEMPLATE_CONFIG)

    assert parsed.pair is None
    assert not SignalValidator.is_signal(parsed)


def test_take_profits_keep_source_order():
    parsed = SignalParser.parse("#BTCUSDT Type: SHORT TP: 300, 100, 200", TEMPLATE_CONFIG)

    assert parsed.take_profits == ["300", "100", "200"]


def test_take_profit_label_without_numbers():
    parsed = SignalParser.parse("#BTCUSDT Type: LONG TP: - SL: 100", TEMPLATE_CONFIG)

    assert parsed.take_profits == []
    assert parsed.stop_loss == "100"


def test_take_profit_drops_empty_pieces():
    parsed = SignalParser.parse("TP: 1,, 2 ,\nSL: 0.5", TEMPLATE_CONFIG)

    assert parsed.take_profits == ["1", "2"]


def test_entry_keeps_raw_range_text():
    parsed = SignalParser.parse("#BTCUSDT Type: LONG Entry: 65,400.5-65,800", TEMPLATE_CONFIG)

    assert parsed.entry == "65,400.5-65,800"


def test_regex_mode_matches_template_mode():
    texts = [SAMPLE_SIGNAL, "#ETHUSDT Type: SHORT", "nothing", "TP 1, 2"]

    for text in texts:
        assert SignalParser.parse(text, REGEX_CONFIG) == SignalParser.parse(text, TEMPLATE_CONFIG)


def test_template_placeholders_are_not_compiled():
    config = ParserConfiguration(template="Pair={pair};Side={type}", use_regex=False)

    assert SignalParser.parse(SAMPLE_SIGNAL, config) == SignalParser.parse(SAMPLE_SIGNAL, TEMPLATE_CONFIG)


def test_parse_is_repeatable():
    first = SignalParser.parse(SAMPLE_SIGNAL, TEMPLATE_CONFIG)
    second = SignalParser.parse(SAMPLE_SIGNAL, TEMPLATE_CONFIG)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_to_dict_uses_wire_keys():
    parsed = SignalParser.parse(SAMPLE_SIGNAL, TEMPLATE_CONFIG)

    assert parsed.to_dict() == {
        "pair": "BTCUSDT",
        "type": "LONG",
        "entry": "65400-65800",
        "tp": ["66500", "67200", "68000"],
        "sl": "64000",
    }


def test_validator_requires_pair_and_direction():
    assert SignalValidator.is_signal(ParsedSignal(pair="BTCUSDT", direction="LONG"))
    assert not SignalValidator.is_signal(ParsedSignal(pair="BTCUSDT"))
    assert not SignalValidator.is_signal(ParsedSignal(direction="LONG"))
    assert not SignalValidator.is_signal(
        ParsedSignal(entry="1", take_profits=["2"], stop_loss="0.5")
    )
