from reservo.history import Turn, decode, dump_turns, encode, load_turns, render


def test_decode_empty():
    assert decode(None) == []
    assert decode("") == []


def test_decode_prefixed_lines():
    raw = "Customer: Hola\nAI: ¡Hola! ¿En qué puedo ayudarte?"
    assert decode(raw) == [
        Turn("user", "Hola"),
        Turn("assistant", "¡Hola! ¿En qué puedo ayudarte?"),
    ]


def test_decode_unprefixed_line_is_customer():
    assert decode("mesa para dos\n\n   \nAI: ¿A qué hora?") == [
        Turn("user", "mesa para dos"),
        Turn("assistant", "¿A qué hora?"),
    ]


def test_encode_first_pair_is_whole_value():
    assert encode(None, "Hola", "¡Hola!") == "Customer: Hola\nAI: ¡Hola!"
    assert encode("", "Hola", "¡Hola!") == "Customer: Hola\nAI: ¡Hola!"


def test_encode_then_decode_appends_one_pair():
    raw = encode(None, "Hola", "¡Hola!")
    prior = decode(raw)
    raw = encode(raw, "Para 4 personas", "Perfecto, ¿qué día?")

    assert decode(raw) == prior + [
        Turn("user", "Para 4 personas"),
        Turn("assistant", "Perfecto, ¿qué día?"),
    ]


def test_load_turns_drops_bad_records():
    records = [
        {"role": "user", "content": "hi"},
        {"role": "tool", "content": "x"},
        {"role": "assistant"},
        "Customer: nope",
        {"role": "assistant", "content": "hello"},
    ]
    assert load_turns(records) == [Turn("user", "hi"), Turn("assistant", "hello")]
    assert load_turns(None) == []


def test_render_skips_system_turns():
    turns = [Turn("user", "hi"), Turn("system", "[Tool Result]"), Turn("assistant", "hello")]
    assert render(turns) == "Customer: hi\nAI: hello"
    assert dump_turns(turns)[1] == {"role": "system", "content": "[Tool Result]"}


def test_multiline_text_comes_back_as_extra_customer_turns():
    raw = encode(None, "Somos 4\ny un bebé", "Perfecto.\n¿Qué día?")
    assert decode(raw) == [
        Turn("user", "Somos 4"),
        Turn("user", "y un bebé"),
        Turn("assistant", "Perfecto."),
        Turn("user", "¿Qué día?"),
    ]
