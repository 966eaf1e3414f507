from chimera.transport.framing import LineBuffer, OVERSIZED, frame


def test_split_lines():

    buffer = LineBuffer()

    assert buffer.feed(b'{"a": 1}\n{"b"') == [b'{"a": 1}']
    assert len(buffer) == 4
    assert buffer.feed(b': 2}\n\n') == [b'{"b": 2}', b'']
    assert len(buffer) == 0


def test_carriage_return():

    buffer = LineBuffer()
    assert buffer.feed(b'first\r\nsecond\n') == [b'first', b'second']


def test_byte_at_a_time():

    buffer = LineBuffer()
    lines = list()

    for byte in b'one\ntwo\n':
        lines.extend(buffer.feed(bytes((byte,))))

    assert lines == [b'one', b'two']


def test_oversized_complete_line():

    buffer = LineBuffer(limit=8)
    assert buffer.feed(b'123456789\nshort\n') == [OVERSIZED, b'short']


def test_oversized_across_reads():

    buffer = LineBuffer(limit=8)

    assert buffer.feed(b'0123456789') == []
    assert buffer.discarding
    assert len(buffer) == 0

    # Bytes of the oversized line are dropped as they arrive.

    assert buffer.feed(b'abcdefghij') == []
    assert len(buffer) == 0

    assert buffer.feed(b'xyz\nok\n') == [OVERSIZED, b'ok']
    assert not buffer.discarding


def test_limit_is_inclusive():

    buffer = LineBuffer(limit=8)
    assert buffer.feed(b'12345678\n') == [b'12345678']


def test_frame():

    assert frame(b'{}') == b'{}\n'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
