from __future__ import annotations
import io

import pytest

from faults import ConfigError
from unitio import EOF_VALUE, BufferInput, BufferOutput, StreamInput, StreamOutput


def test_byte_stream_input_reads_bytes_then_eof():
    unit = StreamInput(io.BytesIO(b"A\xff"), "byte")
    assert unit.read() == 65
    assert unit.read() == 255
    assert unit.read() == EOF_VALUE
    assert unit.read() == EOF_VALUE


def test_wide_stream_input_decodes_code_points():
    unit = StreamInput(io.BytesIO("é€x".encode("utf-8")), "wide")
    assert unit.read() == 0xE9
    assert unit.read() == 0x20AC
    assert unit.read() == ord("x")
    assert unit.read() == EOF_VALUE


def test_byte_stream_output_truncates_to_one_byte():
    sink = io.BytesIO()
    unit = StreamOutput(sink, "byte")
    unit.write(321)
    unit.write(-1)
    assert sink.getvalue() == b"A\xff"


def test_wide_stream_output_encodes_utf8():
    sink = io.BytesIO()
    unit = StreamOutput(sink, "wide")
    unit.write(0x20AC)
    unit.write(56)
    assert sink.getvalue() == "€8".encode("utf-8")


def test_buffer_units():
    source = BufferInput("hi")
    assert [source.read(), source.read(), source.read()] == [104, 105, EOF_VALUE]

    out = BufferOutput("byte")
    out.write(72)
    out.write(256 + 105)
    assert out.values == [72, 361]
    assert out.text() == "Hi"


def test_unknown_unit_rejected():
    with pytest.raises(ConfigError):
        StreamOutput(io.BytesIO(), "nibble")
