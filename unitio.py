"""Runtime I/O units for the ',' and '.' instructions.

A unit is one byte in "byte" mode or one Unicode code point in "wide" mode.
Readers return the unit's numeric code, or EOF_VALUE once the input is
exhausted. Writers take a cell value and truncate it to the unit range.
"""

from __future__ import annotations
import codecs
from typing import BinaryIO, List, Optional, Union

from config import UNIT_BYTE, UNIT_WIDE
from faults import ConfigError

EOF_VALUE = -1
MAX_CODE_POINT = 0x10FFFF


def unit_bytes(value: int, unit: str) -> bytes:
    if unit == UNIT_BYTE:
        return bytes([value & 0xFF])
    # Lone surrogates are passed through rather than rejected.
    return chr(value % (MAX_CODE_POINT + 1)).encode("utf-8", "surrogatepass")


def _check_unit(unit: str) -> str:
    if unit not in (UNIT_BYTE, UNIT_WIDE):
        raise ConfigError(f"Unknown I/O unit '{unit}'")
    return unit


class StreamInput:
    def __init__(self, stream: BinaryIO, unit: str = UNIT_WIDE) -> None:
        self.stream = stream
        self.unit = _check_unit(unit)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: List[str] = []
        self._eof = False

    def read(self) -> int:
        if self.unit == UNIT_BYTE:
            data = self.stream.read(1)
            return data[0] if data else EOF_VALUE
        while not self._pending:
            if self._eof:
                return EOF_VALUE
            data = self.stream.read(1)
            if not data:
                self._eof = True
                self._pending.extend(self._decoder.decode(b"", final=True))
                continue
            self._pending.extend(self._decoder.decode(data))
        return ord(self._pending.pop(0))


class StreamOutput:
    def __init__(self, stream: BinaryIO, unit: str = UNIT_WIDE) -> None:
        self.stream = stream
        self.unit = _check_unit(unit)

    def write(self, value: int) -> None:
        self.stream.write(unit_bytes(value, self.unit))

    def flush(self) -> None:
        self.stream.flush()


class BufferInput:
    """Input unit over an in-memory string or byte string."""

    def __init__(self, data: Union[str, bytes] = "", unit: Optional[str] = None) -> None:
        if unit is None:
            unit = UNIT_BYTE if isinstance(data, bytes) else UNIT_WIDE
        self.unit = _check_unit(unit)
        if isinstance(data, str):
            data = data.encode("latin-1") if self.unit == UNIT_BYTE else data
        self._codes: List[int] = [b if isinstance(b, int) else ord(b) for b in data]
        self._index = 0

    def read(self) -> int:
        if self._index >= len(self._codes):
            return EOF_VALUE
        code = self._codes[self._index]
        self._index += 1
        return code


class BufferOutput:
    """Output unit collecting values in memory."""

    def __init__(self, unit: str = UNIT_WIDE) -> None:
        self.unit = _check_unit(unit)
        self.values: List[int] = []

    def write(self, value: int) -> None:
        self.values.append(int(value))

    def flush(self) -> None:
        pass

    def getvalue(self) -> bytes:
        return b"".join(unit_bytes(v, self.unit) for v in self.values)

    def text(self) -> str:
        encoding = "latin-1" if self.unit == UNIT_BYTE else "utf-8"
        return self.getvalue().decode(encoding, errors="surrogatepass" if self.unit == UNIT_WIDE else "strict")
