from typing import Tuple

Key = int
"""Variables are identified by plain integers. Any int works; `Symbol` is the
conventional way of building one."""

_CHR_BITS = 8
_INDEX_BITS = 64 - _CHR_BITS
_MAX_INDEX = (1 << _INDEX_BITS) - 1


class Symbol(int):
    """Character + index key, packed into a single integer. `Symbol("x", 1)`
    prints as `x1` and compares and hashes like the underlying int, so symbols
    and raw integer keys can be mixed freely in mappings and orderings."""

    def __new__(cls, chr: str, index: int) -> "Symbol":
        assert len(chr) == 1 and ord(chr) < (1 << _CHR_BITS), "Expected one ASCII char!"
        assert 0 <= index <= _MAX_INDEX, f"Symbol index {index} out of range."
        return super().__new__(cls, (ord(chr) << _INDEX_BITS) | index)

    @property
    def chr(self) -> str:
        return chr(int(self) >> _INDEX_BITS)

    @property
    def index(self) -> int:
        return int(self) & _MAX_INDEX

    def __getnewargs__(self) -> Tuple[str, int]:  # type: ignore
        return (self.chr, self.index)

    def __repr__(self) -> str:
        return f"{self.chr}{self.index}"

    __str__ = __repr__


def format_key(key: Key) -> str:
    """Human-readable key. Integers that were packed by `Symbol` are unpacked."""
    key = int(key)
    chr_code = key >> _INDEX_BITS
    if 0 < chr_code < 128 and chr(chr_code).isprintable():
        return f"{chr(chr_code)}{key & _MAX_INDEX}"
    return str(key)
