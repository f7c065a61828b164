"""Managed strings, string hashing and the interning table."""

from __future__ import annotations

from typing import Callable, Dict, Iterator, Union

_MASK64 = 0xFFFFFFFFFFFFFFFF
_HASH_SEED = 525201411107845655
_HASH_MUL = 0x5BD1E9955BD1E995

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}


class BoltRuntimeError(RuntimeError):
    """Raised where the runtime reports an error."""


def hash_str(data: Union[str, bytes]) -> int:
    """Return the 64-bit hash of ``data`` (text is hashed as UTF-8)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    h = _HASH_SEED
    for byte in data:
        # Characters are signed, so high bytes extend their sign bit.
        signed = byte - 256 if byte >= 128 else byte
        h ^= signed & _MASK64
        h = (h * _HASH_MUL) & _MASK64
        h ^= h >> 47
    return h


def unescape(text: str) -> str:
    """Replace the escape sequences \\n, \\t, \\r, \\" and \\\\ in ``text``."""
    out = []
    chars = iter(text)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        escaped = next(chars, None)
        if escaped not in _ESCAPES:
            raise BoltRuntimeError("Unhandled escape character in string!")
        out.append(_ESCAPES[escaped])
    return "".join(out)


class BoltString:
    """An immutable string value with a lazily computed, cached hash."""

    __slots__ = ("text", "interned", "_hash")

    def __init__(self, text: str = "", interned: bool = False) -> None:
        self.text = text
        self.interned = interned
        self._hash = 0

    @property
    def hash(self) -> int:
        if self._hash == 0:
            self._hash = hash_str(self.text)
        return self._hash

    def concat(self, other: "BoltString") -> "BoltString":
        """Return a new string made of this one followed by ``other``."""
        return BoltString(self.text + other.text)

    def append(self, text: str) -> "BoltString":
        """Return a new string made of this one followed by plain ``text``."""
        return BoltString(self.text + text)

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"BoltString({self.text!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoltString):
            return self.text == other.text
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.text)


class StringTable:
    """Deduplicates short strings so equal text shares one object."""

    def __init__(self, max_len: int = 64) -> None:
        self.max_len = max_len
        self._strings: Dict[str, BoltString] = {}

    def intern(self, text: str) -> BoltString:
        """Return the shared string for ``text``, or a fresh one if too long."""
        if len(text) > self.max_len:
            return BoltString(text)
        found = self._strings.get(text)
        if found is None:
            found = BoltString(text, interned=True)
            self._strings[text] = found
        return found

    def remove(self, string: BoltString) -> bool:
        """Drop ``string`` from the table; return whether it was present."""
        if self._strings.get(string.text) is string:
            del self._strings[string.text]
            string.interned = False
            return True
        return False

    def sweep(self, is_live: Callable[[BoltString], bool]) -> int:
        """Remove every string for which ``is_live`` is false; return the count."""
        dead = [s for s in self._strings.values() if not is_live(s)]
        for string in dead:
            self.remove(string)
        return len(dead)

    def __len__(self) -> int:
        return len(self._strings)

    def __contains__(self, text: object) -> bool:
        return text in self._strings

    def __iter__(self) -> Iterator[BoltString]:
        return iter(list(self._strings.values()))