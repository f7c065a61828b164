"""Opcodes, instruction operands and single-instruction formatting."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto

_MNEMONIC_COLUMN = 15


class OpCode(Enum):
    """Every operation the virtual machine understands."""

    LOAD = auto()
    LOAD_SMALL = auto()
    LOAD_NULL = auto()
    LOAD_BOOL = auto()
    LOAD_IMPORT = auto()
    TABLE = auto()
    ARRAY = auto()
    MOVE = auto()
    EXPORT = auto()
    CLOSE = auto()
    LOADUP = auto()
    STOREUP = auto()
    NEG = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    MFEQ = auto()
    MFNEQ = auto()
    NOT = auto()
    LOAD_IDX = auto()
    LOAD_IDX_K = auto()
    STORE_IDX = auto()
    STORE_IDX_K = auto()
    LOAD_PROTO = auto()
    LOAD_SUB_F = auto()
    STORE_SUB_F = auto()
    IDX_EXT = auto()
    APPEND_F = auto()
    EXPECT = auto()
    COALESCE = auto()
    TCHECK = auto()
    TCAST = auto()
    TSET = auto()
    CALL = auto()
    REC_CALL = auto()
    JMP = auto()
    JMPF = auto()
    TEST = auto()
    NUMFOR = auto()
    ITERFOR = auto()
    RETURN = auto()
    END = auto()

    @property
    def mnemonic(self) -> str:
        return self.name


_ABC = frozenset({
    OpCode.EXPORT, OpCode.CLOSE,
    OpCode.ADD, OpCode.SUB, OpCode.MUL, OpCode.DIV,
    OpCode.EQ, OpCode.NEQ, OpCode.LT, OpCode.LTE,
    OpCode.MFEQ, OpCode.MFNEQ,
    OpCode.LOAD_IDX, OpCode.LOAD_IDX_K, OpCode.STORE_IDX_K,
    OpCode.STORE_IDX, OpCode.LOAD_PROTO,
    OpCode.COALESCE, OpCode.TCHECK,
    OpCode.TCAST, OpCode.TSET,
    OpCode.CALL, OpCode.REC_CALL,
    OpCode.LOAD_SUB_F, OpCode.STORE_SUB_F,
})

_AB = frozenset({
    OpCode.LOAD_BOOL, OpCode.MOVE,
    OpCode.LOADUP, OpCode.STOREUP,
    OpCode.NEG, OpCode.NOT,
    OpCode.EXPECT,
    OpCode.APPEND_F,
})

_A = frozenset({OpCode.LOAD_NULL, OpCode.RETURN})

_AIBC = frozenset({
    OpCode.LOAD, OpCode.LOAD_SMALL,
    OpCode.LOAD_IMPORT, OpCode.TABLE,
    OpCode.ARRAY, OpCode.JMPF,
    OpCode.NUMFOR, OpCode.ITERFOR,
    OpCode.TEST,
})

_IBC = frozenset({OpCode.JMP, OpCode.IDX_EXT})


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"operand {name} out of range: {value}")


@dataclass(frozen=True)
class Instruction:
    """One instruction: an opcode, three byte operands and an acceleration flag.

    Operands ``b`` and ``c`` together form the signed 16-bit operand ``ibc``,
    with ``b`` as the low byte.
    """

    op: OpCode
    a: int = 0
    b: int = 0
    c: int = 0
    accelerated: bool = False

    def __post_init__(self) -> None:
        _check_byte("a", self.a)
        _check_byte("b", self.b)
        _check_byte("c", self.c)

    @classmethod
    def abc(cls, op: OpCode, a: int = 0, b: int = 0, c: int = 0,
            accelerated: bool = False) -> "Instruction":
        """Build an instruction from three byte operands."""
        return cls(op, a, b, c, accelerated)

    @classmethod
    def aibc(cls, op: OpCode, a: int = 0, ibc: int = 0,
             accelerated: bool = False) -> "Instruction":
        """Build an instruction from a byte operand and a signed 16-bit operand."""
        b, c = cls._split(ibc)
        return cls(op, a, b, c, accelerated)

    @staticmethod
    def _split(ibc: int) -> tuple:
        if not -0x8000 <= ibc <= 0x7FFF:
            raise ValueError(f"operand ibc out of range: {ibc}")
        raw = ibc & 0xFFFF
        return raw & 0xFF, raw >> 8

    @property
    def ibc(self) -> int:
        raw = self.b | (self.c << 8)
        return raw - 0x10000 if raw & 0x8000 else raw

    def with_ibc(self, ibc: int) -> "Instruction":
        """Return a copy with the signed operand replaced (used to patch jumps)."""
        b, c = self._split(ibc)
        return replace(self, b=b, c=c)

    def accelerate(self) -> "Instruction":
        """Return a copy marked as accelerated."""
        return replace(self, accelerated=True)

    def __str__(self) -> str:
        return format_instruction(self)


def format_instruction(instruction: Instruction) -> str:
    """Render ``instruction`` as a mnemonic followed by its operands."""
    text = "ACC " if instruction.accelerated else ""
    op = instruction.op
    text += op.mnemonic

    if op in _ABC:
        operands = [instruction.a, instruction.b, instruction.c]
    elif op in _AB:
        operands = [instruction.a, instruction.b]
    elif op in _A:
        operands = [instruction.a]
    elif op in _AIBC:
        operands = [instruction.a, instruction.ibc]
    elif op in _IBC:
        operands = [instruction.ibc]
    else:
        return text

    pad = " " * max(abs(_MNEMONIC_COLUMN - len(text)), 1)
    return text + pad + ", ".join(f"{n:3d}" for n in operands)