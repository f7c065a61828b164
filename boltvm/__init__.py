"""Object model, garbage collector and disassembler for the Bolt scripting language runtime."""

__version__ = "0.1.0"
__all__ = ["callables", "containers", "disasm", "formatting", "gc", "opcodes", "strings"]