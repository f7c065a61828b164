# boltvm

The runtime object model of the Bolt scripting language: strings, tables,
arrays, modules and functions. It also has a mark-and-sweep garbage
collector, and a disassembler that lists instructions as readable text.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `boltvm.strings`
  - `BoltString` is an immutable string with a cached 64-bit `hash`. `concat`
    and `append` return new strings.
  - `hash_str` computes that hash over the UTF-8 bytes of a text.
  - `unescape` handles `\n`, `\t`, `\r`, `\"` and `\\`. Any other escape
    raises `BoltRuntimeError`.
  - `StringTable` interns strings up to `max_len` characters (64 by default).
    Its methods are `intern`, `remove` and `sweep`.
- `boltvm.containers`
  - `Table` is an ordered list of key/value pairs with a `prototype` fallback.
    `set` returns whether the key already existed. `get` returns `None` when
    the key is absent. `index_of` searches this table only. `delete` moves the
    last pair into the freed slot.
  - `Array` has `push`, `pop` (`None` when empty), `reserve`, and `get` and
    `set`. Out-of-bounds indices in `get` and `set` raise `BoltRuntimeError`.
  - `Annotation` holds a name and its arguments (`push`). `chain` links a new
    annotation after it.
  - `values_equal` compares keys the way tables do.
- `boltvm.callables`
  - `BoltModule` provides `export`, `export_native`, `get_export`,
    `get_export_type`, `set_storage` and `get_storage`.
  - The callable and value kinds are `ModuleImport`, `Fn`, `Closure`,
    `NativeFn`, and `Userdata` with `UserdataField` getter and setter pairs.
  - `get_return_type`, `get_owning_module` and `get_top_at` inspect callables.
  - `get_field` and `set_field` index any indexable value. Strings and arrays
    fall back to the prototype tables passed as `prototypes`. Everything else
    that cannot be indexed raises `BoltRuntimeError`.
- `boltvm.formatting`
  - `to_string` renders a value as a `BoltString`. It handles numbers (whole
    numbers without a fraction, others with nine decimals), `true`, `false`,
    `null`, strings, named types, functions, arrays, tables, imports and
    modules.
  - A table that carries an `@format` function is rendered through the
    optional `call(format_fn, table)` argument.
- `boltvm.gc`
  - `GarbageCollector` counts allocated bytes with `alloc`, `realloc` and
    `free`. Freeing or reallocating more bytes than it tracks raises
    `BoltRuntimeError`.
  - `track` registers managed objects. If a `root_provider` is given, `track`
    runs a collection once `next_cycle` is reached.
  - `collect(roots, max_collect)` marks everything reachable from `roots` and
    frees the rest. It purges dead strings from the interning table and runs
    userdata finalizers.
  - After a collection, the threshold is set to `growth_pct` percent of the
    bytes in use, and never below `min_size`.
  - `pause` and `unpause` nest. While paused, `collect` only recomputes the
    threshold, using `pause_growth_pct`. `paused()` is a context manager.
  - `references` yields what an object points to.
- `boltvm.opcodes`
  - `OpCode` enumerates the operations.
  - `Instruction` holds an opcode, three byte operands `a`, `b`, `c` and an
    `accelerated` flag. `ibc` is the signed 16-bit operand formed from `b`
    and `c`. `Instruction.abc` and `Instruction.aibc` build instructions.
    `with_ibc` patches the signed operand and `accelerate` sets the flag.
  - `format_instruction` renders one instruction as its mnemonic and operands.
- `boltvm.disasm`
  - `dump_fn` lists the header, upvalues, constants and code of a module,
    function or closure.

## Example

```python
from boltvm.containers import Table
from boltvm.strings import StringTable

strings = StringTable()
name = strings.intern("name")

table = Table()
table.set(name, 42.0)
assert table.get(strings.intern("name")) == 42.0
assert table.index_of(name) == 0
```

A pause of the collector lasts for a `with` block:

```python
from boltvm.gc import GarbageCollector

gc = GarbageCollector()
with gc.paused():
    collected = gc.collect(roots=[], max_collect=0)
assert collected == 0
```

Listing a function:

```python
from boltvm.callables import Fn
from boltvm.disasm import dump_fn
from boltvm.opcodes import Instruction, OpCode

fn = Fn(module=None, signature=None, instructions=[
    Instruction.aibc(OpCode.LOAD_SMALL, 0, 5),
    Instruction.abc(OpCode.RETURN, 0),
])
print(dump_fn(fn))
```

## What it does not do

This package has no tokenizer, parser, compiler or interpreter loop. It does
not read or run Bolt source code and provides no command-line program.
Instructions are built and inspected as Python objects. They are never
executed.