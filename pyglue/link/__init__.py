"""Link protocol encoding and cross-file registration linking."""

from .linker import ClassInstance, Linker
from .protocol import DependsOn, Instantiate, LinkRecord, Register, decode, dump, encode, load

__all__ = [
    "ClassInstance",
    "DependsOn",
    "Instantiate",
    "LinkRecord",
    "Linker",
    "Register",
    "decode",
    "dump",
    "encode",
    "load",
]
