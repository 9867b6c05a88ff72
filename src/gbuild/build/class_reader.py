"""Minimal class file reader.

Only the header of a class file is read: the constant pool, the access flags
and this_class. Fields, methods, attributes and code are never touched, which
keeps reading the name of every freshly compiled class cheap.
"""

import struct
from typing import Dict, Tuple

CLASS_MAGIC = 0xCAFEBABE

TAG_UTF8 = 1
TAG_CLASS = 7
TAG_LONG = 5
TAG_DOUBLE = 6

# Payload size in bytes of every fixed-size constant pool entry
_FIXED_SIZES = {
    3: 4,   # Integer
    4: 4,   # Float
    5: 8,   # Long
    6: 8,   # Double
    7: 2,   # Class
    8: 2,   # String
    9: 4,   # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}


class ClassFormatError(Exception):
    """Raised when bytes are not a well-formed class file header."""
    pass


def read_class_name(data: bytes) -> str:
    """Read the fully qualified binary name of a class.

    Args:
        data: Raw class file bytes

    Returns:
        Dotted class name, e.g. "pkg.Outer$Inner"

    Raises:
        ClassFormatError: If the header is truncated or malformed
    """
    try:
        magic, _minor, _major, pool_count = struct.unpack_from(">IHHH", data, 0)
    except struct.error as e:
        raise ClassFormatError(f"Truncated class file header: {e}") from e
    if magic != CLASS_MAGIC:
        raise ClassFormatError(f"Bad class file magic 0x{magic:08X}")

    utf8_entries, class_entries, offset = _read_constant_pool(data, 10, pool_count)

    try:
        _access_flags, this_class = struct.unpack_from(">HH", data, offset)
    except struct.error as e:
        raise ClassFormatError(f"Truncated class file after constant pool: {e}") from e

    name_index = class_entries.get(this_class)
    if name_index is None:
        raise ClassFormatError(f"this_class #{this_class} is not a Class constant")
    name = utf8_entries.get(name_index)
    if name is None:
        raise ClassFormatError(f"Class name #{name_index} is not a Utf8 constant")
    return name.replace("/", ".")


def _read_constant_pool(data: bytes, offset: int, pool_count: int) -> Tuple[Dict[int, str], Dict[int, int], int]:
    utf8_entries: Dict[int, str] = {}
    class_entries: Dict[int, int] = {}
    index = 1
    try:
        while index < pool_count:
            tag = data[offset]
            offset += 1
            if tag == TAG_UTF8:
                (length,) = struct.unpack_from(">H", data, offset)
                offset += 2
                raw = data[offset:offset + length]
                if len(raw) != length:
                    raise ClassFormatError(f"Truncated Utf8 constant #{index}")
                utf8_entries[index] = _decode_modified_utf8(raw)
                offset += length
            elif tag in _FIXED_SIZES:
                if tag == TAG_CLASS:
                    (class_entries[index],) = struct.unpack_from(">H", data, offset)
                offset += _FIXED_SIZES[tag]
            else:
                raise ClassFormatError(f"Unknown constant pool tag {tag} at #{index}")
            # Long and Double take two constant pool slots
            index += 2 if tag in (TAG_LONG, TAG_DOUBLE) else 1
    except (IndexError, struct.error) as e:
        raise ClassFormatError(f"Truncated constant pool at #{index}") from e
    return utf8_entries, class_entries, offset


def _decode_modified_utf8(raw: bytes) -> str:
    # NUL is encoded on two bytes; supplementary characters as surrogate pairs
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", errors="surrogatepass")
        return text.encode("utf-16", errors="surrogatepass").decode("utf-16")
    except UnicodeError as e:
        raise ClassFormatError(f"Malformed Utf8 constant: {e}") from e
