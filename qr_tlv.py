# Purpose: EMV Tag-Length-Value codec used by the VietQR parser and generator.
# Tags are 2 characters, lengths are 2 decimal digits, values are plain text.

MAX_VALUE_LENGTH = 99


class ValueTooLong(ValueError):
    """Raised when a value cannot be described by a 2-digit length field."""

    def __init__(self, tag, length):
        super().__init__(f"Value for tag {tag} is {length} characters long (max {MAX_VALUE_LENGTH}).")
        self.tag = tag
        self.length = length


def iter_tlv(data):
    """Yields (tag, length, value) triples in the order they appear.

    Scanning stops silently at the first malformed field: a length that is not
    two ASCII digits, or a value running past the end of the data.
    """
    i = 0
    while i + 4 <= len(data):
        tag = data[i:i+2]
        length_str = data[i+2:i+4]
        # two ASCII digits, nothing else
        if not (length_str.isascii() and length_str.isdigit()):
            break
        length = int(length_str)
        if i + 4 + length > len(data):
            break
        yield tag, length, data[i+4:i+4+length]
        i += 4 + length


def parse_tlv(data):
    """Parses EMV TLV data into a {tag: value} dict.

    A repeated tag keeps the value of its last occurrence. Malformed
    trailing data is dropped and the fields read before it are returned.
    """
    results = {}
    for tag, _, value in iter_tlv(data):
        results[tag] = value
    return results


def build_tlv(tag, value):
    """Formats a single field as tag + 2-digit length + value."""
    if len(tag) != 2:
        raise ValueError(f"TLV tag must be 2 characters, got {tag!r}")
    if len(value) > MAX_VALUE_LENGTH:
        raise ValueTooLong(tag, len(value))
    return f"{tag}{len(value):02}{value}"
