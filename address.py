# address.py
from errors import ConfigurationError

DEFAULT_ADDRESS_BITS = 64


def check_widths(offset_bits, index_bits, address_bits=DEFAULT_ADDRESS_BITS):
    if offset_bits < 0 or index_bits < 0:
        raise ConfigurationError(
            f"bit widths must be non-negative (offset_bits={offset_bits}, index_bits={index_bits})"
        )
    if offset_bits + index_bits > address_bits:
        raise ConfigurationError(
            f"offset_bits + index_bits = {offset_bits + index_bits} exceeds the "
            f"{address_bits}-bit address width"
        )


def decompose(address, offset_bits, index_bits, address_bits=DEFAULT_ADDRESS_BITS):
    """
    Split `address` into (block_offset, set_index, tag).

    block_offset is the low `offset_bits` bits, set_index the next
    `index_bits` bits and the tag is whatever is left above them.
    """
    check_widths(offset_bits, index_bits, address_bits)
    if address < 0 or address >> address_bits:
        raise ConfigurationError(f"address {address:#x} does not fit in {address_bits} bits")

    block_offset = address & ((1 << offset_bits) - 1)
    set_index = (address >> offset_bits) & ((1 << index_bits) - 1)
    tag = address >> (offset_bits + index_bits)
    return block_offset, set_index, tag
