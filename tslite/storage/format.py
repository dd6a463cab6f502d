"""TSLite file format constants and helpers.

A database file is a fixed header followed by fixed-size records:

    +--------------------------------------------+
    | HEADER | RECORD0 | RECORD1 | RECORD2 | ... |
    +--------------------------------------------+

    HEADER (15 bytes)
        year u16 | month u8 | day u8 | hour u8 | minute u8 | second u8 | records_number u64

    RECORD (5 bytes)
        time_offset u32 | value u8

All numbers are little-endian. `time_offset` counts seconds since the
header's origin date.
"""

# struct layouts
TIMESTAMP_FORMAT = "<HBBBBB"
RECORD_FORMAT = "<IB"
RECORDS_NUMBER_FORMAT = "<Q"

# Sizes in bytes
TIMESTAMP_SIZE = 7
RECORDS_NUMBER_SIZE = 8
HEADER_SIZE = TIMESTAMP_SIZE + RECORDS_NUMBER_SIZE
RECORD_SIZE = 5

# Position of records_number inside the header
RECORDS_NUMBER_POSITION = TIMESTAMP_SIZE

# Position of the value byte inside a record
VALUE_POSITION = 4

# Integer limits of the encoded fields
MAX_U8 = 0xFF
MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF
MAX_U64 = 0xFFFFFFFFFFFFFFFF

# File extension
FILE_EXTENSION = ".tsl"


def record_position(index: int) -> int:
    """Byte offset of record `index` within the file."""
    return HEADER_SIZE + RECORD_SIZE * index


def slots_in(file_size: int) -> int:
    """Number of complete record slots a file of `file_size` bytes holds."""
    if file_size <= HEADER_SIZE:
        return 0
    return (file_size - HEADER_SIZE) // RECORD_SIZE
