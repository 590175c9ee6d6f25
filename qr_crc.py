# Purpose: CRC-16/CCITT-FALSE checksum that closes every EMV QR payload (tag 63).

CRC_TAG_PREFIX = "6304"


def calculate_crc(data_string):
    """Calculates the CRC-16/CCITT-FALSE (0xFFFF, 0x1021) for EMV QR."""
    crc = 0xFFFF
    polynomial = 0x1021
    data_bytes = data_string.encode('utf-8')

    for byte in data_bytes:
        crc ^= (byte << 8)
        for _ in range(8):
            if (crc & 0x8000):
                crc = (crc << 1) ^ polynomial
            else:
                crc = crc << 1
            crc &= 0xFFFF
    return f"{crc:04X}"


def append_crc(partial):
    """Closes a payload with the CRC field. The checksum covers the '6304' prefix too."""
    raw_str = partial + CRC_TAG_PREFIX
    return raw_str + calculate_crc(raw_str)


def verify_crc(qr_content):
    """True when the payload ends in '6304XXXX' and XXXX matches the recomputed CRC."""
    if len(qr_content) < 8 or qr_content[-8:-4] != CRC_TAG_PREFIX:
        return False
    return calculate_crc(qr_content[:-4]) == qr_content[-4:].upper()
