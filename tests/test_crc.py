from qr_crc import CRC_TAG_PREFIX, append_crc, calculate_crc, verify_crc

GOLDEN = (
    "00020101021238570010A00000072701270006970436011300110018008790208QRIBFTTA"
    "530370454061000005802VN62130809nhan tien6304D1EF"
)


def test_crc_check_value() -> None:
    # standard CRC-16/CCITT-FALSE check string
    assert calculate_crc("123456789") == "29B1"


def test_crc_of_empty_input_is_initial_register() -> None:
    assert calculate_crc("") == "FFFF"


def test_crc_is_deterministic_and_uppercase() -> None:
    a = calculate_crc("000201010211")
    assert a == calculate_crc("000201010211")
    assert len(a) == 4
    assert a == a.upper()


def test_crc_covers_the_6304_prefix() -> None:
    assert calculate_crc(GOLDEN[:-4]) == "D1EF"
    assert calculate_crc(GOLDEN[:-8]) != "D1EF"


def test_append_crc_closes_payload() -> None:
    assert append_crc(GOLDEN[:-8]) == GOLDEN
    assert GOLDEN[-8:-4] == CRC_TAG_PREFIX


def test_verify_crc() -> None:
    assert verify_crc(GOLDEN)
    assert verify_crc(GOLDEN[:-4] + "d1ef")


def test_verify_crc_rejects_tampering() -> None:
    assert not verify_crc(GOLDEN.replace("100000", "900000"))
    assert not verify_crc(GOLDEN[:-4] + "0000")


def test_verify_crc_rejects_missing_crc_field() -> None:
    assert not verify_crc("")
    assert not verify_crc("6304")
    assert not verify_crc(GOLDEN[:-8])


def test_crc_runs_over_utf8_bytes() -> None:
    # 9 characters, 13 bytes once encoded
    assert len("nhận tiền") == 9
    assert len("nhận tiền".encode("utf-8")) == 13
    assert calculate_crc("nhận tiền") == "81C1"
    assert calculate_crc("nhan tien") == "28FF"
