import pytest
from PIL import Image

from qr_factory import (
    PAYLOAD_FORMATS,
    VIETQR_FORMAT,
    PayloadFormat,
    detect_format,
    generate_bank_qr_image,
    generate_bank_qr_string,
    parse_bank_qr,
    parse_bank_qr_image,
)
from qr_generator import generate_vietqr
from qr_parser import decode_vietqr
from qr_tlv import build_tlv
from vietqr_model import NAPAS_GUID, VietQR

GOLDEN = (
    "00020101021238570010A00000072701270006970436011300110018008790208QRIBFTTA"
    "530370454061000005802VN62130809nhan tien6304D1EF"
)

FAKE_FORMAT = PayloadFormat(
    name="FakeQR",
    can_decode=lambda s: s.startswith("FAKE:"),
    decode=lambda s: {"fake": s[5:]},
    encode=lambda record: "FAKE:" + record.value,
)


class FakeRecord:
    qr_code_type = "FakeQR"

    def __init__(self, value):
        self.value = value


def test_default_formats() -> None:
    assert PAYLOAD_FORMATS == (VIETQR_FORMAT,)
    assert VIETQR_FORMAT.name == "VietQR"


def test_detect_format() -> None:
    assert detect_format(GOLDEN) is VIETQR_FORMAT
    assert detect_format("https://example.com") is None
    assert detect_format("") is None


def test_parse_bank_qr() -> None:
    assert parse_bank_qr(GOLDEN) == decode_vietqr(GOLDEN)
    assert parse_bank_qr("00020101021253037045802VN6304XXXX") is None


def test_parse_bank_qr_detected_but_undecodable() -> None:
    # NAPAS GUID present, so VietQR claims it, but the BNB block is missing
    qr_content = "000201" + build_tlv("38", build_tlv("00", NAPAS_GUID))
    assert detect_format(qr_content) is VIETQR_FORMAT
    assert parse_bank_qr(qr_content) is None


def test_dispatch_over_custom_formats() -> None:
    formats = (FAKE_FORMAT, VIETQR_FORMAT)
    assert detect_format("FAKE:abc", formats) is FAKE_FORMAT
    assert parse_bank_qr("FAKE:abc", formats) == {"fake": "abc"}
    assert parse_bank_qr(GOLDEN, formats).bank_bin == "970436"
    assert parse_bank_qr("FAKE:abc") is None


def test_generate_bank_qr_string() -> None:
    qr = VietQR(bank_bin="970436", account_number="0011001800879", amount="100000", purpose="nhan tien")
    assert generate_bank_qr_string(qr) == generate_vietqr(qr) == GOLDEN
    assert generate_bank_qr_string(FakeRecord("x"), (VIETQR_FORMAT, FAKE_FORMAT)) == "FAKE:x"


def test_generate_unsupported_type() -> None:
    with pytest.raises(ValueError):
        generate_bank_qr_string(FakeRecord("x"))
    with pytest.raises(ValueError):
        generate_bank_qr_string("not a record")


def test_image_round_trip(tmp_path) -> None:
    qr = decode_vietqr(GOLDEN)
    img = generate_bank_qr_image(qr, size=490, error_correction="M")
    assert img.size == (490, 490)
    path = tmp_path / "qr.png"
    img.save(path)
    assert parse_bank_qr_image(path) == qr


def test_image_without_qr(tmp_path) -> None:
    path = tmp_path / "blank.png"
    Image.new("RGB", (120, 120), "white").save(path)
    assert parse_bank_qr_image(path) is None
