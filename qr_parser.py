# Purpose: Parse VietQR (NAPAS) EMV QR content into a VietQR record, and dump
# the raw field layout with per-field format checks.

import argparse
import os
import re
import sys
from enum import Enum

from qr_crc import verify_crc
from qr_tlv import iter_tlv, parse_tlv
from vietqr_model import (
    ADDITIONAL_DATA_TAGS,
    NAPAS_GUID,
    PAYLOAD_FORMAT_INDICATOR,
    SERVICE_ACCOUNT_TRANSFER,
    AdditionalData,
    VietQR,
)

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"


class DecodeErrorKind(str, Enum):
    INVALID_FORMAT = "InvalidFormat"
    MISSING_MERCHANT_INFO = "MissingMerchantInfo"
    INVALID_GUID = "InvalidGUID"
    MISSING_ACCOUNT_INFO = "MissingAccountInfo"
    MISSING_BANK_OR_ACCOUNT = "MissingBankOrAccount"
    INVALID_CRC = "InvalidCRC"


_ERROR_MESSAGES = {
    DecodeErrorKind.INVALID_FORMAT: "Payload Format Indicator (tag 00) missing or not '01'.",
    DecodeErrorKind.MISSING_MERCHANT_INFO: "Tag 38 (Merchant Account Information) not found.",
    DecodeErrorKind.INVALID_GUID: f"Tag 38 GUID is not the NAPAS AID {NAPAS_GUID}.",
    DecodeErrorKind.MISSING_ACCOUNT_INFO: "Subtag 38.01 (beneficiary organization) not found.",
    DecodeErrorKind.MISSING_BANK_OR_ACCOUNT: "Bank BIN (38.01.00) or account number (38.01.01) not found.",
    DecodeErrorKind.INVALID_CRC: "CRC (tag 63) missing or does not match the payload.",
}


class VietQRDecodeError(ValueError):
    """Raised by decode_vietqr. `kind` tells which structural check failed."""

    def __init__(self, kind):
        super().__init__(_ERROR_MESSAGES[kind])
        self.kind = kind


# EMV Tag Definitions and Basic Validation Rules
TAG_INFO = {
    "00": {"desc": "Payload Format Indicator", "min_len": 2, "max_len": 2, "pattern": r"^01$"},
    "01": {"desc": "Point of Initiation Method", "min_len": 2, "max_len": 2, "pattern": r"^(11|12)$"},
    "38": {"desc": "Merchant Account Information (VietQR)", "min_len": 1, "max_len": 99},
    "52": {"desc": "Merchant Category Code (MCC)", "min_len": 4, "max_len": 4, "pattern": r"^\d{4}$"},
    "53": {"desc": "Transaction Currency", "min_len": 3, "max_len": 3, "pattern": r"^704$"},
    "54": {"desc": "Transaction Amount", "min_len": 1, "max_len": 13, "pattern": r"^\d+(\.\d{1,2})?$"},
    "58": {"desc": "Country Code", "min_len": 2, "max_len": 2, "pattern": r"^VN$"},
    "59": {"desc": "Merchant Name", "min_len": 1, "max_len": 25},
    "60": {"desc": "Merchant City", "min_len": 1, "max_len": 15},
    "62": {"desc": "Additional Data Field Template", "min_len": 1, "max_len": 99},
    "63": {"desc": "CRC", "min_len": 4, "max_len": 4, "pattern": r"^[0-9A-F]{4}$"}
}

SUBTAG_INFO = {
    "38": {
        "00": {"desc": "Global Unique Identifier", "pattern": r"^A000000727$"},
        "01": {"desc": "Beneficiary Organization (BNB)", "min_len": 1, "max_len": 99},
        "02": {"desc": "Service Code", "pattern": r"^(QRIBFTTA|QRIBFTTC)$"}
    },
    "38.01": {
        "00": {"desc": "Acquirer ID (Bank BIN)", "pattern": r"^\d{6}$"},
        "01": {"desc": "Consumer ID (Account/Card Number)", "min_len": 1, "max_len": 19}
    },
    "62": {
        "01": {"desc": "Bill Number", "max_len": 25},
        "02": {"desc": "Mobile Number", "max_len": 25},
        "03": {"desc": "Store Label", "max_len": 25},
        "04": {"desc": "Loyalty Number", "max_len": 25},
        "05": {"desc": "Reference Label", "max_len": 25},
        "06": {"desc": "Customer Label", "max_len": 25},
        "07": {"desc": "Terminal Label", "max_len": 25},
        "08": {"desc": "Purpose of Transaction", "max_len": 25}
    }
}

# Composite fields whose value is itself TLV, keyed by path.
NESTED_TAGS = ("38", "38.01", "62")


def validate_field(tag, value, parent_tag=None):
    """Validates the value against EMV/VietQR constraints."""
    if parent_tag:
        info = SUBTAG_INFO.get(parent_tag, {}).get(tag)
    else:
        info = TAG_INFO.get(tag)

    if not info:
        return True, "N/A"

    # Check length constraints
    if "min_len" in info and len(value) < info["min_len"]:
        return False, f"ERR: Too short (min {info['min_len']})"
    if "max_len" in info and len(value) > info["max_len"]:
        return False, f"ERR: Too long (max {info['max_len']})"

    # Check pattern
    if "pattern" in info and not re.match(info["pattern"], value):
        return False, "ERR: Format mismatch"

    return True, "OK"


def inspect_fields(data, parent_tag=None):
    """Parses EMV TLV data into a list of field dictionaries, descending into nested templates."""
    results = []
    for tag, length, value in iter_tlv(data):
        path = f"{parent_tag}.{tag}" if parent_tag else tag
        if parent_tag:
            desc = SUBTAG_INFO.get(parent_tag, {}).get(tag, {}).get("desc", "Unknown Subtag")
        else:
            desc = TAG_INFO.get(tag, {}).get("desc", "Unknown Tag")

        is_valid, msg = validate_field(tag, value, parent_tag)

        results.append({
            "tag": path,
            "length": length,
            "value": value,
            "description": desc,
            "is_valid": is_valid,
            "validation_msg": msg,
            "subfields": inspect_fields(value, parent_tag=path) if path in NESTED_TAGS else []
        })
    return results


def _merchant_fields(fields):
    merchant_info = fields.get("38")
    if merchant_info is None:
        return None
    return parse_tlv(merchant_info)


def can_decode(qr_content):
    """Cheap check used by the dispatcher: format indicator 01 and a NAPAS tag 38."""
    fields = parse_tlv(qr_content)
    if fields.get("00") != PAYLOAD_FORMAT_INDICATOR:
        return False
    merchant_fields = _merchant_fields(fields)
    return merchant_fields is not None and merchant_fields.get("00") == NAPAS_GUID


def decode_vietqr(qr_content, strict=False):
    """
    Decodes VietQR content into a VietQR record.

    Raises VietQRDecodeError on structural problems. The CRC in tag 63 is
    only checked when `strict` is set.
    """
    fields = parse_tlv(qr_content)
    if fields.get("00") != PAYLOAD_FORMAT_INDICATOR:
        raise VietQRDecodeError(DecodeErrorKind.INVALID_FORMAT)

    merchant_fields = _merchant_fields(fields)
    if merchant_fields is None:
        raise VietQRDecodeError(DecodeErrorKind.MISSING_MERCHANT_INFO)
    if merchant_fields.get("00") != NAPAS_GUID:
        raise VietQRDecodeError(DecodeErrorKind.INVALID_GUID)

    if "01" not in merchant_fields:
        raise VietQRDecodeError(DecodeErrorKind.MISSING_ACCOUNT_INFO)
    bnb_fields = parse_tlv(merchant_fields["01"])
    if "00" not in bnb_fields or "01" not in bnb_fields:
        raise VietQRDecodeError(DecodeErrorKind.MISSING_BANK_OR_ACCOUNT)

    additional_data = None
    if "62" in fields:
        subfields = parse_tlv(fields["62"])
        additional_data = AdditionalData(**{name: subfields.get(subtag)
                                            for subtag, name in ADDITIONAL_DATA_TAGS})

    if strict and not verify_crc(qr_content):
        raise VietQRDecodeError(DecodeErrorKind.INVALID_CRC)

    return VietQR(
        bank_bin=bnb_fields["00"],
        account_number=bnb_fields["01"],
        account_name=fields.get("59"),
        amount=fields.get("54"),
        purpose=additional_data.purpose if additional_data else None,
        service_code=merchant_fields.get("02", SERVICE_ACCOUNT_TRANSFER),
        additional_data=additional_data,
    )


def parse_vietqr(qr_content, strict=False):
    """Same as decode_vietqr, but returns None instead of raising."""
    try:
        return decode_vietqr(qr_content, strict=strict)
    except VietQRDecodeError:
        return None


def print_fields(fields):
    for field in fields:
        status = "[OK]" if field['is_valid'] else f"[{field['validation_msg']}]"
        print(f"{field['tag']:8} | {field['length']:02}  | {status:28} | {field['description']:40} | {field['value']}")
        print_fields(field['subfields'])


def main(argv=None):
    parser = argparse.ArgumentParser(description="VietQR Parser")
    parser.add_argument("qr_input", nargs="?", default=QR_TEXT_FILE,
                        help=f"File holding the QR content, or the content itself (default: {QR_TEXT_FILE})")
    parser.add_argument("--strict", action="store_true", help="Reject payloads whose CRC does not match")
    args = parser.parse_args(argv)

    if os.path.exists(args.qr_input):
        try:
            with open(args.qr_input, "r", encoding="utf-8") as f:
                qr_content = f.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            print(f"QR_PARSER: [!] Error reading '{args.qr_input}': {e}")
            return 1
    elif args.qr_input == QR_TEXT_FILE:
        print(f"QR_PARSER: [!] Error: {QR_TEXT_FILE} not found. Run qr_generator.py first.")
        return 1
    else:
        qr_content = args.qr_input.strip()

    print("="*110)
    print("VIETQR PARSER - NAPAS EMV QR VALIDATOR")
    print("="*110)
    print(f"Raw Content: {qr_content}\n")

    # 1. CRC Validation
    if verify_crc(qr_content):
        print(f"QR_PARSER: [OK] CRC-16/CCITT-FALSE Valid: {qr_content[-4:]}")
    else:
        print("QR_PARSER: [!] CRC missing or mismatched.")

    # 2. Field Parsing and Display
    print(f"\n{'TAG':8} | {'LEN':3} | {'VALID':28} | {'DESCRIPTION':40} | {'VALUE'}")
    print("-" * 110)
    print_fields(inspect_fields(qr_content))
    print("="*110)

    # 3. Record
    try:
        record = decode_vietqr(qr_content, strict=args.strict)
    except VietQRDecodeError as e:
        print(f"QR_PARSER: [!] Error: Not a valid VietQR ({e.kind.value}): {e}")
        return 1

    print("QR_PARSER: [OK] VietQR decoded")
    print(f"Type: {'Static' if record.is_static else 'Dynamic'} | Service: {record.service_code}")
    print(record.display_info)
    return 0


if __name__ == "__main__":
    sys.exit(main())
