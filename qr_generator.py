# Purpose: Build VietQR (NAPAS) EMV QR content from a VietQR record or a JSON
# template, and render it as a QR code image.

import argparse
import json
import os
import sys

import qrcode
import referencing
import yaml
from jsonschema import Draft7Validator
from PIL import Image
from referencing.jsonschema import DRAFT7

from qr_crc import append_crc
from qr_tlv import ValueTooLong, build_tlv
from vietqr_model import (
    ADDITIONAL_DATA_TAGS,
    COUNTRY_VN,
    CURRENCY_VND,
    NAPAS_GUID,
    PAYLOAD_FORMAT_INDICATOR,
    POI_DYNAMIC,
    POI_STATIC,
    VietQR,
)

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"
QR_IMAGE_FILE = "qrcode.png"
IMAGE_SIZE = 300
SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema", "vietqr.yaml")
SCHEMA_URI = "http://vietqr/schema.yaml"

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,  # 7%
    "M": qrcode.constants.ERROR_CORRECT_M,  # 15%
    "Q": qrcode.constants.ERROR_CORRECT_Q,  # 25%
    "H": qrcode.constants.ERROR_CORRECT_H,  # 30%
}


# --- DATA PROCESSING ---
def validate_template(data, schema_name="VietQRTemplate", schema_path=SCHEMA_PATH):
    """Validates a JSON template against the YAML schema. Returns a list of error messages."""
    with open(schema_path, 'r', encoding="utf-8") as f:
        schema = yaml.safe_load(f)

    target_schema = {"$ref": f"{SCHEMA_URI}#/definitions/{schema_name}"}
    resource = referencing.Resource.from_contents(schema, default_specification=DRAFT7)
    registry = referencing.Registry().with_resource(uri=SCHEMA_URI, resource=resource)

    errors = Draft7Validator(target_schema, registry=registry).iter_errors(data)
    return [
        f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}"
        for e in sorted(errors, key=lambda e: list(map(str, e.absolute_path)))
    ]


def _additional_data_tlv(additional):
    return "".join(
        build_tlv(subtag, getattr(additional, name))
        for subtag, name in ADDITIONAL_DATA_TAGS
        if getattr(additional, name)
    )


def generate_vietqr(vietqr):
    """
    Constructs the EMV QCO content string for a VietQR record.

    Field order is fixed. Raises ValueTooLong if any value (nested
    templates included) exceeds 99 characters.
    """
    # Tag 38: GUID, BNB block (bank BIN + account number), service code.
    bnb_info = build_tlv("00", vietqr.bank_bin) + build_tlv("01", vietqr.account_number)
    merchant_info = (
        build_tlv("00", NAPAS_GUID)
        + build_tlv("01", bnb_info)
        + build_tlv("02", vietqr.service_code)
    )

    data = [
        build_tlv("00", PAYLOAD_FORMAT_INDICATOR),
        build_tlv("01", POI_STATIC if vietqr.is_static else POI_DYNAMIC),
        build_tlv("38", merchant_info),
        build_tlv("53", CURRENCY_VND),
    ]
    if vietqr.amount:
        data.append(build_tlv("54", vietqr.amount))
    data.append(build_tlv("58", COUNTRY_VN))
    if vietqr.account_name:
        data.append(build_tlv("59", vietqr.account_name))

    # additional_data, when set, wins over the top-level purpose even if it encodes to nothing.
    if vietqr.additional_data is not None:
        additional_str = _additional_data_tlv(vietqr.additional_data)
        if additional_str:
            data.append(build_tlv("62", additional_str))
    elif vietqr.purpose:
        data.append(build_tlv("62", build_tlv("08", vietqr.purpose)))

    return append_crc("".join(data))


def render_qr_image(qr_content, size=IMAGE_SIZE, error_correction="H"):
    """Renders any string as a square QR code image of `size` pixels."""
    if error_correction not in ERROR_CORRECTION_LEVELS:
        raise ValueError(f"Unknown error correction level: {error_correction!r}")
    qr = qrcode.QRCode(error_correction=ERROR_CORRECTION_LEVELS[error_correction], box_size=10, border=4)
    qr.add_data(qr_content)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    return img.convert("RGB").resize((size, size), Image.Resampling.NEAREST)


def main(argv=None):
    parser = argparse.ArgumentParser(description="VietQR Code Generator")
    parser.add_argument("template", help="Path to the VietQR JSON template")
    parser.add_argument("--text-out", default=QR_TEXT_FILE, help=f"Where to write the QR content (default: {QR_TEXT_FILE})")
    parser.add_argument("--image-out", default=QR_IMAGE_FILE, help=f"Where to write the QR image (default: {QR_IMAGE_FILE})")
    parser.add_argument("--size", type=int, default=IMAGE_SIZE, help="Image width/height in pixels")
    parser.add_argument("--ecl", choices=sorted(ERROR_CORRECTION_LEVELS), default="H", help="Error correction level")
    parser.add_argument("--no-image", action="store_true", help="Only write the QR content")
    args = parser.parse_args(argv)

    if not os.path.exists(args.template):
        print(f"QR_GENERATOR: [!] Error: Template file '{args.template}' not found.")
        return 1

    try:
        with open(args.template, "r", encoding="utf-8") as f:
            template_data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"QR_GENERATOR: [!] Error decoding JSON from '{args.template}': {e}")
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"QR_GENERATOR: [!] Error reading '{args.template}': {e}")
        return 1

    print(f"QR_GENERATOR: [*] Processing template: {args.template}")
    errors = validate_template(template_data)
    if errors:
        for error in errors:
            print(f"QR_GENERATOR: [!] Template Validation Error: {error}")
        return 1
    print("QR_GENERATOR: [OK] Template validated against VietQRTemplate")

    try:
        emv_qr_string = generate_vietqr(VietQR.from_dict(template_data))
    except ValueTooLong as e:
        print(f"QR_GENERATOR: [!] Error: {e}")
        return 1

    with open(args.text_out, "w", encoding="utf-8") as f:
        f.write(emv_qr_string)
    print(f"QR_GENERATOR: [*] Raw QR string saved to '{args.text_out}'.")

    if not args.no_image:
        print("QR_GENERATOR: [*] Generating QR Code Image...")
        render_qr_image(emv_qr_string, size=args.size, error_correction=args.ecl).save(args.image_out)
        print(f"QR_GENERATOR: [*] QR Code image saved as '{args.image_out}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
