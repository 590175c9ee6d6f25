# Purpose: Extract QR code content from images. Pixel work is left to OpenCV;
# the payload codecs only ever see the decoded strings.

import os

import cv2
import numpy as np


def load_image(image):
    """Accepts a file path, encoded image bytes, or an already decoded array."""
    if isinstance(image, np.ndarray):
        return image
    if isinstance(image, (bytes, bytearray)):
        file_bytes = np.frombuffer(bytes(image), dtype=np.uint8)
        return cv2.imdecode(file_bytes, cv2.IMREAD_COLOR)
    if isinstance(image, (str, os.PathLike)):
        img = cv2.imread(os.fspath(image))
        if img is None:
            raise FileNotFoundError(f"Cannot read image: {image}")
        return img
    raise TypeError(f"Unsupported image type: {type(image).__name__}")


def detect_qr_codes(image):
    """Returns every QR content string found in the image (possibly empty)."""
    img = load_image(image)
    if img is None:
        return []
    detector = cv2.QRCodeDetector()
    found, decoded_info, _, _ = detector.detectAndDecodeMulti(img)
    if not found:
        return []
    return [text for text in decoded_info if text]


def detect_first_qr_code(image):
    """Returns the content of the first QR code in the image, or None."""
    img = load_image(image)
    if img is None:
        return None
    data, _, _ = cv2.QRCodeDetector().detectAndDecode(img)
    if data:
        return data
    codes = detect_qr_codes(img)
    return codes[0] if codes else None
