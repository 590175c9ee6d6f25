# Purpose: VietQR record following EMV QCO and the NAPAS VietQR profile v1.0 (September 2021).

from dataclasses import dataclass, fields
from typing import ClassVar, Optional

# --- PROTOCOL CONSTANTS ---
NAPAS_GUID = "A000000727"  # NAPAS AID, tag 38.00
PAYLOAD_FORMAT_INDICATOR = "01"
POI_STATIC = "11"
POI_DYNAMIC = "12"
CURRENCY_VND = "704"  # ISO 4217 numeric
COUNTRY_VN = "VN"

SERVICE_ACCOUNT_TRANSFER = "QRIBFTTA"
SERVICE_CARD_TRANSFER = "QRIBFTTC"
SERVICE_CODES = (SERVICE_ACCOUNT_TRANSFER, SERVICE_CARD_TRANSFER)

# Tag 62 sub-tags, in emission order.
ADDITIONAL_DATA_TAGS = (
    ("01", "bill_number"),
    ("02", "mobile_number"),
    ("03", "store"),
    ("04", "loyalty_number"),
    ("05", "reference"),
    ("06", "customer_label"),
    ("07", "terminal"),
    ("08", "purpose"),
)


def _camel(name):
    head, *rest = name.split("_")
    return head + "".join(w.capitalize() for w in rest)


@dataclass(frozen=True)
class AdditionalData:
    """Tag 62 block. Every sub-field is optional."""
    bill_number: Optional[str] = None       # 62.01
    mobile_number: Optional[str] = None     # 62.02
    store: Optional[str] = None             # 62.03
    loyalty_number: Optional[str] = None    # 62.04
    reference: Optional[str] = None         # 62.05
    customer_label: Optional[str] = None    # 62.06
    terminal: Optional[str] = None          # 62.07
    purpose: Optional[str] = None           # 62.08

    def to_dict(self):
        return {_camel(f.name): getattr(self, f.name)
                for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_dict(cls, data):
        return cls(**{f.name: data.get(_camel(f.name)) for f in fields(cls)})


@dataclass(frozen=True)
class VietQR:
    """
    A decoded (or to-be-encoded) VietQR payment payload.

    `amount` absent means a static, reusable QR; present means a dynamic,
    single-use one. Passing `purpose` without `additional_data` fills in
    `additional_data.purpose` so the two stay consistent. When both are
    given, `additional_data` is what gets encoded.
    """
    qr_code_type: ClassVar[str] = "VietQR"

    bank_bin: str                           # 38.01.00, 6-digit acquirer BIN
    account_number: str                     # 38.01.01
    account_name: Optional[str] = None      # 59
    amount: Optional[str] = None            # 54, VND
    purpose: Optional[str] = None           # mirror of 62.08
    service_code: str = SERVICE_ACCOUNT_TRANSFER  # 38.02
    additional_data: Optional[AdditionalData] = None

    def __post_init__(self):
        if self.purpose is not None and self.additional_data is None:
            object.__setattr__(self, "additional_data", AdditionalData(purpose=self.purpose))

    @property
    def is_static(self):
        return not self.amount

    @property
    def display_info(self):
        lines = [
            f"Bank BIN: {self.bank_bin}",
            f"Account: {self.account_number}",
        ]
        if self.account_name is not None:
            lines.append(f"Account Name: {self.account_name}")
        if self.amount is not None:
            lines.append(f"Amount: {format_amount(self.amount)} VND")
        if self.purpose is not None:
            lines.append(f"Purpose: {self.purpose}")
        if self.additional_data is not None and self.additional_data.reference is not None:
            lines.append(f"Reference: {self.additional_data.reference}")
        return "\n".join(lines)

    def to_dict(self):
        """Camel-cased JSON template form, as read by qr_generator.py."""
        data = {
            "bankBin": self.bank_bin,
            "accountNumber": self.account_number,
            "serviceCode": self.service_code,
        }
        for key, value in (("accountName", self.account_name),
                           ("amount", self.amount),
                           ("purpose", self.purpose)):
            if value is not None:
                data[key] = value
        if self.additional_data is not None:
            data["additionalData"] = self.additional_data.to_dict()
        return data

    @classmethod
    def from_dict(cls, data):
        additional = data.get("additionalData")
        return cls(
            bank_bin=data["bankBin"],
            account_number=data["accountNumber"],
            account_name=data.get("accountName"),
            amount=data.get("amount"),
            purpose=data.get("purpose"),
            service_code=data.get("serviceCode", SERVICE_ACCOUNT_TRANSFER),
            additional_data=AdditionalData.from_dict(additional) if additional is not None else None,
        )


def format_amount(amount):
    """Groups thousands with commas: '100000' -> '100,000'. Non-numeric input is returned as is."""
    try:
        return f"{int(amount):,}"
    except ValueError:
        return amount
