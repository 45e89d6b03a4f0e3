import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional, Tuple

from tqdm import tqdm

from core.normalizers import clean_telegram_username, collect_emails, collect_phones, is_blank
from core.status_classifier import classify_label
from importers.base_importer import BaseTransactionImporter
from importers.file_reader import SUPPORTED_EXTENSIONS, read_statement
from importers.header_aliases import HeaderMap
from models.transaction import ParseResult, Transaction


SKIP_MISSING_UID = "missing_uid"
SKIP_NO_CONTACT = "no_contact"
SKIP_PARSE_ERROR = "parse_error"

_DATE_FORMATS = (
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)

_CARD_LAST4_RE = re.compile(r"(\d{4})\s*$")
_CARD_BIN_RE = re.compile(r"^(\d{6})")
_COMMA_GROUPED_RE = re.compile(r"^-?\d{1,3}(,\d{3})+$")


def parse_amount(raw) -> Optional[Decimal]:
    """Parse "1 234,56", "-100.00", "100 BYN" into a Decimal. None if unparseable."""
    if is_blank(raw):
        return None
    text = re.sub(r"[^\d.,\-]", "", str(raw))
    if "," in text and "." in text:
        # Whichever separator comes first is the thousands separator
        if text.index(",") < text.index("."):
            text = text.replace(",", "")
        else:
            text = text.replace(".", "").replace(",", ".")
    elif _COMMA_GROUPED_RE.match(text):
        # "1,500": amounts never carry three decimals
        text = text.replace(",", "")
    text = text.replace(",", ".")
    if not text or text in ("-", "."):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_datetime(raw) -> Optional[datetime]:
    if is_blank(raw):
        return None
    text = " ".join(str(raw).split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_yes_no(raw) -> Optional[bool]:
    if is_blank(raw):
        return None
    value = str(raw).strip().lower()
    if value in ("да", "yes", "true", "1"):
        return True
    if value in ("нет", "no", "false", "0"):
        return False
    return None


def parse_card(card_mask: Optional[str], payment_method: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Card last 4 digits and brand from a masked card number like "4***********1234"."""
    mask = (card_mask or "").strip()
    match = _CARD_LAST4_RE.search(mask)
    last4 = match.group(1) if match else None

    if mask.startswith("4"):
        brand = "visa"
    elif mask.startswith("5"):
        brand = "mastercard"
    else:
        brand = payment_method.strip().lower() if payment_method else None
    return last4, brand


def _optional(value: Optional[str]) -> Optional[str]:
    return None if is_blank(value) else value


class BepaidRowParser:
    """Parses rows of one statement sheet into Transactions."""

    def __init__(self, header_map: HeaderMap, sheet_name: Optional[str] = None, erip_hint: bool = False):
        self.header_map = header_map
        self.sheet_name = sheet_name
        self.erip_hint = erip_hint or header_map.looks_like_erip

    def parse(self, row: Dict[str, str]) -> Tuple[Optional[Transaction], Optional[str]]:
        """Return (transaction, None) or (None, skip_reason)."""
        hm = self.header_map

        def value(field: str) -> Optional[str]:
            return _optional(hm.value(row, field))

        uid = value("uid")
        if not uid:
            return None, SKIP_MISSING_UID

        emails = collect_emails(hm.values(row, "email"))
        phones = collect_phones(hm.values(row, "phone"))
        if not emails and not phones:
            return None, SKIP_NO_CONTACT

        payment_method = value("payment_method")
        transaction_type_raw = value("transaction_type") or ""
        status_raw = value("status") or ""
        message = value("message")

        transaction_type, status = classify_label(
            transaction_type_raw,
            status_raw,
            message,
            payment_method=payment_method,
            erip=self.erip_hint,
        )

        # Gross amount first: voids often zero out the transferred amount
        transferred_amount = parse_amount(value("transferred_amount"))
        gross_amount = parse_amount(value("amount"))
        amount = gross_amount if gross_amount is not None else transferred_amount
        amount = amount if amount is not None else Decimal("0")

        card_mask = value("card_mask")
        card_last4, card_brand = parse_card(card_mask, payment_method)
        card_bin = value("card_bin")
        if not card_bin and card_mask:
            bin_match = _CARD_BIN_RE.match(card_mask.strip())
            card_bin = bin_match.group(1) if bin_match else None

        created_at = parse_datetime(value("created_at"))
        paid_at = parse_datetime(value("paid_at")) or created_at

        return Transaction(
            uid=uid,
            order_id=value("order_id"),
            tracking_id=value("tracking_id"),
            status_raw=status_raw,
            status=status,
            transaction_type=transaction_type,
            transaction_type_raw=transaction_type_raw,
            message=message,
            reason=value("reason"),
            amount=abs(amount),
            source_amount_negative=amount < 0,
            currency=(value("currency") or "BYN").upper(),
            fee_percent=parse_amount(value("fee_percent")),
            fee_amount=parse_amount(value("fee_amount")),
            total_fee=parse_amount(value("total_fee")),
            transferred_amount=transferred_amount,
            description=value("description"),
            created_at=created_at,
            paid_at=paid_at,
            transferred_at=parse_datetime(value("transferred_at")),
            email=emails[0] if emails else None,
            emails=emails,
            phone=phones[0] if phones else None,
            phones=phones,
            telegram_username=clean_telegram_username(value("telegram")),
            external_contact_id=value("external_contact_id"),
            first_name=value("first_name"),
            last_name=value("last_name"),
            address=value("address"),
            country=value("country"),
            city=value("city"),
            zip_code=value("zip_code"),
            region=value("region"),
            ip_address=value("ip_address"),
            payment_method=payment_method.lower() if payment_method else None,
            card_mask=card_mask,
            card_last4=card_last4,
            card_holder=value("card_holder"),
            card_brand=card_brand,
            card_bin=card_bin,
            card_bank=value("card_bank"),
            three_d_secure=parse_yes_no(value("three_d_secure")),
            auth_code=value("auth_code"),
            rrn=value("rrn"),
            shop_id=value("shop_id"),
            shop_name=value("shop_name"),
            product_code=value("product_code"),
            source_sheet=self.sheet_name,
            raw_data=dict(row),
        ), None


def parse_row(raw_row: Dict[str, str], sheet_hint: Optional[str] = None) -> Optional[Transaction]:
    """
    Parse a single statement row keyed by its verbatim column headers.

    Returns None when the row has no uid or no email and no phone.
    """
    hint = (sheet_hint or "").lower()
    parser = BepaidRowParser(
        HeaderMap(raw_row.keys()),
        sheet_name=sheet_hint,
        erip_hint="erip" in hint or "ерип" in hint,
    )
    transaction, _ = parser.parse(raw_row)
    return transaction


class BepaidImporter(BaseTransactionImporter):
    """bePaid statement (CSV / XLSX) importer."""

    def _get_platform_name(self) -> str:
        return "bepaid"

    def validate_source(self, source_path: str) -> bool:
        """Validate bePaid statement file."""
        path = Path(source_path)
        if not path.exists():
            return False
        return path.suffix.lower() in SUPPORTED_EXTENSIONS

    def extract_transactions(self, source_path: str) -> ParseResult:
        """Extract transactions from every sheet of the statement, in file order."""
        sheets = read_statement(source_path)
        result = ParseResult(sheets=[sheet.name for sheet in sheets])

        for sheet in sheets:
            parser = BepaidRowParser(sheet.header_map, sheet_name=sheet.name, erip_hint=sheet.erip_hint)
            if sheet.header_map.unrecognised:
                self.logger.info(f"Sheet '{sheet.name}' unrecognised columns: {sheet.header_map.unrecognised}")

            for row in tqdm(sheet.rows, desc=f"Parsing {sheet.name}", unit="row", disable=not self.progress_enabled):
                result.total_rows += 1
                try:
                    transaction, skip_reason = parser.parse(row)
                except Exception as e:
                    # Log error but continue processing
                    self.logger.warning(f"Error parsing row {result.total_rows} of sheet '{sheet.name}': {e}")
                    result.skip(SKIP_PARSE_ERROR)
                    continue

                if transaction is None:
                    result.skip(skip_reason)
                    continue
                result.transactions.append(transaction)

        return result
