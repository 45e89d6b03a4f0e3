"""
Recognised bePaid export column headers per logical field.

The statement exports use localized (Russian) and English header names, and
ERIP reports use their own names for some fields. Headers are normalised before
lookup, and the alias table is resolved once per sheet into a HeaderMap.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple


HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "uid": ("uid", "id транзакции", "transaction id", "номер операции ерип"),
    "order_id": ("id заказа", "order id", "номер заказа"),
    "tracking_id": ("трекинг id", "tracking id"),
    "status": ("статус", "status", "статус операции"),
    "transaction_type": ("тип транзакции", "transaction type", "тип операции", "тип"),
    "message": ("сообщение", "message"),
    "reason": ("причина", "reason"),
    "amount": ("сумма", "amount", "сумма операции", "сумма платежа"),
    "transferred_amount": ("перечисленная сумма", "transferred amount", "сумма к перечислению"),
    "currency": ("валюта", "currency"),
    "fee_percent": ("комиссия,%", "комиссия, %", "fee,%", "fee, %", "fee percent"),
    "fee_amount": ("комиссия за операцию", "fee amount", "transaction fee"),
    "total_fee": ("сумма комиссий", "total fee", "total fees"),
    "description": (
        "описание", "description", "сокращенное наименование услуги",
        "наименование услуги", "назначение платежа",
    ),
    "created_at": ("дата создания", "created at", "creation date", "дата операции"),
    "paid_at": ("дата оплаты", "paid at", "payment date", "дата платежа"),
    "transferred_at": ("дата перечисления", "transferred at", "transfer date"),
    "email": ("e-mail", "email", "e-mail покупателя", "customer email", "почта"),
    "phone": ("телефон", "phone", "телефон покупателя", "customer phone"),
    "telegram": ("телеграм", "telegram", "telegram username"),
    "external_contact_id": ("id контакта", "amocrm id", "contact id", "crm id"),
    "first_name": ("имя", "first name"),
    "last_name": ("фамилия", "last name"),
    "address": ("адрес", "address"),
    "country": ("страна", "country"),
    "city": ("город", "city"),
    "zip_code": ("индекс", "zip", "zip code", "postal code"),
    "region": ("область", "region", "state"),
    "ip_address": ("ip", "ip адрес", "ip address"),
    "product_code": ("код продукта", "product code", "код услуги"),
    "payment_method": ("способ оплаты", "payment method"),
    "card_mask": ("карта", "card", "номер карты", "card number"),
    "card_holder": ("владелец карты", "card holder", "cardholder", "фио плательщика"),
    "card_bin": ("bin карты", "card bin", "bin"),
    "card_bank": ("банк", "bank", "банк-эмитент", "issuer bank"),
    "three_d_secure": ("3-d secure", "3d secure", "3ds"),
    "auth_code": ("код авторизации", "auth code", "authorization code"),
    "rrn": ("rrn",),
    "shop_id": ("id магазина", "shop id"),
    "shop_name": ("магазин", "shop", "shop name"),
}

# Columns that only appear in ERIP reports
ERIP_ONLY_HEADERS = ("номер операции ерип", "код услуги", "фио плательщика")

_ZERO_WIDTH_RE = re.compile("[\\ufeff\\u200b\\u200c\\u200d\\u2060]")
_DUPLICATE_SUFFIX_RE = re.compile(r"\.\d+$")


def normalize_header(header) -> str:
    if header is None:
        return ""
    text = _ZERO_WIDTH_RE.sub("", str(header))
    # pandas suffixes repeated headers as "E-mail.1"
    text = _DUPLICATE_SUFFIX_RE.sub("", text.strip())
    return " ".join(text.split()).lower().replace("ё", "е")


_ALIAS_LOOKUP: Dict[str, str] = {
    alias: field for field, aliases in HEADER_ALIASES.items() for alias in aliases
}


class HeaderMap:
    """Logical field -> verbatim column header(s) for one sheet."""

    def __init__(self, headers: Iterable):
        self.headers: List[str] = [str(h) for h in headers if h is not None]
        self.columns: Dict[str, List[str]] = {}
        self.unrecognised: List[str] = []

        for header in self.headers:
            field = _ALIAS_LOOKUP.get(normalize_header(header))
            if field is None:
                self.unrecognised.append(header)
                continue
            self.columns.setdefault(field, []).append(header)

    def has(self, field: str) -> bool:
        return field in self.columns

    @property
    def has_uid(self) -> bool:
        return self.has("uid")

    @property
    def looks_like_erip(self) -> bool:
        normalized = {normalize_header(h) for h in self.headers}
        return any(header in normalized for header in ERIP_ONLY_HEADERS)

    def value(self, row: Dict, field: str) -> Optional[str]:
        """First non-empty cell of the field's columns."""
        for column in self.columns.get(field, []):
            cell = row.get(column)
            if cell is None:
                continue
            text = str(cell).strip()
            if text:
                return text
        return None

    def values(self, row: Dict, field: str) -> List[str]:
        """All non-empty cells of the field's columns, in column order."""
        cells = []
        for column in self.columns.get(field, []):
            cell = row.get(column)
            if cell is not None and str(cell).strip():
                cells.append(str(cell).strip())
        return cells


def is_uid_header(header) -> bool:
    return _ALIAS_LOOKUP.get(normalize_header(header)) == "uid"
