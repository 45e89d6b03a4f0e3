import pytest

from core.status_classifier import (
    classify_label,
    is_cancel_type,
    is_canonical_status,
    is_payment_type,
    is_refund_type,
    require_canonical_status,
    to_canonical_status,
)


@pytest.mark.parametrize("raw, expected", [
    ("Успешно", "succeeded"),
    ("успешный", "succeeded"),
    ("  SUCCESSFUL  ", "succeeded"),
    ("captured", "succeeded"),
    ("payment_successful", "succeeded"),
    ("Неуспешно", "failed"),
    ("unsuccessful", "failed"),
    ("Ошибка", "failed"),
    ("Ошибка оплаты", "failed"),
    ("declined", "failed"),
    ("expired", "failed"),
    ("incomplete", "failed"),
    ("Возврат средств", "refunded"),
    ("возврат_частичный", "refunded"),
    ("refund", "refunded"),
    ("Отменена", "canceled"),
    ("cancelled", "canceled"),
    ("void", "canceled"),
    ("pending", "pending"),
    ("В обработке", "pending"),
    ("Ожидание оплаты", "pending"),
    ("Mystery", None),
    ("", None),
    (None, None),
])
def test_to_canonical_status(raw, expected):
    assert to_canonical_status(raw) == expected


def test_every_recognised_status_is_canonical():
    for raw in ("Успешно", "Ошибка", "refund", "void", "pending"):
        assert is_canonical_status(to_canonical_status(raw))
    assert not is_canonical_status(None)
    assert not is_canonical_status("successful")


def test_require_canonical_status_names_the_context():
    assert require_canonical_status("Успешно") == "succeeded"
    with pytest.raises(ValueError, match="row 5"):
        require_canonical_status("Mystery", "row 5")


def test_type_predicates():
    assert is_refund_type("Возврат средств")
    assert is_refund_type("REFUND")
    assert is_cancel_type("Отмена")
    assert is_cancel_type("отменa")  # trailing Latin "a"
    assert is_cancel_type("authorization_void")
    assert not is_cancel_type("Платеж")
    assert is_payment_type(None)
    assert is_payment_type("")
    assert is_payment_type("Платеж")
    assert is_payment_type("Payment")
    assert not is_payment_type("Комиссия")


@pytest.mark.parametrize("raw_type, raw_status, message, expected", [
    ("Платеж", "Успешно", None, ("payment_card", "succeeded")),
    ("Payment", "Successful", "Approved", ("payment_card", "succeeded")),
    ("Возврат средств", "Успешно", None, ("refund", "refunded")),
    ("Отмена", "Успешно", None, ("cancel", "canceled")),
    ("Void", "Successful", None, ("cancel", "canceled")),
    ("Платеж", "Успешно", "Declined by issuer", ("payment_card", "failed")),
    ("Платеж", "Ошибка", "Insufficient funds", ("payment_card", "failed")),
    ("Платеж ЕРИП", "Успешно", None, ("payment_erip", "succeeded")),
    ("Комиссия", "Успешно", None, ("fee", "succeeded")),
    ("Платеж", "Mystery", None, ("payment_card", None)),
    ("", "", None, ("payment_card", None)),
])
def test_classify_label(raw_type, raw_status, message, expected):
    assert tuple(classify_label(raw_type, raw_status, message)) == expected


def test_erip_channel_overrides_card_inference():
    assert classify_label("Платеж", "Успешно", None, payment_method="ERIP").transaction_type == "payment_erip"
    assert classify_label("Платеж", "Успешно", None, erip=True).transaction_type == "payment_erip"
    assert classify_label("Платеж", "Успешно", None, payment_method="visa").transaction_type == "payment_card"
