from core.contact_index import ContactIndex
from core.transaction_matcher import IdentityMatcher
from models.contact import CardIdentityLink, Contact


def test_external_id_wins_over_email(session, make_tx):
    tx = make_tx(external_contact_id="777", email="a@x.com", emails=["a@x.com"])
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c6"
    assert result.match_method == "external_id"


def test_email_wins_over_phone(session, make_tx):
    tx = make_tx(email="a@x.com", emails=["a@x.com"], phone="375447654321", phones=["375447654321"])
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c1"
    assert result.match_method == "email"
    assert result.confidence_score == 1.0
    assert not result.requires_review


def test_any_candidate_email_matches_alternate_emails(session, make_tx):
    tx = make_tx(email="unknown@x.com", emails=["unknown@x.com", "sergei.old@example.com"])
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c2"
    assert result.match_details == {"matched_email": "sergei.old@example.com"}


def test_phone_match_uses_normalized_keys(session, make_tx):
    tx = make_tx(phone="375291112233", phones=["375291112233"])
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c1"
    assert result.match_method == "phone"


def test_card_link_match(session, make_tx):
    tx = make_tx(card_last4="4242", card_holder="Olga Novikava")
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c7"
    assert result.match_method == "card"


def test_card_link_needs_both_last4_and_holder(session, make_tx):
    tx = make_tx(card_last4="4242", card_holder="SOMEONE ELSE")
    assert session.matcher.match_transaction(tx).match_method == "none"


def test_telegram_match(session, make_tx):
    tx = make_tx(telegram_username="sergei_p")
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c2"
    assert result.match_method == "telegram"


def test_full_name_match_requires_review(session, make_tx):
    tx = make_tx(first_name="Иван", last_name="Иванов")
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c3"
    assert result.match_method == "name"
    assert result.requires_review


def test_shared_name_matches_nobody(session, make_tx):
    tx = make_tx(first_name="Мария", last_name="Смирнова")
    result = session.matcher.match_transaction(tx)
    assert not result.is_matched
    assert result.match_method == "none"


def test_transliterated_card_holder_is_last_resort(session, make_tx):
    tx = make_tx(card_holder="IVAN IVANOV", card_last4="1111")
    result = session.matcher.match_transaction(tx)
    assert result.contact_id == "c3"
    assert result.match_method == "name_translit"
    assert result.match_details["transliterated"] == "Иван Иванов"


def test_match_all_records_outcome_on_transactions(session, make_tx):
    matched = make_tx("T1", email="a@x.com", emails=["a@x.com"])
    unmatched = make_tx("T2", email="nobody@x.com", emails=["nobody@x.com"])

    results = session.matcher.match_all([matched, unmatched])

    assert [r.uid for r in results] == ["T1", "T2"]
    assert matched.matched_contact_id == "c1"
    assert matched.matched_contact_name == "Анна Иванова"
    assert matched.matched_by == "email"
    assert unmatched.matched_contact_id is None
    assert unmatched.matched_contact_name is None
    assert unmatched.matched_by == "none"


def test_first_contact_keeps_a_shared_email():
    index = ContactIndex([
        Contact(id="first", full_name="A", email="shared@x.com"),
        Contact(id="second", full_name="B", email="Shared@X.com"),
    ])
    assert index.find_by_email("shared@x.com") == "first"


def test_index_accepts_new_card_links():
    index = ContactIndex([Contact(id="c1", full_name="Анна Иванова")])
    matcher = IdentityMatcher(index)
    index.add_card_link(CardIdentityLink(card_last4="0001", card_holder="ANNA IVANOVA", contact_id="c1"))
    assert index.find_by_card("0001", "anna  ivanova") == "c1"
    assert matcher.contact_index is index


def test_suggestions_for_unmatched_latin_name(session):
    suggestions = session.contact_index.suggest_contacts("SERGEI PETROV", limit=3, threshold=80)
    assert suggestions
    assert suggestions[0]["contact_id"] == "c2"
    assert len(suggestions) <= 3
