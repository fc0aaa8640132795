from datetime import date

import pytest

from conftest import (
    limited_company_documents,
    limited_company_fields,
    present,
    sole_trader_documents,
    sole_trader_fields,
)
from supplier_onboarding.services.completeness_service import (
    can_submit,
    completeness_report,
    missing_requirement_details,
    missing_requirements,
    parse_scope,
    section_status,
)

TODAY = date(2026, 3, 2)


def test_complete_limited_company_has_no_missing_requirements():
    assert missing_requirements("all", limited_company_fields(), limited_company_documents(), today=TODAY) == []
    assert can_submit(limited_company_fields(), limited_company_documents(), True, today=TODAY)


def test_complete_sole_trader_has_no_missing_requirements():
    assert missing_requirements("all", sole_trader_fields(), sole_trader_documents(), today=TODAY) == []


def test_empty_submission_reports_sections_in_form_order():
    details = missing_requirement_details("all", {}, {}, today=TODAY)
    sections = [requirement.section for requirement in details]

    assert sections == sorted(sections)
    assert details[0].message == "First Name"
    assert details[-1].message == "Letterhead with Bank Details (Upload Required)"


def test_crn_format_is_checked_only_for_registered_limited_companies():
    fields = limited_company_fields(crn="12AB")
    assert missing_requirements(3, fields, {}, today=TODAY) == [
        "Company Registration Number (must be 7 or 8 digits)"
    ]

    unregistered = limited_company_fields(crn="", companiesHouseRegistered="no")
    assert missing_requirements(3, unregistered, {}, today=TODAY) == []

    partnership = limited_company_fields(crn="", supplierType="partnership")
    assert missing_requirements(3, partnership, {}, today=TODAY) == []


def test_overseas_supplier_swaps_uk_bank_fields_for_iban_and_swift():
    fields = limited_company_fields(overseasSupplier="yes")
    assert missing_requirements(6, fields, {}, today=TODAY) == ["IBAN", "SWIFT Code", "Bank Routing Number"]

    fields.update(iban="DE89370400440532013000", swiftCode="DEUTDEFF", bankRouting="021000021")
    assert missing_requirements(6, fields, {}, today=TODAY) == []


def test_financial_format_rules():
    fields = limited_company_fields(
        sortCode="12345",
        accountNumber="1234567",
        vatNumber="GB1234",
        cisRegistered="yes",
        utrNumber="123",
        ghxDunsKnown="yes",
        ghxDunsNumber="12-345",
    )

    assert missing_requirements(6, fields, {}, today=TODAY) == [
        "Sort Code (must be exactly 6 digits)",
        "Account Number (must be exactly 8 digits)",
        "GHX/DUNS Number (must be exactly 9 digits)",
        "UTR Number (must be exactly 10 digits)",
        "VAT Number (must be 9 or 12 digits after optional GB prefix)",
    ]


def test_iban_and_swift_shape_messages():
    fields = limited_company_fields(
        overseasSupplier="yes", iban="1234567890123456", swiftCode="DEUT", bankRouting="021000021"
    )
    assert missing_requirements(6, fields, {}, today=TODAY) == [
        "IBAN (invalid format - must start with 2-letter country code)",
        "SWIFT Code (must be 8 or 11 characters)",
    ]


def test_public_liability_expiry_is_compared_with_today():
    fields = limited_company_fields(plExpiry="2026-03-01")
    assert missing_requirements(6, fields, {}, today=TODAY) == [
        "Public Liability Expiry Date (must be today or in the future)"
    ]
    assert missing_requirements(6, fields, {}, today=date(2026, 2, 28)) == []


def test_requester_email_must_use_an_nhs_domain():
    fields = limited_company_fields(nhsEmail="priya@example.com")
    assert missing_requirements("section 1", fields, {}, today=TODAY) == [
        "NHS Email (must be an NHS email address)"
    ]
    assert missing_requirements(
        1, fields, {}, today=TODAY, allowed_email_domains=("@example.com",)
    ) == []


def test_sole_trader_identity_group_accepts_passport_or_both_licence_sides():
    fields = sole_trader_fields(idType="")
    documents = {"letterhead": present("l.pdf"), "cestForm": present("c.pdf")}

    assert missing_requirements(7, fields, documents, today=TODAY) == [
        "Passport or Driving Licence (Upload Required for Sole Traders)"
    ]

    documents["licenceFront"] = present("front.jpg")
    assert missing_requirements(7, fields, documents, today=TODAY) == [
        "Passport or Driving Licence (Upload Required for Sole Traders)"
    ]

    documents["licenceBack"] = present("back.jpg")
    assert missing_requirements(7, fields, documents, today=TODAY) == []


def test_all_scope_does_not_repeat_documents_reported_by_earlier_sections():
    documents = sole_trader_documents()
    documents.pop("cestForm")
    documents.pop("passportPhoto")

    missing = missing_requirements("all", sole_trader_fields(), documents, today=TODAY)

    assert missing == ["CEST Form", "Passport Photo"]


def test_document_marked_absent_counts_as_missing():
    documents = {"letterhead": {"name": "letterhead.pdf", "present": False}}
    assert missing_requirements(7, limited_company_fields(), documents, today=TODAY) == [
        "Letterhead with Bank Details (Upload Required)"
    ]


def test_service_type_limit_and_description_length():
    fields = limited_company_fields(serviceType=[f"type-{i}" for i in range(8)], serviceDescription="short")
    assert missing_requirements(5, fields, {}, today=TODAY) == [
        "Service Type (maximum 7 types allowed)",
        "Service Description (minimum 10 characters)",
    ]


def test_unrecognised_supplier_type_is_reported():
    fields = limited_company_fields(supplierType="cooperative")
    assert missing_requirements(3, fields, {}, today=TODAY) == ["Supplier Type (unrecognised value)"]


def test_validator_does_not_mutate_inputs():
    fields = limited_company_fields(crn="")
    documents = limited_company_documents()
    snapshot = (dict(fields), dict(documents))

    missing_requirements("all", fields, documents, today=TODAY)

    assert (fields, documents) == snapshot


def test_repeated_calls_are_identical():
    fields = limited_company_fields(postcode="not-a-postcode", crn="1", vatNumber="")
    first = missing_requirement_details("all", fields, {}, today=TODAY)
    second = missing_requirement_details("all", fields, {}, today=TODAY)
    assert first == second


@pytest.mark.parametrize(
    "fields, documents",
    [
        ({}, {}),
        (limited_company_fields(), {}),
        (limited_company_fields(crn="1"), limited_company_documents()),
        (sole_trader_fields(), sole_trader_documents()),
        (sole_trader_fields(idType="driving_licence"), sole_trader_documents()),
        (limited_company_fields(overseasSupplier="yes"), limited_company_documents()),
    ],
)
def test_submit_gate_matches_all_scope(fields, documents):
    empty = missing_requirements("all", fields, documents, today=TODAY) == []
    assert can_submit(fields, documents, True, today=TODAY) is empty


def test_submit_gate_requires_acknowledgement():
    assert not can_submit(limited_company_fields(), limited_company_documents(), False, today=TODAY)


def test_adding_missing_field_never_grows_missing_list():
    fields = limited_company_fields()
    for key in ("firstName", "postcode", "crn", "vatNumber", "serviceDescription"):
        reduced = {k: v for k, v in fields.items() if k != key}
        before = missing_requirements("all", reduced, limited_company_documents(), today=TODAY)
        after = missing_requirements("all", fields, limited_company_documents(), today=TODAY)
        assert len(after) <= len(before)


def test_section_status():
    fields = limited_company_fields(city="L0ndon")

    assert section_status(4, fields, {}, visited={1, 2, 3}) == "pending"
    assert section_status(4, fields, {}, visited={4}) == "incomplete"
    assert section_status(1, fields, {}, visited={1}) == "complete"


def test_parse_scope_variants():
    assert parse_scope(3) == 3
    assert parse_scope("Section 7") == 7
    assert parse_scope("ALL") == "all"
    with pytest.raises(ValueError):
        parse_scope("section 9")


def test_completeness_report_includes_submit_gate():
    report = completeness_report(4, limited_company_fields(), {}, today=TODAY)
    assert report.missing == []
    assert report.can_submit is False
