"""Completeness validation for supplier onboarding submissions.

Every rule is a pure function of the requester's answers and the document presence
map. Output order follows the form: sections 1 to 6 in order, fields in the order
they appear on each section, then the upload rules of section 7.
"""

from collections.abc import Callable, Collection, Mapping
from datetime import date
from typing import Any, Literal

from supplier_onboarding.contracts.completeness import CompletenessReport, Requirement, SectionStatus
from supplier_onboarding.contracts.enums import SupplierType
from supplier_onboarding.contracts.submission import DocumentDescriptor
from supplier_onboarding.services import field_formats as fmt

ALL_SCOPE = "all"
SECTION_NUMBERS = (1, 2, 3, 4, 5, 6, 7)
SENSITIVE_BANKING_FIELDS = ("sortCode", "accountNumber", "iban", "swiftCode")

DEFAULT_REQUESTER_EMAIL_DOMAINS = (
    "@nhs.net",
    "@nhs.uk",
    "@bartshealth.nhs.uk",
    "@nhs.scot",
    "@wales.nhs.uk",
)

Scope = int | Literal["all"]
DocumentMap = Mapping[str, DocumentDescriptor | Mapping[str, Any]]


def parse_scope(scope: int | str) -> Scope:
    if isinstance(scope, int) and not isinstance(scope, bool):
        if scope in SECTION_NUMBERS:
            return scope
        raise ValueError(f"unknown completeness scope: {scope!r}")
    text = str(scope).strip().lower()
    if text == ALL_SCOPE:
        return ALL_SCOPE
    if text.startswith("section"):
        text = text.removeprefix("section").strip()
    if text.isdigit() and int(text) in SECTION_NUMBERS:
        return int(text)
    raise ValueError(f"unknown completeness scope: {scope!r}")


class _Checker:
    def __init__(
        self,
        fields: Mapping[str, Any],
        documents: DocumentMap,
        today: date,
        email_domains: tuple[str, ...],
    ):
        self.fields = fields
        self.documents = documents
        self.today = today
        self.email_domains = email_domains
        self.section = 0
        self.found: list[Requirement] = []

    def value(self, key: str) -> Any:
        return self.fields.get(key)

    def text(self, key: str) -> str:
        return fmt.as_text(self.fields.get(key))

    def answer(self, key: str) -> str:
        return self.text(key).lower()

    def blank(self, key: str) -> bool:
        return fmt.is_blank(self.fields.get(key))

    def add(self, key: str, message: str, document: bool = False) -> None:
        self.found.append(
            Requirement(section=self.section, field=key, message=message, document=document)
        )

    def require(self, key: str, label: str) -> bool:
        if self.blank(key):
            self.add(key, label)
            return False
        return True

    def require_text(
        self,
        key: str,
        label: str,
        *,
        min_length: int | None = None,
        max_length: int | None = None,
        min_message: str | None = None,
    ) -> str | None:
        if not self.require(key, label):
            return None
        text = self.text(key)
        if min_length is not None and len(text) < min_length:
            self.add(key, min_message or f"{label} (minimum {min_length} characters)")
            return None
        if max_length is not None and len(text) > max_length:
            self.add(key, f"{label} (maximum {max_length} characters)")
            return None
        return text

    def require_positive(self, key: str, label: str) -> None:
        if not self.require(key, label):
            return
        number = fmt.as_number(self.value(key))
        if number is None or number <= 0:
            self.add(key, f"{label} (must be greater than 0)")

    def has_document(self, key: str) -> bool:
        descriptor = self.documents.get(key)
        if descriptor is None:
            return False
        if isinstance(descriptor, DocumentDescriptor):
            return descriptor.present
        return bool(descriptor.get("present", False))

    def require_document(self, key: str, label: str) -> None:
        if not self.has_document(key):
            self.add(key, label, document=True)


def _requester_section(check: _Checker) -> None:
    check.require_text("firstName", "First Name", max_length=50)
    check.require_text("lastName", "Last Name", max_length=50)
    check.require_text("jobTitle", "Job Title", max_length=100)
    check.require_text("department", "Department", max_length=100)

    email = check.require_text("nhsEmail", "NHS Email")
    if email is not None:
        if not email.lower().endswith(check.email_domains):
            check.add("nhsEmail", "NHS Email (must be an NHS email address)")
        elif not fmt.is_email(email):
            check.add("nhsEmail", "NHS Email (invalid email format)")

    phone = check.require_text("phoneNumber", "Phone Number")
    if phone is not None and not fmt.is_phone(phone):
        check.add("phoneNumber", "Phone Number (invalid UK phone format)")


def _prescreening_section(check: _Checker) -> None:
    check.require("serviceCategory", "Service Category")
    check.require("procurementEngaged", "Procurement Engagement")
    check.require("letterheadAvailable", "Letterhead Available")
    check.require("soleTraderStatus", "Sole Trader Status")
    check.require("usageFrequency", "Usage Frequency")
    check.require("supplierConnection", "Supplier Connection")
    check.require_text("justification", "Justification", min_length=10, max_length=350)

    if check.answer("procurementEngaged") == "yes":
        check.require_document("procurementApproval", "Procurement Approval Document")
    if check.answer("letterheadAvailable") == "yes":
        check.require_document("letterhead", "Letterhead with Bank Details")
    if check.answer("soleTraderStatus") == "yes":
        check.require_document("cestForm", "CEST Form")


def _check_registration_number(check: _Checker, key: str, label: str) -> None:
    if check.require(key, label) and not fmt.is_crn(check.text(key)):
        check.add(key, f"{label} (must be 7 or 8 digits)")


def _limited_company_rules(check: _Checker, registered: bool) -> None:
    if registered:
        _check_registration_number(check, "crn", "Company Registration Number")


def _charity_rules(check: _Checker, registered: bool) -> None:
    if check.require("charityNumber", "Charity Number") and len(check.text("charityNumber")) > 8:
        check.add("charityNumber", "Charity Number (maximum 8 digits)")
    if registered:
        _check_registration_number(check, "crnCharity", "Charity Registration Number")


def _sole_trader_rules(check: _Checker, registered: bool) -> None:
    check.require("idType", "ID Type")
    id_type = check.answer("idType")
    if id_type == "passport":
        check.require_document("passportPhoto", "Passport Photo")
    elif id_type == "driving_licence":
        check.require_document("licenceFront", "Driving Licence (Front)")
        check.require_document("licenceBack", "Driving Licence (Back)")


def _public_sector_rules(check: _Checker, registered: bool) -> None:
    check.require("organisationType", "Organisation Type")


def _no_extra_rules(check: _Checker, registered: bool) -> None:
    return None


_SUPPLIER_TYPE_RULES: dict[SupplierType, Callable[[_Checker, bool], None]] = {
    SupplierType.LIMITED_COMPANY: _limited_company_rules,
    SupplierType.PARTNERSHIP: _no_extra_rules,
    SupplierType.SOLE_TRADER: _sole_trader_rules,
    SupplierType.CHARITY: _charity_rules,
    SupplierType.PUBLIC_SECTOR: _public_sector_rules,
}


def _classification_section(check: _Checker) -> None:
    check.require("companiesHouseRegistered", "Companies House Registration Status")
    if check.require("supplierType", "Supplier Type"):
        try:
            supplier_type = SupplierType(check.answer("supplierType"))
        except ValueError:
            check.add("supplierType", "Supplier Type (unrecognised value)")
        else:
            registered = check.answer("companiesHouseRegistered") == "yes"
            _SUPPLIER_TYPE_RULES[supplier_type](check, registered)

    check.require_positive("annualValue", "Annual Value")
    check.require("employeeCount", "Employee Count")


def _supplier_details_section(check: _Checker) -> None:
    check.require_text("companyName", "Company Name", max_length=100)
    check.require_text("registeredAddress", "Registered Address", max_length=300)

    city = check.require_text("city", "City", max_length=50)
    if city is not None and not fmt.is_city(city):
        check.add("city", "City (only letters, spaces, and hyphens allowed)")

    postcode = check.require_text("postcode", "Postcode")
    if postcode is not None and not fmt.is_uk_postcode(postcode):
        check.add("postcode", "Postcode (invalid UK postcode format)")

    check.require_text("contactName", "Contact Name", max_length=100)

    email = check.require_text("contactEmail", "Contact Email")
    if email is not None and not fmt.is_email(email):
        check.add("contactEmail", "Contact Email (invalid email format)")

    phone = check.require_text("contactPhone", "Contact Phone")
    if phone is not None and not fmt.is_phone(phone):
        check.add("contactPhone", "Contact Phone (invalid UK phone format)")

    website = check.text("website")
    if website:
        if not website.startswith("https://"):
            check.add("website", "Website (must start with https://)")
        elif not fmt.is_https_url(website):
            check.add("website", "Website (invalid URL format)")


def _service_section(check: _Checker) -> None:
    service_type = check.value("serviceType")
    if fmt.is_blank(service_type):
        check.add("serviceType", "Service Type")
    elif isinstance(service_type, (list, tuple)) and len(service_type) > 7:
        check.add("serviceType", "Service Type (maximum 7 types allowed)")

    check.require_text(
        "serviceDescription", "Service Description", min_length=10, max_length=350
    )


def _overseas_bank_rules(check: _Checker) -> None:
    if check.require("iban", "IBAN"):
        iban = check.text("iban")
        if not fmt.iban_length_ok(iban):
            check.add("iban", "IBAN (must be 15-34 characters)")
        elif not fmt.is_iban(iban):
            check.add("iban", "IBAN (invalid format - must start with 2-letter country code)")

    if check.require("swiftCode", "SWIFT Code"):
        swift = check.text("swiftCode")
        if not fmt.swift_length_ok(swift):
            check.add("swiftCode", "SWIFT Code (must be 8 or 11 characters)")
        elif not fmt.is_swift_bic(swift):
            check.add("swiftCode", "SWIFT Code (invalid format)")

    if check.require("bankRouting", "Bank Routing Number") and not fmt.is_routing_number(
        check.text("bankRouting")
    ):
        check.add("bankRouting", "Bank Routing Number (must be exactly 9 digits)")


def _uk_bank_rules(check: _Checker) -> None:
    check.require_text(
        "nameOnAccount",
        "Name on Account",
        min_length=2,
        min_message="Name on Account (must be at least 2 characters)",
    )
    if check.require("sortCode", "Sort Code") and not fmt.is_sort_code(check.text("sortCode")):
        check.add("sortCode", "Sort Code (must be exactly 6 digits)")
    if check.require("accountNumber", "Account Number") and not fmt.is_account_number(
        check.text("accountNumber")
    ):
        check.add("accountNumber", "Account Number (must be exactly 8 digits)")


def _accounts_address_rules(check: _Checker) -> None:
    check.require("accountsAddress", "Accounts Address")
    check.require("accountsCity", "Accounts City")
    if check.require("accountsPostcode", "Accounts Postcode") and not fmt.is_uk_postcode(
        check.text("accountsPostcode")
    ):
        check.add("accountsPostcode", "Accounts Postcode (invalid UK postcode format)")
    check.require("accountsPhone", "Accounts Phone")
    if check.require("accountsEmail", "Accounts Email") and not fmt.is_email(
        check.text("accountsEmail")
    ):
        check.add("accountsEmail", "Accounts Email (invalid email format)")


def _public_liability_rules(check: _Checker) -> None:
    check.require_positive("plCoverage", "Public Liability Coverage")
    if not check.require("plExpiry", "Public Liability Expiry Date"):
        return
    try:
        expiry = date.fromisoformat(check.text("plExpiry")[:10])
    except ValueError:
        check.add("plExpiry", "Public Liability Expiry Date (invalid date)")
        return
    if expiry < check.today:
        check.add("plExpiry", "Public Liability Expiry Date (must be today or in the future)")


def _financial_section(check: _Checker) -> None:
    check.require("overseasSupplier", "Overseas Supplier Status")
    overseas = check.answer("overseasSupplier")
    if overseas == "yes":
        _overseas_bank_rules(check)
    elif overseas == "no":
        _uk_bank_rules(check)

    check.require("accountsAddressSame", "Accounts Address Same")
    if check.answer("accountsAddressSame") == "no":
        _accounts_address_rules(check)

    check.require("ghxDunsKnown", "GHX/DUNS Known")
    if check.answer("ghxDunsKnown") == "yes":
        if check.require("ghxDunsNumber", "GHX/DUNS Number") and not fmt.is_duns(
            check.text("ghxDunsNumber")
        ):
            check.add("ghxDunsNumber", "GHX/DUNS Number (must be exactly 9 digits)")

    check.require("cisRegistered", "CIS Registration Status")
    if check.answer("cisRegistered") == "yes":
        if check.require("utrNumber", "UTR Number") and not fmt.is_utr(check.text("utrNumber")):
            check.add("utrNumber", "UTR Number (must be exactly 10 digits)")

    check.require("publicLiability", "Public Liability Insurance")
    if check.answer("publicLiability") == "yes":
        _public_liability_rules(check)

    check.require("vatRegistered", "VAT Registration Status")
    if check.answer("vatRegistered") == "yes":
        if check.require("vatNumber", "VAT Number") and not fmt.is_vat_number(
            check.text("vatNumber")
        ):
            check.add(
                "vatNumber", "VAT Number (must be 9 or 12 digits after optional GB prefix)"
            )


def is_sole_trader(fields: Mapping[str, Any]) -> bool:
    supplier_type = fmt.as_text(fields.get("supplierType")).lower()
    personal_service = fmt.as_text(fields.get("soleTraderStatus")).lower()
    return supplier_type == SupplierType.SOLE_TRADER or personal_service == "yes"


def _upload_section(check: _Checker, already_reported: set[str]) -> None:
    def _document(key: str, label: str) -> None:
        if key not in already_reported:
            check.require_document(key, label)

    _document("letterhead", "Letterhead with Bank Details (Upload Required)")

    if check.answer("procurementEngaged") == "yes":
        _document("procurementApproval", "Procurement Approval Document (Upload Required)")

    if is_sole_trader(check.fields):
        _document("cestForm", "CEST Form (Upload Required for Sole Traders)")

        id_documents = ("passportPhoto", "licenceFront", "licenceBack")
        if already_reported.intersection(id_documents):
            return
        has_passport = check.has_document("passportPhoto")
        has_licence = check.has_document("licenceFront") and check.has_document("licenceBack")
        if not has_passport and not has_licence:
            check.add(
                "passportPhoto|licenceFront|licenceBack",
                "Passport or Driving Licence (Upload Required for Sole Traders)",
                document=True,
            )


_SECTION_RULES: dict[int, Callable[[_Checker], None]] = {
    1: _requester_section,
    2: _prescreening_section,
    3: _classification_section,
    4: _supplier_details_section,
    5: _service_section,
    6: _financial_section,
}


def missing_requirement_details(
    scope: int | str,
    requester_fields: Mapping[str, Any],
    documents: DocumentMap,
    *,
    today: date | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> list[Requirement]:
    resolved = parse_scope(scope)
    check = _Checker(
        fields=requester_fields,
        documents=documents,
        today=today or date.today(),
        email_domains=tuple(d.lower() for d in (allowed_email_domains or DEFAULT_REQUESTER_EMAIL_DOMAINS)),
    )

    sections = list(_SECTION_RULES) if resolved == ALL_SCOPE else [resolved]
    for section in sections:
        rule = _SECTION_RULES.get(section)
        if rule is not None:
            check.section = section
            rule(check)

    if resolved in (7, ALL_SCOPE):
        check.section = 7
        reported = {req.field for req in check.found if req.document}
        _upload_section(check, reported)

    return list(check.found)


def missing_requirements(
    scope: int | str,
    requester_fields: Mapping[str, Any],
    documents: DocumentMap,
    *,
    today: date | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> list[str]:
    return [
        requirement.message
        for requirement in missing_requirement_details(
            scope,
            requester_fields,
            documents,
            today=today,
            allowed_email_domains=allowed_email_domains,
        )
    ]


def can_submit(
    requester_fields: Mapping[str, Any],
    documents: DocumentMap,
    acknowledged: bool = True,
    *,
    today: date | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> bool:
    if not acknowledged:
        return False
    return not missing_requirements(
        ALL_SCOPE,
        requester_fields,
        documents,
        today=today,
        allowed_email_domains=allowed_email_domains,
    )


def section_status(
    section: int,
    requester_fields: Mapping[str, Any],
    documents: DocumentMap,
    visited: Collection[int],
    *,
    today: date | None = None,
) -> SectionStatus:
    if section not in visited:
        return "pending"
    if missing_requirements(section, requester_fields, documents, today=today):
        return "incomplete"
    return "complete"


def completeness_report(
    scope: int | str,
    requester_fields: Mapping[str, Any],
    documents: DocumentMap,
    *,
    today: date | None = None,
    allowed_email_domains: tuple[str, ...] | None = None,
) -> CompletenessReport:
    details = missing_requirement_details(
        scope,
        requester_fields,
        documents,
        today=today,
        allowed_email_domains=allowed_email_domains,
    )
    resolved = parse_scope(scope)
    if resolved == ALL_SCOPE:
        submittable = not details
    else:
        submittable = can_submit(
            requester_fields,
            documents,
            today=today,
            allowed_email_domains=allowed_email_domains,
        )
    return CompletenessReport(
        scope=str(resolved),
        missing=[requirement.message for requirement in details],
        details=details,
        can_submit=submittable,
    )
