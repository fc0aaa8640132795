from datetime import datetime

import pytest

from supplier_onboarding.services.submission_repository import default_repository

NOW = datetime(2026, 3, 2, 9, 30)


def limited_company_fields(**overrides) -> dict:
    fields = {
        "firstName": "Priya",
        "lastName": "Shah",
        "jobTitle": "Pharmacy Services Manager",
        "department": "Pharmacy",
        "nhsEmail": "priya.shah@nhs.net",
        "phoneNumber": "020 7377 7000",
        "serviceCategory": "clinical",
        "procurementEngaged": "no",
        "letterheadAvailable": "yes",
        "soleTraderStatus": "no",
        "usageFrequency": "regular",
        "supplierConnection": "no",
        "justification": "Specialist cold-chain logistics for aseptic medicines.",
        "companiesHouseRegistered": "yes",
        "supplierType": "limited_company",
        "crn": "12345678",
        "annualValue": 25000,
        "employeeCount": "10-49",
        "companyName": "Acme Health Ltd",
        "registeredAddress": "1 High Street",
        "city": "London",
        "postcode": "E1 1BB",
        "contactName": "Sam Jones",
        "contactEmail": "sam@acmehealth.co.uk",
        "contactPhone": "02071234567",
        "website": "https://acmehealth.co.uk",
        "serviceType": ["logistics"],
        "serviceDescription": "Temperature-controlled delivery of medicines.",
        "overseasSupplier": "no",
        "nameOnAccount": "Acme Health Ltd",
        "sortCode": "12-34-56",
        "accountNumber": "12345678",
        "accountsAddressSame": "yes",
        "ghxDunsKnown": "no",
        "cisRegistered": "no",
        "publicLiability": "yes",
        "plCoverage": 5000000,
        "plExpiry": "2030-12-31",
        "vatRegistered": "yes",
        "vatNumber": "GB123456789",
    }
    fields.update(overrides)
    return fields


def sole_trader_fields(**overrides) -> dict:
    fields = limited_company_fields(
        supplierType="sole_trader",
        soleTraderStatus="yes",
        companiesHouseRegistered="no",
        idType="passport",
        companyName="Jane Doe Consulting",
    )
    fields.pop("crn")
    fields.update(overrides)
    return fields


def present(name: str) -> dict:
    return {"name": name, "size": 2048, "mime_type": "application/pdf", "present": True}


def limited_company_documents() -> dict:
    return {"letterhead": present("letterhead.pdf")}


def sole_trader_documents() -> dict:
    return {
        "letterhead": present("letterhead.pdf"),
        "cestForm": present("cest.pdf"),
        "passportPhoto": present("passport.jpg"),
    }


@pytest.fixture(autouse=True)
def _clear_default_repository():
    default_repository.clear()
    yield
    default_repository.clear()
