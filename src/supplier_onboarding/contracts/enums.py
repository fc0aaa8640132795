from enum import StrEnum


class SubmissionStatus(StrEnum):
    DRAFT = "Draft"
    PENDING_PBP = "PendingPBP"
    PENDING_PROCUREMENT = "PendingProcurement"
    PENDING_OPW = "PendingOPW"
    PENDING_CONTRACT = "PendingContract"
    PENDING_AP = "PendingAP"
    COMPLETED_ORACLE = "Completed_Oracle"
    COMPLETED_PAYROLL = "Completed_Payroll"
    SDS_ISSUED_AWAITING_RESPONSE = "SDSIssued_AwaitingResponse"
    REJECTED = "Rejected"


TERMINAL_STATUSES = frozenset(
    {
        SubmissionStatus.REJECTED,
        SubmissionStatus.COMPLETED_ORACLE,
        SubmissionStatus.COMPLETED_PAYROLL,
    }
)

# Statuses that refuse further Review Records. The SDS branch is closed to reviewers
# but still accepts the SDS response.
CLOSED_STATUSES = TERMINAL_STATUSES | {SubmissionStatus.SDS_ISSUED_AWAITING_RESPONSE}


class Stage(StrEnum):
    REQUESTER = "requester"
    PBP = "pbp"
    PROCUREMENT = "procurement"
    OPW = "opw"
    CONTRACT_DRAFTER = "contract_drafter"
    AP_CONTROL = "ap_control"
    CLOSED = "closed"


class ReviewerRole(StrEnum):
    PBP = "pbp"
    PROCUREMENT = "procurement"
    OPW = "opw"
    CONTRACT_DRAFTER = "contract_drafter"
    AP_CONTROL = "ap_control"


class Department(StrEnum):
    PBP = "pbp"
    PROCUREMENT = "procurement"
    OPW = "opw"
    CONTRACT_DRAFTER = "contract_drafter"
    AP_CONTROL = "ap_control"
    PAYROLL = "payroll"
    ADMIN = "admin"


class OutcomeRoute(StrEnum):
    ORACLE_AP = "oracle_ap"
    PAYROLL_ESR = "payroll_esr"


class SupplierType(StrEnum):
    LIMITED_COMPANY = "limited_company"
    PARTNERSHIP = "partnership"
    SOLE_TRADER = "sole_trader"
    CHARITY = "charity"
    PUBLIC_SECTOR = "public_sector"


class SupplierClassification(StrEnum):
    STANDARD = "standard"
    OPW_IR35 = "opw_ir35"


class WorkerClassification(StrEnum):
    SOLE_TRADER = "sole_trader"
    INTERMEDIARY = "intermediary"


class EmploymentStatus(StrEnum):
    EMPLOYED = "employed"
    SELF_EMPLOYED = "self_employed"
    REJECTED = "rejected"


class Ir35Determination(StrEnum):
    INSIDE = "inside"
    OUTSIDE = "outside"
    REJECTED = "rejected"


class ReviewDecision(StrEnum):
    APPROVED = "approved"
    REJECTED = "rejected"
    INFO_REQUIRED = "info_required"


class ContractExchangeKind(StrEnum):
    AGREEMENT_SENT = "agreement_sent"
    CHANGES_REQUESTED = "changes_requested"
    SUPPLIER_RESPONSE = "supplier_response"
