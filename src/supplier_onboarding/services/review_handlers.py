"""Review stage handlers.

Each handler validates a reviewer's decision payload against the submission it
targets and, when every guard holds, emits the immutable Review Record for its
stage. Handlers never change status; routing belongs to the workflow service.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from supplier_onboarding.contracts.decisions import (
    ApControlDecision,
    ContractDecision,
    DecisionPayload,
    OpwDecision,
    PbpDecision,
    ProcurementDecision,
)
from supplier_onboarding.contracts.enums import (
    EmploymentStatus,
    Ir35Determination,
    ReviewDecision,
    ReviewerRole,
    SupplierType,
    WorkerClassification,
)
from supplier_onboarding.contracts.submission import (
    ApControlReviewRecord,
    ContractReviewRecord,
    OpwReviewRecord,
    PbpReviewRecord,
    ProcurementReviewRecord,
    ReviewRecord,
    SdsTracking,
    Submission,
)
from supplier_onboarding.contracts.workflow import WorkflowError
from supplier_onboarding.services import completeness_service
from supplier_onboarding.services.field_formats import as_text, is_blank

SOLE_TRADER_AGREEMENT_TEMPLATE = "Sole Trader Agreement latest version 22.docx"
CONSULTANCY_AGREEMENT_TEMPLATE = "BartsConsultancyAgreement.1.2.docx"


class AgreementTemplates(BaseModel):
    model_config = ConfigDict(frozen=True)

    sole_trader: str = SOLE_TRADER_AGREEMENT_TEMPLATE
    consultancy: str = CONSULTANCY_AGREEMENT_TEMPLATE


class HandlerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: ReviewRecord | None = None
    error: WorkflowError | None = None


def derive_worker_classification(requester_fields: Mapping[str, Any]) -> WorkerClassification:
    personal_service = as_text(requester_fields.get("soleTraderStatus")).lower() == "yes"
    supplier_type = as_text(requester_fields.get("supplierType")).lower()
    if personal_service and supplier_type in ("", SupplierType.SOLE_TRADER):
        return WorkerClassification.SOLE_TRADER
    return WorkerClassification.INTERMEDIARY


def select_agreement_template(
    worker_classification: WorkerClassification,
    templates: AgreementTemplates | None = None,
) -> str:
    templates = templates or AgreementTemplates()
    if worker_classification == WorkerClassification.SOLE_TRADER:
        return templates.sole_trader
    return templates.consultancy


class ReviewStageHandler:
    role: ReviewerRole
    payload_type: type[BaseModel]
    supports_info_required = False

    def review(
        self, submission: Submission, payload: DecisionPayload, now: datetime
    ) -> HandlerResult:
        if not isinstance(payload, self.payload_type):
            return HandlerResult(
                error=WorkflowError.integrity(
                    "PAYLOAD_ROLE_MISMATCH",
                    f"{payload.role} decision payload cannot be applied by the {self.role} stage",
                )
            )
        decision = self._decision(submission, payload)
        if isinstance(decision, WorkflowError):
            return HandlerResult(error=decision)

        error = self._common_guards(payload, decision) or self._guards(
            submission, payload, decision, now
        )
        if error is not None:
            return HandlerResult(error=error)
        return HandlerResult(record=self._record(submission, payload, decision, now))

    def _decision(
        self, submission: Submission, payload: DecisionPayload
    ) -> ReviewDecision | WorkflowError:
        if payload.decision is None:
            return WorkflowError.guard("DECISION_REQUIRED", "a decision is required")
        if payload.decision == ReviewDecision.INFO_REQUIRED and not self.supports_info_required:
            return WorkflowError.guard(
                "UNSUPPORTED_DECISION",
                f"the {self.role} stage cannot request further information",
            )
        return payload.decision

    def _common_guards(
        self, payload: DecisionPayload, decision: ReviewDecision
    ) -> WorkflowError | None:
        if is_blank(payload.signer):
            return WorkflowError.guard("SIGNATURE_REQUIRED", "a signer name is required")
        if payload.signature_date is None:
            return WorkflowError.guard("SIGNATURE_DATE_REQUIRED", "a signature date is required")
        if decision == ReviewDecision.REJECTED and is_blank(payload.rejection_reason):
            return WorkflowError.guard(
                "REJECTION_REASON_REQUIRED", "a rejection reason is required"
            )
        return None

    def _guards(
        self,
        submission: Submission,
        payload: DecisionPayload,
        decision: ReviewDecision,
        now: datetime,
    ) -> WorkflowError | None:
        return None

    def _base_fields(
        self, payload: DecisionPayload, decision: ReviewDecision, now: datetime
    ) -> dict[str, Any]:
        return {
            "decision": decision,
            "rationale": payload.rationale.strip(),
            "rejection_reason": payload.rejection_reason.strip(),
            "signer": payload.signer.strip(),
            "signature_date": payload.signature_date,
            "reviewed_at": now,
        }

    def _record(
        self,
        submission: Submission,
        payload: DecisionPayload,
        decision: ReviewDecision,
        now: datetime,
    ) -> ReviewRecord:
        raise NotImplementedError


class PbpReviewHandler(ReviewStageHandler):
    role = ReviewerRole.PBP
    payload_type = PbpDecision
    supports_info_required = True

    def __init__(self, allowed_email_domains: tuple[str, ...] | None = None):
        self._allowed_email_domains = allowed_email_domains

    def _guards(self, submission, payload, decision, now):
        if decision == ReviewDecision.INFO_REQUIRED and is_blank(payload.rationale):
            return WorkflowError.guard(
                "INFORMATION_REQUEST_REQUIRED",
                "describe the information requested from the requester",
            )
        if decision == ReviewDecision.APPROVED:
            missing = completeness_service.missing_requirements(
                completeness_service.ALL_SCOPE,
                submission.requester_fields,
                submission.documents,
                today=now.date(),
                allowed_email_domains=self._allowed_email_domains,
            )
            if missing:
                return WorkflowError.validation("submission is incomplete", missing)
        return None

    def _record(self, submission, payload, decision, now):
        return PbpReviewRecord(**self._base_fields(payload, decision, now))


class ProcurementReviewHandler(ReviewStageHandler):
    role = ReviewerRole.PROCUREMENT
    payload_type = ProcurementDecision

    def _guards(self, submission, payload, decision, now):
        if decision == ReviewDecision.APPROVED and payload.supplier_classification is None:
            return WorkflowError.guard(
                "SUPPLIER_CLASSIFICATION_REQUIRED",
                "approval requires a supplier classification (standard or opw_ir35)",
            )
        return None

    def _record(self, submission, payload, decision, now):
        classification = (
            payload.supplier_classification if decision == ReviewDecision.APPROVED else None
        )
        return ProcurementReviewRecord(
            **self._base_fields(payload, decision, now),
            supplier_classification=classification,
        )


class OpwReviewHandler(ReviewStageHandler):
    """Records the OPW panel determination.

    The worker classification is derived from the requester's answers. Sole
    traders receive an employment status, everyone else an IR35 determination;
    the review decision follows from that answer.
    """

    role = ReviewerRole.OPW
    payload_type = OpwDecision

    def __init__(self, templates: AgreementTemplates | None = None):
        self._templates = templates or AgreementTemplates()

    def _decision(self, submission, payload):
        worker = derive_worker_classification(submission.requester_fields)
        if worker == WorkerClassification.SOLE_TRADER:
            if payload.ir35_determination is not None:
                return WorkflowError.guard(
                    "WRONG_DETERMINATION_BRANCH",
                    "sole traders receive an employment status, not an IR35 determination",
                )
            answer = payload.employment_status
            rejected = EmploymentStatus.REJECTED
            missing_code = "EMPLOYMENT_STATUS_REQUIRED"
        else:
            if payload.employment_status is not None:
                return WorkflowError.guard(
                    "WRONG_DETERMINATION_BRANCH",
                    "intermediaries receive an IR35 determination, not an employment status",
                )
            answer = payload.ir35_determination
            rejected = Ir35Determination.REJECTED
            missing_code = "IR35_DETERMINATION_REQUIRED"

        if answer is None:
            if payload.decision == ReviewDecision.REJECTED:
                return ReviewDecision.REJECTED
            return WorkflowError.guard(
                missing_code, f"a determination is required for a {worker} worker"
            )

        derived = ReviewDecision.REJECTED if answer == rejected else ReviewDecision.APPROVED
        if payload.decision is not None and payload.decision != derived:
            return WorkflowError.guard(
                "DECISION_MISMATCH",
                f"decision {payload.decision} contradicts determination {answer}",
            )
        return derived

    def _guards(self, submission, payload, decision, now):
        if decision == ReviewDecision.REJECTED:
            return None

        if payload.ir35_determination is not None and is_blank(payload.rationale):
            return WorkflowError.guard(
                "RATIONALE_REQUIRED", "an IR35 determination requires a rationale"
            )

        needs_contract_answer = payload.employment_status == EmploymentStatus.SELF_EMPLOYED or (
            payload.ir35_determination == Ir35Determination.OUTSIDE
        )
        if needs_contract_answer and payload.contract_required is None:
            return WorkflowError.guard(
                "CONTRACT_REQUIREMENT_REQUIRED", "state whether a contract is required"
            )

        sds = payload.sds
        if sds is not None and sds.issued:
            if payload.ir35_determination != Ir35Determination.INSIDE:
                return WorkflowError.guard(
                    "SDS_NOT_APPLICABLE",
                    "a status determination statement is only issued for inside IR35",
                )
            if sds.issued_date is None:
                return WorkflowError.guard(
                    "SDS_ISSUE_DATE_REQUIRED", "an issued SDS requires an issue date"
                )
            if sds.response_received and sds.response_date is not None:
                if sds.response_date < sds.issued_date:
                    return WorkflowError.guard(
                        "SDS_RESPONSE_BEFORE_ISSUE",
                        "the SDS response date cannot precede the issue date",
                    )
        return None

    def _record(self, submission, payload, decision, now):
        worker = derive_worker_classification(submission.requester_fields)
        approved = decision == ReviewDecision.APPROVED
        contract_required = payload.contract_required if approved else None

        sds_tracking = None
        if approved and payload.ir35_determination == Ir35Determination.INSIDE and payload.sds:
            sds_tracking = SdsTracking(
                issued=payload.sds.issued,
                issued_date=payload.sds.issued_date,
                response_received=payload.sds.response_received,
                response_date=payload.sds.response_date,
            )

        return OpwReviewRecord(
            **self._base_fields(payload, decision, now),
            worker_classification=worker,
            employment_status=payload.employment_status,
            ir35_determination=payload.ir35_determination,
            contract_required=contract_required,
            sds_tracking=sds_tracking,
            agreement_template=(
                select_agreement_template(worker, self._templates) if contract_required else None
            ),
        )


class ContractReviewHandler(ReviewStageHandler):
    role = ReviewerRole.CONTRACT_DRAFTER
    payload_type = ContractDecision

    def _guards(self, submission, payload, decision, now):
        if decision == ReviewDecision.APPROVED and is_blank(payload.signed_agreement_reference):
            return WorkflowError.guard(
                "SIGNED_AGREEMENT_REQUIRED",
                "approval requires a finalized signed agreement reference",
            )
        return None

    def _record(self, submission, payload, decision, now):
        reference = payload.signed_agreement_reference.strip()
        return ContractReviewRecord(
            **self._base_fields(payload, decision, now),
            signed_agreement_reference=reference or None,
        )


class ApControlReviewHandler(ReviewStageHandler):
    role = ReviewerRole.AP_CONTROL
    payload_type = ApControlDecision

    def _guards(self, submission, payload, decision, now):
        if decision != ReviewDecision.APPROVED:
            return None
        if not (payload.bank_details_verified and payload.company_details_verified):
            return WorkflowError.guard(
                "VERIFICATION_INCOMPLETE",
                "bank details and company details must both be verified",
            )
        if is_blank(payload.supplier_number):
            return WorkflowError.guard(
                "SUPPLIER_NUMBER_REQUIRED", "approval requires a supplier number"
            )
        return None

    def _record(self, submission, payload, decision, now):
        supplier_number = payload.supplier_number.strip()
        return ApControlReviewRecord(
            **self._base_fields(payload, decision, now),
            bank_details_verified=payload.bank_details_verified,
            company_details_verified=payload.company_details_verified,
            vat_verified=payload.vat_verified,
            cis_verified=payload.cis_verified,
            insurance_verified=payload.insurance_verified,
            supplier_number=supplier_number or None,
        )


def default_handlers(
    allowed_email_domains: tuple[str, ...] | None = None,
    templates: AgreementTemplates | None = None,
) -> dict[ReviewerRole, ReviewStageHandler]:
    return {
        ReviewerRole.PBP: PbpReviewHandler(allowed_email_domains),
        ReviewerRole.PROCUREMENT: ProcurementReviewHandler(),
        ReviewerRole.OPW: OpwReviewHandler(templates),
        ReviewerRole.CONTRACT_DRAFTER: ContractReviewHandler(),
        ReviewerRole.AP_CONTROL: ApControlReviewHandler(),
    }
