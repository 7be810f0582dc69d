"""Pydantic models defining the REST contract between console and backend."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


# ── Bulk operations ─────────────────────────────────────────────────────────

class BulkStudentFinancialRecord(BaseModel):
    student_id: str
    bank_account: str | None = None
    bank_code: str | None = None
    agency_number: str | None = None
    account_number: str | None = None
    tax_id: str | None = None
    billing_address: str | None = None
    billing_city: str | None = None
    billing_state: str | None = None
    billing_zip_code: str | None = None


class BulkScholarshipRecord(BaseModel):
    student_id: str
    scholarship_id: str | None = None
    start_date: date
    end_date: date | None = None
    discount_percentage: float = 0.0


class BulkOperationResult(BaseModel):
    student_id: str | None = None
    scholarship_id: str | None = None
    status: Literal["success", "error"]
    error_message: str | None = None


class BulkParseResponse(BaseModel):
    template: str
    count: int
    records: list[dict[str, Any]]


class BulkOperationResponse(BaseModel):
    template: str
    total: int
    succeeded: int
    failed: int
    results: list[BulkOperationResult]


# ── Directory ───────────────────────────────────────────────────────────────

class Student(BaseModel):
    id: str
    name: str
    email: str | None = None
    role: str


# ── Bank slips ──────────────────────────────────────────────────────────────

SlipStatus = Literal["pending", "paid", "overdue", "canceled"]
PaymentMethod = Literal["bank_slip", "pix", "credit_card", "debit_card", "cash"]


class BankSlip(BaseModel):
    id: str
    student_id: str
    amount: float
    due_date: date
    barcode: str | None = None
    status: SlipStatus
    batch_id: str | None = None
    email_sent: bool = False
    email_sent_at: str | None = None
    payment_method: PaymentMethod | None = None
    pix_key: str | None = None
    qr_code_url: str | None = None
    late_fee: float = 0.0
    interest_rate: float = 0.0
    discount_amount: float = 0.0
    final_amount: float
    bank_integration_id: str | None = None
    external_id: str | None = None
    notes: str | None = None
    payment_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class BankSlipListResponse(BaseModel):
    total: int
    slips: list[BankSlip]


class GenerateBatchRequest(BaseModel):
    student_ids: list[str] = Field(default_factory=list)
    amount: float | None = Field(default=None, allow_inf_nan=False)
    due_date: date | None = None
    description: str = ""


class GenerateBatchResponse(BaseModel):
    batch_id: str
    recipients: int


class SendBatchRequest(BaseModel):
    email_template: str = "default"


class PaymentRequest(BaseModel):
    payment_amount: float | None = Field(default=None, allow_inf_nan=False)
    # ISO date or date-time; omitted means "now".
    payment_date: str | None = None


class PaymentOutcome(BaseModel):
    success: bool
    message: str
    transaction_id: str | None = None


class LateFeeQuoteRequest(BaseModel):
    original_amount: float = Field(allow_inf_nan=False)
    due_date: date
    interest_rate: float | None = Field(default=None, allow_inf_nan=False)
    late_fee_rate: float | None = Field(default=None, allow_inf_nan=False)


class LateFeeQuote(BaseModel):
    late_fee: float
    interest: float
    total_amount: float


class PayableAmount(BaseModel):
    slip_id: str
    status: SlipStatus
    as_of: date
    overdue: bool
    amount: float
    discount_amount: float
    late_fee: float
    interest: float
    final_amount: float
    display: str


# ── Transactions & scholarships ─────────────────────────────────────────────

TransactionStatus = Literal["pending", "paid", "overdue", "canceled", "completed"]


class NewFinancialTransaction(BaseModel):
    description: str
    amount: float
    type: Literal["income", "expense"]
    status: TransactionStatus = "pending"
    due_date: date
    paid_at: str | None = None
    profile_id: str | None = None
    provider_id: str | None = None
    related_contract_id: str | None = None


class UpdateFinancialTransaction(BaseModel):
    description: str | None = None
    amount: float | None = None
    type: Literal["income", "expense"] | None = None
    status: TransactionStatus | None = None
    due_date: date | None = None
    paid_at: str | None = None
    profile_id: str | None = None
    provider_id: str | None = None
    related_contract_id: str | None = None


class FinancialTransaction(NewFinancialTransaction):
    id: str
    created_at: str | None = None
    updated_at: str | None = None


class NewScholarship(BaseModel):
    name: str
    description: str | None = None
    discount_percentage: float = Field(ge=0, le=100)


class Scholarship(NewScholarship):
    id: str
    created_at: str | None = None
    updated_at: str | None = None


class NewProfileScholarship(BaseModel):
    profile_id: str
    scholarship_id: str
    start_date: date
    end_date: date | None = None


class ProfileScholarship(NewProfileScholarship):
    id: str
    created_at: str | None = None
    profile_name: str | None = None
    scholarship_name: str | None = None


# ── Invoices, declarations, automatic billing ──────────────────────────────

class NewInvoice(BaseModel):
    profile_id: str
    invoice_number: str
    amount: float
    tax_amount: float = 0.0
    discount_amount: float | None = None
    due_date: date
    status: Literal["draft", "issued", "paid", "canceled"] = "draft"
    description: str
    notes: str | None = None


class Invoice(BaseModel):
    id: str
    profile_id: str
    invoice_number: str | None = None
    issue_date: str | None = None
    due_date: str | None = None
    amount: float
    tax_amount: float = 0.0
    discount_amount: float | None = None
    total_amount: float
    status: str
    description: str | None = None
    notes: str | None = None
    recipient_name: str = ""
    recipient_tax_id: str = ""
    recipient_address: str = ""
    service_description: str | None = None
    xml_data: str | None = None
    pdf_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class FinancialDeclaration(BaseModel):
    id: str
    profile_id: str
    declaration_type: str
    title: str
    content: str
    reference_period_start: str | None = None
    reference_period_end: str | None = None
    auth_code: str | None = None
    status: str
    valid_until: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class DeclarationRequest(BaseModel):
    profile_id: str
    start_date: date | None = None
    end_date: date | None = None


class DeclarationOutcome(BaseModel):
    success: bool
    message: str
    declaration_id: str | None = None
    auth_code: str | None = None


class AutomaticBillingConfigRequest(BaseModel):
    enable_reminders: bool | None = None
    days_before: int | None = Field(default=None, ge=0)
    days_after: int | None = Field(default=None, ge=0)
    max_reminders: int | None = Field(default=None, ge=0)
    preferred_contact: Literal["email", "sms", "whatsapp"] | None = None
    custom_message: str | None = None


class OperationOutcome(BaseModel):
    success: bool
    message: str


class AutomaticBillingRunOutcome(BaseModel):
    success: bool
    processed_count: int
    message: str


class BackupRequest(BaseModel):
    start_date: date
    end_date: date


class BackupOutcome(BaseModel):
    success: bool
    message: str
    backup_data: Any = None


# ── Reports ─────────────────────────────────────────────────────────────────
# One parameter model per report kind; ``kind`` is the discriminator.

PeriodType = Literal["daily", "monthly", "annual"]


class _Period(BaseModel):
    start_date: date | None = None
    end_date: date | None = None


class QuantitativeSummaryParams(_Period):
    kind: Literal["quantitative_summary"] = "quantitative_summary"
    origin: str | None = None
    nature: str | None = None
    period_type: PeriodType = "monthly"


class EvaluationResultsParams(_Period):
    kind: Literal["evaluation_results"] = "evaluation_results"
    evaluation_type: str | None = None
    course_id: str | None = None


class AcademicWorksParams(_Period):
    kind: Literal["academic_works"] = "academic_works"
    origin: str | None = None
    nature: str | None = None
    period_type: PeriodType = "monthly"


class CertificatesSummaryParams(_Period):
    kind: Literal["certificates_summary"] = "certificates_summary"
    course_id: str | None = None
    period_type: PeriodType = "monthly"


class EnrollmentByPositionParams(_Period):
    kind: Literal["enrollment_by_position"] = "enrollment_by_position"
    course_id: str | None = None
    period_type: PeriodType = "monthly"


class ClassTrackingParams(BaseModel):
    kind: Literal["class_tracking"] = "class_tracking"
    course_id: str | None = None
    segment: str | None = None
    status: str | None = None


class StudentsPerClassParams(BaseModel):
    kind: Literal["students_per_class"] = "students_per_class"
    course_id: str | None = None
    class_id: str | None = None
    segment: str | None = None
    status: str | None = None


class DropoutStudentsParams(BaseModel):
    kind: Literal["dropout_students"] = "dropout_students"
    class_id: str | None = None
    course_id: str | None = None
    segment: str | None = None
    min_frequency: float = 75


class StudentProgressParams(BaseModel):
    kind: Literal["student_progress"] = "student_progress"
    course_id: str | None = None
    class_id: str | None = None
    segment: str | None = None


class RegisteredStudentsParams(BaseModel):
    kind: Literal["registered_students"] = "registered_students"
    course_id: str | None = None
    class_id: str | None = None
    segment: str | None = None


class TrainedStudentsParams(_Period):
    kind: Literal["trained_students"] = "trained_students"
    period_type: Literal["trimester", "semester"] = "trimester"


class NearCompletionParams(BaseModel):
    kind: Literal["near_completion"] = "near_completion"
    class_id: str | None = None
    course_id: str | None = None
    segment: str | None = None
    min_progress: float = 80
    max_progress: float = 99


class FinalGradesParams(_Period):
    kind: Literal["final_grades"] = "final_grades"
    course_id: str | None = None
    class_id: str | None = None
    segment: str | None = None


class WorkloadByClassParams(BaseModel):
    kind: Literal["workload_by_class"] = "workload_by_class"
    course_id: str | None = None
    class_id: str | None = None
    segment: str | None = None
    status: str | None = None


class CertificationReportParams(_Period):
    kind: Literal["certification_report"] = "certification_report"
    course_id: str | None = None
    segment: str | None = None
    status: str | None = None


class AttendanceListParams(BaseModel):
    kind: Literal["attendance_list"] = "attendance_list"
    course_id: str | None = None
    class_id: str | None = None


class TutorPaymentsParams(_Period):
    kind: Literal["tutor_payments"] = "tutor_payments"
    course_id: str | None = None
    class_id: str | None = None
    tutor_id: str | None = None


class StatisticalReportParams(_Period):
    kind: Literal["statistical_report"] = "statistical_report"


class TrainingHoursParams(_Period):
    kind: Literal["training_hours"] = "training_hours"
    course_id: str | None = None
    student_id: str | None = None
    course_type: Literal["presencial", "online", "all"] | None = None


class ExpenseReportParams(_Period):
    kind: Literal["expense_report"] = "expense_report"
    course_id: str | None = None
    class_id: str | None = None


class FinancialBalanceParams(_Period):
    """Defaults to the current month when no period is given."""
    kind: Literal["financial_balance"] = "financial_balance"


class FinancialSummaryParams(BaseModel):
    kind: Literal["financial_summary"] = "financial_summary"
    start_date: date
    end_date: date


class DebtSettlementParams(BaseModel):
    kind: Literal["debt_settlement"] = "debt_settlement"
    student_id: str


class ClassDelinquencyParams(BaseModel):
    kind: Literal["class_delinquency"] = "class_delinquency"
    class_id: str


class FinancialDashboardParams(BaseModel):
    kind: Literal["financial_dashboard"] = "financial_dashboard"


ReportParams = Annotated[
    Union[
        QuantitativeSummaryParams,
        EvaluationResultsParams,
        AcademicWorksParams,
        CertificatesSummaryParams,
        EnrollmentByPositionParams,
        ClassTrackingParams,
        StudentsPerClassParams,
        DropoutStudentsParams,
        StudentProgressParams,
        RegisteredStudentsParams,
        TrainedStudentsParams,
        NearCompletionParams,
        FinalGradesParams,
        WorkloadByClassParams,
        CertificationReportParams,
        AttendanceListParams,
        TutorPaymentsParams,
        StatisticalReportParams,
        TrainingHoursParams,
        ExpenseReportParams,
        FinancialBalanceParams,
        FinancialSummaryParams,
        DebtSettlementParams,
        ClassDelinquencyParams,
        FinancialDashboardParams,
    ],
    Field(discriminator="kind"),
]


class ReportRequest(BaseModel):
    params: ReportParams


class ReportKind(BaseModel):
    kind: str
    label: str
    category: str


class ReportResponse(BaseModel):
    kind: str
    generated_at: str
    count: int
    rows: list[dict[str, Any]]


# ── Financial report shapes ─────────────────────────────────────────────────

class FinancialBalanceLine(BaseModel):
    origin: str
    income: float
    expenses: float
    balance: float


class FinancialBalanceReport(BaseModel):
    period: str
    total_income: float
    total_expenses: float
    net_balance: float
    transactions: list[FinancialBalanceLine]


class FinancialSummaryReport(BaseModel):
    period: str
    period_type: str
    total_income: float
    total_expenses: float
    net_result: float
    average_transaction_value: float
    transaction_count: int


class DebtSettlementReport(BaseModel):
    student_id: str
    student_name: str
    total_debt: float
    paid_amount: float
    pending_amount: float
    overdue_amount: float
    debt_status: Literal["current", "overdue", "settled"]
    last_payment_date: str | None = None


class ClassDelinquencyReport(BaseModel):
    class_id: str
    class_name: str
    total_students: int
    delinquent_students: int
    overdue_amount: float
    delinquency_rate: float
    delinquency_level: Literal["low", "medium", "high", "critical"]


class FinancialDashboardSummary(BaseModel):
    current_month_revenue: float
    current_month_expenses: float
    pending_receivables: float
    overdue_amount: float
    active_students: int
    delinquent_students: int
    average_delinquency_rate: float
