"""Report dispatch.

Every report kind in ``app.schemas.ReportParams`` has exactly one entry in
``REPORTS``; the module refuses to import otherwise.  A definition runs
either a platform function (``rpc``), a filtered view (``view``), or a
local reducer over a platform function (``handler``, the financial reports).

Platform functions take ``<field>_param`` arguments, except for the few in
``_BARE_PARAMS``.  A filter value of ``"all"`` means "no filter".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, get_args

from pydantic import BaseModel

from app.schemas import ReportKind, ReportParams, ReportResponse
from app.services import _remote, finance
from backoffice.platform import PlatformClient

_log = logging.getLogger(__name__)

_BARE_PARAMS = frozenset({"period_type", "min_frequency", "min_progress", "max_progress"})

_ALL = "all"

Handler = Callable[[PlatformClient, Any], Awaitable[BaseModel]]


@dataclass(frozen=True)
class ReportDefinition:
    kind: str
    label: str
    category: str
    rpc: str | None = None
    view: str | None = None
    # param field -> view column
    view_filters: dict[str, str] = field(default_factory=dict)
    handler: Handler | None = None


# ── Financial handlers ──────────────────────────────────────────────────────

async def _financial_balance(platform: PlatformClient, p: Any) -> BaseModel:
    return await finance.financial_balance(platform, p.start_date, p.end_date)


async def _financial_summary(platform: PlatformClient, p: Any) -> BaseModel:
    return await finance.financial_summary(platform, p.start_date, p.end_date)


async def _debt_settlement(platform: PlatformClient, p: Any) -> BaseModel:
    return await finance.debt_settlement(platform, p.student_id)


async def _class_delinquency(platform: PlatformClient, p: Any) -> BaseModel:
    return await finance.class_delinquency(platform, p.class_id)


async def _financial_dashboard(platform: PlatformClient, p: Any) -> BaseModel:
    return await finance.financial_dashboard(platform)


_DEFINITIONS = [
    # basic
    ReportDefinition("quantitative_summary", "Resumo Quantitativo", "basic", rpc="get_quantitative_summary"),
    ReportDefinition("evaluation_results", "Resultados de Avaliações", "basic", rpc="get_evaluation_results"),
    ReportDefinition("academic_works", "Trabalhos Acadêmicos", "basic", rpc="get_academic_works_summary"),
    ReportDefinition("certificates_summary", "Certificados", "basic", rpc="get_certificates_summary"),
    ReportDefinition("enrollment_by_position", "Inscrições por Cargo", "basic", rpc="get_enrollment_by_position"),
    # tracking
    ReportDefinition(
        "class_tracking", "Acompanhamento de Turmas", "tracking",
        view="class_tracking_report",
        view_filters={"course_id": "course_id", "segment": "segment_name", "status": "class_status"},
    ),
    ReportDefinition(
        "students_per_class", "Alunos por Turma", "tracking",
        view="students_per_class_report",
        view_filters={
            "course_id": "course_id",
            "class_id": "class_id",
            "segment": "segment_name",
            "status": "enrollment_status",
        },
    ),
    ReportDefinition("student_progress", "Acompanhamento Discente", "tracking", rpc="get_student_progress"),
    ReportDefinition("registered_students", "Alunos Cadastrados", "tracking", rpc="get_registered_students"),
    ReportDefinition("dropout_students", "Alunos Desistentes", "tracking", rpc="get_dropout_students"),
    # performance
    ReportDefinition("trained_students", "Alunos Treinados por Período", "performance", rpc="get_trained_students_by_period"),
    ReportDefinition("near_completion", "Alunos em Fase de Conclusão", "performance", rpc="get_students_near_completion"),
    ReportDefinition("final_grades", "Notas Finais", "performance", rpc="get_final_grades_report"),
    ReportDefinition("workload_by_class", "Carga Horária por Turma", "performance", rpc="get_workload_by_class"),
    ReportDefinition("certification_report", "Relatório de Certificação", "performance", rpc="get_certification_report"),
    # administrative
    ReportDefinition("attendance_list", "Lista de Presença", "administrative", rpc="get_attendance_list"),
    ReportDefinition("tutor_payments", "Pagamento de Tutores", "administrative", rpc="get_tutor_payments"),
    ReportDefinition("statistical_report", "Relatório Estatístico", "administrative", rpc="get_statistical_report"),
    ReportDefinition("training_hours", "Horas de Treinamento", "administrative", rpc="get_training_hours_report"),
    ReportDefinition("expense_report", "Relatório de Gastos", "administrative", rpc="get_expense_report"),
    # financial
    ReportDefinition("financial_balance", "Balanço Financeiro", "financial", handler=_financial_balance),
    ReportDefinition("financial_summary", "Resumo Financeiro", "financial", handler=_financial_summary),
    ReportDefinition("debt_settlement", "Quitação de Débitos", "financial", handler=_debt_settlement),
    ReportDefinition("class_delinquency", "Inadimplência por Turma", "financial", handler=_class_delinquency),
    ReportDefinition("financial_dashboard", "Painel Financeiro", "financial", handler=_financial_dashboard),
]

REPORTS: dict[str, ReportDefinition] = {d.kind: d for d in _DEFINITIONS}


def _declared_kinds() -> set[str]:
    variants = get_args(get_args(ReportParams)[0])
    return {v.model_fields["kind"].default for v in variants}


def _check_registry() -> None:
    declared = _declared_kinds()
    missing = declared - set(REPORTS)
    extra = set(REPORTS) - declared
    if missing or extra:
        raise RuntimeError(
            f"Report registry out of sync: missing={sorted(missing)} extra={sorted(extra)}"
        )
    for d in _DEFINITIONS:
        sources = [s for s in (d.rpc, d.view, d.handler) if s is not None]
        if len(sources) != 1:
            raise RuntimeError(f"Report '{d.kind}' must have exactly one source")


_check_registry()


# ── Parameter mapping ───────────────────────────────────────────────────────

def _param_value(value: Any) -> Any:
    if value == _ALL:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return value


def rpc_arguments(params: BaseModel) -> dict[str, Any]:
    """Platform-function arguments for *params*; unset filters are omitted."""
    args: dict[str, Any] = {}
    for name in type(params).model_fields:
        if name == "kind":
            continue
        value = _param_value(getattr(params, name))
        if value is None:
            continue
        args[name if name in _BARE_PARAMS else f"{name}_param"] = value
    return args


def view_filters(definition: ReportDefinition, params: BaseModel) -> dict[str, Any]:
    filters: dict[str, Any] = {}
    for name, column in definition.view_filters.items():
        value = _param_value(getattr(params, name))
        if value:
            filters[column] = value
    return filters


# ── Execution ───────────────────────────────────────────────────────────────

def available_reports() -> list[ReportKind]:
    return [ReportKind(kind=d.kind, label=d.label, category=d.category) for d in _DEFINITIONS]


async def run_report(
    platform: PlatformClient, params: ReportParams, *, now: datetime | None = None,
) -> ReportResponse:
    definition = REPORTS[params.kind]
    failure = f"Failed to run report '{definition.label}'."

    if definition.handler is not None:
        result = await definition.handler(platform, params)
        rows = [result.model_dump(mode="json")]
    elif definition.view is not None:
        rows = await _remote.select(
            platform, definition.view, filters=view_filters(definition, params) or None,
            failure=failure,
        )
    else:
        data = await _remote.rpc(platform, definition.rpc, rpc_arguments(params), failure=failure)
        rows = [data] if isinstance(data, dict) else list(data or [])

    _log.info("Report %s returned %d rows", definition.kind, len(rows))
    return ReportResponse(
        kind=definition.kind,
        generated_at=(now or datetime.now(timezone.utc)).isoformat(),
        count=len(rows),
        rows=rows,
    )
