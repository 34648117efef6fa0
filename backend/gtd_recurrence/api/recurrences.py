"""
Recurring series API endpoints.
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from gtd_recurrence.api.deps import RecurrenceService
from gtd_recurrence.core.exceptions import (
    NotFoundError,
    RecurrenceEngineError,
    StorageError,
    ValidationError,
)
from gtd_recurrence.models.enums import RulePreset, SeriesState
from gtd_recurrence.models.recurrence import EndCondition, NeverEnd, RecurrenceRule
from gtd_recurrence.models.task import Task, TaskData
from gtd_recurrence.services.occurrence_calculator import (
    MAX_PREVIEW_OCCURRENCES,
    first_occurrence,
    format_preview_date,
    format_rule_summary,
)
from gtd_recurrence.services.recurrence_series_service import RecurrenceSeriesService
from gtd_recurrence.services.rule_builder import build_rule, detect_preset, ensure_valid_rule

router = APIRouter()


# ===========================================
# Request / response models
# ===========================================


class PreviewRequest(BaseModel):
    """Either a typed rule or raw recurrence form values."""

    rule: Optional[RecurrenceRule] = None
    form_values: Optional[dict[str, Any]] = None
    count: int = Field(5, ge=1, le=MAX_PREVIEW_OCCURRENCES)
    start_date: Optional[date] = None


class PreviewResponse(BaseModel):
    summary: str
    preset: Optional[RulePreset] = None
    dates: list[date]
    labels: list[str]


class SeriesCreateRequest(BaseModel):
    task: TaskData
    rule: RecurrenceRule
    end_condition: EndCondition = Field(default_factory=NeverEnd)


class SeriesRuleUpdate(BaseModel):
    rule: RecurrenceRule
    end_condition: Optional[EndCondition] = None


class GenerateRequest(BaseModel):
    from_date: Optional[date] = None


class SeriesResponse(BaseModel):
    template: Task
    state: SeriesState
    summary: str
    preset: Optional[RulePreset] = None


class CompletionResponse(BaseModel):
    task: Task
    next_instance: Optional[Task] = None


def _http_error(exc: RecurrenceEngineError) -> HTTPException:
    """Translate a domain error into an HTTP error."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, StorageError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=exc.message)


def _series_response(service: RecurrenceSeriesService, template: Task) -> SeriesResponse:
    return SeriesResponse(
        template=service.decrypt_task(template),
        state=service.series_state(template),
        summary=format_rule_summary(template.recurrence_rule),
        preset=detect_preset(template.recurrence_rule),
    )


# ===========================================
# Endpoints
# ===========================================


@router.post("/preview", response_model=PreviewResponse)
async def preview_occurrences(
    payload: PreviewRequest,
    service: RecurrenceService,
) -> PreviewResponse:
    """Preview the next occurrences of a rule without saving anything."""
    try:
        if payload.form_values is not None:
            rule = build_rule(payload.form_values)
        else:
            rule = payload.rule
        rule = ensure_valid_rule(rule)
    except ValidationError as exc:
        raise _http_error(exc) from exc

    dates = service.preview(rule, payload.count, payload.start_date)
    return PreviewResponse(
        summary=format_rule_summary(rule),
        preset=detect_preset(rule),
        dates=dates,
        labels=[format_preview_date(d) for d in dates],
    )


@router.post("/series", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_series(
    payload: SeriesCreateRequest,
    service: RecurrenceService,
) -> Task:
    """Create a recurring series and return its first instance."""
    try:
        rule = ensure_valid_rule(payload.rule)
        task_data = payload.task
        if task_data.due_date is None:
            task_data = task_data.model_copy(update={"due_date": first_occurrence(rule)})
        return await service.create_series(task_data, rule, payload.end_condition)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc


@router.get("/series/{template_id}", response_model=SeriesResponse)
async def get_series(
    template_id: UUID,
    service: RecurrenceService,
) -> SeriesResponse:
    """Get a series template with its state."""
    try:
        template = await service.get_template(template_id)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recurring template {template_id} not found",
        )
    return _series_response(service, template)


@router.patch("/series/{template_id}", response_model=SeriesResponse)
async def update_series_rule(
    template_id: UUID,
    payload: SeriesRuleUpdate,
    service: RecurrenceService,
) -> SeriesResponse:
    """Replace a series' rule and end condition."""
    try:
        template = await service.update_rule(template_id, payload.rule, payload.end_condition)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
    return _series_response(service, template)


@router.post("/series/{template_id}/generate", response_model=Optional[Task])
async def generate_next_instance(
    template_id: UUID,
    payload: GenerateRequest,
    service: RecurrenceService,
) -> Optional[Task]:
    """Generate the next instance; null when the series has ended."""
    try:
        return await service.generate_next(template_id, payload.from_date or date.today())
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc


@router.post("/series/{template_id}/stop", response_model=SeriesResponse)
async def stop_series(
    template_id: UUID,
    service: RecurrenceService,
) -> SeriesResponse:
    """Stop a series at its current length."""
    try:
        template = await service.stop_series(template_id)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
    return _series_response(service, template)


@router.delete("/series/{template_id}")
async def delete_series(
    template_id: UUID,
    service: RecurrenceService,
):
    """Delete a series with all of its instances."""
    try:
        deleted_count = await service.delete_series(template_id)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
    return {"deleted_count": deleted_count}


@router.post("/tasks/{task_id}/complete", response_model=CompletionResponse)
async def complete_task(
    task_id: UUID,
    service: RecurrenceService,
) -> CompletionResponse:
    """Complete a task; series instances get their successor generated."""
    try:
        result = await service.complete_instance(task_id)
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
    return CompletionResponse(task=result.task, next_instance=result.next_instance)


@router.post("/tasks/{task_id}/convert", response_model=Task)
async def convert_task(
    task_id: UUID,
    payload: SeriesCreateRequest,
    service: RecurrenceService,
) -> Task:
    """Turn an existing task into the first instance of a new series."""
    try:
        return await service.convert_to_recurring(
            task_id, payload.task, payload.rule, payload.end_condition
        )
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc


@router.post("/catch-up", response_model=list[Task])
async def run_catch_up(service: RecurrenceService) -> list[Task]:
    """Generate missed instances for stale series."""
    try:
        return await service.run_catch_up()
    except RecurrenceEngineError as exc:
        raise _http_error(exc) from exc
