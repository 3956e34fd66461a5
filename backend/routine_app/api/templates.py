from __future__ import annotations

from fastapi import APIRouter, Depends

from routine_app.api.deps import get_template_service
from routine_app.api.schemas import (
    TemplateCreateRequest,
    TemplateResponse,
    TemplateTaskResponse,
)
from routine_app.scheduler.schema import Template
from routine_app.services.errors import ApiError
from routine_app.services.template_service import TemplateService

router = APIRouter(tags=["templates"])


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates(
    service: TemplateService = Depends(get_template_service),
) -> list[TemplateResponse]:
    templates = await service.list_templates()
    return [serialize_template(template) for template in templates]


@router.post("/templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    payload: TemplateCreateRequest,
    service: TemplateService = Depends(get_template_service),
) -> TemplateResponse:
    template = await service.save_template(payload.model_dump())
    return serialize_template(template)


@router.post("/templates/default", response_model=TemplateResponse, status_code=201)
async def create_default_template(
    service: TemplateService = Depends(get_template_service),
) -> TemplateResponse:
    template = await service.create_default_template()
    return serialize_template(template)


@router.get("/templates/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    service: TemplateService = Depends(get_template_service),
) -> TemplateResponse:
    template = await service.get_template(template_id)
    if template is None:
        raise ApiError(
            status_code=404,
            code="TEMPLATE_NOT_FOUND",
            message=f"Template '{template_id}' not found",
        )
    return serialize_template(template)


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    service: TemplateService = Depends(get_template_service),
) -> None:
    await service.delete_template(template_id)


def serialize_template(template: Template) -> TemplateResponse:
    return TemplateResponse(
        id=template.id,
        name=template.name,
        default_end_time=template.default_end_time,
        tasks=[
            TemplateTaskResponse(
                id=task.id,
                title=task.title,
                offset_minutes=None if task.offset is None else task.offset.value,
                is_timed=task.is_timed,
            )
            for task in template.tasks
        ],
    )
