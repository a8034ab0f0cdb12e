"""
Hashtag template API.

Creation and duplication consume template_creation quota; a denial is
returned as 403 with the limit in the error payload.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from socialgen.core.auth import get_current_user_id
from socialgen.features.quota.service import raise_for_denial
from socialgen.features.templates import service as templates_service
from socialgen.models.template import (
    HashtagTemplate,
    Platform,
    TemplateCreateRequest,
    TemplatePage,
    TemplateUpdateRequest,
)
from socialgen.models.usage import UsageSnapshot


router = APIRouter(prefix="/v1/templates", tags=["templates"])


class CategoriesResponse(BaseModel):
    categories: List[str]


@router.post("", response_model=HashtagTemplate, status_code=201)
def create_template(request: TemplateCreateRequest, user_id: str = Depends(get_current_user_id)):
    gated = templates_service.create_template(user_id, request)
    raise_for_denial(gated.decision)
    return gated.result


@router.get("", response_model=TemplatePage)
def list_templates(
    category: Optional[str] = Query(None),
    platform: Optional[Platform] = Query(None),
    limit: int = Query(20, ge=1, le=templates_service.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
):
    return templates_service.list_templates(
        user_id, category=category, platform=platform, limit=limit, offset=offset
    )


@router.get("/categories", response_model=CategoriesResponse)
def list_categories(user_id: str = Depends(get_current_user_id)):
    return {"categories": templates_service.get_categories(user_id)}


@router.get("/usage", response_model=UsageSnapshot)
def template_usage(user_id: str = Depends(get_current_user_id)):
    return templates_service.get_usage_stats(user_id)


@router.get("/{template_id}", response_model=HashtagTemplate)
def get_template(template_id: str, user_id: str = Depends(get_current_user_id)):
    return templates_service.get_template(user_id, template_id)


@router.patch("/{template_id}", response_model=HashtagTemplate)
def update_template(
    template_id: str,
    request: TemplateUpdateRequest,
    user_id: str = Depends(get_current_user_id),
):
    return templates_service.update_template(user_id, template_id, request)


@router.delete("/{template_id}", status_code=204)
def delete_template(template_id: str, user_id: str = Depends(get_current_user_id)):
    templates_service.delete_template(user_id, template_id)
    return Response(status_code=204)


@router.post("/{template_id}/duplicate", response_model=HashtagTemplate, status_code=201)
def duplicate_template(template_id: str, user_id: str = Depends(get_current_user_id)):
    gated = templates_service.duplicate_template(user_id, template_id)
    raise_for_denial(gated.decision)
    return gated.result
