"""
Shared dependencies and the CRUD router builder for admin routers.

Every admin resource exposes the same endpoints:

    GET    /{resource}               list (where / with / withCount / sort)
    GET    /{resource}/{id}          show (with / withCount)
    POST   /{resource}               create            -> 201
    PUT    /{resource}/{id}          update            -> 200, 400 unchanged
    DELETE /{resource}/{id}          delete            -> {"data": []}
    DELETE /{resource}               bulk delete by {"ids": [...]}
    POST   /{resource}/{id}/restore  undo a soft delete (restorable resources)

Routers stay thin: parse and validate, call the service, serialize.
"""

from typing import Any, Callable

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from rest_api.models.metadata import HasQueryMetadata
from rest_api.routers._common import parse_query_options, serialize, serialize_many
from rest_api.routers.admin_schemas import BulkDeleteRequest
from rest_api.services.base_service import BaseCRUDService
from rest_api.validation import validate_index_request, validate_show_request
from shared.infrastructure.db import get_db
from shared.utils.exceptions import RequestValidationFailed

ServiceFactory = Callable[[Session], BaseCRUDService]


def writable_keys(model: type[HasQueryMetadata]) -> set[str]:
    """Body keys a write may carry: fillable fields plus relation payloads."""
    metadata = model.query_metadata()
    return (
        set(metadata.fillable)
        | set(metadata.syncable_relations)
        | set(metadata.creatable_relations)
    )


def build_write_request(
    body: BaseModel,
    request: Request,
    model: type[HasQueryMetadata],
    action: str,
) -> dict[str, Any]:
    """
    Merge the submitted body fields with the with / withCount reload options.

    Raises:
        RequestValidationFailed: when no writable field was submitted, or the
            reload options are invalid.
    """
    allowed = writable_keys(model)
    data = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if key in allowed
    }
    if not data:
        raise RequestValidationFailed(
            {action: [f"No valid fields were submitted for {action}."]}
        )
    data.update(validate_show_request(parse_query_options(request.query_params), model))
    return data


def build_crud_router(
    resource: str,
    model: type[HasQueryMetadata],
    service_factory: ServiceFactory,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    output_schema: type[BaseModel],
    restorable: bool = False,
) -> APIRouter:
    """Router with the standard CRUD endpoints for one resource."""
    router = APIRouter(tags=[f"admin-{resource}"])
    collection = f"/{resource}"
    item = f"/{resource}/{{entity_id}}"

    def get_service(db: Session = Depends(get_db)) -> BaseCRUDService:
        return service_factory(db)

    @router.get(collection, name=f"{resource}.index")
    def list_entities(
        request: Request,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        params = validate_index_request(parse_query_options(request.query_params), model)
        return {"data": serialize_many(service.index(params), output_schema)}

    @router.get(item, name=f"{resource}.show")
    def get_entity(
        entity_id: int,
        request: Request,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        params = validate_show_request(parse_query_options(request.query_params), model)
        return {"data": serialize(service.find(entity_id, params), output_schema)}

    @router.post(collection, name=f"{resource}.store", status_code=status.HTTP_201_CREATED)
    def create_entity(
        body: create_schema,
        request: Request,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        data = build_write_request(body, request, model, "create")
        return {"data": serialize(service.create(data), output_schema)}

    @router.put(item, name=f"{resource}.update")
    def update_entity(
        entity_id: int,
        body: update_schema,
        request: Request,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        data = build_write_request(body, request, model, "update")
        return {"data": serialize(service.update(data, entity_id), output_schema)}

    @router.delete(item, name=f"{resource}.destroy")
    def delete_entity(
        entity_id: int,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        service.delete(entity_id)
        return {"data": []}

    @router.delete(collection, name=f"{resource}.destroy_many")
    def delete_entities(
        body: BulkDeleteRequest,
        service: BaseCRUDService = Depends(get_service),
    ) -> dict:
        return {"data": {"deleted": service.delete_multiple(body.ids)}}

    if restorable:

        @router.post(f"{item}/restore", name=f"{resource}.restore")
        def restore_entity(
            entity_id: int,
            request: Request,
            service: BaseCRUDService = Depends(get_service),
        ) -> dict:
            params = validate_show_request(parse_query_options(request.query_params), model)
            return {"data": serialize(service.restore(entity_id, params), output_schema)}

    return router
