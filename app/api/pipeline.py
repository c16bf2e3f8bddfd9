"""
MentorMatch - Data pipeline API

Anonymization and preprocessing of collected records.  Both operations are
stateless; nothing is persisted here.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import http_error
from app.schemas.pipeline import DataCollectionRecord, DataType
from app.services.anonymization_service import DataAnonymizationService
from app.services.preprocessing_service import DataPreprocessingService
from app.utils.errors import MentorMatchError

logger = structlog.get_logger("mentormatch.api.pipeline")

router = APIRouter()


class AnonymizeRequest(BaseModel):
    data: dict[str, Any]
    config: dict[str, Any] = {}
    data_type: DataType


class AnonymizeBatchRequest(BaseModel):
    collections: list[DataCollectionRecord]
    config: dict[str, Any] = {}


class PreprocessRequest(BaseModel):
    records: list[dict[str, Any]]
    config: dict[str, Any]
    data_type: DataType


@router.post("/anonymize", summary="Anonymize a single record")
async def anonymize(body: AnonymizeRequest) -> dict:
    try:
        return DataAnonymizationService().anonymize_data(body.data, body.config, body.data_type)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.post("/anonymize/batch", summary="Anonymize a batch of collected records")
async def anonymize_batch(body: AnonymizeBatchRequest) -> dict:
    try:
        return DataAnonymizationService().anonymize_batch(body.collections, body.config)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.post("/preprocess", summary="Clean, enrich and score a record set")
async def preprocess(body: PreprocessRequest) -> dict:
    try:
        return DataPreprocessingService().preprocess_data(body.records, body.config, body.data_type)
    except MentorMatchError as exc:
        raise http_error(exc) from exc
