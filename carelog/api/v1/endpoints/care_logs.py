# carelog/api/v1/endpoints/care_logs.py
import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carelog.core.database import get_db
from carelog.dependencies.authz import (
    FAMILY_ROLES,
    Principal,
    RoleName,
    require_roles,
)
from carelog.models.care_log import CareLog
from carelog.models.care_log_audit import CareLogAuditEntry
from carelog.models.care_recipient import CareRecipient
from carelog.schemas.care_log import (
    CareLogCreate,
    CareLogPatch,
    CareLogResponse,
    CareLogWithVisibility,
    ChangeVisibility,
    InvalidateRequest,
    SubmitSectionRequest,
)
from carelog.schemas.care_log_audit import AuditEntryResponse
from carelog.services import care_log_service, view_service
from carelog.services.audit_service import list_care_log_history
from carelog.services.errors import (
    CareLogAlreadyExistsError,
    CareLogError,
    CareLogLockedError,
    CareLogNotFoundError,
    CareRecipientNotFoundError,
    ConcurrentModificationError,
    InvalidCareLogStateError,
    InvalidSectionError,
)
from carelog.services.section_projection import (
    has_shared_content,
    project_changes_for_family,
    project_for_family,
)

logger = logging.getLogger(__name__)
router = APIRouter()

caregiver_only = require_roles([RoleName.CAREGIVER])
family_only = require_roles(FAMILY_ROLES)
family_admin_only = require_roles([RoleName.FAMILY_ADMIN])


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CareLogNotFoundError, CareRecipientNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (CareLogAlreadyExistsError, ConcurrentModificationError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(
        exc,
        (CareLogLockedError, InvalidCareLogStateError, InvalidSectionError, ValueError),
    ):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.error(f"Unhandled care log error: {exc}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def _family_history_entry(
    care_log: CareLog, entry: CareLogAuditEntry
) -> AuditEntryResponse:
    data = AuditEntryResponse.model_validate(entry).model_dump()
    data["snapshot"] = project_for_family(care_log, data["snapshot"])
    data["changes"] = project_changes_for_family(care_log, data["changes"])
    return AuditEntryResponse(**data)


def _family_view(
    care_log: CareLog, visibility: ChangeVisibility
) -> CareLogWithVisibility:
    data = CareLogResponse.model_validate(care_log).model_dump()
    data = project_for_family(care_log, data)
    return CareLogWithVisibility(**data, **visibility.model_dump())


@router.post(
    "",
    response_model=CareLogResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_care_log(
    payload: CareLogCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(caregiver_only),
) -> CareLogResponse:
    """
    Create today's draft care log (caregivers only).

    Rules:
    - One log per care recipient per day (409 on duplicates)
    - log_date defaults to today in the care recipient's timezone
    - Optional initial fields are recorded in the `create` audit entry
    """
    try:
        care_log = care_log_service.create_care_log(
            db,
            care_recipient_id=payload.care_recipient_id,
            log_date=payload.log_date,
            author_id=principal.id,
            author_name=principal.name,
            fields=payload.to_patch(),
        )
    except (CareLogError, ValueError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log)


@router.get(
    "/caregiver/today",
    response_model=CareLogResponse | None,
)
def get_caregiver_today_log(
    care_recipient_id: UUID = Query(..., description="Care recipient ID"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(caregiver_only),
) -> CareLogResponse | None:
    """
    Today's log (any status, all fields) for the caregiver forms.
    """
    try:
        care_log = care_log_service.get_today_care_log(
            db, care_recipient_id=care_recipient_id
        )
    except CareLogError as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log) if care_log else None


@router.get(
    "/recipient/{care_recipient_id}",
    response_model=list[CareLogResponse],
)
def list_recipient_care_logs(
    care_recipient_id: UUID,
    limit: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> list[CareLogResponse]:
    """
    Logs visible to family, newest first.
    Drafts appear once a section is shared, showing shared sections only.
    """
    try:
        logs = care_log_service.list_family_care_logs(
            db, care_recipient_id=care_recipient_id, limit=limit
        )
    except CareLogError as e:
        raise _to_http_error(e)
    return [
        CareLogResponse(
            **project_for_family(log, CareLogResponse.model_validate(log).model_dump())
        )
        for log in logs
    ]


@router.get(
    "/recipient/{care_recipient_id}/today",
    response_model=CareLogWithVisibility | None,
)
def get_recipient_today_log(
    care_recipient_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> CareLogWithVisibility | None:
    """
    Today's log for the family dashboard, with the "new changes" badge.
    """
    try:
        care_log = care_log_service.get_today_care_log(
            db, care_recipient_id=care_recipient_id
        )
        if not care_log or not has_shared_content(care_log):
            return None
        care_log, visibility = view_service.get_care_log_with_visibility(
            db, care_log_id=care_log.id, user_id=principal.id
        )
    except CareLogError as e:
        raise _to_http_error(e)
    return _family_view(care_log, visibility)


@router.get(
    "/recipient/{care_recipient_id}/date/{log_date}",
    response_model=CareLogWithVisibility | None,
)
def get_recipient_log_for_date(
    care_recipient_id: UUID,
    log_date: date,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> CareLogWithVisibility | None:
    try:
        care_log = care_log_service.get_care_log_for_date(
            db, care_recipient_id=care_recipient_id, log_date=log_date
        )
        if not care_log or not has_shared_content(care_log):
            return None
        care_log, visibility = view_service.get_care_log_with_visibility(
            db, care_log_id=care_log.id, user_id=principal.id
        )
    except CareLogError as e:
        raise _to_http_error(e)
    return _family_view(care_log, visibility)


@router.get(
    "/{care_log_id}",
    response_model=CareLogWithVisibility,
)
def get_care_log(
    care_log_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> CareLogWithVisibility:
    try:
        care_log, visibility = view_service.get_care_log_with_visibility(
            db, care_log_id=care_log_id, user_id=principal.id
        )
    except CareLogError as e:
        raise _to_http_error(e)
    if not has_shared_content(care_log):
        raise HTTPException(status_code=404, detail="Care log not found")
    return _family_view(care_log, visibility)


@router.get(
    "/{care_log_id}/history",
    response_model=list[AuditEntryResponse],
)
def get_care_log_history(
    care_log_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> list[AuditEntryResponse]:
    """
    Audit trail, oldest first, limited to what the family may see of the log.
    """
    try:
        care_log = care_log_service.get_care_log(db, care_log_id=care_log_id)
    except CareLogError as e:
        raise _to_http_error(e)
    if not has_shared_content(care_log):
        raise HTTPException(status_code=404, detail="Care log not found")
    entries = list_care_log_history(db, care_log_id=care_log_id)
    return [_family_history_entry(care_log, e) for e in entries]


@router.patch(
    "/{care_log_id}",
    response_model=CareLogResponse,
)
def patch_care_log(
    care_log_id: UUID,
    payload: CareLogPatch,
    db: Session = Depends(get_db),
    principal: Principal = Depends(caregiver_only),
) -> CareLogResponse:
    """
    Save form fields (auto-save and manual save).

    Absent fields are untouched, null clears a field, object fields such as
    meals are merged per sub-key.
    """
    try:
        care_log = care_log_service.patch_care_log(
            db,
            care_log_id=care_log_id,
            author_id=principal.id,
            author_name=principal.name,
            fields=payload.to_patch(),
        )
    except (CareLogError, ValueError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log)


@router.post(
    "/{care_log_id}/submit-section",
    response_model=CareLogResponse,
)
def submit_section(
    care_log_id: UUID,
    payload: SubmitSectionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(caregiver_only),
) -> CareLogResponse:
    """
    Share one section with family. Can be repeated ("Update & Re-submit").
    """
    try:
        care_log = care_log_service.submit_section(
            db,
            care_log_id=care_log_id,
            section=payload.section,
            submitted_by=principal.id,
            submitted_by_name=principal.name,
        )
    except (CareLogError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log)


@router.post(
    "/{care_log_id}/submit",
    response_model=CareLogResponse,
)
def submit_care_log(
    care_log_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(caregiver_only),
) -> CareLogResponse:
    try:
        care_log = care_log_service.submit_care_log(
            db,
            care_log_id=care_log_id,
            submitted_by=principal.id,
            submitted_by_name=principal.name,
        )
    except (CareLogError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log)


@router.post(
    "/{care_log_id}/invalidate",
    response_model=CareLogResponse,
)
def invalidate_care_log(
    care_log_id: UUID,
    payload: InvalidateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_admin_only),
) -> CareLogResponse:
    """
    Flag a submitted log for correction (family admin of the care recipient only).
    """
    try:
        care_log = care_log_service.get_care_log(db, care_log_id=care_log_id)
    except CareLogError as e:
        raise _to_http_error(e)

    recipient = (
        db.query(CareRecipient)
        .filter(CareRecipient.id == care_log.care_recipient_id)
        .first()
    )
    if recipient and recipient.family_admin_id and recipient.family_admin_id != principal.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the care recipient's family admin can invalidate logs.",
        )

    try:
        care_log = care_log_service.invalidate_care_log(
            db,
            care_log_id=care_log_id,
            invalidated_by=principal.id,
            invalidated_by_name=principal.name,
            reason=payload.reason,
        )
    except (CareLogError, ValueError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return CareLogResponse.model_validate(care_log)


@router.post(
    "/{care_log_id}/mark-viewed",
    status_code=status.HTTP_204_NO_CONTENT,
)
def mark_care_log_viewed(
    care_log_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(family_only),
) -> Response:
    try:
        view_service.mark_care_log_viewed(
            db, care_log_id=care_log_id, user_id=principal.id
        )
    except (CareLogError, SQLAlchemyError) as e:
        raise _to_http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
