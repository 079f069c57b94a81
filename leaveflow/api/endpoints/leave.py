from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from leaveflow.api.deps import get_current_actor, get_db_session
from leaveflow.models.enums import LeaveStatus, ReviewStage
from leaveflow.models.leave import LeaveApplication
from leaveflow.schemas.auth import Actor
from leaveflow.schemas.leave import (
    LeaveApplicationRead,
    LeaveApplyRequest,
    LeaveStatistics,
    ReviewDecisionRequest,
)
from leaveflow.services import leave_service
from leaveflow.services.audit_service import log_activity
from leaveflow.services.auth_service import get_user_by_id
from leaveflow.services.email_service import (
    send_leave_approved_email,
    send_leave_rejected_email,
    send_leave_submitted_email,
)

router = APIRouter(
    prefix="/api/leave",
    tags=["Leave Applications"]
)


# ===================================================================
#  HELPERS: audit trail + student notification (run after commit)
# ===================================================================
def _audit(background_tasks: BackgroundTasks, actor: Actor, action: str, application: LeaveApplication, remarks: Optional[str] = None):
    background_tasks.add_task(
        log_activity,
        action=action,
        actor_id=actor.id,
        actor_role=actor.role.value,
        actor_name=actor.name,
        application_id=application.id,
        remarks=remarks,
        details={
            "status": application.status.value,
            "current_stage": application.current_stage.value,
            "version": application.version,
        },
    )


async def _notify_outcome(
    session: AsyncSession,
    background_tasks: BackgroundTasks,
    application: LeaveApplication,
    stage: ReviewStage,
    data: ReviewDecisionRequest,
):
    if application.status not in (LeaveStatus.approved, LeaveStatus.rejected):
        return

    student = await get_user_by_id(session, application.student_id)
    if not student or not student.email:
        return

    if application.status == LeaveStatus.approved:
        background_tasks.add_task(send_leave_approved_email, {
            "name": student.name,
            "email": student.email,
            "application_id": application.id,
            "start_date": str(application.start_date),
            "end_date": str(application.end_date),
            "comments": data.comments,
        })
    else:
        background_tasks.add_task(send_leave_rejected_email, {
            "name": student.name,
            "email": student.email,
            "rejected_by": "Teacher" if stage == ReviewStage.teacher else "Training Officer",
            "comments": data.comments,
            "rejection_reason": data.rejection_reason,
        })


# ===================================================================
# APPLY
# ===================================================================
@router.post("/apply", response_model=LeaveApplicationRead, status_code=status.HTTP_201_CREATED)
async def apply_for_leave(
    payload: LeaveApplyRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.submit_application(
        session,
        actor,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        priority=payload.priority,
        urgency_reason=payload.urgency_reason,
    )

    _audit(background_tasks, actor, "LEAVE_SUBMITTED", application)
    if actor.email:
        background_tasks.add_task(send_leave_submitted_email, {
            "name": actor.name,
            "email": actor.email,
            "application_id": application.id,
            "leave_type": application.leave_type.value,
            "start_date": str(application.start_date),
            "end_date": str(application.end_date),
        })

    return await leave_service.build_view(session, application)


# ===================================================================
# LISTS (declared before /{application_id})
# ===================================================================
@router.get("/my-applications", response_model=List[LeaveApplicationRead])
async def my_applications(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    apps = await leave_service.list_my_applications(session, actor)
    return await leave_service.build_views(session, apps)


@router.get("/pending-teacher", response_model=List[LeaveApplicationRead])
async def pending_teacher(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    apps = await leave_service.list_pending_teacher(session, actor)
    return await leave_service.build_views(session, apps)


@router.get("/pending-to", response_model=List[LeaveApplicationRead])
async def pending_to(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    apps = await leave_service.list_pending_to(session, actor)
    return await leave_service.build_views(session, apps)


@router.get("/all", response_model=List[LeaveApplicationRead])
async def all_applications(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    apps = await leave_service.list_all_applications(session, actor, status=status_filter)
    return await leave_service.build_views(session, apps)


@router.get("/stats", response_model=LeaveStatistics)
async def leave_stats(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await leave_service.get_statistics(session, actor)


# ===================================================================
# DETAIL
# ===================================================================
@router.get("/{application_id}", response_model=LeaveApplicationRead)
async def application_detail(
    application_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.get_application_for(session, application_id, actor)
    return await leave_service.build_view(session, application)


# ===================================================================
# TEACHER REVIEW
# ===================================================================
@router.put("/{application_id}/start-teacher-review", response_model=LeaveApplicationRead)
async def start_teacher_review(
    application_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.start_teacher_review(session, application_id, actor)
    _audit(background_tasks, actor, "TEACHER_REVIEW_STARTED", application)
    return await leave_service.build_view(session, application)


@router.put("/{application_id}/teacher-review", response_model=LeaveApplicationRead)
async def teacher_review(
    application_id: str,
    data: ReviewDecisionRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.submit_teacher_review(
        session, application_id, actor,
        decision=data.status,
        comments=data.comments,
        rejection_reason=data.rejection_reason,
    )

    _audit(background_tasks, actor, f"TEACHER_{data.status.strip().upper()}", application, remarks=data.comments)
    await _notify_outcome(session, background_tasks, application, ReviewStage.teacher, data)
    return await leave_service.build_view(session, application)


# ===================================================================
# TO REVIEW
# ===================================================================
@router.put("/{application_id}/start-to-review", response_model=LeaveApplicationRead)
async def start_to_review(
    application_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.start_to_review(session, application_id, actor)
    _audit(background_tasks, actor, "TO_REVIEW_STARTED", application)
    return await leave_service.build_view(session, application)


@router.put("/{application_id}/to-review", response_model=LeaveApplicationRead)
async def to_review(
    application_id: str,
    data: ReviewDecisionRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    application = await leave_service.submit_to_review(
        session, application_id, actor,
        decision=data.status,
        comments=data.comments,
        rejection_reason=data.rejection_reason,
    )

    _audit(background_tasks, actor, f"TO_{data.status.strip().upper()}", application, remarks=data.comments)
    await _notify_outcome(session, background_tasks, application, ReviewStage.to, data)
    return await leave_service.build_view(session, application)
