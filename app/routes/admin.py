"""
Admin escalation endpoints - human-in-the-loop control over escalation calls.

SCOPE OF ADMIN:
✅ Mark an issue as viewed (stops escalation calls)
✅ Reset escalation (issue can be called about again)
✅ Read escalation call history and the dashboard summary
✅ Run an escalation check on demand

Callers are authenticated upstream; the gateway forwards the user id in
the X-User-Id header. The admin role is checked by the control service.
"""

from typing import Optional
import asyncio
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.models.base import DataResponse
from app.services.escalation import (
    AdminAccessDenied,
    EscalationControlService,
    EscalationRuntime,
    IssueNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_escalation_runtime(request: Request) -> EscalationRuntime:
    runtime = getattr(request.app.state, "escalation", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Escalation service not initialized"
        )
    return runtime


def get_escalation_control(runtime: EscalationRuntime = Depends(get_escalation_runtime)) -> EscalationControlService:
    return runtime.control


def get_caller_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return x_user_id.strip()


def _raise_for_control_error(e: Exception, action: str):
    if isinstance(e, AdminAccessDenied):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    if isinstance(e, IssueNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    logger.error(f"Failed to {action}: {str(e)}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(e)}"
    )


@router.post("/issues/{issue_id}/mark-viewed", response_model=DataResponse)
def mark_viewed(
    issue_id: str,
    caller_id: str = Depends(get_caller_id),
    control: EscalationControlService = Depends(get_escalation_control)
):
    """
    Mark an issue as viewed by admin - stops escalation.

    Idempotent: marking an already viewed issue returns it unchanged.

    Raises:
        401: Missing caller identity
        403: Caller is not an admin
        404: Issue not found
    """
    try:
        issue = control.mark_viewed(caller_id, issue_id)
    except Exception as e:
        _raise_for_control_error(e, "mark issue as viewed")

    return DataResponse(message="Issue marked as viewed - escalation stopped", data=issue)


@router.post("/issues/{issue_id}/reset-escalation", response_model=DataResponse)
def reset_escalation(
    issue_id: str,
    caller_id: str = Depends(get_caller_id),
    control: EscalationControlService = Depends(get_escalation_control)
):
    """
    Reset escalation for an issue so it can be escalated again.

    Clears escalation_active and last_reminder_sent; viewed_by_admin is kept.
    """
    try:
        issue = control.reset_escalation(caller_id, issue_id)
    except Exception as e:
        _raise_for_control_error(e, "reset escalation")

    return DataResponse(message="Escalation reset - issue is eligible for re-escalation", data=issue)


@router.get("/issues/{issue_id}/escalation-history", response_model=DataResponse)
def escalation_history(
    issue_id: str,
    caller_id: str = Depends(get_caller_id),
    control: EscalationControlService = Depends(get_escalation_control)
):
    """Escalation call history for an issue, newest first."""
    try:
        history = control.get_history(caller_id, issue_id)
    except Exception as e:
        _raise_for_control_error(e, "fetch escalation history")

    return DataResponse(data=history)


@router.get("/escalations/dashboard/summary", response_model=DataResponse)
def escalation_dashboard(
    caller_id: str = Depends(get_caller_id),
    control: EscalationControlService = Depends(get_escalation_control)
):
    """Unviewed high-severity issues and escalation calls in the last 24 hours."""
    try:
        summary = control.get_dashboard_summary(caller_id)
    except Exception as e:
        _raise_for_control_error(e, "fetch escalation dashboard")

    return DataResponse(data=summary)


@router.post("/escalations/check", response_model=DataResponse)
async def run_escalation_check(
    caller_id: str = Depends(get_caller_id),
    runtime: EscalationRuntime = Depends(get_escalation_runtime)
):
    """
    Run one escalation scan immediately.

    If a scan is already running, this one is skipped (see report.skipped).
    """
    try:
        await asyncio.to_thread(runtime.control.require_admin, caller_id)
    except Exception as e:
        _raise_for_control_error(e, "check admin role")

    report = await runtime.trigger_check()
    return DataResponse(
        success=report.error is None,
        message="Escalation check skipped" if report.skipped else "Escalation check complete",
        data=report
    )
