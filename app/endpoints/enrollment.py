from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.course_enrollment import ReconcileOutcome, ReconciliationSummary
from app.schemas.response import APIResponse
from app.services.enrollment_progress import enrollment_progress_service
from app.utils import deps

router = APIRouter()


@router.post("/reconcile", response_model=APIResponse[ReconciliationSummary])
def reconcile_all_enrollments(
    *,
    db: Session = Depends(deps.get_db),
    dry_run: bool = False,
    current_user: User = Depends(deps.require_admin)
):
    summary = enrollment_progress_service.reconcile_all(db, dry_run=dry_run)
    return APIResponse(message="Enrollment progress reconciled", data=summary)


@router.post("/reconcile/{student_id}/{course_id}", response_model=APIResponse[ReconcileOutcome])
def reconcile_enrollment(
    *,
    db: Session = Depends(deps.get_db),
    student_id: int,
    course_id: int,
    current_user: User = Depends(deps.require_admin)
):
    outcome = enrollment_progress_service.reconcile_for_student(db, student_id=student_id, course_id=course_id)
    return APIResponse(message=f"Enrollment {outcome.result.value}", data=outcome)
