from typing import List, Optional
from fastapi import APIRouter, Depends, Body
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.response import APIResponse
from app.schemas.course_enrollment import CourseEnrollment
from app.schemas.lesson_progress import LessonProgress, LessonCompletionRequest
from app.services.course_progress import course_progress_service
from app.utils import deps

router = APIRouter()


@router.post("/lessons/{lesson_id}/complete", response_model=APIResponse[LessonProgress])
def complete_lesson(
    *,
    db: Session = Depends(deps.get_db),
    lesson_id: int,
    completion_in: Optional[LessonCompletionRequest] = Body(None),
    current_user: User = Depends(deps.require_student)
):
    progress = course_progress_service.complete_lesson(
        db,
        user_id=current_user.id,
        lesson_id=lesson_id,
        time_spent=completion_in.time_spent if completion_in else None,
    )
    return APIResponse(message="Lesson completed successfully", data=LessonProgress.model_validate(progress))


@router.get("/courses/{course_id}/progress", response_model=APIResponse[CourseEnrollment])
def get_course_progress(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    current_user: User = Depends(deps.get_current_user)
):
    enrollment = course_progress_service.get_course_progress(db, user_id=current_user.id, course_id=course_id)
    return APIResponse(message="Course progress retrieved successfully", data=CourseEnrollment.model_validate(enrollment))


@router.get("/courses/{course_id}/completed-lessons", response_model=APIResponse[List[int]])
def get_completed_lessons(
    *,
    db: Session = Depends(deps.get_db),
    course_id: int,
    current_user: User = Depends(deps.get_current_user)
):
    completed_lesson_ids = course_progress_service.get_completed_lessons(db, user_id=current_user.id, course_id=course_id)
    return APIResponse(message="Completed lessons retrieved successfully", data=completed_lesson_ids)
