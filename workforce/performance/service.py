"""Performance review service — draft → submitted → completed workflow."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.common.audit import create_audit_entry
from workforce.common.constants import ReviewStatus
from workforce.common.crud import (
    apply_changes,
    ensure_exists,
    get_scoped_or_404,
    scoped_select,
    to_json,
)
from workforce.common.dates import utcnow
from workforce.common.exceptions import BusinessRuleException, ValidationException
from workforce.common.filters import apply_filters
from workforce.common.pagination import PaginatedResponse, PaginationParams, paginate
from workforce.core_hr.models import Employee
from workforce.performance.models import PerformanceReview
from workforce.performance.schemas import ReviewCreate, ReviewSummary, ReviewUpdate

logger = logging.getLogger(__name__)

_CLOSED = (ReviewStatus.completed.value, ReviewStatus.cancelled.value)


async def _audit(db, review, action, actor_id, **values) -> None:
    await create_audit_entry(
        db,
        action=action,
        entity_type="performance_review",
        entity_id=review.id,
        organization_id=review.organization_id,
        actor_id=actor_id,
        **values,
    )


class PerformanceService:

    @staticmethod
    async def list_reviews(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        reviewer_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        review_type: Optional[str] = None,
    ) -> PaginatedResponse:
        query = scoped_select(PerformanceReview, organization_id)
        query = apply_filters(query, PerformanceReview, {
            "employee_id": employee_id,
            "reviewer_id": reviewer_id,
            "status": status,
            "review_type": review_type,
        })
        query = query.order_by(PerformanceReview.review_period_end.desc())
        return await paginate(db, query, pagination, model=PerformanceReview)

    @staticmethod
    async def get_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
    ) -> PerformanceReview:
        return await get_scoped_or_404(
            db, PerformanceReview, review_id, organization_id, "PerformanceReview",
        )

    @staticmethod
    async def create_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        data: ReviewCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        await ensure_exists(db, Employee, data.employee_id, organization_id, "employee_id", "Employee")
        await ensure_exists(db, Employee, data.reviewer_id, organization_id, "reviewer_id", "Employee")

        review = PerformanceReview(
            **data.model_dump(),
            organization_id=organization_id,
            status=ReviewStatus.draft.value,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(review)
        await db.flush()

        await _audit(db, review, "create", actor_id, new_values=to_json(data.model_dump()))
        logger.info(
            "Performance review created org=%s review=%s employee=%s",
            organization_id, review.id, review.employee_id,
        )
        return review

    @staticmethod
    async def update_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
        data: ReviewUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, organization_id, review_id)
        if review.status in _CLOSED:
            raise BusinessRuleException(f"A {review.status} review cannot be modified.")

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return review
        for required in ("reviewer_id", "review_type", "review_period_start", "review_period_end"):
            if required in changes and changes[required] is None:
                raise ValidationException.for_field(required, "Field cannot be null.")

        if changes.get("reviewer_id") == review.employee_id:
            raise ValidationException.for_field("reviewer_id", "An employee cannot review themselves.")
        await ensure_exists(
            db, Employee, changes.get("reviewer_id"), organization_id, "reviewer_id", "Employee",
        )
        start = changes.get("review_period_start", review.review_period_start)
        end = changes.get("review_period_end", review.review_period_end)
        if end < start:
            raise ValidationException.for_field(
                "review_period_end", "review_period_end must be on or after review_period_start.",
            )

        if review.status == ReviewStatus.draft.value:
            changes.setdefault("status", ReviewStatus.in_progress.value)
        old_values = apply_changes(review, changes, actor_id=actor_id)
        await db.flush()

        await _audit(db, review, "update", actor_id, old_values=old_values, new_values=to_json(changes))
        logger.info("Performance review updated org=%s review=%s", organization_id, review.id)
        return review

    @staticmethod
    async def submit_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, organization_id, review_id)
        if review.status not in (ReviewStatus.draft.value, ReviewStatus.in_progress.value):
            raise BusinessRuleException(
                f"Only draft or in-progress reviews can be submitted (current status: {review.status}).",
            )
        if review.overall_rating is None:
            raise ValidationException.for_field(
                "overall_rating", "An overall rating is required before submitting.",
            )

        review.status = ReviewStatus.submitted.value
        review.submitted_at = utcnow()
        review.updated_by = actor_id
        await db.flush()

        await _audit(db, review, "submit", actor_id, new_values={"status": review.status})
        logger.info("Performance review submitted org=%s review=%s", organization_id, review.id)
        return review

    @staticmethod
    async def complete_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
        *,
        employee_comments: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, organization_id, review_id)
        if review.status != ReviewStatus.submitted.value:
            raise BusinessRuleException(
                f"Only submitted reviews can be completed (current status: {review.status}).",
            )

        review.status = ReviewStatus.completed.value
        review.completed_at = utcnow()
        if employee_comments is not None:
            review.employee_comments = employee_comments
        review.updated_by = actor_id
        await db.flush()

        await _audit(db, review, "complete", actor_id, new_values={"status": review.status})
        logger.info("Performance review completed org=%s review=%s", organization_id, review.id)
        return review

    @staticmethod
    async def cancel_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, organization_id, review_id)
        if review.status in _CLOSED:
            raise BusinessRuleException(f"A {review.status} review cannot be cancelled.")

        old_status = review.status
        review.status = ReviewStatus.cancelled.value
        review.updated_by = actor_id
        await db.flush()

        await _audit(
            db, review, "cancel", actor_id,
            old_values={"status": old_status},
            new_values={"status": review.status, "reason": reason},
        )
        logger.info("Performance review cancelled org=%s review=%s", organization_id, review.id)
        return review

    @staticmethod
    async def delete_review(
        db: AsyncSession,
        organization_id: uuid.UUID,
        review_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        review = await PerformanceService.get_review(db, organization_id, review_id)
        if review.status != ReviewStatus.draft.value:
            raise BusinessRuleException("Only draft reviews can be deleted.")
        review.soft_delete(actor_id)
        await db.flush()

        await _audit(db, review, "delete", actor_id)
        logger.info("Performance review deleted org=%s review=%s", organization_id, review.id)

    @staticmethod
    async def get_employee_summary(
        db: AsyncSession,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> ReviewSummary:
        """Review counts by status and the average rating of completed reviews."""
        await get_scoped_or_404(db, Employee, employee_id, organization_id, "Employee")
        base = [
            PerformanceReview.organization_id == organization_id,
            PerformanceReview.employee_id == employee_id,
            PerformanceReview.deleted_at.is_(None),
        ]
        rows = (await db.execute(
            select(PerformanceReview.status, func.count())
            .where(*base)
            .group_by(PerformanceReview.status),
        )).all()
        by_status = {status: count for status, count in rows}

        avg_rating, latest = (await db.execute(
            select(
                func.avg(PerformanceReview.overall_rating),
                func.max(PerformanceReview.review_period_end),
            ).where(*base, PerformanceReview.status == ReviewStatus.completed.value),
        )).one()

        return ReviewSummary(
            employee_id=employee_id,
            total_reviews=sum(by_status.values()),
            by_status=by_status,
            average_rating=round(float(avg_rating), 2) if avg_rating is not None else None,
            latest_review_date=latest,
        )
