"""Abuse report lifecycle.

A report is filed as ``pending`` and an admin moves it to ``resolved`` or
``dismissed``. The reported comment's text is copied into the report when it
is filed, so deleting the comment later leaves the audit trail intact.
"""

import logging
from datetime import timedelta, timezone
from enum import Enum

from .database import object_id, serialize, utcnow
from .errors import InvalidArgument, NotFound
from .pagination import page_params, total_pages

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_LIMIT = 10


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


STATUSES = [s.value for s in ReportStatus]


def parse_status(value) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        raise InvalidArgument(f"Invalid status. Allowed values: {', '.join(STATUSES)}.")


def status_filter(value) -> dict:
    """`None` or "all" means every report, anything else must be a known status"""
    if value is None or value == "" or value == "all":
        return {}
    return {"status": parse_status(value).value}


def stamp_after(created, now):
    """Transition time, kept strictly after filing at BSON millisecond precision"""
    if created is None:
        return now
    # Stored datetimes come back naive UTC
    if created.tzinfo is None and now.tzinfo is not None:
        created = created.replace(tzinfo=timezone.utc)
    elif created.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(now, created + timedelta(milliseconds=1))


class ReportService:
    def __init__(self, db, clock=utcnow):
        self.db = db
        self.clock = clock

    async def file_report(self, comment_id, post_id, reported_by, reason, content) -> dict:
        fields = {
            "commentId": comment_id,
            "postId": post_id,
            "reportedBy": reported_by,
            "reason": reason,
            "commentContent": content,
        }
        missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
        if missing:
            raise InvalidArgument(f"Missing required fields: {', '.join(missing)}.")

        report = {
            "type": "comment",
            **{name: str(value) for name, value in fields.items()},
            "status": ReportStatus.PENDING.value,
            "createdAt": self.clock(),
        }
        result = await self.db.reports.insert_one(report)
        logger.info("Report %s filed against comment %s", result.inserted_id, comment_id)
        return {"message": "Report submitted successfully.", "reportId": str(result.inserted_id)}

    async def list_reports(self, page=None, limit=None, status=None) -> dict:
        match = status_filter(status)
        page, limit, skip = page_params(page, limit, DEFAULT_REPORTS_LIMIT)

        cursor = self.db.reports.find(match).sort([("createdAt", -1), ("_id", -1)]).skip(skip).limit(limit)
        reports = [serialize(r) for r in await cursor.to_list(None)]
        total_reports = await self.db.reports.count_documents(match)

        return {
            "reports": reports,
            "totalReports": total_reports,
            "totalPages": total_pages(total_reports, limit),
            "currentPage": page,
        }

    async def set_status(self, report_id: str, status) -> dict:
        new_status = parse_status(status)
        _id = object_id(report_id, "report id")

        report = await self.db.reports.find_one({"_id": _id}, {"createdAt": 1})
        if not report:
            raise NotFound("Report not found.")

        result = await self.db.reports.update_one(
            {"_id": _id},
            {"$set": {"status": new_status.value, "updatedAt": stamp_after(report.get("createdAt"), self.clock())}},
        )
        if result.matched_count == 0:
            raise NotFound("Report not found.")

        logger.info("Report %s marked %s", report_id, new_status.value)
        return {"message": f"Report marked as {new_status.value}."}

    async def delete_report(self, report_id: str) -> dict:
        result = await self.db.reports.delete_one({"_id": object_id(report_id, "report id")})
        if result.deleted_count == 0:
            raise NotFound("Report not found.")

        logger.info("Report %s deleted", report_id)
        return {"message": "Report deleted successfully."}
