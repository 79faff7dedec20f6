from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_minutes
from ..container import Container
from ..core.enums import PunchAction
from ..core.exceptions import (
    DomainError,
    DuplicateRecord,
    InvalidTransition,
    RecordNotFound,
    StaleRecord,
    StorageUnavailable,
    ValidationError,
)
from .model import AttendanceRecord

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (ValidationError, 400),
    (RecordNotFound, 404),
    (InvalidTransition, 409),
    (DuplicateRecord, 409),
    (StaleRecord, 409),
    (StorageUnavailable, 503),
]


def _error_response(e: DomainError):
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(e, cls)), 400)
    return jsonify({"success": False, "error": type(e).__name__, "message": str(e)}), status


def _system_error(what: str):
    logger.exception("unexpected error during %s", what)
    return jsonify({"success": False, "message": "Server error"}), 500


def punch_message(record: AttendanceRecord, action: PunchAction) -> str:
    name = record.employee.name
    if action is PunchAction.CHECK_IN:
        return f"{name} checked in successfully"
    if action is PunchAction.BREAK_START:
        return f"Break #{len(record.break_sessions)} started"
    if action is PunchAction.BREAK_END:
        return f"Returned from break #{len(record.break_sessions)} - {format_minutes(record.break_sessions[-1].minutes)}"
    if action is PunchAction.BIO_START:
        return f"Bio break #{len(record.bio_break_sessions)} started"
    if action is PunchAction.BIO_END:
        return (
            f"Back from bio break #{len(record.bio_break_sessions)} - "
            f"{format_minutes(record.bio_break_sessions[-1].minutes)}"
        )
    return (
        f"{name} checked out - worked {format_minutes(record.total_worked_minutes)}, "
        f"{len(record.break_sessions)} break(s) ({format_minutes(record.total_break_minutes)}), "
        f"{len(record.bio_break_sessions)} bio break(s) ({format_minutes(record.total_bio_break_minutes)})"
    )


def register(app: Flask, container: Container) -> None:
    def _identity(source) -> dict:
        return {
            "employee_name": source.get("employeeName") or source.get("name") or "",
            "email": source.get("email") or "",
            "work_date": source.get("date") or "",
        }

    @app.route("/api/time/punch", methods=["POST"], endpoint="api_punch")
    def api_punch():
        data = request.get_json(silent=True) or {}
        try:
            action = PunchAction.parse(data.get("action", ""))
            record = container.attendance_service.punch(
                **_identity(data),
                action=action,
                client_timestamp=data.get("clientTimestamp"),
            )
            return jsonify(
                {
                    "success": True,
                    "action": action.value,
                    "message": punch_message(record, action),
                    "entry": record.to_dict(),
                }
            ), 200
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("punch")

    @app.route("/api/time/punch", methods=["GET"], endpoint="api_open_record")
    def api_open_record():
        """Current open shift for the employee on the given day, or null."""
        try:
            record = container.attendance_service.get_open_record(**_identity(request.args))
            return jsonify({"entry": record.to_dict() if record else None}), 200
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("open record lookup")

    @app.route("/api/time/myrecord", methods=["GET"], endpoint="api_my_record")
    def api_my_record():
        try:
            record = container.attendance_service.get_record(**_identity(request.args))
            return jsonify({"entry": record.to_dict() if record else None}), 200
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("record lookup")

    @app.route("/api/time/selfie", methods=["POST"], endpoint="api_selfie")
    def api_selfie():
        """Attach an already-uploaded selfie URL to the day's record."""
        data = request.get_json(silent=True) or request.form.to_dict()
        try:
            entry = container.evidence_service.attach(
                **_identity(data),
                action=data.get("action", ""),
                url=data.get("url", ""),
            )
            return jsonify({"success": True, "selfieUrl": entry.url, "selfie": entry.to_dict()}), 200
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("selfie attach")

    @app.route("/api/time/records", methods=["GET"], endpoint="api_records")
    def api_records():
        args = request.args
        try:
            page = container.attendance_service.list_records(
                start_date=args.get("from"),
                end_date=args.get("to"),
                email=args.get("email"),
                name=args.get("name"),
                page=int(args.get("page", 1)),
                limit=int(args.get("limit", container.records_page_size)),
            )
            return jsonify(
                {
                    "records": [r.to_dict() for r in page.records],
                    "total": page.total,
                    "page": page.page,
                    "totalPages": page.total_pages,
                }
            ), 200
        except ValueError:
            return jsonify({"success": False, "message": "page and limit must be integers"}), 400
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("records listing")

    @app.route("/api/time/records", methods=["DELETE"], endpoint="api_delete_record")
    def api_delete_record():
        """Remove one day from the records view by id."""
        data = request.get_json(silent=True) or {}
        try:
            container.attendance_service.delete_record(data.get("id") or request.args.get("id"))
            return jsonify({"success": True, "message": "Record deleted"}), 200
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("record delete")

    @app.route("/api/time/report.csv", methods=["GET"], endpoint="api_report_csv")
    def api_report_csv():
        default_start, default_end = container.report_service.default_range()
        start_s = request.args.get("from") or default_start
        end_s = request.args.get("to") or default_end
        try:
            data = container.report_service.build_report(
                start=start_s,
                end=end_s,
                email=request.args.get("email"),
                name=request.args.get("name"),
            )
            filename = f"timesheet_{start_s.replace('-', '')}_{end_s.replace('-', '')}.csv"
            return app.response_class(
                container.report_service.export_csv(data),
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={filename}"},
            )
        except DomainError as e:
            return _error_response(e)
        except Exception:
            return _system_error("report export")
