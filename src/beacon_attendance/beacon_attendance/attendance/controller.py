from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_datetime
from ..common.http import current_user_key
from ..common.validators import require_non_empty
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    sessions = container.sessions

    @app.route("/api/attempts/<attempt_id>/confirm", methods=["POST"], endpoint="api_attempt_confirm")
    def api_attempt_confirm(attempt_id: str):
        """Eligible attempt + class in session -> attendance recorded, attempt closed."""
        user_key = current_user_key()
        handle = container.attempts.get(attempt_id, user_key=user_key)

        record = sessions.attendance_for(user_key).confirm(handle.session, now_local())
        container.attempts.cancel(attempt_id, user_key=user_key)
        return jsonify({"success": True, "message": "Attendance recorded", "record": record.to_dict()}), 201

    @app.route("/api/records", methods=["GET"], endpoint="api_records")
    def api_records():
        service = sessions.attendance_for(current_user_key())
        view = (request.args.get("view") or "combined").lower()
        now = now_local()

        if view == "combined":
            records = service.load_combined(now)
        elif view == "history":
            records = service.load_history()
        elif view == "today":
            records = service.load_today_schedule_with_attendance(now)
        elif view == "cached":
            records = service.load_cached()
        else:
            raise ValidationError(f"Unknown view {view!r}")

        return jsonify({"success": True, "view": view, "records": [r.to_dict() for r in records]})

    @app.route("/api/records", methods=["DELETE"], endpoint="api_records_delete")
    def api_records_delete():
        data = request.get_json(silent=True) or {}
        course_id = require_non_empty(str(data.get("course_id") or ""), "course_id")
        try:
            timestamp = parse_iso_datetime(require_non_empty(str(data.get("timestamp") or ""), "timestamp"))
        except ValueError:
            raise ValidationError("timestamp must be ISO-8601")

        removed = sessions.attendance_for(current_user_key()).delete_record(course_id, timestamp)
        return jsonify({"success": True, "removed": removed})

    @app.route("/api/session", methods=["DELETE"], endpoint="api_session_end")
    def api_session_end():
        """Sign-out: drop the caller's in-memory view (the cache stays on disk)."""
        sessions.end(current_user_key())
        return jsonify({"success": True})
