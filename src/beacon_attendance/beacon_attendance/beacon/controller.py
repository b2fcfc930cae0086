from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_user_key
from ..container import Container


def register(app: Flask, container: Container) -> None:
    attempts = container.attempts

    @app.route("/api/courses", methods=["GET"], endpoint="api_courses")
    def api_courses():
        courses = [
            {"course_id": t.course_id, "course_name": t.course_name, "beacon_address": t.address}
            for t in container.course_catalog.list_targets()
        ]
        return jsonify({"success": True, "courses": courses})

    @app.route("/api/attempts", methods=["POST"], endpoint="api_attempt_start")
    def api_attempt_start():
        """Start scanning for the course beacon; replaces the caller's previous attempt."""
        user_key = current_user_key()
        data = request.get_json(silent=True) or {}
        target = container.course_catalog.target_for(data.get("course_id"))

        handle = attempts.start(user_key=user_key, target=target)
        return jsonify({"success": True, "attempt": attempts.snapshot(handle)}), 201

    @app.route("/api/attempts/<attempt_id>", methods=["GET"], endpoint="api_attempt_status")
    def api_attempt_status(attempt_id: str):
        handle = attempts.get(attempt_id, user_key=current_user_key())
        return jsonify({"success": True, "attempt": attempts.snapshot(handle)})

    @app.route("/api/attempts/<attempt_id>/retry", methods=["POST"], endpoint="api_attempt_retry")
    def api_attempt_retry(attempt_id: str):
        handle = attempts.retry(attempt_id, user_key=current_user_key())
        return jsonify({"success": True, "attempt": attempts.snapshot(handle)})

    @app.route("/api/attempts/<attempt_id>", methods=["DELETE"], endpoint="api_attempt_cancel")
    def api_attempt_cancel(attempt_id: str):
        attempts.cancel(attempt_id, user_key=current_user_key())
        return jsonify({"success": True})
