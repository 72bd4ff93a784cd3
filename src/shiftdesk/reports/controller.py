from __future__ import annotations

import io
from datetime import timedelta

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import now_utc
from ..common.web import current_caller, query_date, query_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/reports/leave", methods=["GET"], endpoint="leave_report")
    def leave_report():
        caller = current_caller()
        year = query_int("year", now_utc().year)
        return jsonify(container.leave_report_service.yearly_report(caller, year))

    @app.route("/reports/leave/stats", methods=["GET"], endpoint="leave_stats")
    def leave_stats():
        return jsonify(container.leave_report_service.stats(current_caller(), now=now_utc()))

    @app.route("/reports/timesheet", methods=["GET"], endpoint="timesheet_report")
    def timesheet_report():
        caller = current_caller()
        today = now_utc().date()
        end = query_date("end", today)
        start = query_date("start", end - timedelta(days=30))
        svc = container.timesheet_report_service
        report = svc.build(caller, start=start, end=end, staff_id=query_int("staff_id"))

        if (request.args.get("format") or "").lower() == "xlsx":
            return send_file(
                io.BytesIO(svc.to_excel(report)),
                download_name=f"timesheet_{start.isoformat()}_{end.isoformat()}.xlsx",
                as_attachment=True,
                mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )
        return jsonify({"start": start.isoformat(), "end": end.isoformat(), "rows": report.rows, "summary": report.summary})
