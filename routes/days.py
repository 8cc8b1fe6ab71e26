from flask import Blueprint, jsonify, request

from classes.calendar_reader import read_calendar_with_all_days
from classes.day_reconciler import CalendarDayReconciler
from utils.utils import admin_required, json_body

# Calendar days' blueprint, mounted under /api/calendars
days_bp = Blueprint("days", __name__)

UPDATE_TYPE_OPTIONAL_FIELDS = ("term_id", "day_of_week", "description")


@days_bp.route("/<int:calendar_id>/days", methods=["GET"])
@admin_required
def list_days(calendar_id):
    return jsonify({"days": CalendarDayReconciler.list_calendar_days(calendar_id)}), 200


@days_bp.route("/<int:calendar_id>/days/full", methods=["GET"])
@admin_required
def read_full_calendar(calendar_id):
    data = read_calendar_with_all_days(calendar_id)
    if data is None:
        return jsonify({"error": "Calendar not found"}), 404
    return jsonify(data), 200


@days_bp.route("/<int:calendar_id>/days/term-assignments", methods=["GET"])
@admin_required
def term_assignments(calendar_id):
    rows = CalendarDayReconciler.list_term_assignments_in_range(
        calendar_id,
        request.args.get("start", ""),
        request.args.get("end", ""),
    )
    return jsonify({"assignments": rows}), 200


@days_bp.route("/<int:calendar_id>/days/bulk", methods=["PUT"])
@admin_required
def set_days_bulk(calendar_id):
    data = json_body()
    return jsonify(CalendarDayReconciler.set_days_bulk(calendar_id, data.get("days"))), 200


@days_bp.route("/<int:calendar_id>/days/batch", methods=["POST"])
@admin_required
def set_days_batch(calendar_id):
    data = json_body()
    return jsonify(CalendarDayReconciler.set_calendar_days_batch(calendar_id, data.get("entries"))), 200


@days_bp.route("/<int:calendar_id>/days/period", methods=["PATCH"])
@admin_required
def update_period(calendar_id):
    data = json_body()
    optional = {"term_id": data["term_id"]} if "term_id" in data else {}
    result = CalendarDayReconciler.update_period(
        calendar_id,
        data.get("start_date"),
        data.get("end_date"),
        data.get("type"),
        **optional,
    )
    return jsonify(result), 200


@days_bp.route("/<int:calendar_id>/days/weekly-holiday", methods=["POST"])
@admin_required
def set_weekly_holiday(calendar_id):
    data = json_body()
    return jsonify(CalendarDayReconciler.set_weekly_holiday(calendar_id, data.get("target"))), 200


@days_bp.route("/<int:calendar_id>/days/class-order", methods=["POST"])
@admin_required
def assign_class_order(calendar_id):
    return jsonify(CalendarDayReconciler.assign_class_order(calendar_id)), 200


@days_bp.route("/<int:calendar_id>/days", methods=["DELETE"])
@admin_required
def clear_days(calendar_id):
    return jsonify(CalendarDayReconciler.clear_calendar_days(calendar_id)), 200


@days_bp.route("/<int:calendar_id>/days/<day>", methods=["PUT"])
@admin_required
def upsert_day(calendar_id, day):
    data = json_body()
    result = CalendarDayReconciler.upsert_calendar_day(
        calendar_id,
        day,
        data.get("type"),
        term_id=data.get("term_id"),
        class_weekday=data.get("class_weekday"),
        description=data.get("description"),
        notification_reasons=data.get("notification_reasons"),
    )
    return jsonify(result), 200


@days_bp.route("/<int:calendar_id>/days/<day>/type", methods=["PATCH"])
@admin_required
def update_day_type(calendar_id, day):
    data = json_body()
    # omitted keys keep the stored values, an explicit null clears the description
    optional = {key: data[key] for key in UPDATE_TYPE_OPTIONAL_FIELDS if key in data}
    result = CalendarDayReconciler.update_day_type(calendar_id, day, data.get("type"), **optional)
    return jsonify(result), 200
