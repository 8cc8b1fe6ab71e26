import logging

from flask import Blueprint, jsonify, request

from classes.calendar_manager import CalendarManager
from classes.exceptions import ValidationError
from utils.utils import admin_required, bool_arg, current_user_id, int_arg, is_admin_request, json_body

logger = logging.getLogger(__name__)

# Calendars' blueprint
calendar_bp = Blueprint("calendars", __name__)


#__________________________________________________________________________________________ * Public reads *__________________________________________________

@calendar_bp.route("", methods=["GET"])
def list_calendars():
    university_code = request.args.get("university_code", "").strip()
    if not university_code:
        raise ValidationError("university_code query parameter is required.")
    calendars = CalendarManager.list_calendars(university_code, int_arg("fiscal_year"))
    return jsonify({"calendars": calendars}), 200


@calendar_bp.route("/search", methods=["GET"])
def search_calendars():
    # unpublished calendars are only listed for admins
    include_unpublishable = bool_arg("include_unpublishable") and is_admin_request()
    rows = CalendarManager.search_calendars_by_university_name(
        request.args.get("q", ""),
        int_arg("fiscal_year"),
        limit=int_arg("limit", required=False),
        include_unpublishable=include_unpublishable,
    )
    return jsonify({"calendars": rows}), 200


@calendar_bp.route("/top", methods=["GET"])
def top_calendars():
    rows = CalendarManager.list_top_calendars_by_download_count(
        int_arg("fiscal_year"),
        limit=int_arg("limit", required=False),
    )
    return jsonify({"calendars": rows}), 200


@calendar_bp.route("/<int:calendar_id>", methods=["GET"])
def get_calendar(calendar_id):
    data = CalendarManager.get_calendar(calendar_id)
    if data is None:
        return jsonify({"error": "Calendar not found"}), 404
    return jsonify(data), 200


@calendar_bp.route("/<int:calendar_id>/download", methods=["GET"])
def download_calendar(calendar_id):
    data = CalendarManager.get_calendar_with_tracking(calendar_id)
    if data is None:
        return jsonify({"error": "Calendar not found"}), 404
    return jsonify(data), 200


#__________________________________________________________________________________________ * Admin *__________________________________________________

@calendar_bp.route("", methods=["POST"])
@admin_required
def create_calendar():
    data = json_body()
    calendar_id = CalendarManager.create_calendar(
        data.get("name"),
        data.get("fiscal_year"),
        university_code=data.get("university_code"),
        memo=data.get("memo"),
        input_information=data.get("input_information"),
        creator_id=current_user_id(),
        disable_saturday=data.get("disable_saturday", False),
        terms=data.get("terms"),
    )
    return jsonify({"calendar_id": calendar_id}), 201


@calendar_bp.route("/ensure", methods=["POST"])
@admin_required
def ensure_calendar():
    data = json_body()
    calendar_id = CalendarManager.ensure_calendar(
        data.get("name"),
        data.get("fiscal_year"),
        data.get("fiscal_start"),
        data.get("fiscal_end"),
    )
    return jsonify({"calendar_id": calendar_id}), 200


@calendar_bp.route("/<int:calendar_id>/metadata", methods=["GET"])
@admin_required
def get_calendar_metadata(calendar_id):
    metadata = CalendarManager.get_calendar_metadata(calendar_id)
    if metadata is None:
        return jsonify({"error": "Calendar not found"}), 404
    return jsonify(metadata), 200


@calendar_bp.route("/<int:calendar_id>", methods=["DELETE"])
@admin_required
def delete_calendar(calendar_id):
    return jsonify(CalendarManager.delete_calendar(calendar_id)), 200


@calendar_bp.route("/<int:calendar_id>/name", methods=["PATCH"])
@admin_required
def rename_calendar(calendar_id):
    data = json_body()
    return jsonify(CalendarManager.rename_calendar(calendar_id, data.get("name"))), 200


@calendar_bp.route("/<int:calendar_id>/notes", methods=["PATCH"])
@admin_required
def update_calendar_notes(calendar_id):
    data = json_body()
    result = CalendarManager.update_calendar_notes(
        calendar_id,
        memo=data.get("memo"),
        input_information=data.get("input_information"),
        disable_saturday=data.get("disable_saturday", False),
    )
    return jsonify(result), 200


@calendar_bp.route("/<int:calendar_id>/publishable", methods=["PATCH"])
@admin_required
def set_publishable(calendar_id):
    data = json_body()
    if not isinstance(data.get("is_publishable"), bool):
        raise ValidationError("is_publishable must be a boolean.")
    result = CalendarManager.set_publishable_status(
        calendar_id,
        data["is_publishable"],
        force_publish=data.get("force_publish") is True,
        disable_saturday_override=data.get("disable_saturday_override"),
    )
    return jsonify(result), 200


@calendar_bp.route("/<int:calendar_id>/copy", methods=["POST"])
@admin_required
def copy_calendar(calendar_id):
    data = json_body()
    source_id = data.get("source_calendar_id")
    if isinstance(source_id, bool) or not isinstance(source_id, int):
        raise ValidationError("source_calendar_id must be an integer.")
    return jsonify(CalendarManager.copy_calendar_data(calendar_id, source_id)), 200


@calendar_bp.route("/<int:calendar_id>/initialize", methods=["POST"])
@admin_required
def initialize_days(calendar_id):
    data = json_body()
    fiscal_year = data.get("fiscal_year")
    if fiscal_year is None:
        metadata = CalendarManager.get_calendar_metadata(calendar_id)
        if metadata is None:
            return jsonify({"error": "Calendar not found"}), 404
        fiscal_year = metadata["fiscal_year"]
    return jsonify(CalendarManager.initialize_calendar_days(calendar_id, fiscal_year)), 200


@calendar_bp.route("/<int:calendar_id>/holidays/refresh", methods=["POST"])
@admin_required
def refresh_holidays(calendar_id):
    data = json_body()
    result = CalendarManager.refresh_calendar_holidays(calendar_id, force_refresh=data.get("force_refresh") is True)
    return jsonify(result), 200
