from flask import Blueprint, jsonify, request

from classes.exceptions import ValidationError
from classes.term_manager import TermManager
from utils.utils import admin_required, int_arg, json_body

# Terms' blueprint, mounted under /api/calendars
terms_bp = Blueprint("terms", __name__)


@terms_bp.route("/<int:calendar_id>/terms", methods=["GET"])
@admin_required
def list_terms(calendar_id):
    return jsonify({"terms": TermManager.list_terms(calendar_id)}), 200


@terms_bp.route("/<int:calendar_id>/terms", methods=["POST"])
@admin_required
def add_term(calendar_id):
    data = json_body()
    result = TermManager.add_term(calendar_id, data.get("name"))
    return jsonify(result), 201 if result["added"] else 200


@terms_bp.route("/<int:calendar_id>/terms/bulk", methods=["POST"])
@admin_required
def upsert_many(calendar_id):
    data = json_body()
    names = data.get("names")
    if not isinstance(names, list):
        raise ValidationError("names must be a list.")
    return jsonify({"added": TermManager.upsert_many(calendar_id, names)}), 200


@terms_bp.route("/<int:calendar_id>/terms/presets", methods=["POST"])
@admin_required
def upsert_presets(calendar_id):
    data = json_body()
    terms = data.get("terms")
    if not isinstance(terms, list) or not all(isinstance(term, dict) for term in terms):
        raise ValidationError("terms must be a list of objects.")
    return jsonify(TermManager.upsert_preset_terms(calendar_id, terms)), 200


@terms_bp.route("/<int:calendar_id>/terms/<int:term_id>", methods=["PATCH"])
@admin_required
def update_term(calendar_id, term_id):
    return jsonify(TermManager.update_term(calendar_id, term_id, json_body())), 200


@terms_bp.route("/<int:calendar_id>/terms/<int:term_id>", methods=["DELETE"])
@admin_required
def remove_term(calendar_id, term_id):
    if not TermManager.remove_term(calendar_id, term_id):
        return jsonify({"error": "Term not found"}), 404
    return jsonify({"removed": True}), 200


@terms_bp.route("/<int:calendar_id>/terms/summary", methods=["GET"])
@admin_required
def calendar_summary(calendar_id):
    return jsonify(TermManager.get_calendar_summary(calendar_id)), 200


@terms_bp.route("/<int:calendar_id>/terms/unique", methods=["GET"])
@admin_required
def unique_terms(calendar_id):
    return jsonify({"terms": TermManager.get_unique_terms(calendar_id)}), 200


@terms_bp.route("/<int:calendar_id>/terms/weekday-dates", methods=["GET"])
@admin_required
def term_weekday_dates(calendar_id):
    rows = TermManager.get_term_weekday_dates(
        calendar_id,
        int_arg("term_id", required=False),
        request.args.get("weekday", ""),
    )
    return jsonify({"days": rows}), 200
