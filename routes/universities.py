from flask import Blueprint, jsonify, request

from classes.exceptions import ValidationError
from classes.university_directory import UniversityDirectory
from utils.utils import admin_required, int_arg, json_body

# Universities' blueprint
university_bp = Blueprint("universities", __name__)


def _rows(data):
    rows = data.get("rows")
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise ValidationError("rows must be a list of objects.")
    return rows


@university_bp.route("/search", methods=["GET"])
def search_universities():
    rows = UniversityDirectory.search_by_name(request.args.get("q", ""), int_arg("limit", required=False))
    return jsonify({"universities": rows}), 200


@university_bp.route("/<code>", methods=["GET"])
def get_university(code):
    university = UniversityDirectory.get_by_code(code)
    if university is None:
        return jsonify({"error": "University not found"}), 404
    return jsonify(university), 200


@university_bp.route("/<code>/campuses", methods=["GET"])
def list_campuses(code):
    return jsonify({"campuses": UniversityDirectory.list_campuses_by_university_code(code)}), 200


@university_bp.route("/bulk", methods=["POST"])
@admin_required
def bulk_upsert_universities():
    return jsonify(UniversityDirectory.bulk_upsert(_rows(json_body()))), 200


@university_bp.route("/campuses/bulk", methods=["POST"])
@admin_required
def bulk_upsert_campuses():
    return jsonify(UniversityDirectory.bulk_upsert_campuses(_rows(json_body()))), 200


@university_bp.route("/campuses/<int:campus_id>/codes", methods=["PATCH"])
@admin_required
def update_campus_codes(campus_id):
    return jsonify(UniversityDirectory.update_campus_codes(campus_id, json_body())), 200
