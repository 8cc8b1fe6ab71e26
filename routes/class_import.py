from flask import Blueprint, jsonify

from utils.class_import import import_classes
from utils.utils import json_body, login_required

# Timetable bulk import blueprint
class_import_bp = Blueprint("class_import", __name__)


@class_import_bp.route("", methods=["POST"])
@login_required
def bulk_import():
    data = json_body()
    classes = import_classes(data.get("text", ""), data.get("term_candidates") or [])
    return jsonify({"data": classes}), 200
