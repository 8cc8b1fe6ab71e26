from flask import Blueprint, jsonify

from utils.holidays import get_fiscal_holidays
from utils.utils import admin_required

# National holidays' blueprint
holidays_bp = Blueprint("holidays", __name__)


@holidays_bp.route("/<int:fiscal_year>", methods=["GET"])
def fiscal_holidays(fiscal_year):
    return jsonify(get_fiscal_holidays(fiscal_year)), 200


@holidays_bp.route("/<int:fiscal_year>/refresh", methods=["POST"])
@admin_required
def refresh_fiscal_holidays(fiscal_year):
    return jsonify(get_fiscal_holidays(fiscal_year, force_refresh=True)), 200
