"""
Suggestion review routes.
"""
from flask import Blueprint, jsonify, request

from lead_engine.services.suggestions import approve_suggestion, delete_suggestion, reject_suggestion

bp = Blueprint('suggestions', __name__)


@bp.route('/api/suggestions/<suggestion_id>/approve', methods=['POST'])
def approve(suggestion_id):
    data = request.get_json(silent=True) or {}
    return jsonify(approve_suggestion(suggestion_id, modifications=data.get('modifications'))), 200


@bp.route('/api/suggestions/<suggestion_id>/reject', methods=['POST'])
def reject(suggestion_id):
    data = request.get_json(silent=True) or {}
    return jsonify(reject_suggestion(suggestion_id, reason=data.get('reason'))), 200


@bp.route('/api/suggestions/<suggestion_id>', methods=['DELETE'])
def delete(suggestion_id):
    return jsonify(delete_suggestion(suggestion_id)), 200
