"""
Routing routes: email-to-lead matching and thread/meeting attachment to leads or clients.
"""
from flask import Blueprint, jsonify, request

from lead_engine.services.routing import match_emails, route_meeting, route_thread, route_thread_to_client

bp = Blueprint('routing', __name__)


@bp.route('/api/match', methods=['POST'])
def match():
    """Candidate leads for a list of participant emails. Body: {"emails": [...]}."""
    data = request.get_json(silent=True) or {}
    emails = data.get('emails')
    if not isinstance(emails, list) or not all(isinstance(e, str) for e in emails):
        return jsonify({'error': "'emails' must be a list of strings"}), 400
    return jsonify({'candidates': match_emails(emails)}), 200


@bp.route('/api/threads/<thread_id>/route', methods=['POST'])
def route_thread_endpoint(thread_id):
    return jsonify(route_thread(thread_id)), 200


@bp.route('/api/threads/<thread_id>/route-client', methods=['POST'])
def route_thread_to_client_endpoint(thread_id):
    return jsonify(route_thread_to_client(thread_id)), 200


@bp.route('/api/meetings/<meeting_id>/route', methods=['POST'])
def route_meeting_endpoint(meeting_id):
    return jsonify(route_meeting(meeting_id)), 200
