"""
Lead intelligence routes: context, scoring, suggestion generation, batch scoring.

All POST endpoints accept an optional JSON body {"force": true} to bypass the
staleness checks.
"""
import logging
from flask import Blueprint, jsonify, request

from lead_engine.services.batch import enqueue_score_all
from lead_engine.services.intelligence import generate_lead_suggestions, get_lead_context, perform_lead_scoring
from lead_engine.services.suggestions import list_lead_suggestions

logger = logging.getLogger('routes.leads')

bp = Blueprint('leads', __name__)


def _force_flag():
    data = request.get_json(silent=True) or {}
    return bool(data.get('force')) or request.args.get('force') in ('1', 'true')


@bp.route('/api/leads/<lead_id>/context')
def lead_context(lead_id):
    return jsonify(get_lead_context(lead_id)), 200


@bp.route('/api/leads/<lead_id>/score', methods=['POST'])
def score_lead_endpoint(lead_id):
    return jsonify(perform_lead_scoring(lead_id, force=_force_flag())), 200


@bp.route('/api/leads/<lead_id>/suggestions/generate', methods=['POST'])
def generate_suggestions_endpoint(lead_id):
    return jsonify(generate_lead_suggestions(lead_id, force=_force_flag())), 200


@bp.route('/api/leads/<lead_id>/suggestions')
def lead_suggestions(lead_id):
    return jsonify(list_lead_suggestions(lead_id)), 200


@bp.route('/api/leads/score-all', methods=['POST'])
def score_all():
    """Queue a batch scoring run on the RQ worker."""
    data = request.get_json(silent=True) or {}
    statuses = data.get('statuses')
    job_id = enqueue_score_all(force=bool(data.get('force')), statuses=statuses)
    return jsonify({'queued': True, 'job_id': job_id}), 202
