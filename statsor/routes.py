from flask import Blueprint, request, jsonify
from flask_login import login_required

from .errors import ValidationError
from .extensions import current_identity, get_services
from .utils import parse_input_date

# Create blueprint
bp = Blueprint('main', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _parse_int(data: dict, field: str) -> int:
    value = data.get(field)
    if value is None or value == '':
        raise ValidationError(f"{field.replace('_', ' ').title()} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field.replace('_', ' ').title()} must be a valid number")
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field.replace('_', ' ').title()} must be a valid number")


def _dashboard():
    return get_services().dashboard_for(current_identity())


@bp.route('/api/dashboard')
@login_required
def dashboard():
    """Dashboard view model: totals, win rate, match lists and quota flags"""
    return jsonify({'success': True, 'dashboard': _dashboard().view()})


@bp.route('/api/dashboard/refresh', methods=['POST'])
@login_required
def refresh_dashboard():
    controller = _dashboard().refresh()
    return jsonify({'success': True, 'dashboard': controller.view()})


@bp.route('/api/teams')
@login_required
def list_teams():
    teams = _dashboard().teams
    return jsonify({'success': True, 'teams': [t.model_dump(mode='json') for t in teams]})


@bp.route('/api/teams', methods=['POST'])
@login_required
def create_team():
    """Create a new team, subject to the plan's team limit"""
    data = _json_body()
    name = data.get('name', '')
    if not isinstance(name, str):
        raise ValidationError("Team name must be text")

    team = _dashboard().create_team(name)
    return jsonify({'success': True, 'team': team.model_dump(mode='json')}), 201


@bp.route('/api/teams/<team_id>/players', methods=['POST'])
@login_required
def add_player(team_id):
    team = _dashboard().add_player(team_id)
    return jsonify({'success': True, 'team': team.model_dump(mode='json')})


@bp.route('/api/teams/<team_id>/form')
@login_required
def team_form(team_id):
    last = request.args.get('last', 5, type=int)
    form = _dashboard().team_form(team_id, last=last)
    return jsonify({'success': True, 'team_id': team_id, 'form': form})


@bp.route('/api/matches')
@login_required
def list_matches():
    matches = _dashboard().matches
    status = request.args.get('status')
    if status:
        matches = [m for m in matches if m.status.value == status]
    return jsonify({'success': True, 'matches': [m.model_dump(mode='json') for m in matches]})


@bp.route('/api/matches', methods=['POST'])
@login_required
def schedule_match():
    data = _json_body()
    errors = []
    for field in ('home_team_id', 'away_team_id', 'date'):
        if not data.get(field):
            errors.append(f"{field.replace('_', ' ').title()} is required")
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    date = parse_input_date(str(data['date']))
    if date is None:
        raise ValidationError("Date must be a valid date (e.g., '2025-10-23' or '23 Oct 2025')")

    match = _dashboard().schedule_match(data['home_team_id'], data['away_team_id'], date)
    return jsonify({'success': True, 'match': match.model_dump(mode='json')}), 201


@bp.route('/api/matches/<match_id>/start', methods=['POST'])
@login_required
def start_match(match_id):
    match = _dashboard().start_match(match_id)
    return jsonify({'success': True, 'match': match.model_dump(mode='json')})


@bp.route('/api/matches/<match_id>/result', methods=['POST'])
@login_required
def record_result(match_id):
    """Complete a match and credit the result to both teams"""
    data = _json_body()
    home_score = _parse_int(data, 'home_score')
    away_score = _parse_int(data, 'away_score')

    controller = _dashboard()
    match = controller.complete_match(match_id, home_score, away_score)
    return jsonify({
        'success': True,
        'match': match.model_dump(mode='json'),
        'teams': [
            controller.get_team(match.home_team_id).model_dump(mode='json'),
            controller.get_team(match.away_team_id).model_dump(mode='json'),
        ]
    })
