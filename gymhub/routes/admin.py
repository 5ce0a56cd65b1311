"""
Staff authentication.

Staff sign in with the shared admin password and their own display name;
the name is what payments record as `confirmed_by`.
"""

from functools import wraps
from flask import Blueprint, request, session, current_app, jsonify

from gymhub.services.activity import activity_recorder

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def admin_required(f):
    """Decorator to require staff authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('admin_authenticated'):
            return jsonify({'success': False, 'error': 'Staff login required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def current_staff_name():
    return session.get('staff_name') or 'Staff'


@admin_bp.route('/login', methods=['POST'])
def login():
    """Staff login."""
    data = request.get_json(silent=True) or request.form
    password = data.get('password', '')
    staff_name = (data.get('staff_name') or '').strip()

    if password != current_app.config['ADMIN_PASSWORD']:
        current_app.logger.warning(f"Failed staff login attempt for '{staff_name}'")
        return jsonify({'success': False, 'error': 'Invalid password'}), 401
    if not staff_name:
        return jsonify({'success': False, 'error': 'Staff name is required'}), 400

    session['admin_authenticated'] = True
    session['staff_name'] = staff_name
    session.permanent = True
    activity_recorder.record(staff_name, 'Sign In', 'Staff signed in', 'access')
    return jsonify({'success': True, 'staff_name': staff_name})


@admin_bp.route('/logout', methods=['POST'])
def logout():
    """Log out staff."""
    staff_name = session.pop('staff_name', None)
    session.pop('admin_authenticated', None)
    if staff_name:
        activity_recorder.record(staff_name, 'Sign Out', 'Staff signed out', 'access')
    return jsonify({'success': True})


@admin_bp.route('/seed-members', methods=['POST'])
@admin_required
def seed_members_route():
    """Seed demo members."""
    from gymhub.seed_members import seed_members
    result = seed_members(clock=current_app.config.get('CLOCK'))
    activity_recorder.record(current_staff_name(), 'Seed Members', f"{result['added']} added", 'admin')
    return jsonify(dict(result, success=True))


@admin_bp.route('/reminders/run', methods=['POST'])
@admin_required
def run_reminders():
    """Manually trigger the reminder job."""
    from gymhub.services.reminder_jobs import send_membership_reminders
    result = send_membership_reminders(clock=current_app.config.get('CLOCK'))
    activity_recorder.record(
        current_staff_name(), 'Run Reminders',
        f"{result['sent']} sent, {result['skipped']} skipped, {result['failed']} failed", 'admin'
    )
    return jsonify(dict(result, success=True))
