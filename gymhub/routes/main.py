from flask import Blueprint, current_app

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint."""
    return {'status': 'healthy', 'app': current_app.config.get('GYM_NAME')}
