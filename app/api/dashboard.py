"""
Dashboard Routes Blueprint

- /api/v1/dashboard/analytics: funnel, pipeline health, portfolio, activity
  trends, clients needing attention and suggested next actions
"""

import logging
from flask import Blueprint, jsonify

from auth import jwt_required, get_current_agent_id
from database import get_db_session
from services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard_bp', __name__)


@dashboard_bp.route('/analytics', methods=['GET'])
@jwt_required
def get_analytics():
    """Computed on demand from the agent's own records."""
    with get_db_session() as db:
        analytics = DashboardService(db, get_current_agent_id()).generate_analytics()
    return jsonify({'success': True, 'analytics': analytics})
