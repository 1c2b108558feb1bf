"""
Driver notification routes. This is the polling surface for clients that
do not hold a Socket.IO connection.
"""
from flask import Blueprint, request, jsonify

from tripbid import db
from tripbid.services import NotificationFanout
from tripbid.utils import require_auth, require_role

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.route('', methods=['GET'])
@require_auth
@require_role('driver')
def list_notifications():
    """
    GET /api/notifications?status=unread
    """
    fanout = NotificationFanout(db.session)
    notifications = fanout.list_notifications(request.user_id, status=request.args.get('status') or None)
    return jsonify({
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': fanout.unread_count(request.user_id),
    }), 200


@notifications_bp.route('/<notification_id>/read', methods=['POST'])
@require_auth
def mark_read(notification_id):
    notification = NotificationFanout(db.session).mark_read(notification_id, request.user_id)
    return jsonify({'notification': notification.to_dict()}), 200


@notifications_bp.route('/<notification_id>/archive', methods=['POST'])
@require_auth
def archive(notification_id):
    notification = NotificationFanout(db.session).archive(notification_id, request.user_id)
    return jsonify({'notification': notification.to_dict()}), 200
