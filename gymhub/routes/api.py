"""
JSON API for the front desk and the public checkout.

Includes:
- Member registration, listing and renewal
- Payment recording and mobile money verification (confirm/reject)
- Public checkout for new members paying by mobile money
- Activity log and member messaging
"""

from flask import Blueprint, request, jsonify, current_app

from gymhub.core.clock import system_clock
from gymhub.core.plans import coerce_plan, default_price, to_local_date
from gymhub.errors import GymHubError, NotificationError, ValidationError
from gymhub.models import MemberSnapshot, Payment
from gymhub.routes.admin import admin_required, current_staff_name
from gymhub.services.activity import activity_recorder
from gymhub.services.notifications import notification_gateway
from gymhub.services.payments import PaymentWorkflow
from gymhub.services.stores import MemberStore
from gymhub.services.subscriptions import SubscriptionService

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.errorhandler(GymHubError)
def handle_gymhub_error(error):
    return jsonify(error.to_dict()), error.status_code


def get_clock():
    return current_app.config.get('CLOCK') or system_clock


def get_workflow():
    return PaymentWorkflow(clock=get_clock())


def get_subscriptions():
    return SubscriptionService(clock=get_clock())


def get_json():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object")
    return data


def parse_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid id: {value!r}")


def mobile_money_details(data):
    return {
        'transaction_id': data.get('transaction_id'),
        'momo_phone': data.get('momo_phone'),
        'network': data.get('network'),
    }


def snapshot_from(data, allow_dates=True):
    """
    Build a pending registration from submitted fields.

    Only staff may set start and expiry dates by hand; otherwise they are
    derived from the plan when the payment is recorded.
    """
    full_name = (data.get('full_name') or '').strip()
    if not full_name:
        raise ValidationError("Full name is required")
    plan = data.get('plan') or 'Monthly'
    if coerce_plan(plan) is None:
        raise ValidationError(f"Unknown plan: {plan!r}")
    return MemberSnapshot(
        full_name=full_name,
        email=data.get('email'),
        phone=data.get('phone') or '',
        address=data.get('address'),
        photo=data.get('photo'),
        plan=plan,
        start_date=to_local_date(data['start_date']) if allow_dates and data.get('start_date') else None,
        expiry_date=data.get('expiry_date') if allow_dates else None,
    )


# ============== MEMBERS ==============

@api_bp.route('/members')
@admin_required
def list_members():
    """List members with status recomputed from their expiry dates."""
    clock = get_clock()
    status = request.args.get('status')
    members = [m.to_dict(clock) for m in MemberStore().list()]
    if status:
        members = [m for m in members if m['status'] == status]
    return jsonify({'success': True, 'members': members})


@api_bp.route('/members', methods=['POST'])
@admin_required
def create_member():
    """Register a member directly. Active immediately."""
    member = get_subscriptions().register_member(get_json(), staff_name=current_staff_name())
    return jsonify({'success': True, 'member': member.to_dict(get_clock())}), 201


@api_bp.route('/members/<int:member_id>')
@admin_required
def get_member(member_id):
    member = MemberStore().get_or_404(member_id)
    payments = [p.to_dict() for p in get_workflow().list_payments(member_id=member_id)]
    return jsonify({'success': True, 'member': member.to_dict(get_clock()), 'payments': payments})


@api_bp.route('/members/<int:member_id>/renew', methods=['POST'])
@admin_required
def renew_member(member_id):
    """
    Renew a member from today.

    Body (all optional): plan, amount, method, transaction_id, momo_phone, network
    """
    data = request.get_json(silent=True) or {}
    member, payment = get_subscriptions().renew_member(
        member_id,
        staff_name=current_staff_name(),
        plan=data.get('plan'),
        amount=data.get('amount'),
        method=data.get('method') or Payment.CASH,
        metadata=mobile_money_details(data),
    )
    return jsonify({
        'success': True,
        'member': member.to_dict(get_clock()),
        'payment': payment.to_dict(),
    })


@api_bp.route('/subscriptions/summary')
@admin_required
def subscription_summary():
    return jsonify(dict(get_subscriptions().summary(), success=True))


# ============== PAYMENTS ==============

@api_bp.route('/payments')
@admin_required
def list_payments():
    """Payment history. Filter with ?status=Pending for the verification queue."""
    payments = get_workflow().list_payments(
        status=request.args.get('status'),
        member_id=request.args.get('member_id', type=int),
    )
    return jsonify({'success': True, 'payments': [p.to_dict() for p in payments]})


@api_bp.route('/payments', methods=['POST'])
@admin_required
def record_payment():
    """
    Record a payment at the front desk.

    Body: amount, method, and either member_id or pending_member
    (registration fields), plus mobile money details when applicable.
    """
    data = get_json()
    if data.get('member_id'):
        target = MemberStore().get_or_404(parse_id(data['member_id']))
    elif isinstance(data.get('pending_member'), dict):
        target = snapshot_from(data['pending_member'])
    else:
        raise ValidationError("member_id or pending_member is required")

    payment = get_workflow().record_payment(
        target,
        data.get('amount'),
        data.get('method'),
        metadata=mobile_money_details(data),
        staff_name=current_staff_name(),
    )
    return jsonify({'success': True, 'payment': payment.to_dict()}), 201


@api_bp.route('/checkout', methods=['POST'])
def checkout():
    """
    Public sign-up: a new member pays by mobile money.

    The registration waits inside a Pending payment until staff verify
    the transfer; confirmation creates the member.
    """
    data = get_json()
    snapshot = snapshot_from(data, allow_dates=False)
    amount = data.get('amount')
    if amount is None:
        amount = default_price(snapshot.plan)
    payment = get_workflow().record_payment(
        snapshot,
        amount,
        Payment.MOBILE_MONEY,
        metadata=mobile_money_details(data),
        staff_name='Online Checkout',
    )
    return jsonify({
        'success': True,
        'payment_id': payment.id,
        'status': payment.status,
        'message': 'Payment received. Your membership starts once we verify the transfer.',
    }), 201


@api_bp.route('/payments/<int:payment_id>/confirm', methods=['POST'])
@admin_required
def confirm_payment(payment_id):
    result = get_workflow().confirm_payment(payment_id, current_staff_name())
    return jsonify(result.to_dict(get_clock()))


@api_bp.route('/payments/<int:payment_id>/reject', methods=['POST'])
@admin_required
def reject_payment(payment_id):
    payment = get_workflow().reject_payment(payment_id, current_staff_name())
    return jsonify({'success': True, 'payment': payment.to_dict()})


# ============== ACTIVITY & MESSAGES ==============

@api_bp.route('/activity')
@admin_required
def activity():
    limit = min(request.args.get('limit', 50, type=int), 500)
    entries = activity_recorder.recent(limit=limit, category=request.args.get('category'))
    return jsonify({'success': True, 'activity': [e.to_dict() for e in entries]})


@api_bp.route('/messages', methods=['POST'])
@admin_required
def send_message():
    """Send a message to one member by email and SMS."""
    data = get_json()
    if not data.get('member_id'):
        raise ValidationError("member_id is required")
    member = MemberStore().get_or_404(parse_id(data['member_id']))
    subject = (data.get('subject') or '').strip()
    message = (data.get('message') or '').strip()
    if not subject or not message:
        raise ValidationError("Subject and message are required")

    message_type = data.get('message_type') or 'general'
    if message_type not in ('welcome', 'reminder', 'expiry', 'general'):
        raise ValidationError(f"Unknown message type: {message_type!r}")

    result = notification_gateway.send_message(member, subject, message, message_type=message_type)
    activity_recorder.record(current_staff_name(), 'Send Message', f"{subject} to {member.full_name}", 'admin')
    if not result['success']:
        raise NotificationError(result['error'])
    return jsonify({
        'success': True,
        'email': bool(result['email'] and result['email']['success']),
        'sms': bool(result['sms'] and result['sms']['success']),
    })
