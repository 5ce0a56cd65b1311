"""Seed script for demo members."""
from datetime import timedelta

from gymhub import db
from gymhub.core.clock import system_clock
from gymhub.core.plans import compute_expiry
from gymhub.core.status import ACTIVE
from gymhub.models.member import Member


# (full name, email, phone, plan, days since joining)
INITIAL_MEMBERS = [
    ('Kwame Mensah', 'kwame.mensah@example.com', '0241234567', 'Monthly', 3),
    ('Ama Owusu', 'ama.owusu@example.com', '0201234567', 'Monthly', 26),
    ('Kofi Boateng', 'kofi.boateng@example.com', '0551234567', '2 Weeks', 16),
    ('Efua Asante', 'efua.asante@example.com', '0271234567', '1 Week', 2),
    ('Yaw Darko', 'yaw.darko@example.com', '0261234567', 'VIP', 40),
    ('Akosua Addo', None, '0501234567', 'Basic', 35),
]


def seed_members(clock=None):
    """Add demo members if they don't exist. Returns summary."""
    today = (clock or system_clock).now().date()
    added = 0
    skipped = 0

    for full_name, email, phone, plan, days_ago in INITIAL_MEMBERS:
        if email:
            existing = Member.query.filter_by(email=email).first()
        else:
            existing = Member.query.filter_by(full_name=full_name, phone=phone).first()
        if existing:
            skipped += 1
            continue

        start_date = today - timedelta(days=days_ago)
        member = Member(
            full_name=full_name,
            email=email,
            phone=phone,
            plan=plan,
            start_date=start_date,
            expiry_date=compute_expiry(plan, start_date),
            status=ACTIVE,
        )
        db.session.add(member)
        added += 1

    db.session.commit()
    total = Member.query.count()

    return {
        'added': added,
        'skipped': skipped,
        'total': total
    }
