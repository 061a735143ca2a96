# milk_ledger/messages.py
"""Customer and admin message text for each notification event kind.

Messages are sent with Telegram's HTML parse mode, so every interpolated
string is HTML-escaped.
"""
from datetime import date
from html import escape

from django.conf import settings

from .utils import parse_date


def _dairy_name():
    return escape(settings.DAIRY_NAME)


def _fmt_date(value):
    return parse_date(value).strftime('%d %B %Y')


def _fmt_month(month):
    year, mon = (int(part) for part in month.split('-'))
    return date(year, mon, 1).strftime('%B %Y')


def _footer():
    lines = []
    if settings.DAIRY_CONTACT_PHONE:
        lines.append(f"Contact: {escape(settings.DAIRY_CONTACT_PHONE)}")
    lines.append(f"- {_dairy_name()}")
    return '\n'.join(lines)


def _profile_lines(payload):
    lines = [
        f"Name: {payload['name']}",
        f"Mobile: {payload['phone']}",
        f"Daily Quantity: {payload['daily_qty']}L",
        f"Rate: ₹{payload['rate']}/L",
    ]
    if payload.get('address'):
        lines.append(f"Address: {payload['address']}")
    lines.append(f"Status: {payload['status']}")
    return lines


def registration(payload):
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"Namaste {payload['name']}! Your registration is complete ✅",
        '',
        *_profile_lines(payload),
        f"Registration Date: {_fmt_date(payload['date'])}",
    ]
    return '\n'.join(lines + ['', _footer()])


def profile_updated(payload):
    lines = [
        f"🔄 {_dairy_name()} - Details Updated",
        '',
        f"Namaste {payload['name']}! Your details were updated ✅",
        '',
        *_profile_lines(payload),
        f"Last Updated: {_fmt_date(payload['date'])}",
        '',
        'If anything is wrong please contact us right away.',
    ]
    return '\n'.join(lines + ['', _footer()])


def delivery_confirmed(payload):
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"👋 {payload['name']}",
        f"Delivery for {_fmt_date(payload['date'])}:",
        f"• Quantity: {payload['qty']} L",
        f"• Rate: ₹{payload['rate']}/L",
        f"• Amount: ₹{payload['amount']}",
    ]
    return '\n'.join(lines + ['', _footer()])


def delivery_skipped(payload):
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"ℹ️ {payload['name']}",
        f"Delivery for {_fmt_date(payload['date'])} was skipped.",
    ]
    return '\n'.join(lines + ['', _footer()])


def admin_delivery_summary(payload):
    if payload['status'] == 'delivered':
        lines = [
            '📊 ADMIN NOTIFICATION',
            '',
            '✅ Delivery Completed',
            f"Customer: {payload['name']}",
            f"Phone: {payload['phone']}",
            f"Date: {_fmt_date(payload['date'])}",
            f"Quantity: {payload['qty']} L",
            f"Rate: ₹{payload['rate']}/L",
            f"Amount: ₹{payload['amount']}",
        ]
    else:
        lines = [
            '📊 ADMIN NOTIFICATION',
            '',
            '⏭️ Delivery Skipped',
            f"Customer: {payload['name']}",
            f"Phone: {payload['phone']}",
            f"Date: {_fmt_date(payload['date'])}",
        ]
    notified = payload.get('customer_notified')
    if notified is True:
        lines.append('Customer notified ✅')
    elif notified is False:
        lines.append('Customer notification FAILED ❌')
    else:
        lines.append('Customer has no messaging handle')
    return '\n'.join(lines + ['', f"- {_dairy_name()} Admin"])


def payment_recorded(payload):
    balance = payload['balance']
    status_line = 'Paid' if balance <= 0 else f"Balance: ₹{balance}"
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"💰 {payload['name']}",
        f"Payment received for {_fmt_month(payload['month'])}!",
        '',
        f"✅ Received: ₹{payload['received']}",
        f"📊 Total Paid: ₹{payload['total_paid']}",
        f"💸 Total Amount: ₹{payload['total_amount']}",
        f"📋 {status_line}",
    ]
    return '\n'.join(lines + ['', _footer()])


def payment_completed(payload):
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"🎉 {payload['name']}",
        f"Your payment for {_fmt_month(payload['month'])} is complete!",
        '',
        f"💰 Total Amount: ₹{payload['total_amount']}",
        '✅ Status: Paid',
    ]
    return '\n'.join(lines + ['', _footer()])


def payment_reminder(payload):
    status_text = 'Payment Pending' if payload['status'] == 'pending' else 'Partial Payment'
    lines = [
        f"🥛 {_dairy_name()}",
        '',
        f"⚠️ Payment Reminder - {payload['name']}",
        '',
        f"📅 Month: {_fmt_month(payload['month'])}",
        f"💸 Status: {status_text}",
        '',
        'Payment Details:',
        f"• Total Amount: ₹{payload['total_amount']}",
        f"• Paid Amount: ₹{payload['paid_amount']}",
        f"• Balance Due: ₹{payload['balance']}",
        '',
        'Service Details:',
        f"• Days Delivered: {payload['days_delivered']}",
        f"• Total Milk: {float(payload['total_milk']):.1f}L",
        f"• Rate: ₹{payload['rate']}/L",
        '',
        f"⏰ Due Date: {_fmt_date(payload['due_date'])}",
    ]
    return '\n'.join(lines + ['', _footer()])


RENDERERS = {
    'registration': registration,
    'profile-updated': profile_updated,
    'delivery-confirmed': delivery_confirmed,
    'delivery-skipped': delivery_skipped,
    'admin-delivery-summary': admin_delivery_summary,
    'payment-recorded': payment_recorded,
    'payment-completed': payment_completed,
    'payment-reminder': payment_reminder,
}


def render_message(event_kind, payload):
    try:
        renderer = RENDERERS[event_kind]
    except KeyError:
        raise ValueError(f'Unknown notification event kind: {event_kind}')
    escaped = {key: escape(value) if isinstance(value, str) else value for key, value in payload.items()}
    return renderer(escaped)
