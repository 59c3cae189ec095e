"""
Order update message templates.

One template per order event the customer hears about. Each template has a
long email variant and a short variant shared by SMS and push, since both
must fit on a phone lock screen.

Templates use str.format placeholders; every template accepts
customer_name, order_number and vendor_name, and some need more.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NotificationType(str, Enum):
    ORDER_PLACED = "order_placed"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_PREPARING = "order_preparing"
    ORDER_READY = "order_ready"
    ORDER_OUT_FOR_DELIVERY = "order_out_for_delivery"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"


@dataclass
class NotificationTemplate:
    notification_type: NotificationType
    email_subject: str
    email_body: str
    short_body: str

    def render_email(self, **kwargs) -> tuple[str, str]:
        """Returns (subject, body)."""
        return (
            self.email_subject.format(**kwargs),
            self.email_body.format(**kwargs),
        )

    def render_short(self, **kwargs) -> str:
        return self.short_body.format(**kwargs)


TEMPLATES: dict[NotificationType, NotificationTemplate] = {

    NotificationType.ORDER_PLACED: NotificationTemplate(
        notification_type=NotificationType.ORDER_PLACED,
        email_subject="Order received - #{order_number}",
        email_body="""Hi {customer_name},

We've sent your order #{order_number} to {vendor_name}.

{item_list}

Total: {total}

We'll let you know as soon as the restaurant confirms it.
""",
        short_body="Order #{order_number} sent to {vendor_name}. Total {total}.",
    ),

    NotificationType.ORDER_CONFIRMED: NotificationTemplate(
        notification_type=NotificationType.ORDER_CONFIRMED,
        email_subject="Order confirmed - #{order_number}",
        email_body="""Hi {customer_name},

{vendor_name} has confirmed your order #{order_number}.
""",
        short_body="{vendor_name} confirmed order #{order_number}.",
    ),

    NotificationType.ORDER_PREPARING: NotificationTemplate(
        notification_type=NotificationType.ORDER_PREPARING,
        email_subject="Your food is being prepared - #{order_number}",
        email_body="""Hi {customer_name},

{vendor_name} has started preparing order #{order_number}.
""",
        short_body="{vendor_name} is preparing order #{order_number}.",
    ),

    NotificationType.ORDER_READY: NotificationTemplate(
        notification_type=NotificationType.ORDER_READY,
        email_subject="Order ready - #{order_number}",
        email_body="""Hi {customer_name},

Order #{order_number} is ready {ready_note}.
""",
        short_body="Order #{order_number} is ready {ready_note}.",
    ),

    NotificationType.ORDER_OUT_FOR_DELIVERY: NotificationTemplate(
        notification_type=NotificationType.ORDER_OUT_FOR_DELIVERY,
        email_subject="Your order is on the way - #{order_number}",
        email_body="""Hi {customer_name},

Your order #{order_number} from {vendor_name} is on its way to:
{delivery_address}

Track it live in the app.
""",
        short_body="Order #{order_number} is on the way. Track it in the app.",
    ),

    NotificationType.ORDER_DELIVERED: NotificationTemplate(
        notification_type=NotificationType.ORDER_DELIVERED,
        email_subject="Delivered - #{order_number}",
        email_body="""Hi {customer_name},

Order #{order_number} from {vendor_name} has been delivered. Enjoy your meal!

You earned {points_earned} loyalty points with this order. Rate it in the app.
""",
        short_body="Order #{order_number} delivered. Enjoy! Rate it in the app.",
    ),

    NotificationType.ORDER_CANCELLED: NotificationTemplate(
        notification_type=NotificationType.ORDER_CANCELLED,
        email_subject="Order cancelled - #{order_number}",
        email_body="""Hi {customer_name},

Order #{order_number} from {vendor_name} was cancelled.
Reason: {reason}

If you paid already, the refund is on its way. Contact support if you need help.
""",
        short_body="Order #{order_number} was cancelled: {reason}",
    ),
}


def get_template(notification_type: NotificationType) -> Optional[NotificationTemplate]:
    return TEMPLATES.get(notification_type)


def render_notification(
    notification_type: NotificationType,
    channel: str,
    **context
) -> tuple[Optional[str], str]:
    """
    Render a notification for a specific channel.

    Returns:
        email: (subject, body)
        push:  (subject, short body)
        sms:   (None, short body)

    Raises:
        ValueError: If template not found or channel invalid
    """
    template = get_template(notification_type)
    if not template:
        raise ValueError(f"No template found for notification type: {notification_type}")

    if channel == "email":
        return template.render_email(**context)
    elif channel == "push":
        return (template.email_subject.format(**context), template.render_short(**context))
    elif channel == "sms":
        return (None, template.render_short(**context))
    else:
        raise ValueError(f"Unknown channel: {channel}")


def format_money(amount: float, currency: str = "RM") -> str:
    return f"{currency}{amount:.2f}"


def format_item_list(items: list[dict], currency: str = "RM") -> str:
    """
    Format order lines for an email body.

    Args:
        items: dicts with 'name', 'quantity', and optionally 'price'
    """
    lines = []
    for item in items:
        if "price" in item:
            lines.append(
                f"  - {item['name']} (x{item['quantity']}) - {format_money(item['price'], currency)}"
            )
        else:
            lines.append(f"  - {item['name']} (x{item['quantity']})")
    return "\n".join(lines)
