"""Order confirmation template: sent once an order is placed."""

from html import escape


def _money(value) -> str:
    return f"{float(value or 0):.2f}"


class OrderConfirmationTemplate:
    notification_type = "order_confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        customer_name = context.get("customer_name") or "Customer"
        items = context.get("items") or []

        lines = [f"  {item['quantity']} x {item['name']}  {_money(item['total'])}" for item in items]
        summary = [
            f"Subtotal: {_money(context.get('subtotal'))}",
            f"Discount: {_money(context.get('discount'))}",
            f"Tax: {_money(context.get('tax'))}",
            f"Shipping: {_money(context.get('shipping'))}",
            f"Total: {_money(context.get('total'))}",
        ]
        body = (
            f"Dear {customer_name},\n\n"
            f"Your order #{order_number} has been received.\n\n"
            + "\n".join(lines)
            + "\n\n"
            + "\n".join(summary)
            + "\n\nTracking details will follow by email once your order ships.\n\n"
            "Thank you for your order!"
        )

        rows = "".join(
            f"<tr><td>{escape(str(item['name']))}</td><td>{item['quantity']}</td>"
            f"<td>{_money(item['total'])}</td></tr>"
            for item in items
        )
        html_body = (
            f"<h1>Your order is confirmed</h1>"
            f"<p>Dear {escape(customer_name)},</p>"
            f"<p>Order number: <strong>#{escape(order_number)}</strong></p>"
            f"<table>{rows}</table>"
            f"<p>Total: <strong>{_money(context.get('total'))}</strong></p>"
        )
        return {
            "subject": f"Order Confirmation - #{order_number}",
            "body": body,
            "html_body": html_body,
        }
