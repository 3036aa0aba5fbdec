"""Storefront management CLI.

Database commands create or drop the storefront tables when the domain is
configured with an RDBMS provider (``sqlite`` or ``postgresql``). The
in-memory default needs no schema.

Back-office commands run a single storefront command inside the domain
context.

Usage:
    python src/manage.py setup-db                        # Create all tables
    python src/manage.py drop-db                         # Drop all tables
    python src/manage.py purge-carts                     # Delete expired carts
    python src/manage.py update-fulfillment ORDER_ID shipped --tracking-number 1Z999 --carrier UPS
    python src/manage.py retry-notification NOTIFICATION_ID
"""

import argparse
import sys


def setup_databases():
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_databases():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def purge_expired_carts() -> int:
    from protean.utils.globals import current_domain
    from storefront.cart.management import PurgeExpiredCarts

    purged = current_domain.process(PurgeExpiredCarts(), asynchronous=False)
    print(f"Purged {purged} expired cart(s).")
    return purged


def update_fulfillment(order_id, status, tracking_number=None, carrier=None, notes=None) -> str:
    from protean.utils.globals import current_domain
    from storefront.order.fulfillment import UpdateFulfillmentStatus

    current_domain.process(
        UpdateFulfillmentStatus(
            order_id=order_id,
            status=status,
            tracking_number=tracking_number,
            carrier=carrier,
            notes=notes,
        ),
        asynchronous=False,
    )
    print(f"Order {order_id} is now {status}.")
    return status


def retry_notification(notification_id, additional_attempts=1) -> bool:
    from protean.utils.globals import current_domain
    from storefront.notification.retry import RetryNotification

    sent = current_domain.process(
        RetryNotification(notification_id=notification_id, additional_attempts=additional_attempts),
        asynchronous=False,
    )
    print(f"Notification {notification_id} {'sent' if sent else 'failed again'}.")
    return sent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("purge-carts", help="Delete every cart past its expiry")

    fulfillment = subparsers.add_parser("update-fulfillment", help="Move an order's fulfillment status")
    fulfillment.add_argument("order_id")
    fulfillment.add_argument(
        "status", choices=["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
    )
    fulfillment.add_argument("--tracking-number")
    fulfillment.add_argument("--carrier")
    fulfillment.add_argument("--notes")

    retry = subparsers.add_parser("retry-notification", help="Resend a failed notification")
    retry.add_argument("notification_id")
    retry.add_argument("--additional-attempts", type=int, default=1)
    return parser


def run_domain_command(args) -> None:
    """Dispatch a back-office command. Expects an active storefront domain context."""
    if args.command == "purge-carts":
        purge_expired_carts()
    elif args.command == "update-fulfillment":
        update_fulfillment(
            args.order_id,
            args.status,
            tracking_number=args.tracking_number,
            carrier=args.carrier,
            notes=args.notes,
        )
    elif args.command == "retry-notification":
        retry_notification(args.notification_id, additional_attempts=args.additional_attempts)
    else:
        raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command in ("purge-carts", "update-fulfillment", "retry-notification"):
        from storefront.domain import storefront

        storefront.init()
        with storefront.domain_context():
            run_domain_command(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
