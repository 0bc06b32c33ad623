# flag_retention/cli/retention.py
"""
CLI commands for flag retention.

Usage:
    python -m flag_retention.cli.retention status
    python -m flag_retention.cli.retention run-cleanup
    python -m flag_retention.cli.retention set-policy bookmark --days 30 --auto-clear
    python -m flag_retention.cli.retention clear-type bookmark --confirm
    python -m flag_retention.cli.retention set-config cron_batch_size 250
"""

import argparse
import json
import sys

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from flag_retention.database import SessionLocal

    return SessionLocal()


def _parse_config_value(field_name: str, raw: str):
    """JSON when it parses, otherwise the raw string. Flag ID lists may be comma separated."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw

    if field_name == "enabled_flag_ids" and isinstance(value, str):
        value = [v.strip() for v in value.split(",") if v.strip()]
    return value


def cmd_status(args):
    """Show global defaults, policies and counts."""
    from flag_retention.services import RetentionPolicyStore, StatisticsAggregator, load_global_defaults
    from flag_retention.storage import FlagTypeCounts, get_flagging_store

    db = get_db_session()
    try:
        defaults = load_global_defaults(db)
        store = get_flagging_store(db)
        counts = StatisticsAggregator(store).counts_by_type()
        policies = RetentionPolicyStore(db).list_policies(store.list_flag_types(), defaults)

        print("\n=== Flag Retention Status ===\n")
        print(f"Default retention: {defaults.default_retention_days} days (0 = forever)")
        print(f"Cron batch size: {defaults.cron_batch_size}")
        print(f"User clearing: {'enabled' if defaults.user_clearing_enabled else 'disabled'}")
        print(f"Flag access mode: {defaults.flag_access_mode.value}")
        if defaults.enabled_flag_ids:
            print(f"  Enabled flags: {', '.join(sorted(defaults.enabled_flag_ids))}")

        print(f"\nFlag types: {len(policies)}")
        for policy in policies:
            c = counts.get(policy.flag_type_id, FlagTypeCounts())
            source = "default" if policy.is_default else "policy"
            print(
                f"  {policy.flag_type_id}: {c.total_count} flags, {c.unique_owner_count} owners, "
                f"{policy.retention_days} days ({source}), auto_clear={policy.auto_clear}"
            )

        print()
    finally:
        db.close()


def cmd_run_cleanup(args):
    """Run one cleanup tick. Meant to be called by cron."""
    from flag_retention.config import get_settings
    from flag_retention.logging_config import configure_logging
    from flag_retention.models import TickState
    from flag_retention.services import build_cleanup_scheduler

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    db = get_db_session()
    try:
        result = build_cleanup_scheduler(db).run_tick()

        print(f"State: {result.state.value}")
        print(f"Deleted: {result.total_deleted} (batch size {result.batch_size})")
        for flag_type_id, deleted in result.deleted_by_type.items():
            print(f"  {flag_type_id}: {deleted}")

        if result.errors:
            print("\nErrors:")
            for error in result.errors:
                print(f"  - {error}")

        if result.state == TickState.PARTIALLY_FAILED:
            sys.exit(1)
    finally:
        db.close()


def cmd_set_policy(args):
    """Set the retention policy for a flag type."""
    from flag_retention.exceptions import InvalidPolicyValue
    from flag_retention.services import RetentionPolicyStore

    db = get_db_session()
    try:
        policy_store = RetentionPolicyStore(db)
        if args.reset:
            removed = policy_store.delete(args.flag_type_id)
            print(f"{'Reset' if removed else 'No policy stored for'} '{args.flag_type_id}'")
            return

        if args.days is None:
            print("Error: --days is required unless --reset is given")
            sys.exit(1)

        try:
            policy = policy_store.save(args.flag_type_id, args.days, args.auto_clear)
        except InvalidPolicyValue as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        print(f"Saved retention policy: {policy.flag_type_id}")
        print(f"  Retention days: {policy.retention_days}")
        print(f"  Auto clear: {policy.auto_clear}")
    finally:
        db.close()


def cmd_list_policies(args):
    """List the effective policy of every known flag type."""
    from flag_retention.services import RetentionPolicyStore, load_global_defaults
    from flag_retention.storage import get_flagging_store

    db = get_db_session()
    try:
        defaults = load_global_defaults(db)
        policies = RetentionPolicyStore(db).list_policies(get_flagging_store(db).list_flag_types(), defaults)

        print("\n=== Retention Policies ===\n")
        for policy in policies:
            marker = "[DEFAULT]" if policy.is_default else ""
            print(f"{policy.flag_type_id} {marker}")
            print(f"  Retention days: {policy.retention_days}")
            print(f"  Auto clear: {policy.auto_clear}")
            if policy.updated_at:
                print(f"  Updated: {policy.updated_at.isoformat()}")
            print()
    finally:
        db.close()


def _print_clear_outcome(deleted: int, defaults) -> None:
    from flag_retention.services import format_clear_message

    print(format_clear_message(deleted, defaults))


def cmd_clear_type(args):
    """Delete every flagging of a type."""
    from flag_retention.exceptions import DeletionFailed
    from flag_retention.services import BatchDeleter, load_global_defaults
    from flag_retention.storage import get_flagging_store

    if not args.confirm:
        print("Error: clear-type requires --confirm")
        print("This permanently deletes every flagging of the type")
        sys.exit(1)

    db = get_db_session()
    try:
        defaults = load_global_defaults(db)
        try:
            deleted = BatchDeleter(get_flagging_store(db)).clear_by_type(args.flag_type_id)
        except DeletionFailed as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        _print_clear_outcome(deleted, defaults)
    finally:
        db.close()


def cmd_clear_older_than(args):
    """Delete flaggings of a type older than N days."""
    from flag_retention.exceptions import DeletionFailed, InvalidPolicyValue
    from flag_retention.services import BatchDeleter, SystemClock, load_global_defaults
    from flag_retention.storage import get_flagging_store

    if not args.confirm:
        print("Error: clear-older-than requires --confirm")
        sys.exit(1)

    db = get_db_session()
    try:
        defaults = load_global_defaults(db)
        deleter = BatchDeleter(get_flagging_store(db))
        try:
            deleted = deleter.clear_older_than(args.flag_type_id, args.days, SystemClock().now())
        except (DeletionFailed, InvalidPolicyValue) as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        _print_clear_outcome(deleted, defaults)
    finally:
        db.close()


def cmd_clear_user(args):
    """Clear a user's flags, honoring the flag access allow-list."""
    from flag_retention.exceptions import AccessDenied, InvalidPolicyValue
    from flag_retention.services import BatchDeleter, clear_user_flags, load_global_defaults
    from flag_retention.storage import get_flagging_store

    db = get_db_session()
    try:
        defaults = load_global_defaults(db)
        try:
            result = clear_user_flags(
                BatchDeleter(get_flagging_store(db)),
                args.owner_id,
                defaults,
                flag_type_ids=args.flag_type or None,
            )
        except (AccessDenied, InvalidPolicyValue) as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        print(result.message)
        if result.warning:
            print(f"Warning: {result.warning}")
        if not result.success:
            sys.exit(1)
    finally:
        db.close()


def cmd_show_config(args):
    """Print the global defaults snapshot as JSON."""
    from flag_retention.services import load_global_defaults

    db = get_db_session()
    try:
        print(json.dumps(load_global_defaults(db).to_dict(), indent=2))
    finally:
        db.close()


def cmd_set_config(args):
    """Set one global default."""
    from flag_retention.exceptions import InvalidPolicyValue
    from flag_retention.services import save_global_defaults

    db = get_db_session()
    try:
        value = _parse_config_value(args.key, args.value)
        try:
            defaults = save_global_defaults(db, {args.key: value})
        except InvalidPolicyValue as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        print(f"{args.key} = {json.dumps(defaults.to_dict()[args.key])}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="Flag Retention Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check current status
  python -m flag_retention.cli.retention status

  # Run one cleanup tick (cron)
  python -m flag_retention.cli.retention run-cleanup

  # Keep bookmarks for 30 days and clear them automatically
  python -m flag_retention.cli.retention set-policy bookmark --days 30 --auto-clear

  # Clear one user's favorites
  python -m flag_retention.cli.retention clear-user 42 --flag-type favorite

  # Only let users see and clear bookmarks
  python -m flag_retention.cli.retention set-config flag_access_mode allow_selected
  python -m flag_retention.cli.retention set-config enabled_flag_ids bookmark
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show retention status")
    status_parser.set_defaults(func=cmd_status)

    # run-cleanup command
    cleanup_parser = subparsers.add_parser("run-cleanup", help="Run one cleanup tick")
    cleanup_parser.set_defaults(func=cmd_run_cleanup)

    # set-policy command
    policy_parser = subparsers.add_parser("set-policy", help="Set a flag type's retention policy")
    policy_parser.add_argument("flag_type_id", help="Flag type (e.g. bookmark)")
    policy_parser.add_argument("--days", type=int, help="Retention days (0 = keep forever)")
    policy_parser.add_argument("--auto-clear", action="store_true", help="Delete expired flags on cleanup")
    policy_parser.add_argument("--reset", action="store_true", help="Remove the policy; fall back to default")
    policy_parser.set_defaults(func=cmd_set_policy)

    # list-policies command
    list_parser = subparsers.add_parser("list-policies", help="List effective policies")
    list_parser.set_defaults(func=cmd_list_policies)

    # clear-type command
    clear_type_parser = subparsers.add_parser("clear-type", help="Delete every flag of a type")
    clear_type_parser.add_argument("flag_type_id", help="Flag type to clear")
    clear_type_parser.add_argument("--confirm", action="store_true", help="Confirm deletion")
    clear_type_parser.set_defaults(func=cmd_clear_type)

    # clear-older-than command
    age_parser = subparsers.add_parser("clear-older-than", help="Delete flags of a type older than N days")
    age_parser.add_argument("flag_type_id", help="Flag type to clear")
    age_parser.add_argument("--days", type=int, required=True, help="Age threshold in days (>= 1)")
    age_parser.add_argument("--confirm", action="store_true", help="Confirm deletion")
    age_parser.set_defaults(func=cmd_clear_older_than)

    # clear-user command
    user_parser = subparsers.add_parser("clear-user", help="Clear a user's flags")
    user_parser.add_argument("owner_id", help="Owner whose flags to clear")
    user_parser.add_argument(
        "--flag-type",
        action="append",
        help="Flag type to clear; repeatable (default: every allowed type)",
    )
    user_parser.set_defaults(func=cmd_clear_user)

    # show-config command
    show_parser = subparsers.add_parser("show-config", help="Show global defaults")
    show_parser.set_defaults(func=cmd_show_config)

    # set-config command
    set_parser = subparsers.add_parser("set-config", help="Set a global default")
    set_parser.add_argument("key", help="Setting name (e.g. cron_batch_size)")
    set_parser.add_argument("value", help="New value (JSON, or a plain string)")
    set_parser.set_defaults(func=cmd_set_config)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
