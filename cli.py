#!/usr/bin/env python3
"""Unified CLI for the TMS backend.

Usage:
    python cli.py serve --reload
    python cli.py init-db
    python cli.py send-reminders
    python cli.py create-admin --email admin@example.com --first-name Ada --last-name Admin
"""
import argparse
import getpass
import sys


def serve(args):
    import uvicorn

    from tms.config import get_config

    server = get_config().server
    uvicorn.run(
        "tms.main:app",
        host=args.host or server.host,
        port=args.port or server.port,
        reload=args.reload,
    )


def init_db(args):
    from tms.db.database import get_database_url, init_db as create_tables

    create_tables()
    print(f'✅ Tables created at {get_database_url()}')


def send_reminders(args):
    from tms.db.database import init_db as create_tables
    from tms.services.reminders import run_daily_job

    create_tables()
    results = run_daily_job(include_events=args.include_events or None)
    failed = [name for name, sent in results.items() if sent < 0]
    for name, sent in results.items():
        print(f'   {name}: {"FAILED" if sent < 0 else sent}')
    return 1 if failed else 0


def create_admin(args):
    from tms.auth.passwords import hash_password
    from tms.db.database import init_db as create_tables, session_scope
    from tms.models.models import User
    from tms.validators import email_address, strong_password

    password = args.password or getpass.getpass('Password: ')
    try:
        email = email_address(args.email)
        strong_password(password)
    except ValueError as e:
        print(f'❌ Invalid email or password: {e}')
        return 1

    create_tables()
    with session_scope() as db:
        if db.query(User).filter(User.email == email).first():
            print(f'❌ User {email} already exists')
            return 1
        db.add(User(
            first_name=args.first_name,
            last_name=args.last_name,
            email=email,
            password_hash=hash_password(password),
            role='Admin',
        ))
    print(f'✅ Admin {email} created')
    return 0


def main():
    parser = argparse.ArgumentParser(
        description='TMS - Task Management System backend',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve           Run the API with uvicorn
  init-db         Create database tables
  send-reminders  Run the daily reminder job once
  create-admin    Create an Admin account
"""
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the API')
    serve_parser.add_argument('--host', help='Bind address (default from config)')
    serve_parser.add_argument('--port', type=int, help='Port (default from config)')
    serve_parser.add_argument('--reload', action='store_true', help='Auto-reload on code changes')
    serve_parser.set_defaults(func=serve)

    init_parser = subparsers.add_parser('init-db', help='Create database tables')
    init_parser.set_defaults(func=init_db)

    remind_parser = subparsers.add_parser('send-reminders', help='Run the daily reminder job once')
    remind_parser.add_argument('--include-events', action='store_true', help='Also remind about tomorrow\'s events')
    remind_parser.set_defaults(func=send_reminders)

    admin_parser = subparsers.add_parser('create-admin', help='Create an Admin account')
    admin_parser.add_argument('--email', required=True)
    admin_parser.add_argument('--first-name', required=True)
    admin_parser.add_argument('--last-name', required=True)
    admin_parser.add_argument('--password', help='Prompted for when omitted')
    admin_parser.set_defaults(func=create_admin)

    args = parser.parse_args()
    sys.exit(args.func(args) or 0)


if __name__ == '__main__':
    main()
