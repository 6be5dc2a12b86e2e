#!/usr/bin/env python3

import os
import sys
import asyncio
import getpass
import argparse
import logging
from typing import Optional

import uvicorn

from blog_core import settings as _settings
from blog_core.api import auth
from blog_core.api.api import create_app
from blog_core.persistence import create_store
from blog_core.persistence.couchdb import CouchDBStore
from blog_core.schemas import config


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, run, token, systemd",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and preparing the document store"
    )
    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the blog core REST API"
    )
    parser_token = commands.add_parser(
        "token",
        description="Issue a new bearer token for the configured admin principal"
    )
    parser_systemd = commands.add_parser(
        "systemd",
        description="Create a systemd unit file to run the blog core REST API as system service"
    )

    parser_init.add_argument(
        "--backend",
        choices=[backend.value for backend in config.StoreBackend],
        help="Document store backend (choices: 'memory', 'couchdb', 'sql')"
    )
    parser_init.add_argument(
        "--couchdb",
        type=str,
        metavar="uri",
        help="CouchDB server URI including scheme (implies '--backend couchdb')"
    )
    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL for the SQL backend (implies '--backend sql')"
    )
    parser_init.add_argument(
        "--admin",
        type=str,
        metavar="email",
        help="E-mail address of the admin principal allowed to modify posts"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (not recommended for production)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    parser_token.add_argument(
        "--subject",
        type=str,
        metavar="email",
        help="Subject of the token (defaults to the configured admin e-mail address)"
    )
    parser_token.add_argument(
        "--minutes",
        type=int,
        metavar="n",
        help="Lifetime of the token in minutes (defaults to the configured lifetime)"
    )

    parser_systemd.add_argument(
        "--force",
        action="store_true",
        help="Allow overwriting existing files"
    )
    parser_systemd.add_argument(
        "--path",
        type=str,
        default=os.path.join(os.path.abspath("."), "blog_core.service"),
        metavar="p",
        help="Path to the newly created systemd file"
    )

    return parser


def handle_systemd(args: argparse.Namespace) -> int:
    python_executable = sys.executable
    if sys.executable is None or sys.executable == "":
        python_executable = "python3"
        print(
            "Revise the 'ExecStart' parameter, since the Python "
            "interpreter path could not be determined reliably.",
            file=sys.stderr
        )

    content = f"""[Unit]
Description=Blog core REST API server
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
ExecStart={python_executable} -m blog_core run
User={getpass.getuser()}
WorkingDirectory={os.path.abspath(".")}
Restart=always
SyslogIdentifier=blog_core

[Install]
WantedBy=multi-user.target
"""

    if os.path.exists(args.path) and not args.force:
        print(f"File {args.path!r} already exists. Aborting!", file=sys.stderr)
        return 1

    with open(args.path, "w") as f:
        f.write(content)

    print(
        f"Successfully created the new file {args.path!r}. Now, create a "
        f"symlink from /lib/systemd/system/ to that file. Then use 'systemctl "
        f"daemon-reload' and enable your new service. Check that it works afterwards."
    )
    return 0


def run_server(args: argparse.Namespace) -> int:
    _settings.CONFIG_PATHS.insert(0, args.config)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"

    if settings.store.backend == config.StoreBackend.MEMORY:
        print("The in-memory document store loses all posts when the server stops!", file=sys.stderr)
        if args.reload:
            print("The in-memory document store is not shared with reloaded processes!", file=sys.stderr)

    port = args.port or settings.server.port
    host = args.host or settings.server.host
    app = create_app(settings=settings)
    logging.getLogger("blog_core").info(f"Server running at host {host} port {port}")

    uvicorn.run(
        "blog_core.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


def _setup_config(args: argparse.Namespace) -> _settings.Settings:
    if any(os.path.exists(path) for path in _settings.CONFIG_PATHS):
        print(
            "A config file has been found and will be used. If you want a fresh installation, "
            "you should remove the config file and clear the document store, then run this command again."
        )
        return _settings.Settings()

    print("No settings file found. A basic config will be created now.")
    conf = _settings.get_default_core_config()
    if args.couchdb:
        conf.store.backend = config.StoreBackend.COUCHDB
        conf.store.couchdb.uri = args.couchdb
    elif args.database:
        conf.store.backend = config.StoreBackend.SQL
        conf.store.sql.connection = args.database
    if args.backend:
        conf.store.backend = config.StoreBackend(args.backend)
    if args.admin:
        conf.auth.admin_email = args.admin
    _settings.store_configuration(conf)
    return _settings.Settings()


async def _prepare_store(settings: _settings.Settings):
    async with create_store(settings.store, logger=logging.getLogger("blog_core.persistence")) as store:
        if isinstance(store, CouchDBStore):
            await store.ensure_database()


def init_project(args: argparse.Namespace) -> int:
    settings = _setup_config(args)
    logging.basicConfig(level=logging.INFO)

    asyncio.run(_prepare_store(settings))

    if not settings.auth.admin_email:
        print(
            "\nThere's no admin e-mail address configured yet. Nobody can create, update "
            "or delete posts without it. Add the field 'admin_email' to the 'auth' section "
            "of the config file, then use the 'token' command to issue a bearer token."
        )
    print("Done.")
    return 0


def issue_token(args: argparse.Namespace) -> int:
    settings = _settings.Settings()
    subject: Optional[str] = args.subject or settings.auth.admin_email
    if not subject:
        print("No subject given and no admin e-mail address configured. Aborting!", file=sys.stderr)
        return 1
    if not auth.is_admin(subject, settings.auth):
        print(f"Warning: {subject!r} is not the configured admin principal.", file=sys.stderr)
    print(auth.create_access_token(subject, settings.auth, args.minutes))
    return 0


if __name__ == '__main__':
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "blog_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "run": run_server,
        "init": init_project,
        "token": issue_token,
        "systemd": handle_systemd
    }
    exit(command_functions[namespace.command](namespace))
