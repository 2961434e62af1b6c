#!/usr/bin/env python3
"""pwdeck - A simple password manager.
Generates random and diceware passwords and stores credentials in an
encrypted vault file.
"""

import argparse
import getpass
import logging
import os
import sys
from importlib.metadata import version
from pathlib import Path

from .errors import NotFound, PwdeckError
from .generator import GenerationSpec, Mode, entropy_bits, generate
from .session import Entry
from .storage import create_vault, open_vault
from .wordlist import load_wordlist

# Constants
DEFAULT_VAULT = Path.home() / ".local" / "share" / "pwdeck" / "vault.pwd"
VAULT_ENV = 'PWDECK_VAULT'
PASSWORD_ENV = 'PWDECK_PASSWORD'


def get_vault_path(args_vault=None):
    """Get vault path from args, PWDECK_VAULT or the default."""
    if args_vault:
        return Path(args_vault)
    env_vault = os.environ.get(VAULT_ENV)
    if env_vault:
        return Path(env_vault)
    return DEFAULT_VAULT


def get_password(prompt="Enter master password: "):
    """Get password from environment variable or prompt.

    Checks PWDECK_PASSWORD environment variable first for automation/testing.
    Falls back to interactive getpass prompt if not set.
    """
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        return env_password
    return getpass.getpass(prompt)


def get_new_password():
    """Prompt twice for a new master password."""
    password = get_password("Enter master password: ")
    confirm = get_password("Confirm master password: ")

    if password != confirm:
        print("Passwords do not match", file=sys.stderr)
        sys.exit(1)
    return password


def read_secret(prompt="Enter secret: "):
    """Read the secret to store: prompt on a terminal, one line from a pipe."""
    if sys.stdin.isatty():
        return getpass.getpass(prompt)
    return sys.stdin.readline().rstrip('\n')


def build_spec(method, size=None, wordlist=None):
    """Turn command line options into a GenerationSpec."""
    mode = Mode(method)
    if mode is Mode.DICEWARE:
        if not wordlist:
            print("A wordlist is required for diceware (--wordlist PATH)", file=sys.stderr)
            sys.exit(1)
        return GenerationSpec(mode, size, load_wordlist(wordlist))
    return GenerationSpec(mode, size)


def cmd_generate(args):
    """Print a generated password."""
    spec = build_spec(args.method, args.size, args.wordlist)
    password = generate(spec)
    print(password)

    if args.entropy:
        print(f"~{entropy_bits(spec):.0f} bits of entropy", file=sys.stderr)


def cmd_init(args):
    """Create a new, empty vault file."""
    vault_path = get_vault_path(args.vault)

    if vault_path.exists():
        print(f"Vault already exists: {vault_path}", file=sys.stderr)
        sys.exit(1)

    password = get_new_password()
    with create_vault(vault_path, password):
        pass

    print(f"Vault created at {vault_path}")


def unlock_or_create(vault_path):
    """Open the vault, creating it first when it does not exist yet."""
    if vault_path.exists():
        return open_vault(vault_path, get_password())

    print(f"Vault doesn't exist, creating a new one: {vault_path}", file=sys.stderr)
    return create_vault(vault_path, get_new_password())


def cmd_new(args):
    """Save a credential to the vault."""
    vault_path = get_vault_path(args.vault)

    with unlock_or_create(vault_path) as session:
        if args.generate:
            secret = generate(build_spec(args.generate, args.size, args.wordlist))
        else:
            secret = read_secret()

        session.add(Entry(args.service, args.username, secret))
        session.commit()

    if args.generate:
        print(secret)
    print("Saved.", file=sys.stderr)


def print_tree(entries):
    """Print entries grouped by service."""
    groups = {}
    for entry in entries:
        groups.setdefault(entry.service, []).append(entry.username)

    for service, usernames in groups.items():
        print(f"{service}:")
        for i, username in enumerate(usernames):
            connector = "└── " if i == len(usernames) - 1 else "├── "
            print(f"  {connector}{username}")


def cmd_get(args):
    """List entries, or print one secret with --show."""
    vault_path = get_vault_path(args.vault)

    if args.show and not (args.service and args.username):
        print("--show needs both --service and --username", file=sys.stderr)
        sys.exit(1)

    with open_vault(vault_path, get_password()) as session:
        if args.show:
            matches = session.find(args.service, args.username)
            if not matches:
                raise NotFound(f"Entry not found: {args.service}/{args.username}")
            print(matches[0].secret)
            return

        if args.service:
            entries = session.find(args.service, args.username)
        else:
            entries = [
                e for e in session.list()
                if args.username is None or e.username == args.username
            ]

    print_tree(entries)


def cmd_remove(args):
    """Delete a credential from the vault."""
    vault_path = get_vault_path(args.vault)

    with open_vault(vault_path, get_password()) as session:
        session.remove(args.service, args.username)
        session.commit()

    print("Removed.", file=sys.stderr)


def configure_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def add_generation_args(parser):
    parser.add_argument('--size', '-s', type=int,
                        help='Password size: characters for random (default 25), words for diceware (default 5)')
    parser.add_argument('--wordlist', '-w', help='Wordlist file for diceware')


def build_parser():
    parser = argparse.ArgumentParser(
        prog='pwdeck',
        description="pwdeck - A simple password manager",
        epilog=f"The vault file can also be set with the {VAULT_ENV} environment variable."
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {version('pwdeck')}"
    )
    parser.add_argument('--vault', help=f'Path to vault file (default: {DEFAULT_VAULT})')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log debug output to stderr')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # generate
    generate_parser = subparsers.add_parser('generate', help='Generate a password')
    generate_parser.add_argument('method', nargs='?', default='random',
                                 choices=[m.value for m in Mode],
                                 help='The generation method (default: random)')
    add_generation_args(generate_parser)
    generate_parser.add_argument('--entropy', action='store_true', help='Also print estimated strength')

    # init
    subparsers.add_parser('init', help='Create a new vault')

    # new
    new_parser = subparsers.add_parser('new', help='Save a password to the vault')
    new_parser.add_argument('--service', '-S', required=True, help='The name of the service')
    new_parser.add_argument('--username', '-u', required=True, help='The username to use')
    new_parser.add_argument('--generate', '-g', choices=[m.value for m in Mode],
                            help='Generate the secret instead of reading it')
    add_generation_args(new_parser)

    # get
    get_parser = subparsers.add_parser('get', help='List vault entries')
    get_parser.add_argument('--service', '-S', help='Filter entries matching service')
    get_parser.add_argument('--username', '-u', help='Filter entries matching username')
    get_parser.add_argument('--show', action='store_true', help='Print the secret of the matching entry')

    # remove
    remove_parser = subparsers.add_parser('remove', help='Delete an entry')
    remove_parser.add_argument('--service', '-S', required=True, help='The name of the service')
    remove_parser.add_argument('--username', '-u', required=True, help='The username')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.verbose)

    commands = {
        'generate': cmd_generate,
        'init': cmd_init,
        'new': cmd_new,
        'get': cmd_get,
        'remove': cmd_remove,
    }

    try:
        commands[args.command](args)
    except PwdeckError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
