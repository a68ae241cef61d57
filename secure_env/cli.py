"""
Command-line interface for secure-env.

This module wires configuration, output and the batch runner together
and provides the user-facing commands:
- encrypt [--init]
- decrypt
- help
"""

from __future__ import annotations

import argparse
import getpass
import importlib.util
import logging
import sys
from typing import List, Optional

from .config import TOOL_VERSION, ToolConfig, color_enabled, load_config
from .console import Colors, Console
from .errors import (
    BackendUnavailable,
    ConfigError,
    SecureEnvError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        config_path: Optional[str],
        verbose: bool,
        quiet: bool,
        color: bool,
    ):
        self.config_path = config_path
        self.console = Console(color=color, verbose=verbose, quiet=quiet)

        # Lazy-loaded
        self._config: Optional[ToolConfig] = None

    @property
    def config(self) -> ToolConfig:
        """Load settings lazily."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    def runner(self, need_backend: bool = True):
        """Build the batch runner, checking for the cipher backend first."""
        if need_backend:
            check_backend()

        from .batch import BatchRunner

        return BatchRunner(self.config, self.console, read_secret=read_secret)


def check_backend() -> None:
    """
    Raises:
        BackendUnavailable: if pycryptodome is not installed
    """

    if importlib.util.find_spec("Crypto") is None:
        raise BackendUnavailable(
            "Cipher backend (pycryptodome) is not installed. "
            "Install it with: pip install pycryptodome"
        )


def read_secret(prompt: str) -> str:
    """
    Read a secret without echo from a terminal, or one line from piped stdin.

    Raises:
        EOFError: when the input stream is exhausted
    """

    if sys.stdin.isatty():
        return getpass.getpass(prompt)

    print(prompt, end="", file=sys.stderr, flush=True)
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    print(file=sys.stderr)
    return line.rstrip("\r\n")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def cmd_encrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Encrypt sensitive files, or write the default pattern file with --init.
    """
    if args.init is not None:
        runner = ctx.runner(need_backend=False)
        runner.init_patterns(args.init, force=args.force, confirm=input)
        return 0

    if not args.directory:
        ctx.console.hint("Usage: secure-env encrypt [--init] <folder-path>")
        return 1

    summary = ctx.runner().encrypt(args.directory)
    return summary.exit_code


def cmd_decrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Decrypt every .enc file found under the directory.
    """
    summary = ctx.runner().decrypt(args.directory)
    return summary.exit_code


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    console = ctx.console if ctx else Console(color=color_enabled())
    c = console.colored
    help_text = f"""
{c('secure-env', Colors.BOLD)} - encrypt sensitive files for version control

{c('USAGE:', Colors.CYAN)}
  secure-env [options] encrypt <directory>
  secure-env [options] encrypt --init [directory]
  secure-env [options] decrypt <directory>

{c('DESCRIPTION:', Colors.CYAN)}
  Files whose names match .sensitive-file-patterns are encrypted into
  sibling .enc files that can be committed. Decryption restores every
  .enc file found in the directory tree.

{c('COMMANDS:', Colors.CYAN)}
  encrypt     Encrypt files matching the pattern file
  decrypt     Decrypt all .enc files
  help        Show this help message

{c('GLOBAL OPTIONS:', Colors.CYAN)}
  -c, --config PATH         YAML settings file
                            (default: $SECURE_ENV_CONFIG, else built-in)
  -v, --verbose             Enable verbose output and debug logging
  -q, --quiet               Suppress non-error output
  --no-color                Disable colored output
  -h, --help                Show this help message and exit

{c('EXAMPLES:', Colors.CYAN)}
  secure-env encrypt --init .
  secure-env encrypt ./my-project
  secure-env decrypt ./my-project

{c('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="secure-env",
        description="Encrypt sensitive files for version control",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to YAML settings file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # encrypt command
    encrypt_parser = subparsers.add_parser("encrypt", help="Encrypt sensitive files")
    encrypt_parser.add_argument("directory", nargs="?", help="Folder to encrypt")
    encrypt_parser.add_argument(
        "--init",
        nargs="?",
        const=".",
        default=None,
        metavar="DIR",
        help="Create a default .sensitive-file-patterns in DIR",
    )
    encrypt_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing pattern file without asking (with --init)",
    )

    # decrypt command
    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt .enc files")
    decrypt_parser.add_argument("directory", help="Folder to decrypt")

    # help command
    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    setup_logging(args.verbose)
    logger.debug("secure-env %s: %s", TOOL_VERSION, args.command)

    # Build context
    ctx = CLIContext(
        config_path=args.config,
        verbose=args.verbose,
        quiet=args.quiet,
        color=color_enabled() and not args.no_color,
    )

    # Dispatch to command
    commands = {
        "encrypt": cmd_encrypt,
        "decrypt": cmd_decrypt,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        ctx.console.error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except ConfigError as e:
        ctx.console.error(str(e))
        if e.hint:
            ctx.console.hint(e.hint)
        return 1
    except SecureEnvError as e:
        ctx.console.error(str(e))
        return 1
    except KeyboardInterrupt:
        ctx.console.error("Interrupted")
        return 130
    except Exception as e:
        ctx.console.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
