import argparse
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError, version

from roml.config import RomlConfig
from roml.document import RomlDocument


EXIT_OK = 0
EXIT_USAGE = 1
EXIT_DOCUMENT_ERRORS = 2


def get_version():
    try:
        return version("roml")
    except PackageNotFoundError:
        return "unknown"


class CliContext:
    """Streams and settings shared by every command."""

    def __init__(self, args, config, stdin, stdout, stderr):
        self.args = args
        self.config = config
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr
        self._buffer = None

    @property
    def strict(self):
        return self.args.strict or self.config.strict

    def error(self, message):
        print(message, file=self.stderr)

    def read_input(self):
        # Read once; later calls return the same text
        if self._buffer is None:
            if self.args.input:
                with open(self.args.input, "r", encoding="utf-8") as f:
                    self._buffer = f.read()
            else:
                self._buffer = self.stdin.read()
        return self._buffer

    def write_output(self, text):
        if self.args.output:
            with open(self.args.output, "w", encoding="utf-8") as f:
                f.write(text + "\n")
            logging.info(f"[CLI] Wrote {len(text)} characters to {self.args.output}")
        else:
            print(text, file=self.stdout)

    def read_json(self):
        """Returns (ok, data); prints the error itself."""
        try:
            return True, json.loads(self.read_input())
        except ValueError as e:
            self.error("Error: Invalid JSON input")
            self.error(str(e))
            logging.warning(f"[CLI] Invalid JSON input: {e}")
            return False, None


def encode(ctx):
    ok, data = ctx.read_json()
    if not ok:
        return EXIT_USAGE
    try:
        roml = RomlDocument.json_to_roml(data)
    except ValueError as e:
        ctx.error(f"Error: {e}")
        logging.error(f"[CLI] Encode failed: {e}")
        return EXIT_USAGE
    ctx.write_output(roml)
    return EXIT_OK


def decode(ctx):
    result = RomlDocument(ctx.read_input()).parse()
    for err in result.errors:
        ctx.error(err)
    if result.errors:
        logging.warning(f"[CLI] Decoded with {len(result.errors)} errors")
    ctx.write_output(json.dumps(result.value, indent=ctx.config.json_indent, ensure_ascii=False))
    if result.errors and ctx.strict:
        return EXIT_DOCUMENT_ERRORS
    return EXIT_OK


def validate(ctx):
    valid, errors = RomlDocument(ctx.read_input()).validate()
    if valid:
        print("Valid ROML document", file=ctx.stdout)
        return EXIT_OK
    for err in errors:
        ctx.error(err)
    return EXIT_DOCUMENT_ERRORS


def roundtrip(ctx):
    ok, data = ctx.read_json()
    if not ok:
        return EXIT_USAGE
    try:
        success, errors = RomlDocument.from_json(data).round_trip()
    except ValueError as e:
        success, errors = False, [f"Round-trip error: {e}"]
    if success:
        print("Round-trip OK", file=ctx.stdout)
        return EXIT_OK
    for err in errors:
        ctx.error(err)
    return EXIT_DOCUMENT_ERRORS


def docs(ctx):
    print("""ROML - Robert's Opaque Mangling Language

Usage:
  roml encode      Convert JSON (stdin or -i FILE) to ROML
  roml decode      Convert ROML to JSON, reporting decode errors on stderr
  roml validate    Check a ROML document for prime annotation errors
  roml roundtrip   Encode JSON and decode it back, comparing the result

Examples:
  echo '{"name":"Robert","age":30}' | roml encode
  cat input.roml | roml decode --strict > output.json""", file=ctx.stdout)
    return EXIT_OK


# Commands that need input on stdin or -i
INPUT_COMMANDS = ("encode", "decode", "validate", "roundtrip")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="roml",
        description="ROML CLI",
        usage="roml <COMMAND> [options]",
        add_help=False,
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument("-h", "--help", action="store_true", help="print help")
    parser.add_argument("-v", "-V", "--version", action="version", version=f"ROML CLI - {get_version()}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-i", "--input", help="read input from FILE instead of stdin")
    common.add_argument("-o", "--output", help="write output to FILE instead of stdout")
    common.add_argument("--strict", action="store_true", help="exit with code 2 when the document has errors")
    common.add_argument("--env-file", help="path to a .env file (default: ./.env)")

    subparsers = parser.add_subparsers(dest="command", title="Commands")
    # Available subcommands
    commands = {
        "encode": ("Convert JSON to ROML", encode),
        "decode": ("Convert ROML to JSON", decode),
        "validate": ("Validate a ROML document", validate),
        "roundtrip": ("Check that JSON survives encode and decode", roundtrip),
        "docs": ("Show usage and examples", docs),
    }

    # Register each subcommand
    for name, (desc, func) in commands.items():
        sp = subparsers.add_parser(name, help=desc, parents=[common])
        sp.set_defaults(func=func)

    return parser


def cli_main(argv=None, stdin=None, stdout=None, stderr=None):
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    stderr = stderr if stderr is not None else sys.stderr

    parser = build_parser()
    args, _ = parser.parse_known_args(argv)

    # Handle help or no args
    if args.help or args.command is None:
        parser.print_help(file=stdout)
        return EXIT_OK

    config = RomlConfig(env_path=args.env_file)
    config.configure_logging()
    logging.info(f"[CLI] Running command: {args.command}")

    ctx = CliContext(args, config, stdin, stdout, stderr)

    if args.command in INPUT_COMMANDS:
        try:
            raw = ctx.read_input()
        except OSError as e:
            ctx.error(f"Error: Cannot read input: {e}")
            logging.error(f"[CLI] Cannot read input: {e}")
            return EXIT_USAGE
        if not raw.strip():
            ctx.error("Error: No input provided")
            return EXIT_USAGE

    return args.func(ctx)


if __name__ == "__main__":
    sys.exit(cli_main())
