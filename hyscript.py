import asyncio
import sys
from pathlib import Path

import yaml

from hyscript.hyscript_errors import ScriptError, Suggestions
from hyscript.hyscript_http import HydrusClient
from hyscript.hyscript_runtime import ScriptRunner
from hyscript.hyscript_serialize import dump_value, load_bindings
from hyscript.hyscript_values import unwrap

USAGE = "usage: hyscript.py [--bindings FILE] [script]"


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def parse_args(argv):
    """Returns (bindings_path, script_path); either may be None."""
    bindings = None
    script = None
    args = list(argv)
    while args:
        arg = args.pop(0)
        if arg == "--bindings":
            if not args:
                print(USAGE, file=sys.stderr)
                raise SystemExit(2)
            bindings = args.pop(0)
        elif arg.startswith("-"):
            print(USAGE, file=sys.stderr)
            raise SystemExit(2)
        else:
            script = arg
    return bindings, script


def make_runner(bindings_path) -> ScriptRunner:
    bindings = {}
    if bindings_path is not None:
        try:
            bindings = load_bindings(Path(bindings_path))
        except FileNotFoundError:
            print(f"Error: file not found: {bindings_path}", file=sys.stderr)
            raise SystemExit(1)
        except (yaml.YAMLError, ValueError, TypeError) as e:
            print(f"Error: invalid bindings file {bindings_path}: {e}", file=sys.stderr)
            raise SystemExit(1)
    return ScriptRunner(bindings, file_lookup=HydrusClient())


def print_value(value):
    if value is None:
        return
    try:
        print(dump_value(value))
    except TypeError:
        # Functions have no data form.
        print(f"<{unwrap(value).name}>")


def print_suggestions(result):
    match result:
        case Suggestions(identifiers=identifiers):
            print(" ".join(identifiers) if identifiers else "(no suggestions)")
        case ScriptError(kind=kind, message=message):
            print(f"{kind}: {message}", file=sys.stderr)
        case _:
            print("(no suggestions)")


async def run_script_file(runner: ScriptRunner, file_path: str):
    """Run a hyscript file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = await runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(source), file=sys.stderr)
        raise SystemExit(1)
    print_value(result.value)


async def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    bindings_path, script = parse_args(sys.argv[1:] if argv is None else argv)
    runner = make_runner(bindings_path)
    if script is not None:
        await run_script_file(runner, script)
        return

    print("hyscript REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit. ':suggest <text>' lists completions.")

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break
            if line.startswith(":suggest"):
                text = raw.rstrip("\r\n").partition(":suggest")[2].lstrip(" ")
                print_suggestions(runner.suggest(text))
                continue

            # A bare expression prints its value; anything else runs as a script.
            result = await runner.handle_expression(line)
            if result.status == 'error' and result.error_message.startswith("ParseError"):
                result = await runner.handle_script(line)
            if result.status == 'error':
                print(result.format_error(line), file=sys.stderr)
                continue
            print_value(result.value)

        except EOFError:
            print("\nExiting.")
            break
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
