# ducky: CLI entrypoint. Parses argv by hand, resolves the conversation and runs a single turn or a REPL.

import pathlib
import sys
from typing import Any, Dict, List, Optional, TextIO

from .client import ChatCompletionsClient
from .context import Context
from .editor import open_editor
from .errors import ConfigError, DuckyError, HistoryNotSavedError
from .identity import resolve
from .repo import locate
from .session import Session
from .settings import build_config
from .store import ConversationStore

USAGE = """Usage: ducky [options] [PROMPT...]
Options:
  -c NAME        Conversation name (":NAME" for a conversation local to this repository)
  -s TEXT        System message (kept for the rest of the conversation)
  -k TEXT        Kept message, never pruned (repeatable)
  -m MODEL       Engine for this turn; recorded on the conversation
  -n PAIRS       Rolling exchanges sent per request for this conversation
  -e             Write the prompt in $VISUAL / $EDITOR
  -r             Interactive mode: one turn per line, "quit" or EOF to stop
  -f             Ephemeral: do not load or save any history
  -v             Verbose logging on stderr
  --list         List stored conversations
  --clear        Move the selected conversation's history to a backup file
Environment:
  DUCKY_GPT_KEY (or OPENAI_API_KEY), DUCKY_MODEL, DUCKY_WINDOW_PAIRS, DUCKY_HISTORY_PAIRS, DUCKY_HOME"""

_VALUE_FLAGS = {"-c": "conversation", "-s": "system", "-m": "model", "-n": "window"}
_BOOL_FLAGS = {"-e": "editor", "-r": "repl", "-f": "force", "-v": "verbose", "--list": "list", "--clear": "clear"}


def parse_args(args: List[str]) -> Dict[str, Any]:
    """
    Parse argv (without the program name) into an options dict.

    Flags may appear anywhere; "--" ends option parsing. Raises ConfigError
    for unknown options or missing values.
    """
    opts: Dict[str, Any] = {
        "conversation": None,
        "system": None,
        "kept": [],
        "model": None,
        "window": None,
        "prompt": [],
        "help": False,
    }
    opts.update({name: False for name in _BOOL_FLAGS.values()})

    i = 0
    while i < len(args):
        a = args[i]
        if a == "--":
            opts["prompt"].extend(args[i + 1:])
            break
        if a in ("-h", "--help"):
            opts["help"] = True
            i += 1
            continue
        if a in _BOOL_FLAGS:
            opts[_BOOL_FLAGS[a]] = True
            i += 1
            continue
        if a in _VALUE_FLAGS or a == "-k":
            if i + 1 >= len(args):
                raise ConfigError(f"{a} requires a value")
            value = args[i + 1]
            if a == "-k":
                opts["kept"].append(value)
            else:
                opts[_VALUE_FLAGS[a]] = value
            i += 2
            continue
        if a.startswith("-") and len(a) > 1:
            raise ConfigError(f"unknown option: {a}")
        opts["prompt"].append(a)
        i += 1

    if opts["window"] is not None:
        try:
            opts["window"] = int(opts["window"])
        except ValueError:
            raise ConfigError(f"-n expects a number, got {opts['window']!r}")
        if opts["window"] < 0:
            raise ConfigError("-n must be zero or more")
    return opts


def read_prompt(opts: Dict[str, Any], stdin: TextIO) -> str:
    """Editor flag first, then positional words, then piped stdin, then the editor."""
    if opts["editor"]:
        return open_editor("")
    prompt = " ".join(opts["prompt"]).strip()
    if prompt:
        return prompt
    if not stdin.isatty():
        prompt = stdin.read().strip()
        if prompt:
            return prompt
        raise ConfigError("Empty prompt, aborting")
    return open_editor("")


def _input_lines(stdin: TextIO):
    """Yield lines from stdin, showing a "> " prompt when interactive."""
    while True:
        if stdin.isatty():
            print("> ", end="", flush=True)
        line = stdin.readline()
        if not line:
            return
        yield line


def _run(opts: Dict[str, Any], cwd: pathlib.Path, stdin: TextIO) -> int:
    config = build_config(verbose=True if opts["verbose"] else None)
    ctx = Context(config.verbose)
    store = ConversationStore(config.home)

    if opts["list"]:
        found, unreadable = store.list_conversations()
        for identity, count in found:
            ctx.send_to_user(f"{identity.describe()}\t{count} message(s)")
        for err in unreadable:
            ctx.error_message(f"Skipped unreadable record: {err}")
        return 0

    repo_root = locate(cwd)
    identity = resolve(opts["conversation"], repo_root)
    ctx.log(f"Repository root: {repo_root}; conversation: {identity.key}")

    if opts["clear"]:
        backup = store.clear(identity)
        if backup is None:
            ctx.send_to_user(f"No stored history for {identity.describe()}.")
        else:
            ctx.send_to_user(f"Cleared {identity.describe()} (backup at {backup}).")
        return 0

    if not config.api_key:
        raise ConfigError("API key missing. Set DUCKY_GPT_KEY or OPENAI_API_KEY.")
    client = ChatCompletionsClient(
        config.api_key,
        base_url=config.api_base,
        timeout=config.timeout_sec,
        ctx=ctx,
        httpcalls_dir=config.httpcalls_dir,
    )

    session = Session(config, store, client, ctx, ephemeral=opts["force"])
    turn_args = dict(
        system_msg=opts["system"],
        kept_msgs=opts["kept"],
        engine_override=opts["model"],
        window_override=opts["window"],
    )

    if opts["repl"]:
        session.repl(identity, _input_lines(stdin), **turn_args)
        return 0

    prompt = read_prompt(opts, stdin)
    try:
        reply = session.run_turn(identity, prompt, **turn_args)
    except HistoryNotSavedError as e:
        ctx.send_to_user(e.reply)
        ctx.error_message(str(e))
        return e.exit_code
    ctx.send_to_user(reply)
    return 0


def main(argv: Optional[List[str]] = None, cwd: Optional[pathlib.Path] = None, stdin: Optional[TextIO] = None) -> int:
    """Ducky CLI entrypoint. Returns the process exit status."""
    args = sys.argv[1:] if argv is None else argv
    ctx = Context()
    try:
        opts = parse_args(args)
    except ConfigError as e:
        ctx.error_message(str(e))
        print(USAGE, file=sys.stderr)
        return e.exit_code
    if opts["help"]:
        print(USAGE)
        return 0
    try:
        return _run(opts, cwd or pathlib.Path.cwd(), stdin or sys.stdin)
    except DuckyError as e:
        ctx.error_message(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        ctx.error_message("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
