"""
Sackson CLI - Command-line front end for the client engine.

Usage:
    sackson join [url]          Join a game and play from the terminal
    sackson decode <file>       Decode a transcript of server messages

Commands while joined:
    start [timeout]             Start the game (room manager only)
    play 5A                     Play a tile
    found tower                 Found a corporation
    buy tower=2 luxor=1         Buy shares
    sell tower=1:2              Sell 1 and trade 2 shares of a defunct corporation
    untie tower                 Choose the merge survivor
    end                         Claim the end of the game
    quit                        Leave
"""

import argparse
import asyncio
import logging
import sys

from .config import ClientConfig
from .errors import ActionRejected, ConfigError, ProtocolError
from .protocol.codec import decode
from .protocol.messages import ActionKind
from .session.client import Notice, Renderer, SessionClient


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sackson - Acquire client engine",
        prog="sackson",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    join_parser = subparsers.add_parser("join", help="Join a game server")
    join_parser.add_argument("url", nargs="?", help="WebSocket URL (default: SACKSON_SERVER_URL)")

    decode_parser = subparsers.add_parser("decode", help="Decode a message transcript")
    decode_parser.add_argument("transcript", help="File with one server message per line")

    args = parser.parse_args(argv)

    try:
        config = ClientConfig.from_env()
    except ConfigError as e:
        print(f"Error: {e.message}")
        sys.exit(2)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "join":
        cmd_join(args, config)
    elif args.command == "decode":
        cmd_decode(args)
    else:
        parser.print_help()
        sys.exit(1)


def parse_command(line: str):
    """
    Parse one terminal command.

    Returns:
        (ActionKind, inputs) for an action, None for quit

    Raises:
        ValueError: if the command is not understood
    """
    words = line.split()
    if not words:
        raise ValueError("Empty command")
    verb, rest = words[0].lower(), words[1:]

    if verb == "quit":
        return None
    if verb == "start":
        inputs = {"player_timeout": rest[0]} if rest else {}
        return ActionKind.START_GAME, inputs
    if verb == "end":
        return ActionKind.CLAIM_END, {}
    if verb in ("play", "found", "untie"):
        if len(rest) != 1:
            raise ValueError(f"Usage: {verb} <{'tile' if verb == 'play' else 'corporation'}>")
        if verb == "play":
            return ActionKind.PLAY_TILE, {"tile": rest[0].upper()}
        kind = ActionKind.FOUND_CORPORATION if verb == "found" else ActionKind.UNTIE_MERGE
        return kind, {"corporation": rest[0]}
    if verb == "buy":
        return ActionKind.BUY_STOCK, {"amounts": _pairs(rest)}
    if verb == "sell":
        operations = {}
        for corp, value in _pairs(rest).items():
            sell, _, trade = value.partition(":")
            operations[corp] = (sell or "0", trade or "0")
        return ActionKind.SELL_TRADE, {"operations": operations}

    raise ValueError(f"Unknown command '{verb}'")


def _pairs(words: list[str]) -> dict[str, str]:
    pairs = {}
    for word in words:
        corp, sep, value = word.partition("=")
        if not sep or not corp:
            raise ValueError(f"Expected corporation=value, got '{word}'")
        pairs[corp] = value
    return pairs


class ConsoleRenderer(Renderer):
    """Prints phases and notices to stdout."""

    def render(self, phase, phase_data, enabled):
        print(f"\n== {phase.value} ({'your move' if enabled else 'waiting'}) ==")
        if phase_data.players:
            print(f"Players: {', '.join(phase_data.players)}")
        if phase_data.player:
            player = phase_data.player
            shares = ", ".join(f"{c}:{n}" for c, n in player["shares"].items() if n)
            print(f"Cash: {player['cash']}  Shares: {shares or '-'}")
            hand = " ".join(
                t["coords"] + ("" if t["playable"] else "*") for t in player["hand"]
            )
            if hand:
                print(f"Hand: {hand}")
        if phase_data.choices:
            print(f"Choices: {', '.join(phase_data.choices)}")
        if phase_data.allowed_actions:
            print(f"Actions: {', '.join(phase_data.allowed_actions)}")
        if phase_data.last_round:
            print("Last round!")
        for line in phase_data.history:
            print(f"  {line}")

    def notify(self, notice: Notice):
        if notice.kind == "closed":
            print("Connection closed. Press Enter to exit.")
        else:
            print(f"[{notice.kind}] {notice.text}")


def cmd_join(args, config: ClientConfig):
    """Join a game and read commands from stdin."""
    from .session.transport import WebSocketConnection

    url = args.url or config.server_url
    print(f"Joining {url}...")
    asyncio.run(_play(url, config, WebSocketConnection))


async def _play(url, config, connection_factory):
    connection = connection_factory(url, open_timeout=config.open_timeout)
    client = SessionClient(connection, ConsoleRenderer(), config)
    runner = asyncio.ensure_future(connection.run())
    loop = asyncio.get_running_loop()

    while not runner.done() and not client.closed:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue
        try:
            command = parse_command(line)
        except ValueError as e:
            print(f"Error: {e}")
            continue
        if command is None:
            break
        kind, inputs = command
        try:
            client.submit(kind, **inputs)
        except ActionRejected:
            pass

    await connection.close()
    await runner


def cmd_decode(args):
    """Decode every line of a transcript, reporting failures."""
    try:
        with open(args.transcript, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        print(f"Error: File not found: {args.transcript}")
        sys.exit(1)

    failures = 0
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            message = decode(line)
        except ProtocolError as e:
            failures += 1
            print(f"{number}: {e.code}: {e.message}")
        else:
            print(f"{number}: {message!r}")

    if failures:
        print(f"\n{failures} message(s) could not be decoded")
        sys.exit(1)


if __name__ == "__main__":
    main()
