"""
Tests for the command-line front end.
"""

import json

import pytest

from ..cli import ConsoleRenderer, main, parse_command
from ..protocol.messages import ActionKind
from ..session.client import Notice
from ..session.phase import PhaseController
from .conftest import envelope


class TestParseCommand:
    """Tests for terminal command parsing."""

    @pytest.mark.parametrize("line,expected", [
        ("start", (ActionKind.START_GAME, {})),
        ("start 90", (ActionKind.START_GAME, {"player_timeout": "90"})),
        ("play 5a", (ActionKind.PLAY_TILE, {"tile": "5A"})),
        ("found tower", (ActionKind.FOUND_CORPORATION, {"corporation": "tower"})),
        ("untie Luxor", (ActionKind.UNTIE_MERGE, {"corporation": "Luxor"})),
        ("end", (ActionKind.CLAIM_END, {})),
        ("buy tower=2 luxor=1", (ActionKind.BUY_STOCK, {"amounts": {"tower": "2", "luxor": "1"}})),
        ("sell tower=1:2", (ActionKind.SELL_TRADE, {"operations": {"tower": ("1", "2")}})),
        ("sell tower=1", (ActionKind.SELL_TRADE, {"operations": {"tower": ("1", "0")}})),
        ("  BUY  ", (ActionKind.BUY_STOCK, {"amounts": {}})),
    ])
    def test_commands(self, line, expected):
        assert parse_command(line) == expected

    def test_quit(self):
        assert parse_command("quit") is None

    @pytest.mark.parametrize("line", ["", "dance", "play", "found a b", "buy tower", "buy =2"])
    def test_rejected(self, line):
        with pytest.raises(ValueError):
            parse_command(line)

    def test_commands_drive_controller(self):
        """Parsed inputs are accepted by the controller as-is."""
        from ..protocol.codec import decode

        controller = PhaseController()
        controller.handle(decode(envelope("upd", sta="BuyStock", act=["Tower", "Luxor"])))
        kind, inputs = parse_command("buy tower=2 luxor=1")
        action = controller.build_action(kind, **inputs)
        assert action.params == {"cor": {"tower": 2, "luxor": 1}}


class TestDecodeCommand:
    """Tests for `sackson decode`."""

    def test_decodes_transcript(self, tmp_path, capsys):
        transcript = tmp_path / "game.log"
        transcript.write_text("\n".join([
            envelope("ctl", rol="mng"),
            "",
            envelope("upd", sta="EndGame"),
        ]))

        main(["decode", str(transcript)])

        out = capsys.readouterr().out
        assert "1: ControlMessage" in out
        assert "3: DirectiveMessage" in out

    def test_reports_failures(self, tmp_path, capsys):
        transcript = tmp_path / "game.log"
        transcript.write_text(json.dumps({"typ": "upd", "det": {}}) + "\n")

        with pytest.raises(SystemExit) as exc:
            main(["decode", str(transcript)])

        assert exc.value.code == 1
        assert "1: version_mismatch" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["decode", str(tmp_path / "nope.log")])

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit):
            main([])


class TestConsoleRenderer:
    """Tests for ConsoleRenderer."""

    def test_render(self, capsys):
        from ..protocol.codec import decode

        controller = PhaseController()
        data = controller.handle(decode(envelope(
            "upd",
            ply={"csh": 6000, "own": {"Tower": 2}},
            sta="PlayTile",
            hnd=["5A", {"coo": "6B", "pyb": False}],
        )))
        ConsoleRenderer().render(data.phase, data, data.enabled)

        out = capsys.readouterr().out
        assert "PlayTile (your move)" in out
        assert "Cash: 6000  Shares: tower:2" in out
        assert "Hand: 5A 6B*" in out

    def test_render_lobby_roster(self, capsys):
        from ..protocol.codec import decode

        controller = PhaseController()
        data = controller.handle(decode(envelope("add", val=["ann", "bob"])))
        ConsoleRenderer().render(data.phase, data, data.enabled)

        assert "Players: ann, bob" in capsys.readouterr().out

    def test_notify(self, capsys):
        ConsoleRenderer().notify(Notice(kind="server_error", text="Not your turn"))
        assert "[server_error] Not your turn" in capsys.readouterr().out
