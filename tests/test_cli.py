import io
import json
import unittest
from unittest import mock

from aiohttp.test_utils import TestServer

from steamchat import cli
from steamchat.config import SteamApiConfig

from steam_fakes import FRIEND_A, FRIEND_B, OWN_STEAMID, FakeSteamState, create_fake_steam_app


def _lines(output: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]


class CliCommandTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.state = FakeSteamState()
        self.server = TestServer(create_fake_steam_app(self.state))
        await self.server.start_server()
        self.config = SteamApiConfig(host=self.server.host, port=self.server.port, ssl=False)
        self.parser = cli.build_parser()

    async def asyncTearDown(self):
        await self.server.close()

    async def _run(self, argv):
        args = self.parser.parse_args(argv)
        output = io.StringIO()
        errors = io.StringIO()
        code = await cli.run_command(args, self.config, output, errors)
        return code, _lines(output), errors.getvalue()

    async def test_login_prints_identity_and_logs_off(self):
        code, lines, _ = await self._run(["login", "--user", "gaben", "--password", "hunter2", "--umqid", "55"])

        self.assertEqual(code, 0)
        self.assertEqual(lines, [{"t": "logon", "steamid": OWN_STEAMID, "umqid": "55"}])
        self.assertFalse(self.state.logged_on)

    async def test_login_reports_steam_guard(self):
        self.state.guard_code = "F00D5"

        code, lines, errors = await self._run(["login", "--user", "gaben", "--password", "hunter2"])

        self.assertEqual(code, 1)
        self.assertEqual(lines, [])
        self.assertIn("SteamGuard code required", errors)
        self.assertIn("--code", errors)

        code, _, _ = await self._run(["login", "--user", "gaben", "--password", "hunter2", "--code", "F00D5"])
        self.assertEqual(code, 0)

    async def test_poll_prints_summaries_and_messages(self):
        self.state.pending_messages = [
            {"type": "saytext", "steamid_from": FRIEND_B, "text": "gg"},
            {"type": "saytext", "steamid_from": OWN_STEAMID, "text": "echo"},
        ]

        code, lines, _ = await self._run(["poll", "--user", "gaben", "--password", "hunter2", "--max-polls", "2"])

        self.assertEqual(code, 0)
        summaries = [line for line in lines if line["t"] == "summary"]
        messages = [line for line in lines if line["t"] == "message"]
        self.assertEqual([s["steamid"] for s in summaries], [FRIEND_A, FRIEND_B])
        self.assertEqual(summaries[0]["state_label"], "Online")
        self.assertEqual([(m["steamid"], m["text"]) for m in messages], [(FRIEND_B, "gg")])
        self.assertFalse(self.state.logged_on)

    async def test_send_message(self):
        code, lines, _ = await self._run(
            ["send", "--user", "gaben", "--password", "hunter2", "--to", FRIEND_A, "--text", "waves", "--emote"]
        )

        self.assertEqual(code, 0)
        self.assertEqual(lines, [{"t": "sent", "steamid": FRIEND_A}])
        (sent,) = self.state.sent_messages
        self.assertEqual((sent["steamid_dst"], sent["type"], sent["text"]), (FRIEND_A, "emote", "waves"))


class CliMainTests(unittest.TestCase):
    def test_password_is_required(self):
        with mock.patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(SystemExit):
                cli.main(["login", "--user", "gaben"])

    def test_bad_env_config_is_rejected(self):
        env = {"STEAMCHAT_PASSWORD": "hunter2", "STEAMCHAT_PORT": "nope"}
        with mock.patch.dict("os.environ", env, clear=True):
            with self.assertRaises(SystemExit):
                cli.main(["login", "--user", "gaben"])


if __name__ == "__main__":
    unittest.main()
