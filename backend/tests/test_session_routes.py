import os
import time
import unittest

import backend.config as config_module
from backend.app import create_app
from lottery_client.config import ClientSettings
from lottery_client.session import LotterySession
from lottery_client.types import ContractRef, LotteryPhase, normalize_address
from lottery_client.wallet.memory import InMemoryLottery, InMemoryWalletProvider

OWNER = "0x" + "ab" * 20
PLAYER = "0x" + "cd" * 20


class RoutesTestCase(unittest.TestCase):
    chain_id = 4

    def setUp(self) -> None:
        os.environ["LOTTERY_DEMO"] = "1"
        config_module.load_settings.cache_clear()

        self.lottery = InMemoryLottery(owner=OWNER, min_entry_count=2)
        settings = ClientSettings(poll_interval_seconds=60)

        def factory(notices) -> LotterySession:
            provider = InMemoryWalletProvider(self.lottery, PLAYER, chain_id=self.chain_id)
            contract = ContractRef(address="0x" + "0" * 40, abi=())
            return LotterySession(settings, provider, contract, notifier=notices)

        self.app = create_app(session_factory=factory)
        self.client = self.app.test_client()
        self.runner = self.app.extensions["lottery_runner"]

    def tearDown(self) -> None:
        self.runner.stop()
        os.environ.pop("LOTTERY_DEMO", None)
        config_module.load_settings.cache_clear()

    def _wait_for_action(self, kind: str, timeout: float = 2.0) -> dict:
        deadline = time.monotonic() + timeout
        payload = self.client.get("/session").get_json()
        while payload["action"]["kind"] != kind and time.monotonic() < deadline:
            time.sleep(0.01)
            payload = self.client.get("/session").get_json()
        return payload


class SessionRoutesTests(RoutesTestCase):
    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})

    def test_disconnected_session_offers_connect(self) -> None:
        response = self.client.get("/session")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertFalse(payload["connected"])
        self.assertEqual(payload["entry_count"], 0)
        self.assertEqual(payload["action"]["kind"], "connect")
        self.assertEqual(payload["action"]["label"], "Connect your wallet")

    def test_actions_need_a_connected_wallet(self) -> None:
        response = self.client.post("/session/actions/submit_entry")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.lottery.calls, [])

    def test_unknown_action(self) -> None:
        response = self.client.post("/session/actions/refund")
        self.assertEqual(response.status_code, 404)

    def test_connect_then_enter(self) -> None:
        connect = self.client.post("/session/connect")
        self.assertEqual(connect.status_code, 200)
        payload = connect.get_json()
        self.assertTrue(payload["connected"])
        self.assertEqual(payload["address"], PLAYER)
        self.assertEqual(payload["action"]["operation"], "submit_entry")

        enter = self.client.post("/session/actions/submit_entry")
        self.assertEqual(enter.status_code, 202)

        payload = self._wait_for_action("thank_you")
        self.assertEqual(payload["action"]["label"], "Thank you for participating!")
        self.assertEqual(payload["entry_count"], 1)
        self.assertFalse(payload["pending"])
        self.assertIn("You successfully entered the lottery!", payload["notices"])
        self.assertEqual(self.lottery.entries, {normalize_address(PLAYER): 1})

    def test_second_write_is_refused_while_pending(self) -> None:
        self.client.post("/session/connect")
        self.lottery.prizes[normalize_address(PLAYER)] = 10

        async def hold() -> None:
            self.lottery.hold_confirmations()

        async def release() -> None:
            self.lottery.release_confirmations()

        self.runner.call(hold())
        first = self.client.post("/session/actions/withdraw_prize_money")
        self.assertEqual(first.status_code, 202)
        self._wait_for_action("loading")

        second = self.client.post("/session/actions/submit_entry")
        self.assertEqual(second.status_code, 409)

        self.runner.call(release())
        payload = self._wait_for_action("enter")
        self.assertFalse(payload["pending"])
        self.assertEqual(self.lottery.prizes[normalize_address(PLAYER)], 0)

    def test_refresh_reads_phase_on_demand(self) -> None:
        self.client.post("/session/connect")
        self.lottery.phase = LotteryPhase.PAUSED
        self.lottery.entries["0x" + "11" * 20] = 1

        response = self.client.post("/session/refresh")

        payload = response.get_json()
        self.assertEqual(payload["phase"], "PAUSED")
        self.assertEqual(payload["entry_count"], 1)
        self.assertEqual(payload["action"]["kind"], "paused")


class WrongNetworkRoutesTests(RoutesTestCase):
    chain_id = 1

    def test_connect_is_refused_with_notice(self) -> None:
        response = self.client.post("/session/connect")

        self.assertEqual(response.status_code, 409)
        payload = response.get_json()
        self.assertFalse(payload["connected"])
        self.assertEqual(payload["notices"], ["Change the network to Rinkeby"])
        self.assertEqual(self.lottery.calls, [])

    def test_refresh_without_connection_keeps_defaults(self) -> None:
        response = self.client.post("/session/refresh")
        self.assertEqual(response.get_json()["phase"], "OPEN")
        self.assertEqual(self.lottery.calls, [])


if __name__ == "__main__":
    unittest.main()
