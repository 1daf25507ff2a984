import asyncio
import unittest

from lottery_client.errors import ReadFailed, TransactionFailed, UnexpectedResponse
from lottery_client.gateway import ContractGateway
from lottery_client.types import ContractRef, LotteryPhase, NetworkInfo
from lottery_client.wallet.base import Accessor, SigningAccessor, SubmittedTransaction

CONTRACT = ContractRef(address="0x" + "1" * 40, abi=())
PLAYER = "0x" + "cd" * 20


class StubAccessor(Accessor):
    def __init__(self, results=None, error=None) -> None:
        self.results = results or {}
        self.error = error
        self.calls = []

    async def get_network(self) -> NetworkInfo:
        return NetworkInfo(chain_id=4)

    async def call(self, contract, function, *args):
        self.calls.append((function, args))
        if self.error is not None:
            raise self.error
        return self.results[function]


class StubTransaction(SubmittedTransaction):
    tx_hash = "0xfeed"

    async def wait(self) -> None:
        return None


class StubSigner(StubAccessor, SigningAccessor):
    def __init__(self, transact_error=None) -> None:
        super().__init__()
        self.transact_error = transact_error
        self.sent = []

    async def get_address(self) -> str:
        return PLAYER

    async def transact(self, contract, function, *args, value=0):
        if self.transact_error is not None:
            raise self.transact_error
        self.sent.append((function, value))
        return StubTransaction()


class ContractGatewayReadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.gateway = ContractGateway(CONTRACT)

    def test_reads_convert_contract_values(self) -> None:
        accessor = StubAccessor(
            {
                "state": 1,
                "entryCount": 7,
                "minEntryCount": 3,
                "ownerEntryCount": 1,
                "ownerPrizeAmount": 2 * 10**16,
                "owner": "0x" + "AB" * 20,
            }
        )

        async def read_all():
            return (
                await self.gateway.get_phase(accessor),
                await self.gateway.get_entry_count(accessor),
                await self.gateway.get_min_entry_count(accessor),
                await self.gateway.get_owner_entry_count(accessor, PLAYER),
                await self.gateway.get_owner_prize_amount(accessor, PLAYER),
                await self.gateway.get_owner(accessor),
            )

        phase, entries, minimum, own_entries, prize, owner = asyncio.run(read_all())

        self.assertEqual(phase, LotteryPhase.PAUSED)
        self.assertEqual((entries, minimum, own_entries), (7, 3, 1))
        self.assertEqual(prize, 2 * 10**16)
        self.assertEqual(owner, "0x" + "AB" * 20)
        self.assertIn(("ownerEntryCount", (PLAYER,)), accessor.calls)

    def test_transport_errors_become_read_failed(self) -> None:
        accessor = StubAccessor(error=ConnectionError("timeout"))

        with self.assertRaises(ReadFailed) as ctx:
            asyncio.run(self.gateway.get_entry_count(accessor))

        self.assertNotIsInstance(ctx.exception, UnexpectedResponse)
        self.assertIsInstance(ctx.exception.__cause__, ConnectionError)

    def test_malformed_values_are_unexpected_responses(self) -> None:
        cases = {
            "negative": -1,
            "bool": True,
            "text": "12",
            "too large": 2**256,
        }
        for label, raw in cases.items():
            with self.subTest(label):
                accessor = StubAccessor({"entryCount": raw})
                with self.assertRaises(UnexpectedResponse):
                    asyncio.run(self.gateway.get_entry_count(accessor))

    def test_unknown_phase_is_unexpected(self) -> None:
        accessor = StubAccessor({"state": 2})
        with self.assertRaises(UnexpectedResponse):
            asyncio.run(self.gateway.get_phase(accessor))

    def test_owner_must_be_an_address(self) -> None:
        accessor = StubAccessor({"owner": "not-an-address"})
        with self.assertRaises(UnexpectedResponse):
            asyncio.run(self.gateway.get_owner(accessor))


class ContractGatewayWriteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.gateway = ContractGateway(CONTRACT)

    def test_entry_fee_is_one_hundredth_of_native_unit(self) -> None:
        self.assertEqual(self.gateway.entry_fee_wei, 10**16)

    def test_submit_entry_pays_the_fixed_fee(self) -> None:
        signer = StubSigner()

        tx = asyncio.run(self.gateway.submit_entry(signer))

        self.assertEqual(tx.tx_hash, "0xfeed")
        self.assertEqual(signer.sent, [("submitEntry", 10**16)])

    def test_other_writes_send_no_value(self) -> None:
        signer = StubSigner()

        async def send_both():
            await self.gateway.withdraw_prize_money(signer)
            await self.gateway.assign_winner(signer)

        asyncio.run(send_both())

        self.assertEqual(signer.sent, [("withdrawPrizeMoney", 0), ("assignWinner", 0)])

    def test_writes_refuse_read_only_accessor(self) -> None:
        with self.assertRaises(TypeError):
            asyncio.run(self.gateway.assign_winner(StubAccessor()))

    def test_submission_errors_become_transaction_failed(self) -> None:
        signer = StubSigner(transact_error=ValueError("user denied transaction signature"))

        with self.assertRaises(TransactionFailed):
            asyncio.run(self.gateway.submit_entry(signer))


if __name__ == "__main__":
    unittest.main()
