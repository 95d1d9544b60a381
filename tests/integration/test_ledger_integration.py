"""
End-to-end tests of the shielded ledger.

These tests drive ShieldedLedger through wire payloads with real Groth16
proofs, covering deposit, private transfer and reclaim together with the
double-spend, stale-root and parameter-pinning rejections.
"""

from dataclasses import replace

import pytest

from conftest import OWNER, build_transfer, mint_coin, sender_for
from shieldpool.config import LedgerConfig
from shieldpool.core import (
    PrivateTransferData,
    generate_mint_payload,
    generate_reclaim_payload,
    make_coin,
    new_address,
    prepare_receiver,
    receive_coin,
)
from shieldpool.crypto import dh
from shieldpool.crypto.hashing import FieldElement
from shieldpool.crypto.params import CommitmentParameters
from shieldpool.errors import ErrorKind
from shieldpool.ledger import Minted, PrivateTransferred, Reclaimed, ShieldedLedger
from shieldpool.sharding import shard_index

pytestmark = pytest.mark.slow


class TestMintScenario:
    """Deposits into the pool."""

    def test_mint_ten(self, funded_ledger):
        """Minting 10 moves 10 from the caller's balance into the pool."""
        coin = mint_coin(funded_ledger, 10)
        assert funded_ledger.pool_balance == 10
        assert funded_ledger.balance(OWNER) == 990
        assert funded_ledger.shards.exists(coin.cm)
        assert funded_ledger.events[-1] == Minted(who=OWNER, amount=10)

    def test_mint_before_init(self, ledger):
        """Minting on an uninitialized ledger is rejected."""
        coin = make_coin(ledger.parameters.commit_params, b"\x01" * 32, 10)
        result = ledger.mint(OWNER, generate_mint_payload(coin).to_bytes())
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_INITIALIZED


class TestPrivateTransferScenario:
    """Two coins in, two coins out."""

    def test_transfer(self, funded_ledger, shielded_setup):
        """A valid transfer spends both senders and creates two receivable coins."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        transfer = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])

        result = funded_ledger.private_transfer(OWNER, transfer.payload)
        assert result.success, result.message
        assert result.events == [PrivateTransferred(who=OWNER)]

        assert set(funded_ledger.nullifiers) == {c.nullifier for c in senders}
        for receiver in transfer.receivers:
            assert funded_ledger.shards.exists(receiver.cm)
        assert len(funded_ledger.ciphertexts) == 2
        assert funded_ledger.pool_balance == 400

        recovered = [
            dh.decrypt(ct.cipher, ct.sender_pk, address.enc_sk)
            for ct, address in zip(funded_ledger.ciphertexts, transfer.addresses)
        ]
        assert recovered == [150, 250]

    def test_double_spend(self, funded_ledger, shielded_setup):
        """Replaying an accepted transfer fails with AlreadySpent."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        transfer = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        assert funded_ledger.private_transfer(OWNER, transfer.payload).success

        snapshot = funded_ledger.state.snapshot()
        result = funded_ledger.private_transfer(OWNER, transfer.payload)
        assert not result.success
        assert result.error_kind == ErrorKind.ALREADY_SPENT
        assert funded_ledger.state.snapshot() == snapshot

    def test_double_spend_with_new_receivers(self, funded_ledger, shielded_setup):
        """Spending the same coins again towards fresh receivers fails with AlreadySpent."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        first = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        second = build_transfer(funded_ledger, shielded_setup, senders, [200, 200])
        assert funded_ledger.private_transfer(OWNER, first.payload).success

        result = funded_ledger.private_transfer(OWNER, second.payload)
        assert result.error_kind == ErrorKind.ALREADY_SPENT

    def test_stale_root(self, funded_ledger, shielded_setup):
        """A root no shard has held is rejected with InvalidLedgerState."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        transfer = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        data = PrivateTransferData.from_bytes(transfer.payload)
        forged = replace(
            data,
            senders=(replace(data.senders[0], root=FieldElement(424242)), data.senders[1]),
        )

        result = funded_ledger.private_transfer(OWNER, forged.to_bytes())
        assert result.error_kind == ErrorKind.INVALID_LEDGER_STATE
        assert funded_ledger.nullifiers == []

    def test_spend_received_coins(self, funded_ledger, shielded_setup):
        """Coins created by a transfer can be spent by their receivers."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        first = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        assert funded_ledger.private_transfer(OWNER, first.payload).success

        received = first.received_coins(funded_ledger)
        assert [coin.value for coin in received] == [150, 250]
        second = build_transfer(funded_ledger, shielded_setup, received, [1, 399])
        result = funded_ledger.private_transfer("bob", second.payload)
        assert result.success, result.message
        assert len(funded_ledger.nullifiers) == 4


class TestReclaimScenario:
    """Withdrawals from the pool."""

    def test_reclaim_after_transfer(self, funded_ledger, shielded_setup):
        """Reclaiming 100 from the received coins pays the caller from the pool."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        transfer = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        assert funded_ledger.private_transfer(OWNER, transfer.payload).success
        received = transfer.received_coins(funded_ledger)

        commit_params = funded_ledger.parameters.commit_params
        change_address = new_address(commit_params)
        change = prepare_receiver(commit_params, change_address.address, 300)
        data = generate_reclaim_payload(
            shielded_setup.reclaim_prover(),
            [sender_for(funded_ledger, coin) for coin in received],
            change,
            amount=100,
        )

        balance_before = funded_ledger.balance(OWNER)
        result = funded_ledger.reclaim(OWNER, data.to_bytes())
        assert result.success, result.message
        assert result.events == [Reclaimed(who=OWNER, amount=100)]
        assert funded_ledger.pool_balance == 300
        assert funded_ledger.balance(OWNER) == balance_before + 100
        assert all(funded_ledger.state.is_spent(coin.nullifier) for coin in received)

        change_coin = receive_coin(
            commit_params, change_address, change.s, change.cm, change.sender_pk, change.cipher
        )
        assert change_coin.value == 300
        assert funded_ledger.shards.exists(change_coin.cm)

    def test_reclaim_zero(self, funded_ledger, shielded_setup):
        """A zero reclaim is rejected before anything else."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        commit_params = funded_ledger.parameters.commit_params
        change = prepare_receiver(commit_params, new_address(commit_params).address, 400)
        data = generate_reclaim_payload(
            shielded_setup.reclaim_prover(),
            [sender_for(funded_ledger, coin) for coin in senders],
            change,
            amount=0,
        )
        result = funded_ledger.reclaim(OWNER, data.to_bytes())
        assert result.error_kind == ErrorKind.AMOUNT_ZERO


class TestParameterPinning:
    """Operations must use the parameters pinned at init."""

    def test_substituted_commitment_parameters(self, funded_ledger):
        """A mint under different commitment parameters fails with ParameterMismatch."""
        funded_ledger.parameters = replace(
            funded_ledger.parameters,
            commit_params=CommitmentParameters.generate(b"\x0a" * 32),
        )
        coin = make_coin(funded_ledger.parameters.commit_params, b"\x01" * 32, 10)
        result = funded_ledger.mint(OWNER, generate_mint_payload(coin).to_bytes())
        assert result.error_kind == ErrorKind.PARAMETER_MISMATCH
        assert funded_ledger.pool_balance == 0


class TestRootHistory:
    """Proofs against recent roots remain valid for a bounded window."""

    def coin_in_shard(self, ledger, index, value):
        params = ledger.parameters.commit_params
        while True:
            coin = make_coin(params, b"\x05" * 32, value)
            if shard_index(coin.cm) == index:
                return coin

    def test_root_leaves_window(self, parameters, shielded_setup):
        """A root pushed out of the history window is rejected."""
        ledger = ShieldedLedger(parameters, LedgerConfig(root_history_size=2))
        ledger.init(OWNER, 1000)
        senders = [mint_coin(ledger, 100), mint_coin(ledger, 300)]
        transfer = build_transfer(ledger, shielded_setup, senders, [150, 250])

        index = shard_index(senders[0].cm)
        for _ in range(2):
            coin = self.coin_in_shard(ledger, index, 1)
            assert ledger.mint(OWNER, generate_mint_payload(coin).to_bytes()).success

        result = ledger.private_transfer(OWNER, transfer.payload)
        assert result.error_kind == ErrorKind.INVALID_LEDGER_STATE

    def test_recent_root_accepted(self, funded_ledger, shielded_setup):
        """A proof made one deposit ago still verifies."""
        senders = [mint_coin(funded_ledger, 100), mint_coin(funded_ledger, 300)]
        transfer = build_transfer(funded_ledger, shielded_setup, senders, [150, 250])
        index = shard_index(senders[0].cm)
        coin = self.coin_in_shard(funded_ledger, index, 1)
        assert funded_ledger.mint(OWNER, generate_mint_payload(coin).to_bytes()).success
        assert funded_ledger.private_transfer(OWNER, transfer.payload).success
