"""Shared fixtures for shieldpool tests."""

import secrets
from dataclasses import dataclass
from typing import List, Sequence

import pytest

from shieldpool.core import (
    AddressSecret,
    Coin,
    ProcessedReceiver,
    SenderMetadata,
    generate_mint_payload,
    generate_private_transfer_payload,
    make_coin,
    new_address,
    prepare_receiver,
    receive_coin,
)
from shieldpool.crypto.zkp import SetupOutput, setup
from shieldpool.ledger import ShieldedLedger

OWNER = "alice"


@pytest.fixture(scope="session")
def shielded_setup() -> SetupOutput:
    """Deterministic parameters and proving keys, generated once per run."""
    return setup()


@pytest.fixture
def parameters(shielded_setup):
    return shielded_setup.parameters


@pytest.fixture
def ledger(parameters):
    """Uninitialized in-memory ledger."""
    instance = ShieldedLedger(parameters)
    yield instance
    instance.close()


@pytest.fixture
def funded_ledger(ledger):
    """Ledger initialized with 1000 public tokens owned by alice."""
    result = ledger.init(OWNER, 1000)
    assert result.success
    return ledger


def mint_coin(ledger: ShieldedLedger, value: int, origin: str = OWNER) -> Coin:
    """Mint a coin of value owned by a fresh spending key."""
    coin = make_coin(ledger.parameters.commit_params, secrets.token_bytes(32), value)
    result = ledger.mint(origin, generate_mint_payload(coin).to_bytes())
    assert result.success, result.message
    return coin


def sender_for(ledger: ShieldedLedger, coin: Coin) -> SenderMetadata:
    """Spend metadata of a coin under its shard's current root."""
    root, path = ledger.shards.prove(coin.cm)
    return SenderMetadata(coin=coin, path=path, root=root)


@dataclass
class TransferFixture:
    """A proven transfer plus what the receivers need to claim their coins."""

    payload: bytes
    senders: List[Coin]
    addresses: List[AddressSecret]
    receivers: List[ProcessedReceiver]

    def received_coins(self, ledger: ShieldedLedger) -> List[Coin]:
        return [
            receive_coin(
                ledger.parameters.commit_params,
                address,
                receiver.s,
                receiver.cm,
                receiver.sender_pk,
                receiver.cipher,
            )
            for address, receiver in zip(self.addresses, self.receivers)
        ]


def build_transfer(
    ledger: ShieldedLedger,
    shielded_setup: SetupOutput,
    senders: Sequence[Coin],
    values: Sequence[int],
) -> TransferFixture:
    """Prove a private transfer of two minted coins to two fresh addresses."""
    commit_params = ledger.parameters.commit_params
    addresses = [new_address(commit_params) for _ in values]
    receivers = [
        prepare_receiver(commit_params, address.address, value)
        for address, value in zip(addresses, values)
    ]
    data = generate_private_transfer_payload(
        shielded_setup.transfer_prover(),
        [sender_for(ledger, coin) for coin in senders],
        receivers,
    )
    return TransferFixture(
        payload=data.to_bytes(),
        senders=list(senders),
        addresses=addresses,
        receivers=receivers,
    )
